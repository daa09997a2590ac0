"""
Data models for fleet records consumed by the audit core
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional

from config import settings


@dataclass(frozen=True)
class Trip:
    """Represents one trip sheet entry"""
    trip_id: str
    driver_id: Optional[str]
    date: Optional[date]
    distance_km: Optional[float] = None
    fuel_cost: Optional[float] = None
    amount: Optional[float] = None
    platform: Optional[str] = None
    destination: Optional[str] = None
    photo_url: Optional[str] = None
    start_km: Optional[float] = None
    end_km: Optional[float] = None
    notes: Optional[str] = None
    driver_name: Optional[str] = None
    anomaly_flag: bool = False
    audit_status: str = settings.STATUS_PENDING
    status_override: Optional[str] = None

    @property
    def has_photo(self) -> bool:
        """Blank photo references count as absent"""
        return bool(self.photo_url and str(self.photo_url).strip())

    @property
    def has_odometer(self) -> bool:
        return self.start_km is not None and self.end_km is not None

    @property
    def is_overridden(self) -> bool:
        return self.status_override is not None


@dataclass(frozen=True)
class Driver:
    """Represents a driver"""
    driver_id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    status: str = "active"
    license_number: Optional[str] = None
    license_expiry: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass(frozen=True)
class Payment:
    """Driver-linked payment record"""
    payment_id: str
    driver_id: str
    amount: float = 0.0
    status: str = "pending"  # pending, paid, overdue, cancelled
    payment_date: Optional[date] = None
    payment_method: Optional[str] = None


@dataclass(frozen=True)
class Attendance:
    """Daily attendance entry for a driver"""
    attendance_id: str
    driver_id: str
    date: date
    status: str = "present"  # present, absent, late, half_day


@dataclass(frozen=True)
class DriverAssignment:
    """A platform a driver is allowed to run trips for"""
    driver_id: str
    platform: str


@dataclass
class DriverStats:
    """Per-driver totals used for rankings"""
    driver_id: str
    driver_name: str = "Unknown"
    driver_phone: str = ""
    total_trips: int = 0
    total_km: float = 0.0
    total_earning: float = 0.0

    @property
    def average_earning(self) -> float:
        if self.total_trips == 0:
            return 0.0
        return self.total_earning / self.total_trips
