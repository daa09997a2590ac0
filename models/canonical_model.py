"""
Canonical data model - normalizes raw store rows into typed records
"""
from typing import Dict, Iterable, List, Optional, Tuple
import pandas as pd

from config import settings
from engine.errors import InvalidRecord
from models.trip import Attendance, Driver, DriverAssignment, Payment, Trip
from utils.helpers import clean_text, is_blank, parse_date, parse_optional_number


# Column alias -> canonical trip field
_TRIP_FIELD_MAP = {
    "id": "trip_id",
    "trip_id": "trip_id",
    "driver_id": "driver_id",
    "date": "date",
    "trip_date": "date",
    "distance_km": "distance_km",
    "distance": "distance_km",
    "distance (km)": "distance_km",
    "km": "distance_km",
    "fuel_cost": "fuel_cost",
    "fuel": "fuel_cost",
    "amount": "amount",
    "earning": "amount",
    "platform": "platform",
    "destination": "destination",
    "photo_url": "photo_url",
    "photo": "photo_url",
    "start_km": "start_km",
    "end_km": "end_km",
    "notes": "notes",
    "driver_name": "driver_name",
    "anomaly_flag": "anomaly_flag",
    "audit_status": "audit_status",
    "status_override": "status_override",
}

_NUMERIC_TRIP_FIELDS = {"distance_km", "fuel_cost", "amount", "start_km", "end_km"}


def normalize_key(key) -> str:
    return str(key).strip().lower().replace("-", "_")


def _parse_flag(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1", "y")
    if value is None:
        return False
    try:
        if pd.isna(value):
            return False
    except (TypeError, ValueError):
        pass
    return bool(value)


class CanonicalModel:
    """
    Canonical data model that turns loosely-typed store rows into
    Trip/Driver/Payment/Attendance records
    """

    def __init__(self):
        self.trips: List[Trip] = []
        self.drivers: List[Driver] = []
        self.payments: List[Payment] = []
        self.attendance: List[Attendance] = []
        self.assignments: List[DriverAssignment] = []
        self.rejects: List[Tuple[dict, InvalidRecord]] = []

    @staticmethod
    def trip_from_record(record: Dict) -> Trip:
        """
        Build a Trip from a raw row. Blank numeric cells stay None.
        Raises InvalidRecord when a numeric cell cannot be parsed.
        """
        values: Dict = {}
        for key, value in record.items():
            canonical = _TRIP_FIELD_MAP.get(normalize_key(key))
            if canonical and canonical not in values:
                values[canonical] = value

        # Joined driver row, as returned by the store's relation select
        joined = record.get("drivers")
        if isinstance(joined, dict) and not values.get("driver_name"):
            values["driver_name"] = joined.get("name")

        trip_id = clean_text(values.get("trip_id")) or ""

        numbers = {}
        for name in _NUMERIC_TRIP_FIELDS:
            raw = values.get(name)
            number = parse_optional_number(raw)
            if number is None and not is_blank(raw):
                raise InvalidRecord(f"{name} is not a number ({raw!r})", trip_id or None)
            numbers[name] = number

        audit_status = clean_text(values.get("audit_status")) or settings.STATUS_PENDING
        override = clean_text(values.get("status_override"))

        return Trip(
            trip_id=trip_id,
            driver_id=clean_text(values.get("driver_id")),
            date=parse_date(values.get("date")),
            platform=clean_text(values.get("platform")),
            destination=clean_text(values.get("destination")),
            photo_url=clean_text(values.get("photo_url")),
            notes=clean_text(values.get("notes")),
            driver_name=clean_text(values.get("driver_name")),
            anomaly_flag=_parse_flag(values.get("anomaly_flag")),
            audit_status=audit_status,
            status_override=override,
            **numbers,
        )

    @staticmethod
    def driver_from_record(record: Dict) -> Driver:
        return Driver(
            driver_id=str(record.get("id") or record.get("driver_id")),
            name=clean_text(record.get("name")) or "Unknown",
            phone=clean_text(record.get("phone")),
            email=clean_text(record.get("email")),
            status=clean_text(record.get("status")) or "active",
            license_number=clean_text(record.get("license_number")),
            license_expiry=parse_date(record.get("license_expiry")),
        )

    @staticmethod
    def payment_from_record(record: Dict) -> Payment:
        return Payment(
            payment_id=str(record.get("id") or record.get("payment_id")),
            driver_id=str(record.get("driver_id")),
            amount=parse_optional_number(record.get("amount")) or 0.0,
            status=clean_text(record.get("status")) or "pending",
            payment_date=parse_date(record.get("payment_date")),
            payment_method=clean_text(record.get("payment_method")),
        )

    @staticmethod
    def attendance_from_record(record: Dict) -> Attendance:
        return Attendance(
            attendance_id=str(record.get("id") or record.get("attendance_id")),
            driver_id=str(record.get("driver_id")),
            date=parse_date(record.get("date")),
            status=clean_text(record.get("status")) or "present",
        )

    def add_trip_records(self, records: Iterable[Dict]) -> List[Trip]:
        """Normalize and add trip rows; unparseable rows go to self.rejects"""
        added = []
        for record in records:
            try:
                trip = self.trip_from_record(record)
            except InvalidRecord as exc:
                self.rejects.append((record, exc))
                continue
            self.trips.append(trip)
            added.append(trip)
        return added

    def add_driver_records(self, records: Iterable[Dict]):
        self.drivers.extend(self.driver_from_record(r) for r in records)

    def add_payment_records(self, records: Iterable[Dict]):
        self.payments.extend(self.payment_from_record(r) for r in records)

    def add_attendance_records(self, records: Iterable[Dict]):
        self.attendance.extend(self.attendance_from_record(r) for r in records)

    def add_assignment_records(self, records: Iterable[Dict]):
        self.assignments.extend(
            DriverAssignment(driver_id=str(r.get("driver_id")), platform=str(r.get("platform")))
            for r in records
        )

    def get_driver(self, driver_id: str) -> Optional[Driver]:
        return next((d for d in self.drivers if d.driver_id == driver_id), None)

    def get_trips_df(self, trips: Optional[List[Trip]] = None) -> pd.DataFrame:
        """Get trips as a pandas DataFrame"""
        trips = self.trips if trips is None else trips
        if not trips:
            return pd.DataFrame()

        data = []
        for t in trips:
            data.append({
                'trip_id': t.trip_id,
                'driver_id': t.driver_id,
                'driver_name': t.driver_name,
                'date': t.date,
                'platform': t.platform,
                'destination': t.destination,
                'distance_km': t.distance_km,
                'fuel_cost': t.fuel_cost,
                'amount': t.amount,
                'has_photo': t.has_photo,
                'anomaly_flag': t.anomaly_flag,
                'audit_status': t.audit_status,
            })

        return pd.DataFrame(data)

    def get_drivers_df(self) -> pd.DataFrame:
        """Get drivers as a pandas DataFrame"""
        if not self.drivers:
            return pd.DataFrame()

        return pd.DataFrame([{
            'driver_id': d.driver_id,
            'name': d.name,
            'phone': d.phone,
            'status': d.status,
            'license_number': d.license_number,
        } for d in self.drivers])

    def clear(self):
        """Clear all data"""
        self.trips.clear()
        self.drivers.clear()
        self.payments.clear()
        self.attendance.clear()
        self.assignments.clear()
        self.rejects.clear()
