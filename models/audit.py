"""
Audit value types: anomalies, per-trip results and rule thresholds
"""
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional
import logging

import yaml

from config import settings
from engine.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Anomaly:
    """A flagged irregularity on a trip. Produced fresh on every evaluation."""
    type: str
    rule: str
    severity: str  # low, medium, high
    description: str = ""
    value: Optional[float] = None
    threshold: Optional[float] = None
    recommendation: Optional[str] = None
    trip_ids: tuple = ()
    evidence: dict = field(default_factory=dict, compare=False, hash=False)


@dataclass
class TripAuditResult:
    """Outcome of auditing a single trip"""
    trip_id: str
    driver_id: str
    anomalies: List[Anomaly] = field(default_factory=list)
    audit_status: str = settings.STATUS_PENDING

    @property
    def needs_review(self) -> bool:
        return self.audit_status == settings.STATUS_NEEDS_REVIEW

    @property
    def overall_status(self) -> str:
        """clean / warning / critical badge derived from anomaly severities"""
        if any(a.severity == settings.SEVERITY_HIGH for a in self.anomalies):
            return settings.OVERALL_CRITICAL
        if self.anomalies:
            return settings.OVERALL_WARNING
        return settings.OVERALL_CLEAN


@dataclass(frozen=True)
class AuditConfig:
    """
    Thresholds used by the rule engine.

    Optional thresholds left as None disable their rule.
    """
    min_distance_km: float = settings.MIN_DISTANCE_KM
    max_distance_km: float = settings.MAX_DISTANCE_KM
    max_fuel_cost: float = settings.MAX_FUEL_COST
    photo_required_amount: float = settings.PHOTO_REQUIRED_AMOUNT
    odometer_tolerance_km: float = settings.ODOMETER_TOLERANCE_KM
    max_trips_per_day: Optional[int] = settings.MAX_TRIPS_PER_DAY
    fuel_price_per_liter: float = settings.FUEL_PRICE_PER_LITER
    max_earnings_per_trip: Optional[float] = None
    min_fuel_efficiency: Optional[float] = None
    max_fuel_efficiency: Optional[float] = None

    def __post_init__(self):
        """Reject negative or inverted thresholds"""
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f.name, f"expected a number, got {value!r}")
            if value < 0:
                raise ConfigurationError(f.name, f"must not be negative (got {value})")

        if self.min_distance_km > self.max_distance_km:
            raise ConfigurationError(
                "min_distance_km",
                f"{self.min_distance_km} exceeds max_distance_km {self.max_distance_km}"
            )
        if self.fuel_price_per_liter == 0:
            raise ConfigurationError("fuel_price_per_liter", "must be greater than zero")
        if (
            self.min_fuel_efficiency is not None and
            self.max_fuel_efficiency is not None and
            self.min_fuel_efficiency > self.max_fuel_efficiency
        ):
            raise ConfigurationError(
                "min_fuel_efficiency",
                f"{self.min_fuel_efficiency} exceeds max_fuel_efficiency {self.max_fuel_efficiency}"
            )

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "AuditConfig":
        """Build a config from a mapping; unknown keys are logged and ignored"""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = sorted(str(k) for k in data if k not in known)
        if unknown:
            logger.warning(f"Ignoring unknown audit config keys: {', '.join(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_AUDIT_CONFIG = AuditConfig()


def load_audit_config(path: Optional[str] = None) -> AuditConfig:
    """
    Load thresholds from a YAML file, falling back to the settings defaults
    when the file does not exist.
    """
    config_path = Path(
        path or settings.AUDIT_CONFIG_PATH or Path(__file__).parent.parent / "config" / "audit.yaml"
    )
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return AuditConfig()

    if not isinstance(data, dict):
        raise ConfigurationError(str(config_path), "expected a mapping of threshold names to values")

    return AuditConfig.from_dict(data)
