"""
Trip rules engine - implements all audit rules
"""
from typing import Dict, Iterable, List, Optional, Tuple
from datetime import date
from collections import defaultdict
import logging

from config import settings
from models.audit import Anomaly, AuditConfig, DEFAULT_AUDIT_CONFIG
from models.trip import Attendance, DriverAssignment, Trip
from engine.explainability import ExplainabilityEngine
from utils.helpers import format_date, photo_key
from utils.validations import validate_trip

logger = logging.getLogger(__name__)


def _build_anomaly(
    anomaly_type: str,
    rule: str,
    severity: str,
    evidence: dict,
    value: Optional[float] = None,
    threshold: Optional[float] = None,
    trip_ids: Tuple[str, ...] = ()
) -> Anomaly:
    description, recommendation = ExplainabilityEngine.explain(rule, evidence)
    return Anomaly(
        type=anomaly_type,
        rule=rule,
        severity=severity,
        description=description,
        value=value,
        threshold=threshold,
        recommendation=recommendation,
        trip_ids=trip_ids,
        evidence=evidence,
    )


def _distance_evidence(trip: Trip, threshold: float) -> dict:
    evidence = {'distance_km': trip.distance_km, 'threshold': threshold}
    if trip.has_odometer:
        evidence['odometer_km'] = trip.end_km - trip.start_km
    return evidence


class TripRulesEngine:
    """
    Evaluates single trips against the configured thresholds.

    Rules run in declaration order so the returned anomaly list is stable.
    """

    def __init__(self, config: Optional[AuditConfig] = None):
        self.config = config or DEFAULT_AUDIT_CONFIG
        self.findings: List[Anomaly] = []

    def run_all_rules(self, trip: Trip) -> List[Anomaly]:
        """Run every per-trip rule and return the anomalies found"""
        validate_trip(trip)
        self.findings = []

        # Distance bounds
        self.check_low_distance(trip)
        self.check_high_distance(trip)

        # Fuel
        self.check_high_fuel(trip)

        # Evidence
        self.check_missing_photo(trip)

        # Odometer consistency
        self.check_odometer_mismatch(trip)

        # Optional rules, off unless thresholds are configured
        self.check_unusual_earnings(trip)
        self.check_fuel_efficiency(trip)

        return list(self.findings)

    def check_low_distance(self, trip: Trip):
        """
        IF distance_km < min_distance_km
        FLAG: distance_anomaly / very_low_distance
        """
        threshold = self.config.min_distance_km
        if trip.distance_km is not None and trip.distance_km < threshold:
            self.findings.append(_build_anomaly(
                settings.ANOMALY_DISTANCE,
                "very_low_distance",
                settings.SEVERITY_MEDIUM,
                evidence=_distance_evidence(trip, threshold),
                value=trip.distance_km,
                threshold=threshold,
            ))

    def check_high_distance(self, trip: Trip):
        """
        IF distance_km > max_distance_km
        FLAG: distance_anomaly / high_distance
        """
        threshold = self.config.max_distance_km
        if trip.distance_km is not None and trip.distance_km > threshold:
            self.findings.append(_build_anomaly(
                settings.ANOMALY_DISTANCE,
                "high_distance",
                settings.SEVERITY_MEDIUM,
                evidence=_distance_evidence(trip, threshold),
                value=trip.distance_km,
                threshold=threshold,
            ))

    def check_high_fuel(self, trip: Trip):
        """
        IF fuel_cost > max_fuel_cost
        FLAG: high_fuel_usage
        """
        threshold = self.config.max_fuel_cost
        if trip.fuel_cost is not None and trip.fuel_cost > threshold:
            self.findings.append(_build_anomaly(
                settings.ANOMALY_HIGH_FUEL,
                "high_fuel_usage",
                settings.SEVERITY_HIGH,
                evidence={
                    'fuel_cost': trip.fuel_cost,
                    'fuel_liters': trip.fuel_cost / self.config.fuel_price_per_liter,
                    'threshold': threshold,
                },
                value=trip.fuel_cost,
                threshold=threshold,
            ))

    def check_missing_photo(self, trip: Trip):
        """
        IF photo absent
        FLAG: missing_photo, escalated to high_value_missing_photo
        when amount > photo_required_amount
        """
        if trip.has_photo:
            return

        threshold = self.config.photo_required_amount
        if trip.amount is not None and trip.amount > threshold:
            self.findings.append(_build_anomaly(
                settings.ANOMALY_MISSING_PHOTO,
                "high_value_missing_photo",
                settings.SEVERITY_MEDIUM,
                evidence={'amount': trip.amount, 'threshold': threshold},
                value=trip.amount,
                threshold=threshold,
            ))
        else:
            self.findings.append(_build_anomaly(
                settings.ANOMALY_MISSING_PHOTO,
                "missing_photo",
                settings.SEVERITY_MEDIUM,
                evidence={},
            ))

    def check_odometer_mismatch(self, trip: Trip):
        """
        IF start_km and end_km present AND end_km - start_km != distance_km
        FLAG: distance_anomaly / odometer_mismatch

        Skipped when a distance bound already fired; a trip carries at most one
        distance_anomaly and the bound anomaly holds the odometer reading.
        """
        if not trip.has_odometer or trip.distance_km is None:
            return

        if any(a.type == settings.ANOMALY_DISTANCE for a in self.findings):
            return

        travelled = trip.end_km - trip.start_km
        if abs(travelled - trip.distance_km) > self.config.odometer_tolerance_km:
            self.findings.append(_build_anomaly(
                settings.ANOMALY_DISTANCE,
                "odometer_mismatch",
                settings.SEVERITY_MEDIUM,
                evidence={
                    'start_km': trip.start_km,
                    'end_km': trip.end_km,
                    'distance_km': trip.distance_km,
                },
                value=travelled,
                threshold=trip.distance_km,
            ))

    def check_unusual_earnings(self, trip: Trip):
        """
        IF amount > max_earnings_per_trip
        FLAG: unusual_earnings
        """
        threshold = self.config.max_earnings_per_trip
        if threshold is None or trip.amount is None:
            return

        if trip.amount > threshold:
            self.findings.append(_build_anomaly(
                settings.ANOMALY_UNUSUAL_EARNINGS,
                "unusual_earnings",
                settings.SEVERITY_LOW,
                evidence={'amount': trip.amount, 'threshold': threshold},
                value=trip.amount,
                threshold=threshold,
            ))

    def check_fuel_efficiency(self, trip: Trip):
        """
        IF km per liter outside [min_fuel_efficiency, max_fuel_efficiency]
        FLAG: fuel_efficiency_anomaly
        """
        low = self.config.min_fuel_efficiency
        high = self.config.max_fuel_efficiency
        if low is None and high is None:
            return

        efficiency = fuel_efficiency(trip, self.config.fuel_price_per_liter)
        if efficiency is None:
            return

        if (low is not None and efficiency < low) or (high is not None and efficiency > high):
            self.findings.append(_build_anomaly(
                settings.ANOMALY_FUEL_EFFICIENCY,
                "fuel_efficiency",
                settings.SEVERITY_LOW,
                evidence={
                    'km_per_liter': efficiency,
                    'min_fuel_efficiency': low,
                    'max_fuel_efficiency': high,
                },
                value=efficiency,
                threshold=low if low is not None and efficiency < low else high,
            ))


def fuel_efficiency(trip: Trip, price_per_liter: float = settings.FUEL_PRICE_PER_LITER) -> Optional[float]:
    """
    Kilometers per liter, or None when fuel or distance was not recorded.
    Zero fuel cost is excluded as well since no volume can be derived.
    """
    if trip.distance_km is None or trip.fuel_cost is None or trip.fuel_cost <= 0:
        return None
    return trip.distance_km / (trip.fuel_cost / price_per_liter)


def evaluate(trip: Trip, config: Optional[AuditConfig] = None) -> List[Anomaly]:
    """
    Evaluate one trip and return its anomalies in rule-declaration order.
    Raises InvalidRecord for trips that fail validation.
    """
    return TripRulesEngine(config).run_all_rules(trip)


# ---------------------------------------------------------------------------
# Collection-level detectors
# ---------------------------------------------------------------------------

def detect_repeated_images(trips: Iterable[Trip]) -> List[Anomaly]:
    """
    Group trips by photo reference; one repeated_image anomaly per reference
    shared by more than one trip, in order of first appearance.
    """
    groups: Dict[str, List[str]] = {}

    for trip in trips:
        if not trip.has_photo:
            continue
        groups.setdefault(photo_key(trip.photo_url), []).append(trip.trip_id)

    anomalies = []
    for key, trip_ids in groups.items():
        if len(trip_ids) > 1:
            anomalies.append(_build_anomaly(
                settings.ANOMALY_REPEATED_IMAGE,
                "repeated_image",
                settings.SEVERITY_HIGH,
                evidence={'photo_key': key, 'count': len(trip_ids)},
                value=len(trip_ids),
                threshold=1,
                trip_ids=tuple(trip_ids),
            ))

    if anomalies:
        logger.info(f"Found {len(anomalies)} repeated dashboard image(s)")

    return anomalies


def index_assignments(assignments: Iterable[DriverAssignment]) -> Dict[str, set]:
    """driver_id -> set of assigned platforms"""
    by_driver = defaultdict(set)
    for assignment in assignments:
        by_driver[assignment.driver_id].add(assignment.platform)
    return by_driver


def check_platform_mismatch(
    trip: Trip,
    assignments: Iterable[DriverAssignment],
    assignments_by_driver: Optional[Dict[str, set]] = None
) -> List[Anomaly]:
    """
    Flag a trip whose platform is not among its driver's assignments.
    Trips with no platform recorded are not checked.
    """
    if not trip.platform:
        return []

    if assignments_by_driver is None:
        assignments_by_driver = index_assignments(assignments)

    assigned = assignments_by_driver.get(trip.driver_id, set())
    if trip.platform in assigned:
        return []

    return [_build_anomaly(
        settings.ANOMALY_PLATFORM_MISMATCH,
        "platform_mismatch",
        settings.SEVERITY_MEDIUM,
        evidence={'platform': trip.platform, 'assigned_platforms': sorted(assigned)},
        trip_ids=(trip.trip_id,),
    )]


def index_attendance(attendance: Iterable[Attendance]) -> set:
    """Set of (driver_id, date) pairs with an attendance entry"""
    return {(a.driver_id, a.date) for a in attendance}


def check_missing_attendance(
    trip: Trip,
    attendance: Iterable[Attendance],
    attendance_index: Optional[set] = None
) -> List[Anomaly]:
    """Flag a trip whose date has no attendance entry for its driver"""
    if attendance_index is None:
        attendance_index = index_attendance(attendance)

    if (trip.driver_id, trip.date) in attendance_index:
        return []

    return [_build_anomaly(
        settings.ANOMALY_MISSING_ATTENDANCE,
        "missing_attendance",
        settings.SEVERITY_MEDIUM,
        evidence={'date': format_date(trip.date)},
        trip_ids=(trip.trip_id,),
    )]


def check_daily_trip_volume(
    trips: Iterable[Trip],
    config: Optional[AuditConfig] = None
) -> List[Anomaly]:
    """
    One time_anomaly per driver-day with more trips than max_trips_per_day
    """
    config = config or DEFAULT_AUDIT_CONFIG
    threshold = config.max_trips_per_day
    if threshold is None:
        return []

    per_day: Dict[Tuple[str, date], List[str]] = defaultdict(list)
    for trip in trips:
        per_day[(trip.driver_id, trip.date)].append(trip.trip_id)

    anomalies = []
    for (driver_id, trip_date), trip_ids in sorted(per_day.items(), key=lambda kv: (kv[0][1], kv[0][0])):
        if len(trip_ids) > threshold:
            anomalies.append(_build_anomaly(
                settings.ANOMALY_TIME,
                "excessive_daily_trips",
                settings.SEVERITY_MEDIUM,
                evidence={
                    'driver_id': driver_id,
                    'date': format_date(trip_date),
                    'count': len(trip_ids),
                    'threshold': threshold,
                },
                value=len(trip_ids),
                threshold=threshold,
                trip_ids=tuple(trip_ids),
            ))

    return anomalies
