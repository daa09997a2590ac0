"""
Anomaly detector orchestrator
"""
from collections import defaultdict
from typing import Dict, List, Optional, Tuple
import logging

from config import settings
from models.audit import Anomaly, AuditConfig, DEFAULT_AUDIT_CONFIG, TripAuditResult
from models.trip import Attendance, DriverAssignment, Trip
from engine.errors import InvalidRecord
from engine.rules import (
    TripRulesEngine,
    check_daily_trip_volume,
    check_missing_attendance,
    check_platform_mismatch,
    detect_repeated_images,
    index_assignments,
    index_attendance,
)
from engine.status_resolver import classify
from utils.validations import partition_valid_trips

logger = logging.getLogger(__name__)

SEVERITY_ORDER = {
    settings.SEVERITY_HIGH: 0,
    settings.SEVERITY_MEDIUM: 1,
    settings.SEVERITY_LOW: 2,
}


class AnomalyDetector:
    """
    Orchestrates per-trip rules and collection detectors across a trip set
    """

    def __init__(
        self,
        trips: List[Trip],
        assignments: Optional[List[DriverAssignment]] = None,
        attendance: Optional[List[Attendance]] = None,
        config: Optional[AuditConfig] = None
    ):
        self.trips = trips
        self.assignments = assignments
        self.attendance = attendance
        self.config = config or DEFAULT_AUDIT_CONFIG
        self.results: List[TripAuditResult] = []
        self.classified_trips: List[Trip] = []
        self.rejects: List[Tuple[Trip, InvalidRecord]] = []

    def detect(self) -> List[TripAuditResult]:
        """
        Run all anomaly detection and resolve each trip's status.
        Invalid trips are set aside in self.rejects.
        """
        valid, self.rejects = partition_valid_trips(self.trips)
        if self.rejects:
            logger.warning(f"Rejected {len(self.rejects)} invalid trip record(s) before audit")

        rules_engine = TripRulesEngine(self.config)
        anomalies_by_trip: Dict[str, List[Anomaly]] = {
            trip.trip_id: rules_engine.run_all_rules(trip) for trip in valid
        }

        for anomaly in self._collection_anomalies(valid):
            for trip_id in anomaly.trip_ids:
                if trip_id in anomalies_by_trip:
                    anomalies_by_trip[trip_id].append(anomaly)

        self.results = []
        self.classified_trips = []
        for trip in valid:
            anomalies = anomalies_by_trip[trip.trip_id]
            classified = classify(trip, anomalies)
            self.classified_trips.append(classified)
            self.results.append(TripAuditResult(
                trip_id=trip.trip_id,
                driver_id=trip.driver_id,
                anomalies=anomalies,
                audit_status=classified.audit_status,
            ))

        flagged = sum(1 for r in self.results if r.anomalies)
        logger.info(f"Audited {len(self.results)} trips, {flagged} with anomalies")

        return self.results

    def _collection_anomalies(self, trips: List[Trip]) -> List[Anomaly]:
        anomalies = detect_repeated_images(trips)

        if self.assignments is not None:
            by_driver = index_assignments(self.assignments)
            for trip in trips:
                anomalies.extend(check_platform_mismatch(trip, self.assignments, by_driver))

        if self.attendance is not None:
            present = index_attendance(self.attendance)
            for trip in trips:
                anomalies.extend(check_missing_attendance(trip, self.attendance, present))

        anomalies.extend(check_daily_trip_volume(trips, self.config))
        return anomalies

    def get_results_by_severity(self, severity: str) -> List[TripAuditResult]:
        """Results with at least one anomaly of the given severity"""
        return [r for r in self.results if any(a.severity == severity for a in r.anomalies)]

    def get_results_by_driver(self, driver_id: str) -> List[TripAuditResult]:
        """Results for a specific driver"""
        return [r for r in self.results if r.driver_id == driver_id]

    def get_results_by_type(self, anomaly_type: str) -> List[TripAuditResult]:
        """Results with at least one anomaly of the given type"""
        return [r for r in self.results if any(a.type == anomaly_type for a in r.anomalies)]

    def get_summary_stats(self) -> dict:
        """Get summary statistics about the audit"""
        return get_anomaly_summary(self.results)


def sort_by_severity(anomalies: List[Anomaly]) -> List[Anomaly]:
    """High first; stable within a severity"""
    return sorted(anomalies, key=lambda a: SEVERITY_ORDER.get(a.severity, 999))


def get_anomaly_summary(results: List[TripAuditResult]) -> dict:
    """
    Counts over a set of audit results.

    Severity and type counts tally anomalies; a repeated-image anomaly shared
    by several trips is counted once.
    """
    by_severity = {severity: 0 for severity in settings.SEVERITIES}
    by_type: Dict[str, int] = defaultdict(int)
    seen = set()
    trips_with_anomalies = 0
    affected_drivers = set()

    for result in results:
        if result.anomalies:
            trips_with_anomalies += 1
            affected_drivers.add(result.driver_id)

        for anomaly in result.anomalies:
            # Shared collection anomalies are attached to every trip they name
            key = id(anomaly) if len(anomaly.trip_ids) > 1 else None
            if key is not None:
                if key in seen:
                    continue
                seen.add(key)

            by_severity[anomaly.severity] = by_severity.get(anomaly.severity, 0) + 1
            by_type[anomaly.type] += 1

    return {
        'total_trips': len(results),
        'trips_with_anomalies': trips_with_anomalies,
        'total_anomalies': sum(by_severity.values()),
        'by_severity': by_severity,
        'by_type': dict(by_type),
        'needs_review': sum(1 for r in results if r.needs_review),
        'affected_drivers': len(affected_drivers),
    }
