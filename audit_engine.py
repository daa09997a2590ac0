"""
Trip audit pipeline.

Takes an already-fetched trip collection, classifies every trip, resolves its
audit status and builds the dashboard aggregates. Reads and writes against
the external store happen only through the callables passed in.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

import pandas as pd

from config import settings
from engine.aggregation import AggregationEngine
from engine.anomaly_detector import AnomalyDetector
from engine.errors import InvalidRecord
from models.audit import AuditConfig, DEFAULT_AUDIT_CONFIG, TripAuditResult
from models.canonical_model import CanonicalModel
from models.trip import Attendance, Driver, DriverAssignment, Payment, Trip

logger = logging.getLogger(__name__)

UpdateRecord = Callable[[str, Dict], None]


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------

@dataclass
class AuditRun:
    """Everything produced by one audit pass"""
    trips: List[Trip]
    results: List[TripAuditResult]
    rejects: List[Tuple[Trip, InvalidRecord]] = field(default_factory=list)
    summary: Dict = field(default_factory=dict)
    anomaly_summary: Dict = field(default_factory=dict)
    persisted: int = 0

    def results_by_trip(self) -> Dict[str, TripAuditResult]:
        return {r.trip_id: r for r in self.results}


# ---------------------------------------------------------------------------
# Trip sheet loader
# ---------------------------------------------------------------------------

def load_trip_sheet(filepath: str) -> Tuple[List[Trip], List[Tuple[dict, InvalidRecord]]]:
    """
    Load an exported trip sheet CSV into typed trips.

    Cells are read as text so blank fuel/photo cells stay absent instead of
    becoming 0. Returns (trips, rejected rows).
    """
    df = pd.read_csv(filepath, dtype=str, keep_default_na=False)
    df.columns = [str(c).strip() for c in df.columns]

    model = CanonicalModel()
    model.add_trip_records(df.to_dict(orient="records"))

    if model.rejects:
        logger.warning(f"{len(model.rejects)} row(s) in {filepath} could not be parsed")

    return model.trips, model.rejects


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def run_trip_audit(
    trips: List[Trip],
    drivers: Optional[List[Driver]] = None,
    payments: Optional[List[Payment]] = None,
    assignments: Optional[List[DriverAssignment]] = None,
    attendance: Optional[List[Attendance]] = None,
    config: Optional[AuditConfig] = None,
    update_record: Optional[UpdateRecord] = None
) -> AuditRun:
    """
    Validate, classify and summarize a trip collection.

    When update_record is given it is called once per trip whose computed
    audit_status or anomaly_flag differs from the stored values. The payload
    carries the trip's status_override so a manual status survives the write.
    """
    config = config or DEFAULT_AUDIT_CONFIG

    detector = AnomalyDetector(trips, assignments=assignments, attendance=attendance, config=config)
    results = detector.detect()
    classified = detector.classified_trips

    persisted = 0
    if update_record is not None:
        originals = {t.trip_id: t for t in trips}
        for trip in classified:
            before = originals.get(trip.trip_id)
            if (
                before is not None and
                before.audit_status == trip.audit_status and
                before.anomaly_flag == trip.anomaly_flag
            ):
                continue
            update_record(trip.trip_id, {
                'audit_status': trip.audit_status,
                'anomaly_flag': trip.anomaly_flag,
                'status_override': trip.status_override,
            })
            persisted += 1
        logger.debug(f"Persisted audit status for {persisted} trip(s)")

    aggregation = AggregationEngine(classified, drivers=drivers, payments=payments, config=config)

    return AuditRun(
        trips=classified,
        results=results,
        rejects=detector.rejects,
        summary=aggregation.summary(),
        anomaly_summary=detector.get_summary_stats(),
        persisted=persisted,
    )


def build_dashboard(
    trips: List[Trip],
    drivers: Optional[List[Driver]] = None,
    payments: Optional[List[Payment]] = None,
    config: Optional[AuditConfig] = None,
    today: Optional[date] = None,
    days: int = settings.DEFAULT_SERIES_DAYS
) -> Dict:
    """
    Dashboard view over classified trips: summary cards, top drivers,
    daily chart series, recent anomalies and fuel efficiency.
    """
    engine = AggregationEngine(trips, drivers=drivers, payments=payments, config=config)
    return {
        'summary': engine.summary(),
        'rankings': engine.driver_rankings(),
        'daily_series': engine.daily_series(days=days, today=today),
        'recent_anomalies': engine.recent_anomalies(),
        'fuel_efficiency': engine.fuel_efficiency_series(),
        'payments': engine.payment_summary(),
    }
