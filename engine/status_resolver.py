"""
Audit status resolution and manual overrides
"""
from dataclasses import replace
from typing import Callable, Dict, List, Optional
import logging

from config import settings
from models.audit import Anomaly, AuditConfig
from models.trip import Trip
from engine.rules import evaluate
from storage.audit_log import AuditLog
from utils.validations import validate_status, validate_trip

logger = logging.getLogger(__name__)

# Fields whose change invalidates a manual override
TRACKED_FIELDS = [
    'date',
    'driver_id',
    'distance_km',
    'fuel_cost',
    'amount',
    'platform',
    'photo_url',
    'start_km',
    'end_km',
]

UpdateRecord = Callable[[str, Dict], None]


def automatic_status(anomalies: List[Anomaly]) -> str:
    """verified when no anomalies, needs_review otherwise"""
    return settings.STATUS_NEEDS_REVIEW if anomalies else settings.STATUS_VERIFIED


def resolve_status(trip: Trip, anomalies: List[Anomaly]) -> str:
    """
    Overall audit status for a trip. A manual override wins over the
    automatic status.
    """
    validate_trip(trip)
    if trip.status_override is not None:
        return trip.status_override
    return automatic_status(anomalies)


def can_transition(current: str, target: str) -> bool:
    """Every status is reachable from every status"""
    return validate_status(current) and validate_status(target)


def classify(trip: Trip, anomalies: List[Anomaly]) -> Trip:
    """Copy of the trip with anomaly_flag and audit_status derived"""
    return replace(
        trip,
        anomaly_flag=bool(anomalies),
        audit_status=resolve_status(trip, anomalies),
    )


def apply_override(
    trip: Trip,
    status: str,
    reviewer: str = "system",
    notes: str = "",
    audit_log: Optional[AuditLog] = None,
    update_record: Optional[UpdateRecord] = None
) -> Trip:
    """
    Manually set a trip's audit status ("mark verified" / "mark for review").
    The override is written to the store with the status and holds until a
    tracked field changes.
    """
    if not validate_status(status):
        raise ValueError(f"Unknown target audit status: {status!r}")

    updated = replace(trip, audit_status=status, status_override=status)
    logger.info(f"Trip {trip.trip_id} overridden {trip.audit_status} -> {status} by {reviewer}")

    if audit_log is not None:
        audit_log.log_status_override(
            trip_id=trip.trip_id,
            driver_id=trip.driver_id,
            user=reviewer,
            previous_status=trip.audit_status,
            status=status,
            notes=notes,
        )

    if update_record is not None:
        update_record(trip.trip_id, {'audit_status': status, 'status_override': status})

    return updated


def changed_fields(before: Trip, after: Trip) -> List[str]:
    return [name for name in TRACKED_FIELDS if getattr(before, name) != getattr(after, name)]


def apply_edit(
    trip: Trip,
    changes: Dict,
    config: Optional[AuditConfig] = None,
    update_record: Optional[UpdateRecord] = None,
    audit_log: Optional[AuditLog] = None
) -> Trip:
    """
    Apply field edits to a trip. When a tracked field changes the manual
    override is dropped and the per-trip rules run again.
    """
    edited = replace(trip, **changes)
    modified = changed_fields(trip, edited)

    if not modified:
        return edited

    validate_trip(edited)
    anomalies = evaluate(edited, config)
    edited = classify(replace(edited, status_override=None), anomalies)

    logger.debug(f"Trip {trip.trip_id} re-evaluated after edit of {', '.join(modified)}")

    if trip.is_overridden:
        logger.info(f"Override on trip {trip.trip_id} cleared, status now {edited.audit_status}")
        if audit_log is not None:
            audit_log.log_override_cleared(trip.trip_id, edited.audit_status, modified)

    if update_record is not None:
        update_record(trip.trip_id, {
            'audit_status': edited.audit_status,
            'anomaly_flag': edited.anomaly_flag,
            'status_override': None,
        })

    return edited
