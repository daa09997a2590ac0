"""
Input validation utilities
"""
from collections import Counter
from typing import Iterable, List, Optional, Tuple
from datetime import date
import re

from config import settings
from engine.errors import InvalidRecord
from models.trip import Trip


_NUMERIC_FIELDS = ['distance_km', 'fuel_cost', 'amount', 'start_km', 'end_km']


def validate_trip(trip: Trip) -> Trip:
    """
    Check the preconditions for auditing a trip.
    Raises InvalidRecord; returns the trip unchanged otherwise.
    """
    if not trip.trip_id or not str(trip.trip_id).strip():
        raise InvalidRecord("missing trip id")

    if not trip.driver_id or not str(trip.driver_id).strip():
        raise InvalidRecord("missing driver reference", trip.trip_id)

    if not isinstance(trip.date, date):
        raise InvalidRecord("missing trip date", trip.trip_id)

    for name in _NUMERIC_FIELDS:
        value = getattr(trip, name)
        if value is not None and value < 0:
            raise InvalidRecord(f"{name} must not be negative (got {value})", trip.trip_id)

    return trip


def partition_valid_trips(
    trips: Iterable[Trip]
) -> Tuple[List[Trip], List[Tuple[Trip, InvalidRecord]]]:
    """
    Split trips into auditable records and rejects with their errors.
    Every trip whose id appears more than once in the batch is rejected.
    """
    trips = list(trips)
    id_counts = Counter(trip.trip_id for trip in trips)

    valid: List[Trip] = []
    rejects: List[Tuple[Trip, InvalidRecord]] = []

    for trip in trips:
        try:
            validate_trip(trip)
            if id_counts[trip.trip_id] > 1:
                raise InvalidRecord(
                    f"trip id shared by {id_counts[trip.trip_id]} records in the batch", trip.trip_id
                )
        except InvalidRecord as exc:
            rejects.append((trip, exc))
            continue
        valid.append(trip)

    return valid, rejects


def validate_date_range(start_date: Optional[date], end_date: Optional[date]) -> bool:
    """Validate that date range is logical"""
    if not start_date or not end_date:
        return False

    return start_date <= end_date


def validate_severity(severity: str) -> bool:
    """Validate severity level"""
    return severity in settings.SEVERITIES


def validate_status(status: str) -> bool:
    """Validate audit status"""
    return status in settings.AUDIT_STATUSES


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe file operations"""
    # Remove or replace unsafe characters
    filename = re.sub(r'[<>:"/\\|?*]', '_', filename)
    # Remove leading/trailing spaces and dots
    filename = filename.strip('. ')
    # Limit length
    if len(filename) > 255:
        filename = filename[:255]

    return filename or 'unnamed'
