"""
Date range filtering and daily series engine
"""
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from config import settings
from models.trip import Trip


def resolve_time_range(
    preset: str,
    today: Optional[date] = None
) -> Tuple[Optional[date], date]:
    """
    Convert a dashboard preset ("7d", "30d", "3m", "1y", "all") into an
    inclusive (start, end) window ending today. "all" has no start.
    """
    today = today or date.today()
    preset = (preset or "").strip().lower()

    if preset not in settings.TIME_RANGE_PRESETS:
        raise ValueError(f"Unknown time range preset: {preset!r}")

    if preset == "all":
        return None, today

    count = int(preset[:-1])
    unit = preset[-1]

    if unit == "d":
        start = today - timedelta(days=count - 1)
    elif unit == "m":
        start = today - relativedelta(months=count) + timedelta(days=1)
    else:
        start = today - relativedelta(years=count) + timedelta(days=1)

    return start, today


class DateRangeEngine:
    """
    Filters trips by date range and buckets them per calendar day
    """

    def __init__(self, trips: List[Trip]):
        self.trips = trips

    def filter_by_date_range(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Trip]:
        """Filter trips within a date range"""
        filtered = self.trips

        if start_date:
            filtered = [t for t in filtered if t.date and t.date >= start_date]

        if end_date:
            filtered = [t for t in filtered if t.date and t.date <= end_date]

        return filtered

    def filter_by_preset(self, preset: str, today: Optional[date] = None) -> List[Trip]:
        start_date, end_date = resolve_time_range(preset, today)
        return self.filter_by_date_range(start_date, end_date)

    def filter_trips(
        self,
        statuses: Optional[List[str]] = None,
        platforms: Optional[List[str]] = None,
        driver_id: Optional[str] = None
    ) -> List[Trip]:
        """Filter by audit status, platform and driver; empty filters match all"""
        filtered = self.trips

        if statuses:
            filtered = [t for t in filtered if t.audit_status in statuses]

        if platforms:
            wanted = {p.lower() for p in platforms}
            filtered = [t for t in filtered if t.platform and t.platform.lower() in wanted]

        if driver_id:
            filtered = [t for t in filtered if t.driver_id == driver_id]

        return filtered

    def daily_series(
        self,
        days: int = settings.DEFAULT_SERIES_DAYS,
        today: Optional[date] = None
    ) -> List[Dict]:
        """
        One bucket per calendar day for the `days` days ending today, oldest
        first. Days without trips are present with zero values.
        Absent numeric fields add nothing to the sums.
        """
        if days < 0:
            raise ValueError(f"days must not be negative (got {days})")

        today = today or date.today()
        start = today - timedelta(days=days - 1)

        buckets: Dict[date, Dict] = {}
        for offset in range(days):
            day = start + timedelta(days=offset)
            buckets[day] = {
                'date': day,
                'trip_count': 0,
                'total_km': 0.0,
                'total_fuel': 0.0,
                'total_earning': 0.0,
            }

        for trip in self.trips:
            bucket = buckets.get(trip.date)
            if bucket is None:
                continue
            bucket['trip_count'] += 1
            bucket['total_km'] += trip.distance_km or 0.0
            bucket['total_fuel'] += trip.fuel_cost or 0.0
            bucket['total_earning'] += trip.amount or 0.0

        return list(buckets.values())
