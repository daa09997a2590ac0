"""
Aggregation engine - reduces trip collections into dashboard statistics
"""
from datetime import date
from typing import Dict, List, Optional

from config import settings
from models.audit import AuditConfig, DEFAULT_AUDIT_CONFIG
from models.trip import Attendance, Driver, DriverStats, Payment, Trip
from engine.date_range_engine import DateRangeEngine
from engine.rules import fuel_efficiency


class AggregationEngine:
    """
    Pure reducers over an already-fetched trip collection.

    Absent numeric fields count as zero in totals and are excluded from the
    fuel efficiency series. Input records are never modified.
    """

    def __init__(
        self,
        trips: List[Trip],
        drivers: Optional[List[Driver]] = None,
        payments: Optional[List[Payment]] = None,
        config: Optional[AuditConfig] = None
    ):
        self.trips = trips
        self.drivers = drivers
        self.payments = payments or []
        self.config = config or DEFAULT_AUDIT_CONFIG
        self.drivers_by_id = {d.driver_id: d for d in (drivers or [])}

    def summary(self) -> Dict:
        """
        Totals for the summary cards. average_trip_value is 0 for an
        empty collection.
        """
        total_trips = 0
        total_km = 0.0
        total_fuel = 0.0
        total_earning = 0.0
        anomaly_count = 0
        verified_trips = 0
        needs_review_trips = 0
        driver_ids = set()

        for trip in self.trips:
            total_trips += 1
            total_km += trip.distance_km or 0.0
            total_fuel += trip.fuel_cost or 0.0
            total_earning += trip.amount or 0.0
            if trip.anomaly_flag:
                anomaly_count += 1
            if trip.audit_status == settings.STATUS_VERIFIED:
                verified_trips += 1
            elif trip.audit_status == settings.STATUS_NEEDS_REVIEW:
                needs_review_trips += 1
            if trip.driver_id:
                driver_ids.add(trip.driver_id)

        if self.drivers is not None:
            total_drivers = sum(1 for d in self.drivers if d.is_active)
        else:
            total_drivers = len(driver_ids)

        return {
            'total_trips': total_trips,
            'total_km': total_km,
            'total_fuel': total_fuel,
            'total_earning': total_earning,
            'anomaly_count': anomaly_count,
            'verified_trips': verified_trips,
            'needs_review_trips': needs_review_trips,
            'average_trip_value': total_earning / total_trips if total_trips else 0.0,
            'total_drivers': total_drivers,
            'pending_dues': self.payment_summary()['pending'],
        }

    def driver_rankings(self, top_n: Optional[int] = settings.DEFAULT_RANKING_SIZE) -> List[DriverStats]:
        """
        Per-driver totals sorted by earnings descending, ties broken by
        driver id. top_n=None returns every driver.
        """
        stats: Dict[str, DriverStats] = {}

        for trip in self.trips:
            if not trip.driver_id:
                continue

            entry = stats.get(trip.driver_id)
            if entry is None:
                driver = self.drivers_by_id.get(trip.driver_id)
                entry = DriverStats(
                    driver_id=trip.driver_id,
                    driver_name=(driver.name if driver else trip.driver_name) or "Unknown",
                    driver_phone=(driver.phone if driver else "") or "",
                )
                stats[trip.driver_id] = entry

            entry.total_trips += 1
            entry.total_km += trip.distance_km or 0.0
            entry.total_earning += trip.amount or 0.0

        ranked = sorted(stats.values(), key=lambda s: (-s.total_earning, s.driver_id))

        if top_n is None:
            return ranked
        if top_n < 0:
            raise ValueError(f"top_n must not be negative (got {top_n})")
        return ranked[:top_n]

    def daily_series(
        self,
        days: int = settings.DEFAULT_SERIES_DAYS,
        today: Optional[date] = None
    ) -> List[Dict]:
        """Continuous per-day buckets for charting"""
        return DateRangeEngine(self.trips).daily_series(days, today)

    def recent_anomalies(self, limit: int = settings.DEFAULT_ANOMALY_DIGEST_SIZE) -> List[Trip]:
        """Flagged trips, newest first, capped at limit"""
        flagged = [t for t in self.trips if t.anomaly_flag]
        # Secondary key keeps same-day ordering deterministic
        flagged.sort(key=lambda t: t.trip_id)
        flagged.sort(key=lambda t: t.date or date.min, reverse=True)
        return flagged[:max(limit, 0)]

    def fuel_efficiency_series(self, window: int = settings.DEFAULT_EFFICIENCY_WINDOW) -> List[Dict]:
        """
        km per liter for the most recent `window` trips that recorded both
        fuel and distance, oldest first.
        """
        price = self.config.fuel_price_per_liter
        points = []

        for trip in self.trips:
            efficiency = fuel_efficiency(trip, price)
            if efficiency is None:
                continue
            points.append({
                'trip_id': trip.trip_id,
                'date': trip.date,
                'distance_km': trip.distance_km,
                'fuel_liters': trip.fuel_cost / price,
                'km_per_liter': efficiency,
            })

        points.sort(key=lambda p: (p['date'] or date.min, p['trip_id']))
        if window <= 0:
            return []
        return points[-window:]

    def payment_summary(self) -> Dict:
        """Payment totals by status; pending is the outstanding dues figure"""
        totals = {status: 0.0 for status in settings.PAYMENT_STATUSES}
        total = 0.0

        for payment in self.payments:
            amount = payment.amount or 0.0
            total += amount
            if payment.status in totals:
                totals[payment.status] += amount

        return {
            'total': total,
            **totals,
        }


def attendance_stats(attendance: List[Attendance], driver_id: Optional[str] = None) -> Dict:
    """
    Day counts by attendance status. Late and half days count toward the
    attendance rate; the rate is 0 when there are no records.
    """
    records = [a for a in attendance if driver_id is None or a.driver_id == driver_id]
    counts = {status: 0 for status in settings.ATTENDANCE_STATUSES}
    for record in records:
        if record.status in counts:
            counts[record.status] += 1

    total_days = len(records)
    attended = counts['present'] + counts['late'] + counts['half_day']

    return {
        'total_days': total_days,
        'present_days': counts['present'],
        'absent_days': counts['absent'],
        'late_days': counts['late'],
        'half_days': counts['half_day'],
        'attendance_rate': attended / total_days if total_days else 0.0,
    }
