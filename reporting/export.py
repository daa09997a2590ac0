"""
Export functionality for audit data
"""
import io
from datetime import date
from typing import Dict, List, Optional

import pandas as pd

from config import settings
from models.audit import TripAuditResult
from models.trip import Driver, Trip
from engine.aggregation import AggregationEngine
from storage.audit_log import AuditLog
from utils.helpers import format_date
from utils.validations import sanitize_filename


def _driver_label(trip: Trip, drivers_by_id: Dict[str, Driver]) -> str:
    driver = drivers_by_id.get(trip.driver_id)
    if driver:
        return driver.name
    return trip.driver_name or trip.driver_id or "Unknown"


def _cell(value: Optional[float]):
    return "" if value is None else value


def to_csv_rows(trips: List[Trip], drivers: Optional[List[Driver]] = None) -> List[list]:
    """
    One row per trip in settings.CSV_COLUMNS order:
    date, driver, platform, distance, amount, audit status
    """
    drivers_by_id = {d.driver_id: d for d in (drivers or [])}
    return [
        [
            format_date(trip.date),
            _driver_label(trip, drivers_by_id),
            trip.platform or "",
            _cell(trip.distance_km),
            _cell(trip.amount),
            trip.audit_status,
        ]
        for trip in trips
    ]


def generate_csv_export(
    trips: List[Trip],
    drivers: Optional[List[Driver]] = None,
    audit_log: Optional[AuditLog] = None,
    user: str = "system"
) -> str:
    """CSV text with a header row; fields containing the delimiter are quoted"""
    df = pd.DataFrame(to_csv_rows(trips, drivers), columns=settings.CSV_COLUMNS)

    output = io.StringIO()
    df.to_csv(output, index=False)

    if audit_log is not None:
        audit_log.log_export('csv', user, len(trips))
    return output.getvalue()


def generate_summary_data(summary: dict) -> List[dict]:
    """Generate executive summary rows"""
    return [
        {'Metric': 'Total Trips', 'Value': summary['total_trips']},
        {'Metric': 'Total Distance (KM)', 'Value': round(summary['total_km'], 2)},
        {'Metric': 'Total Fuel Cost', 'Value': round(summary['total_fuel'], 2)},
        {'Metric': 'Total Earnings', 'Value': round(summary['total_earning'], 2)},
        {'Metric': 'Average Trip Value', 'Value': round(summary['average_trip_value'], 2)},
        {'Metric': '', 'Value': ''},
        {'Metric': 'Trips Flagged', 'Value': summary['anomaly_count']},
        {'Metric': 'Verified Trips', 'Value': summary['verified_trips']},
        {'Metric': 'Needs Review', 'Value': summary['needs_review_trips']},
        {'Metric': 'Active Drivers', 'Value': summary['total_drivers']},
        {'Metric': 'Pending Dues', 'Value': round(summary['pending_dues'], 2)},
    ]


def generate_anomalies_dataframe(results: List[TripAuditResult]) -> pd.DataFrame:
    """One row per (trip, anomaly)"""
    data = []
    for result in results:
        for anomaly in result.anomalies:
            data.append({
                'Trip ID': result.trip_id,
                'Driver ID': result.driver_id,
                'Type': anomaly.type,
                'Rule': anomaly.rule,
                'Severity': anomaly.severity,
                'Description': anomaly.description,
                'Value': anomaly.value,
                'Threshold': anomaly.threshold,
                'Recommendation': anomaly.recommendation or '',
                'Audit Status': result.audit_status,
            })

    return pd.DataFrame(data, columns=[
        'Trip ID', 'Driver ID', 'Type', 'Rule', 'Severity', 'Description',
        'Value', 'Threshold', 'Recommendation', 'Audit Status',
    ])


def generate_rankings_dataframe(engine: AggregationEngine) -> pd.DataFrame:
    data = []
    for rank, stats in enumerate(engine.driver_rankings(top_n=None), start=1):
        data.append({
            'Rank': rank,
            'Driver ID': stats.driver_id,
            'Driver': stats.driver_name,
            'Trips': stats.total_trips,
            'Distance (KM)': stats.total_km,
            'Earnings': stats.total_earning,
            'Per Trip': round(stats.average_earning, 2),
        })
    return pd.DataFrame(data)


def generate_excel_export(
    trips: List[Trip],
    results: List[TripAuditResult],
    drivers: Optional[List[Driver]] = None,
    engine: Optional[AggregationEngine] = None,
    audit_log: Optional[AuditLog] = None,
    user: str = "system"
) -> bytes:
    """Generate Excel file with Summary, Trips, Anomalies and Driver Rankings sheets"""
    engine = engine or AggregationEngine(trips, drivers)

    output = io.BytesIO()

    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        pd.DataFrame(generate_summary_data(engine.summary())).to_excel(
            writer, sheet_name='Summary', index=False
        )

        trips_df = pd.DataFrame(to_csv_rows(trips, drivers), columns=settings.CSV_COLUMNS)
        trips_df.to_excel(writer, sheet_name='Trips', index=False)

        generate_anomalies_dataframe(results).to_excel(writer, sheet_name='Anomalies', index=False)

        rankings_df = generate_rankings_dataframe(engine)
        if not rankings_df.empty:
            rankings_df.to_excel(writer, sheet_name='Driver Rankings', index=False)

    if audit_log is not None:
        audit_log.log_export('excel', user, len(trips))

    output.seek(0)
    return output.getvalue()


def export_filename(prefix: str, extension: str, on: Optional[date] = None) -> str:
    """e.g. trips-2026-02-01.csv"""
    on = on or date.today()
    return sanitize_filename(f"{prefix}-{on.isoformat()}.{extension.lstrip('.')}")
