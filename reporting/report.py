"""
Text audit report
"""
from datetime import datetime
from typing import List, Optional

from config import settings
from models.audit import TripAuditResult
from engine.anomaly_detector import get_anomaly_summary


def generate_report(
    audit_results: List[TripAuditResult],
    rejected_count: int = 0,
    generated_at: Optional[datetime] = None
) -> str:
    """
    Render audit results as a Markdown report. Recommendations are driven
    purely by the counts.
    """
    summary = get_anomaly_summary(audit_results)
    by_severity = summary['by_severity']

    lines = ["# Trip Audit Report", ""]
    if generated_at is not None:
        lines.append(f"_Generated {generated_at.strftime('%Y-%m-%d %H:%M')}_")
        lines.append("")

    lines.append("## Summary")
    lines.append(f"- Total Trips: {summary['total_trips']}")
    lines.append(f"- Trips with Anomalies: {summary['trips_with_anomalies']}")
    lines.append(f"- High Severity Anomalies: {by_severity[settings.SEVERITY_HIGH]}")
    lines.append(f"- Medium Severity Anomalies: {by_severity[settings.SEVERITY_MEDIUM]}")
    lines.append(f"- Low Severity Anomalies: {by_severity[settings.SEVERITY_LOW]}")
    lines.append(f"- Drivers Affected: {summary['affected_drivers']}")
    if rejected_count:
        lines.append(f"- Rejected Records: {rejected_count}")
    lines.append("")

    lines.append("## Anomaly Breakdown")
    by_type = sorted(summary['by_type'].items(), key=lambda kv: (-kv[1], kv[0]))
    if by_type:
        for anomaly_type, count in by_type:
            lines.append(f"- {anomaly_type}: {count}")
    else:
        lines.append("- None")
    lines.append("")

    lines.append("## Recommendations")
    if by_severity[settings.SEVERITY_HIGH] > 0:
        lines.append(
            f"- Immediate review required for {by_severity[settings.SEVERITY_HIGH]} "
            f"high severity anomalies"
        )
    if by_severity[settings.SEVERITY_MEDIUM] > 0:
        lines.append(f"- Review {by_severity[settings.SEVERITY_MEDIUM]} medium severity anomalies")
    if by_severity[settings.SEVERITY_LOW] > 0:
        lines.append(f"- Monitor {by_severity[settings.SEVERITY_LOW]} low severity anomalies")
    if summary['trips_with_anomalies'] == 0:
        lines.append("- All trips appear to be within normal parameters")
    if rejected_count:
        lines.append(f"- Correct {rejected_count} rejected records and re-run the audit")

    return "\n".join(lines) + "\n"
