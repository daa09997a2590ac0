"""
Explainability layer - generates human-readable text for anomalies
"""
from typing import Tuple

from utils.helpers import format_currency, format_distance


class ExplainabilityEngine:
    """
    Generates descriptions and recommendations from anomaly evidence
    """

    @staticmethod
    def explain(rule: str, evidence: dict) -> Tuple[str, str]:
        """
        Return (description, recommendation) for a rule firing
        """
        if rule == "very_low_distance":
            return ExplainabilityEngine._explain_low_distance(evidence)
        elif rule == "high_distance":
            return ExplainabilityEngine._explain_high_distance(evidence)
        elif rule == "odometer_mismatch":
            return ExplainabilityEngine._explain_odometer_mismatch(evidence)
        elif rule == "high_fuel_usage":
            return ExplainabilityEngine._explain_high_fuel(evidence)
        elif rule in ("missing_photo", "high_value_missing_photo"):
            return ExplainabilityEngine._explain_missing_photo(rule, evidence)
        elif rule == "unusual_earnings":
            return ExplainabilityEngine._explain_unusual_earnings(evidence)
        elif rule == "fuel_efficiency":
            return ExplainabilityEngine._explain_fuel_efficiency(evidence)
        elif rule == "repeated_image":
            return ExplainabilityEngine._explain_repeated_image(evidence)
        elif rule == "platform_mismatch":
            return ExplainabilityEngine._explain_platform_mismatch(evidence)
        elif rule == "missing_attendance":
            return ExplainabilityEngine._explain_missing_attendance(evidence)
        elif rule == "excessive_daily_trips":
            return ExplainabilityEngine._explain_daily_volume(evidence)
        else:
            return "No explanation available", ""

    @staticmethod
    def _odometer_note(evidence: dict) -> str:
        if evidence.get('odometer_km') is None:
            return ""
        return f" Odometer readings show {format_distance(evidence['odometer_km'])}."

    @staticmethod
    def _explain_low_distance(evidence: dict) -> Tuple[str, str]:
        distance = evidence.get('distance_km', 0)
        threshold = evidence.get('threshold', 0)
        return (
            f"Very low KM: {format_distance(distance)} is below the "
            f"{format_distance(threshold)} minimum for a trip."
            f"{ExplainabilityEngine._odometer_note(evidence)}",
            "Confirm the trip was completed and the distance was entered correctly."
        )

    @staticmethod
    def _explain_high_distance(evidence: dict) -> Tuple[str, str]:
        distance = evidence.get('distance_km', 0)
        threshold = evidence.get('threshold', 0)
        return (
            f"Unusually high KM: {format_distance(distance)} exceeds the "
            f"{format_distance(threshold)} maximum for a single trip."
            f"{ExplainabilityEngine._odometer_note(evidence)}",
            "Check the odometer photo and route for this trip."
        )

    @staticmethod
    def _explain_odometer_mismatch(evidence: dict) -> Tuple[str, str]:
        start_km = evidence.get('start_km', 0)
        end_km = evidence.get('end_km', 0)
        distance = evidence.get('distance_km', 0)
        return (
            f"KM mismatch: odometer moved {format_distance(end_km - start_km)} "
            f"({start_km:,.1f} to {end_km:,.1f}) but {format_distance(distance)} was recorded.",
            "Reconcile the recorded distance with the start and end odometer readings."
        )

    @staticmethod
    def _explain_high_fuel(evidence: dict) -> Tuple[str, str]:
        fuel_cost = evidence.get('fuel_cost', 0)
        threshold = evidence.get('threshold', 0)
        liters = evidence.get('fuel_liters')
        volume = f" (about {liters:,.1f} L)" if liters is not None else ""
        return (
            f"High fuel usage: {format_currency(fuel_cost)}{volume} exceeds the "
            f"{format_currency(threshold)} limit per trip.",
            "Verify the fuel receipt against the distance travelled."
        )

    @staticmethod
    def _explain_missing_photo(rule: str, evidence: dict) -> Tuple[str, str]:
        if rule == "high_value_missing_photo":
            amount = evidence.get('amount', 0)
            threshold = evidence.get('threshold', 0)
            return (
                f"Missing dashboard photo on a high-value trip: {format_currency(amount)} "
                f"exceeds the {format_currency(threshold)} photo requirement.",
                "Request the dashboard photo before approving payment for this trip."
            )
        return (
            "Missing dashboard photo",
            "Ask the driver to upload the dashboard photo for this trip."
        )

    @staticmethod
    def _explain_unusual_earnings(evidence: dict) -> Tuple[str, str]:
        amount = evidence.get('amount', 0)
        threshold = evidence.get('threshold', 0)
        return (
            f"Unusual earnings: {format_currency(amount)} exceeds the expected "
            f"maximum of {format_currency(threshold)} per trip.",
            "Check the fare breakdown with the platform statement."
        )

    @staticmethod
    def _explain_fuel_efficiency(evidence: dict) -> Tuple[str, str]:
        efficiency = evidence.get('km_per_liter', 0)
        low = evidence.get('min_fuel_efficiency')
        high = evidence.get('max_fuel_efficiency')
        bounds = []
        if low is not None:
            bounds.append(f"min {low:g}")
        if high is not None:
            bounds.append(f"max {high:g}")
        return (
            f"Fuel efficiency of {efficiency:,.1f} km/l is outside the expected range "
            f"({', '.join(bounds)} km/l).",
            "Compare fuel and distance entries; one of them is likely wrong."
        )

    @staticmethod
    def _explain_repeated_image(evidence: dict) -> Tuple[str, str]:
        count = evidence.get('count', 0)
        return (
            f"Same dashboard image used for {count} different trips",
            "Investigate repeated image usage and ensure unique photos per trip."
        )

    @staticmethod
    def _explain_platform_mismatch(evidence: dict) -> Tuple[str, str]:
        platform = evidence.get('platform') or 'unknown'
        assigned = evidence.get('assigned_platforms', [])
        assigned_text = ', '.join(assigned) if assigned else 'none'
        return (
            f"Driver not assigned to {platform} platform (assigned: {assigned_text})",
            "Verify driver platform assignments and update if necessary."
        )

    @staticmethod
    def _explain_missing_attendance(evidence: dict) -> Tuple[str, str]:
        trip_date = evidence.get('date', 'unknown date')
        return (
            f"No attendance record found for trip date {trip_date}",
            "Ensure attendance is marked for all working days."
        )

    @staticmethod
    def _explain_daily_volume(evidence: dict) -> Tuple[str, str]:
        count = evidence.get('count', 0)
        threshold = evidence.get('threshold', 0)
        trip_date = evidence.get('date', 'unknown date')
        return (
            f"{count} trips logged on {trip_date}, more than the {threshold} allowed per day",
            "Check for duplicate trip entries on this day."
        )
