"""
Tests for engine.rules: per-trip rules and collection detectors.
"""
from datetime import date

import pytest

from conftest import TODAY, make_trip
from engine.errors import InvalidRecord
from engine.rules import (
    check_daily_trip_volume,
    check_missing_attendance,
    check_platform_mismatch,
    detect_repeated_images,
    evaluate,
    fuel_efficiency,
)
from models.audit import AuditConfig


def rules_of(anomalies):
    return [a.rule for a in anomalies]


# ---------------------------------------------------------------------------
# evaluate: clean trips
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("distance", [5.0, 50.0, 299.9, 300.0])
@pytest.mark.parametrize("fuel", [0.0, 1200.0, 2500.0])
def test_in_range_trip_has_no_anomalies(distance, fuel):
    trip = make_trip(distance_km=distance, fuel_cost=fuel, amount=4000.0)
    assert evaluate(trip) == []


def test_unrecorded_fuel_is_not_flagged():
    trip = make_trip(fuel_cost=None)
    assert evaluate(trip) == []


def test_unrecorded_distance_fires_no_distance_rule():
    trip = make_trip(distance_km=None, start_km=100.0, end_km=140.0)
    assert evaluate(trip) == []


# ---------------------------------------------------------------------------
# Distance rules
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("distance", [0.0, 2.0, 4.99])
def test_low_distance_yields_exactly_one_distance_anomaly(distance):
    anomalies = evaluate(make_trip(distance_km=distance))
    distance_anomalies = [a for a in anomalies if a.type == "distance_anomaly"]
    assert len(distance_anomalies) == 1
    assert distance_anomalies[0].rule == "very_low_distance"
    assert distance_anomalies[0].severity == "medium"
    assert distance_anomalies[0].threshold == 5.0


@pytest.mark.parametrize("distance", [300.5, 450.0])
def test_high_distance_yields_exactly_one_distance_anomaly(distance):
    anomalies = evaluate(make_trip(distance_km=distance))
    distance_anomalies = [a for a in anomalies if a.type == "distance_anomaly"]
    assert len(distance_anomalies) == 1
    assert distance_anomalies[0].rule == "high_distance"
    assert distance_anomalies[0].value == distance


def test_thresholds_come_from_config():
    config = AuditConfig(min_distance_km=10.0)
    assert rules_of(evaluate(make_trip(distance_km=8.0), config)) == ["very_low_distance"]
    assert evaluate(make_trip(distance_km=8.0)) == []


# ---------------------------------------------------------------------------
# Fuel and photo rules
# ---------------------------------------------------------------------------

def test_high_fuel_is_high_severity():
    anomalies = evaluate(make_trip(fuel_cost=3000.0))
    assert rules_of(anomalies) == ["high_fuel_usage"]
    assert anomalies[0].severity == "high"
    assert anomalies[0].evidence["fuel_liters"] == pytest.approx(30.0)
    assert "High fuel usage" in anomalies[0].description


@pytest.mark.parametrize("photo", [None, "", "   "])
def test_missing_photo(photo):
    anomalies = evaluate(make_trip(photo_url=photo, amount=400.0))
    assert rules_of(anomalies) == ["missing_photo"]
    assert anomalies[0].type == "missing_photo"
    assert anomalies[0].recommendation


def test_high_value_missing_photo_is_single_escalated_anomaly():
    anomalies = evaluate(make_trip(photo_url=None, amount=1500.0))
    assert rules_of(anomalies) == ["high_value_missing_photo"]
    assert anomalies[0].type == "missing_photo"
    assert anomalies[0].value == 1500.0
    assert anomalies[0].threshold == 1000.0


def test_amount_at_photo_threshold_is_not_escalated():
    anomalies = evaluate(make_trip(photo_url=None, amount=1000.0))
    assert rules_of(anomalies) == ["missing_photo"]


# ---------------------------------------------------------------------------
# Odometer
# ---------------------------------------------------------------------------

def test_odometer_mismatch():
    anomalies = evaluate(make_trip(distance_km=50.0, start_km=1000.0, end_km=1080.0))
    assert rules_of(anomalies) == ["odometer_mismatch"]
    assert anomalies[0].type == "distance_anomaly"
    assert anomalies[0].value == 80.0


def test_odometer_match_within_float_tolerance():
    trip = make_trip(distance_km=12.3, start_km=100.0, end_km=112.3)
    assert evaluate(trip) == []


def test_odometer_needs_both_readings():
    assert evaluate(make_trip(distance_km=50.0, start_km=1000.0)) == []


# ---------------------------------------------------------------------------
# Ordering and optional rules
# ---------------------------------------------------------------------------

def test_multiple_rules_in_declaration_order():
    trip = make_trip(distance_km=2.0, fuel_cost=2600.0, photo_url=None)
    assert rules_of(evaluate(trip)) == ["very_low_distance", "high_fuel_usage", "missing_photo"]

    trip = make_trip(
        distance_km=12.0, fuel_cost=2600.0, photo_url=None, start_km=10.0, end_km=20.0
    )
    assert rules_of(evaluate(trip)) == ["high_fuel_usage", "missing_photo", "odometer_mismatch"]


@pytest.mark.parametrize("distance,rule", [(2.0, "very_low_distance"), (450.0, "high_distance")])
def test_out_of_bounds_distance_with_odometer_mismatch_is_one_anomaly(distance, rule):
    anomalies = evaluate(make_trip(distance_km=distance, start_km=1000.0, end_km=1080.0))
    distance_anomalies = [a for a in anomalies if a.type == "distance_anomaly"]

    assert rules_of(distance_anomalies) == [rule]
    assert distance_anomalies[0].evidence["odometer_km"] == 80.0
    assert "Odometer readings show 80.0 km" in distance_anomalies[0].description


def test_optional_rules_disabled_by_default():
    trip = make_trip(amount=9000.0, distance_km=5.0, fuel_cost=2500.0)
    assert evaluate(trip) == []


def test_unusual_earnings_when_configured():
    config = AuditConfig(max_earnings_per_trip=5000.0)
    anomalies = evaluate(make_trip(amount=6000.0), config)
    assert rules_of(anomalies) == ["unusual_earnings"]
    assert anomalies[0].severity == "low"


def test_fuel_efficiency_when_configured():
    config = AuditConfig(min_fuel_efficiency=8.0, max_fuel_efficiency=25.0)
    # 50 km on 6 L -> 8.33 km/l, fine
    assert evaluate(make_trip(distance_km=50.0, fuel_cost=600.0), config) == []
    # 50 km on 10 L -> 5 km/l
    anomalies = evaluate(make_trip(distance_km=50.0, fuel_cost=1000.0), config)
    assert rules_of(anomalies) == ["fuel_efficiency"]
    assert anomalies[0].value == pytest.approx(5.0)
    assert anomalies[0].threshold == 8.0


def test_fuel_efficiency_helper_excludes_missing_values():
    assert fuel_efficiency(make_trip(fuel_cost=None)) is None
    assert fuel_efficiency(make_trip(fuel_cost=0.0)) is None
    assert fuel_efficiency(make_trip(distance_km=None)) is None
    assert fuel_efficiency(make_trip(distance_km=50.0, fuel_cost=500.0)) == pytest.approx(10.0)


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("driver_id", [None, "", "  "])
def test_missing_driver_is_invalid_record(driver_id):
    with pytest.raises(InvalidRecord) as exc_info:
        evaluate(make_trip("bad", driver_id=driver_id))
    assert exc_info.value.record_id == "bad"
    assert "driver" in exc_info.value.reason


@pytest.mark.parametrize("trip_id", ["", "   "])
def test_missing_trip_id_is_invalid_record(trip_id):
    with pytest.raises(InvalidRecord) as exc_info:
        evaluate(make_trip(trip_id))
    assert "trip id" in exc_info.value.reason


def test_negative_values_are_invalid():
    with pytest.raises(InvalidRecord):
        evaluate(make_trip(fuel_cost=-1.0))


def test_evaluate_does_not_mutate_trip(clean_trip):
    before = clean_trip
    evaluate(clean_trip)
    assert clean_trip == before
    assert clean_trip.audit_status == "pending"


# ---------------------------------------------------------------------------
# Collection detectors
# ---------------------------------------------------------------------------

def test_repeated_image_one_anomaly_per_shared_reference():
    trips = [
        make_trip("t1", photo_url="trip-photos/a/dash.jpg"),
        make_trip("t2", photo_url="https://cdn.example/trip-photos/dash.jpg"),
        make_trip("t3", photo_url="dash.jpg?token=abc"),
        make_trip("t4", photo_url="trip-photos/unique1.jpg"),
        make_trip("t5", photo_url="trip-photos/unique2.jpg"),
        make_trip("t6", photo_url=None),
    ]
    anomalies = detect_repeated_images(trips)
    assert len(anomalies) == 1
    anomaly = anomalies[0]
    assert anomaly.type == "repeated_image"
    assert anomaly.severity == "high"
    assert anomaly.value == 3
    assert anomaly.trip_ids == ("t1", "t2", "t3")
    assert "3 different trips" in anomaly.description


def test_repeated_image_matches_file_name_across_folders():
    trips = [
        make_trip("t1", photo_url="trip-photos/d1/photo.jpg"),
        make_trip("t2", photo_url="trip-photos/d2/photo.jpg"),
    ]
    anomalies = detect_repeated_images(trips)
    assert len(anomalies) == 1
    assert anomalies[0].trip_ids == ("t1", "t2")
    assert anomalies[0].evidence["photo_key"] == "photo.jpg"


def test_repeated_image_none_for_unique_photos():
    trips = [make_trip(f"t{i}") for i in range(4)]
    assert detect_repeated_images(trips) == []


def test_platform_mismatch(assignments):
    trip = make_trip(driver_id="d2", platform="uber")
    anomalies = check_platform_mismatch(trip, assignments)
    assert len(anomalies) == 1
    assert anomalies[0].type == "platform_mismatch"
    assert anomalies[0].severity == "medium"
    assert anomalies[0].evidence["assigned_platforms"] == ["rapido"]


def test_platform_assigned(assignments):
    assert check_platform_mismatch(make_trip(platform="ola"), assignments) == []


def test_platform_not_recorded_is_not_checked(assignments):
    assert check_platform_mismatch(make_trip(platform=None), assignments) == []


def test_missing_attendance(attendance):
    assert check_missing_attendance(make_trip(date=TODAY), attendance) == []

    anomalies = check_missing_attendance(make_trip(date=date(2026, 3, 10)), attendance)
    assert [a.type for a in anomalies] == ["missing_attendance"]
    assert "2026-03-10" in anomalies[0].description


def test_attendance_is_matched_per_driver(attendance):
    trip = make_trip(driver_id="d2", date=date(2026, 3, 14))
    assert len(check_missing_attendance(trip, attendance)) == 1


def test_daily_trip_volume():
    config = AuditConfig(max_trips_per_day=2)
    trips = [make_trip(f"t{i}") for i in range(3)] + [make_trip("other", driver_id="d2")]
    anomalies = check_daily_trip_volume(trips, config)
    assert len(anomalies) == 1
    assert anomalies[0].type == "time_anomaly"
    assert anomalies[0].trip_ids == ("t0", "t1", "t2")


def test_daily_trip_volume_disabled():
    config = AuditConfig(max_trips_per_day=None)
    trips = [make_trip(f"t{i}") for i in range(30)]
    assert check_daily_trip_volume(trips, config) == []
