"""
Pytest fixtures for the trip audit test suite.
"""
from datetime import date

import pytest

from models.audit import AuditConfig
from models.trip import Attendance, Driver, DriverAssignment, Payment, Trip

TODAY = date(2026, 3, 15)


def make_trip(trip_id="t1", **overrides) -> Trip:
    """A trip that passes every default rule unless overridden."""
    values = dict(
        trip_id=trip_id,
        driver_id="d1",
        date=TODAY,
        distance_km=50.0,
        fuel_cost=600.0,
        amount=800.0,
        platform="uber",
        photo_url=f"trip-photos/{trip_id}.jpg",
    )
    values.update(overrides)
    return Trip(**values)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def config():
    return AuditConfig()


@pytest.fixture
def clean_trip():
    return make_trip()


@pytest.fixture
def scenario_trips():
    """Low-distance trip without photo, and a high-fuel trip with photo."""
    return [
        make_trip("t1", distance_km=2.0, fuel_cost=0.0, photo_url=None, amount=500.0),
        make_trip("t2", distance_km=50.0, fuel_cost=3000.0, amount=1200.0),
    ]


@pytest.fixture
def drivers():
    return [
        Driver(driver_id="d1", name="Ravi Kumar", phone="9000000001"),
        Driver(driver_id="d2", name="Anita Rao", phone="9000000002"),
        Driver(driver_id="d3", name="Suresh Babu", status="suspended"),
    ]


@pytest.fixture
def payments():
    return [
        Payment(payment_id="p1", driver_id="d1", amount=1500.0, status="paid"),
        Payment(payment_id="p2", driver_id="d1", amount=700.0, status="pending"),
        Payment(payment_id="p3", driver_id="d2", amount=300.0, status="pending"),
        Payment(payment_id="p4", driver_id="d2", amount=250.0, status="overdue"),
    ]


@pytest.fixture
def assignments():
    return [
        DriverAssignment(driver_id="d1", platform="uber"),
        DriverAssignment(driver_id="d1", platform="ola"),
        DriverAssignment(driver_id="d2", platform="rapido"),
    ]


@pytest.fixture
def attendance():
    return [
        Attendance(attendance_id="a1", driver_id="d1", date=TODAY, status="present"),
        Attendance(attendance_id="a2", driver_id="d2", date=TODAY, status="late"),
        Attendance(attendance_id="a3", driver_id="d1", date=date(2026, 3, 14), status="absent"),
    ]
