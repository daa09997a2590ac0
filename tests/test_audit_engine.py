"""
Tests for the audit_engine pipeline
"""
from unittest.mock import MagicMock, call

from conftest import TODAY, make_trip
from audit_engine import build_dashboard, load_trip_sheet, run_trip_audit
from engine.status_resolver import apply_edit, apply_override
from models.canonical_model import CanonicalModel


def test_run_trip_audit_scenario(scenario_trips, payments):
    update_record = MagicMock()
    run = run_trip_audit(scenario_trips, payments=payments, update_record=update_record)

    assert [t.audit_status for t in run.trips] == ["needs_review", "needs_review"]
    assert run.summary['anomaly_count'] == 2
    assert run.summary['average_trip_value'] == 850.0
    assert run.summary['pending_dues'] == 1000.0
    assert run.anomaly_summary['total_anomalies'] == 3
    assert run.persisted == 2
    update_record.assert_has_calls([
        call("t1", {'audit_status': 'needs_review', 'anomaly_flag': True, 'status_override': None}),
        call("t2", {'audit_status': 'needs_review', 'anomaly_flag': True, 'status_override': None}),
    ])
    assert [a.rule for a in run.results_by_trip()["t1"].anomalies] == [
        "very_low_distance", "missing_photo",
    ]


def test_unchanged_trips_are_not_written():
    stored = make_trip("t1", audit_status="verified", anomaly_flag=False)
    update_record = MagicMock()

    run = run_trip_audit([stored], update_record=update_record)

    assert run.persisted == 0
    update_record.assert_not_called()


def test_invalid_trips_are_reported_not_written():
    update_record = MagicMock()
    run = run_trip_audit([make_trip("ok"), make_trip("bad", driver_id="")], update_record=update_record)

    assert [t.trip_id for t, _ in run.rejects] == ["bad"]
    assert [t.trip_id for t in run.trips] == ["ok"]
    assert all(c.args[0] == "ok" for c in update_record.call_args_list)


def test_load_trip_sheet(tmp_path):
    path = tmp_path / "trips.csv"
    path.write_text(
        "id,driver_id,date,distance_km,fuel_cost,amount,platform,photo_url\n"
        "t1,d1,2026-03-15,50,,800,uber,photos/t1.jpg\n"
        "t2,d1,2026-03-15,2,0,500,uber,\n"
        "t3,d2,2026-03-15,abc,100,300,ola,photos/t3.jpg\n"
    )

    trips, rejects = load_trip_sheet(str(path))

    assert [t.trip_id for t in trips] == ["t1", "t2"]
    assert trips[0].fuel_cost is None
    assert trips[1].fuel_cost == 0.0
    assert trips[1].photo_url is None
    assert len(rejects) == 1

    run = run_trip_audit(trips)
    assert [r.overall_status for r in run.results] == ["clean", "warning"]


def test_build_dashboard(scenario_trips, drivers, payments):
    run = run_trip_audit(scenario_trips)
    dashboard = build_dashboard(run.trips, drivers=drivers, payments=payments, today=TODAY, days=7)

    assert dashboard['summary']['total_drivers'] == 2
    assert [s.driver_id for s in dashboard['rankings']] == ["d1"]
    assert len(dashboard['daily_series']) == 7
    assert dashboard['daily_series'][-1]['trip_count'] == 2
    assert [t.trip_id for t in dashboard['recent_anomalies']] == ["t1", "t2"]
    assert [p['trip_id'] for p in dashboard['fuel_efficiency']] == ["t2"]
    assert dashboard['payments']['overdue'] == 250.0


def test_manual_status_survives_store_round_trip():
    rows = {"t1": {"id": "t1", "driver_id": "d1", "date": "2026-03-15", "distance_km": "2",
                   "fuel_cost": "100", "amount": "300", "photo_url": "p/t1.jpg"}}

    def write(trip_id, changes):
        rows[trip_id].update(changes)

    def fetch():
        return [CanonicalModel.trip_from_record(row) for row in rows.values()]

    run_trip_audit(fetch(), update_record=write)
    assert rows["t1"]["audit_status"] == "needs_review"

    [trip] = fetch()
    apply_override(trip, "verified", update_record=write)

    update_record = MagicMock(side_effect=write)
    run = run_trip_audit(fetch(), update_record=update_record)

    assert run.trips[0].audit_status == "verified"
    update_record.assert_not_called()
    assert rows["t1"]["status_override"] == "verified"

    # A tracked edit clears the stored override
    [trip] = fetch()
    apply_edit(trip, {"distance_km": 3.0}, update_record=write)
    [trip] = fetch()
    assert trip.status_override is None
    assert trip.audit_status == "needs_review"


def test_sheet_without_id_column_is_rejected(tmp_path):
    path = tmp_path / "trips.csv"
    path.write_text(
        "driver_id,date,distance_km,fuel_cost,amount,photo_url\n"
        "d1,2026-03-15,50,600,800,photos/a.jpg\n"
        "d1,2026-03-15,2,100,300,photos/b.jpg\n"
    )
    trips, _ = load_trip_sheet(str(path))

    run = run_trip_audit(trips)

    assert run.results == []
    assert len(run.rejects) == 2
    assert all("trip id" in exc.reason for _, exc in run.rejects)
