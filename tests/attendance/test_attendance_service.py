from __future__ import annotations

import logging
from datetime import date

import pytest

from fakes import FixedClock, InMemoryAttendance, InMemoryWorksites, utc
from siteclock.attendance.service import AttendanceService
from siteclock.core.enums import ClockState, EventKind, Role
from siteclock.core.exceptions import AlreadyClockedIn, NotClockedIn, ValidationError
from siteclock.geo import GeoPoint
from siteclock.worksites.model import Worksite

WORKER = 7
SITE_CENTER = GeoPoint(40.4168, -3.7038)


@pytest.fixture()
def clock():
    return FixedClock(utc(2024, 3, 4, 9, 0))


@pytest.fixture()
def worksites():
    repo = InMemoryWorksites()
    repo.add(Worksite(1, "Obra Centro", "Gran Via 1", SITE_CENTER.latitude, SITE_CENTER.longitude, 150, city="Madrid"))
    repo.add(Worksite(2, "Obra Norte", "Castellana 200", 40.4700, -3.6880, 100, city="Madrid"))
    repo.assign(worker_id=WORKER, worksite_id=1, start_date=date(2024, 1, 1))
    return repo


@pytest.fixture()
def attendance(worksites):
    return InMemoryAttendance(worksites)


@pytest.fixture()
def service(attendance, worksites, clock):
    return AttendanceService(attendance, worksites, clock=clock)


def test_end_to_end_clock_in_then_out_outside_the_fence(service, attendance, clock):
    entry = service.clock_in(WORKER, SITE_CENTER, accuracy=5)

    assert entry.record.kind == EventKind.CLOCK_IN
    assert entry.record.worksite_id == 1
    assert entry.record.is_within_geofence is True
    assert entry.record.distance_from_site == 0
    assert entry.advisory is None

    with pytest.raises(AlreadyClockedIn) as excinfo:
        service.clock_in(WORKER, SITE_CENTER)
    assert excinfo.value.open_record == entry.record

    clock.advance(hours=8, minutes=30)
    exit_ = service.clock_out(WORKER, GeoPoint(40.4200, -3.7038), notes="Encofrado planta 2")

    assert exit_.record.kind == EventKind.CLOCK_OUT
    assert exit_.record.worksite_id == 1
    assert exit_.record.is_within_geofence is False
    assert exit_.record.distance_from_site == 356
    assert exit_.advisory == "You are 356m from the worksite (maximum allowed: 150m)"
    assert exit_.session.hours == pytest.approx(8.5)
    assert exit_.session.worksite_name == "Obra Centro"
    assert len(attendance.records) == 2


def test_alternating_calls_all_succeed(service, clock):
    for _ in range(3):
        service.clock_in(WORKER, SITE_CENTER)
        clock.advance(hours=1)
        service.clock_out(WORKER, SITE_CENTER)
        clock.advance(hours=1)

    assert service.current_state(WORKER) == ClockState.CLOCKED_OUT


def test_clock_out_without_clock_in_fails(service, attendance):
    with pytest.raises(NotClockedIn):
        service.clock_out(WORKER, SITE_CENTER)
    assert attendance.records == []


def test_outside_the_fence_still_records(service, attendance):
    result = service.clock_in(WORKER, GeoPoint(40.4300, -3.7038))

    assert result.record.is_within_geofence is False
    assert result.advisory.startswith("You are ")
    assert len(attendance.records) == 1


def test_explicit_worksite_wins_over_assignments(service):
    result = service.clock_in(WORKER, SITE_CENTER, worksite_id=2)

    assert result.worksite.worksite_id == 2
    assert result.record.is_within_geofence is False


def test_inactive_explicit_worksite_falls_back_to_nearest_assignment(service, worksites, caplog):
    worksites.set_active(2, is_active=False)
    caplog.set_level(logging.WARNING)

    result = service.clock_in(WORKER, SITE_CENTER, worksite_id=2)

    assert result.worksite.worksite_id == 1
    assert "falling back" in caplog.text


def test_unknown_explicit_worksite_falls_back(service):
    assert service.clock_in(WORKER, SITE_CENTER, worksite_id=999).worksite.worksite_id == 1


def test_no_assignment_leaves_worksite_empty(service):
    result = service.clock_in(42, SITE_CENTER)

    assert result.worksite is None
    assert result.geofence is None
    assert result.record.worksite_id is None
    assert result.record.is_within_geofence is None
    assert result.record.distance_from_site is None
    assert result.advisory is None


def test_supervisor_may_use_any_active_worksite(service):
    result = service.clock_in(42, GeoPoint(40.4700, -3.6880), role=Role.SUPERVISOR)

    assert result.worksite.worksite_id == 2
    assert result.record.is_within_geofence is True


def test_expired_assignment_is_not_a_candidate(service, worksites):
    worksites.assign(worker_id=8, worksite_id=2, start_date=date(2024, 1, 1), end_date=date(2024, 3, 3))

    assert service.clock_in(8, GeoPoint(40.4700, -3.6880)).worksite is None


def test_clock_out_keeps_the_entry_worksite(service, clock):
    service.clock_in(WORKER, SITE_CENTER)
    clock.advance(hours=2)

    # right on top of worksite 2, which the worker is not clocked into
    result = service.clock_out(WORKER, GeoPoint(40.4700, -3.6880))

    assert result.record.worksite_id == 1
    assert result.record.is_within_geofence is False


def test_clock_out_on_deactivated_worksite_still_evaluates(service, worksites, clock):
    service.clock_in(WORKER, SITE_CENTER)
    worksites.set_active(1, is_active=False)
    clock.advance(hours=1)

    result = service.clock_out(WORKER, SITE_CENTER)

    assert result.record.worksite_id == 1
    assert result.record.is_within_geofence is True


def test_event_before_last_record_is_rejected(service, clock):
    service.clock_in(WORKER, SITE_CENTER)

    with pytest.raises(ValidationError):
        service.clock_out(WORKER, SITE_CENTER, timestamp=utc(2024, 3, 4, 8, 0))


@pytest.mark.parametrize("position", [GeoPoint(91, 0), GeoPoint(0, -181), GeoPoint(float("nan"), 0)])
def test_invalid_coordinates_fail_fast(service, attendance, position):
    with pytest.raises(ValidationError):
        service.clock_in(WORKER, position)
    assert attendance.records == []


def test_negative_accuracy_is_rejected(service):
    with pytest.raises(ValidationError):
        service.clock_in(WORKER, SITE_CENTER, accuracy=-1)


def test_notes_are_limited(service, clock):
    service.clock_in(WORKER, SITE_CENTER)
    clock.advance(hours=1)

    with pytest.raises(ValidationError):
        service.clock_out(WORKER, SITE_CENTER, notes="x" * 501)


def test_implausible_coordinates_are_logged_not_blocked(service, caplog):
    caplog.set_level(logging.WARNING)

    result = service.clock_in(WORKER, GeoPoint(48.8566, 2.3522))

    assert result.record.record_id == 1
    assert "implausible" in caplog.text


def test_status_reports_open_session(service, clock):
    assert service.status(WORKER).state == ClockState.CLOCKED_OUT

    service.clock_in(WORKER, SITE_CENTER)
    status = service.status(WORKER, now=utc(2024, 3, 4, 11, 30))

    assert status.state == ClockState.CLOCKED_IN
    assert status.last_record.kind == EventKind.CLOCK_IN
    assert status.open_session.worksite_name == "Obra Centro"
    assert status.open_session.elapsed_hours == pytest.approx(2.5)


def test_status_after_clock_out_has_no_open_session(service, clock):
    service.clock_in(WORKER, SITE_CENTER)
    clock.advance(hours=1)
    service.clock_out(WORKER, SITE_CENTER)

    status = service.status(WORKER)
    assert status.state == ClockState.CLOCKED_OUT
    assert status.open_session is None


def test_history_and_today(service, clock):
    service.clock_in(WORKER, SITE_CENTER)
    clock.advance(hours=4)
    service.clock_out(WORKER, SITE_CENTER)
    clock.advance(hours=1)
    service.clock_in(WORKER, SITE_CENTER)
    clock.advance(hours=4)
    service.clock_out(WORKER, SITE_CENTER)

    today = service.today(WORKER)
    assert [r.kind for r in today.records] == [
        EventKind.CLOCK_IN,
        EventKind.CLOCK_OUT,
        EventKind.CLOCK_IN,
        EventKind.CLOCK_OUT,
    ]
    assert today.summary.total_hours == pytest.approx(8.0)
    assert today.summary.session_count == 2

    yesterday = service.history(WORKER, start=utc(2024, 3, 3), end=utc(2024, 3, 4))
    assert yesterday.records == []


def test_history_rejects_inverted_range(service):
    with pytest.raises(ValidationError):
        service.history(WORKER, start=utc(2024, 3, 5), end=utc(2024, 3, 4))
