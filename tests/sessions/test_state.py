from datetime import datetime, timezone

import pytest

from src.geo_attendance.geo_attendance.core.enums import SessionStatus
from src.geo_attendance.geo_attendance.core.exceptions import InvalidStateTransition
from src.geo_attendance.geo_attendance.geo.geofence import GeoPoint
from src.geo_attendance.geo_attendance.sessions import state
from src.geo_attendance.geo_attendance.sessions.model import Session

NOW = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)


def _session(status: SessionStatus, end_time=None) -> Session:
    return Session(
        session_id="X",
        class_id="C1",
        teacher_id="T1",
        status=status,
        location=GeoPoint(latitude=40.0, longitude=-75.0),
        radius_meters=50.0,
        start_time=datetime(2025, 1, 6, 8, 0, tzinfo=timezone.utc),
        end_time=end_time,
    )


def test_transition_table():
    assert state.can_transition(SessionStatus.SCHEDULED, SessionStatus.ACTIVE)
    assert state.can_transition(SessionStatus.ACTIVE, SessionStatus.ENDED)
    assert state.can_transition(SessionStatus.ACTIVE, SessionStatus.CANCELLED)
    assert not state.can_transition(SessionStatus.ENDED, SessionStatus.ACTIVE)
    assert not state.can_transition(SessionStatus.CANCELLED, SessionStatus.ACTIVE)


def test_ended_session_cannot_be_activated():
    with pytest.raises(InvalidStateTransition, match="Cannot restart an ended session"):
        state.activated(_session(SessionStatus.ENDED, end_time=NOW), now=NOW)


def test_scheduled_session_cannot_be_ended():
    with pytest.raises(InvalidStateTransition):
        state.ended(_session(SessionStatus.SCHEDULED), now=NOW)


def test_ended_sets_status_and_end_time_together():
    ended = state.ended(_session(SessionStatus.ACTIVE), now=NOW)

    assert ended.status == SessionStatus.ENDED
    assert ended.end_time == NOW
    assert not ended.is_truly_active


def test_repair_keeps_the_recorded_end_time():
    recorded = datetime(2025, 1, 6, 8, 45, tzinfo=timezone.utc)
    stale = _session(SessionStatus.ACTIVE, end_time=recorded)
    assert stale.is_stale_active

    repaired = state.repaired(stale, now=NOW)

    assert repaired.status == SessionStatus.ENDED
    assert repaired.end_time == recorded
