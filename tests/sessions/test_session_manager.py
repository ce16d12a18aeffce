import threading

import pytest

from src.geo_attendance.geo_attendance.core.constants import (
    ABANDONED_SLOT_SECONDS,
    CLASS_ACTIVE_SESSIONS_COLLECTION,
    SESSIONS_COLLECTION,
)
from src.geo_attendance.geo_attendance.core.enums import SessionStatus
from src.geo_attendance.geo_attendance.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)
from src.geo_attendance.geo_attendance.sessions.model import Session

from tests.support import CENTER, FAR


def test_create_session_starts_active(container, clock):
    session = container.session_manager.create_session(
        class_id="C1",
        teacher_id="T1",
        location=CENTER,
        radius_meters=50,
        extension={"room": "B2"},
    )

    assert isinstance(session, Session)
    assert session.status == SessionStatus.ACTIVE
    assert session.start_time == clock.now()
    assert session.end_time is None
    assert container.sessions_repo.get(session.session_id) == session
    assert container.sessions_repo.get_active_slot("C1") == session.session_id


def test_second_active_session_for_class_conflicts(container, active_session):
    with pytest.raises(ConflictError, match="already an active session"):
        container.session_manager.create_session(class_id="C1", teacher_id="T1", location=CENTER, radius_meters=50)


def test_new_session_allowed_after_previous_ended(container, active_session):
    container.session_manager.end_session(session_id=active_session.session_id, teacher_id="T1")

    second = container.session_manager.create_session(class_id="C1", teacher_id="T1", location=FAR, radius_meters=30)

    assert second.status == SessionStatus.ACTIVE
    assert container.sessions_repo.get_active_slot("C1") == second.session_id


def test_other_class_is_not_blocked(container, active_session):
    other = container.session_manager.create_session(class_id="C2", teacher_id="T2", location=CENTER, radius_meters=50)

    assert other.status == SessionStatus.ACTIVE


def test_create_requires_class_owner(container):
    with pytest.raises(AuthorizationError):
        container.session_manager.create_session(class_id="C1", teacher_id="T2", location=CENTER, radius_meters=50)
    with pytest.raises(NotFoundError, match="Class not found"):
        container.session_manager.create_session(class_id="NOPE", teacher_id="T1", location=CENTER, radius_meters=50)


@pytest.mark.parametrize(
    "location,radius",
    [
        (None, 50),
        ({"latitude": 100, "longitude": 0}, 50),
        (CENTER, 0),
        (CENTER, -1),
    ],
)
def test_create_validates_input(container, location, radius):
    with pytest.raises(ValidationError):
        container.session_manager.create_session(class_id="C1", teacher_id="T1", location=location, radius_meters=radius)
    assert container.sessions_repo.get_active_slot("C1") is None


def test_end_twice_is_a_noop_with_same_end_time(container, active_session, clock):
    first = container.session_manager.end_session(session_id=active_session.session_id, teacher_id="T1")
    clock.advance(minutes=5)
    second = container.session_manager.end_session(session_id=active_session.session_id, teacher_id="T1")

    assert first.changed is True
    assert second.changed is False
    assert second.message == "Session is already ended"
    assert second.session.end_time == first.session.end_time


def test_ended_session_is_never_restarted(container, active_session):
    container.session_manager.end_session(session_id=active_session.session_id, teacher_id="T1")

    with pytest.raises(InvalidStateTransition):
        container.session_manager.start_session(session_id=active_session.session_id, teacher_id="T1")

    stored = container.sessions_repo.get(active_session.session_id)
    assert stored.status == SessionStatus.ENDED
    assert container.sessions_repo.get_active_slot("C1") is None


def test_only_owner_can_end(container, active_session):
    with pytest.raises(AuthorizationError):
        container.session_manager.end_session(session_id=active_session.session_id, teacher_id="T2")
    with pytest.raises(NotFoundError):
        container.session_manager.end_session(session_id="missing", teacher_id="T1")


def test_scheduled_session_lifecycle(container, clock):
    scheduled = container.session_manager.schedule_session(
        class_id="C1",
        teacher_id="T1",
        location=CENTER,
        radius_meters=50,
    )
    assert scheduled.status == SessionStatus.SCHEDULED
    assert scheduled.start_time is None

    with pytest.raises(InvalidStateTransition):
        container.session_manager.end_session(session_id=scheduled.session_id, teacher_id="T1")

    clock.advance(minutes=10)
    started = container.session_manager.start_session(session_id=scheduled.session_id, teacher_id="T1")

    assert started.changed is True
    assert started.session.status == SessionStatus.ACTIVE
    assert started.session.start_time == clock.now()
    assert container.sessions_repo.get_active_slot("C1") == scheduled.session_id


def test_starting_scheduled_session_conflicts_with_active_one(container, active_session):
    scheduled = container.session_manager.schedule_session(
        class_id="C1",
        teacher_id="T1",
        location=CENTER,
        radius_meters=50,
    )

    with pytest.raises(ConflictError):
        container.session_manager.start_session(session_id=scheduled.session_id, teacher_id="T1")
    assert container.sessions_repo.get(scheduled.session_id).status == SessionStatus.SCHEDULED


def test_start_active_session_is_a_noop(container, active_session):
    change = container.session_manager.start_session(session_id=active_session.session_id, teacher_id="T1")

    assert change.changed is False
    assert change.message == "Session is already active"


def test_cancel_releases_class(container, active_session):
    change = container.session_manager.cancel_session(session_id=active_session.session_id, teacher_id="T1")

    assert change.session.status == SessionStatus.CANCELLED
    assert container.sessions_repo.get_active_slot("C1") is None
    again = container.session_manager.cancel_session(session_id=active_session.session_id, teacher_id="T1")
    assert again.changed is False


def test_cancel_ended_session_is_rejected(container, active_session):
    container.session_manager.end_session(session_id=active_session.session_id, teacher_id="T1")

    with pytest.raises(InvalidStateTransition):
        container.session_manager.cancel_session(session_id=active_session.session_id, teacher_id="T1")


def test_update_location_only_while_active(container, active_session):
    updated = container.session_manager.update_session_location(
        session_id=active_session.session_id,
        teacher_id="T1",
        location=FAR,
        radius_meters=200,
        extension={"note": "moved to lab"},
    )

    stored = container.sessions_repo.get(active_session.session_id)
    assert stored.location == updated.location
    assert stored.radius_meters == 200
    assert stored.extension == {"note": "moved to lab"}

    container.session_manager.end_session(session_id=active_session.session_id, teacher_id="T1")
    with pytest.raises(InvalidStateTransition, match="inactive session"):
        container.session_manager.update_session_location(
            session_id=active_session.session_id,
            teacher_id="T1",
            location=CENTER,
            radius_meters=50,
        )
    assert container.sessions_repo.get(active_session.session_id).status == SessionStatus.ENDED


def test_stale_active_session_is_repaired_before_create(container, store, active_session):
    # Drift: end time written but status left active.
    store.update(SESSIONS_COLLECTION, active_session.session_id, {"end_time": "2025-01-06T08:30:00+00:00"})

    fresh = container.session_manager.create_session(class_id="C1", teacher_id="T1", location=CENTER, radius_meters=50)

    repaired = container.sessions_repo.get(active_session.session_id)
    assert repaired.status == SessionStatus.ENDED
    assert repaired.end_time.isoformat() == "2025-01-06T08:30:00+00:00"
    assert container.sessions_repo.get_active_slot("C1") == fresh.session_id


def test_reconcile_stale_active_returns_repaired_ids(container, store, active_session):
    assert container.session_lifecycle.reconcile_stale_active("C1") == []

    store.update(SESSIONS_COLLECTION, active_session.session_id, {"end_time": "2025-01-06T08:30:00+00:00"})

    assert container.session_lifecycle.reconcile_stale_active("C1") == [active_session.session_id]
    assert container.session_lifecycle.reconcile_stale_active("C1") == []


def test_leftover_marker_of_ended_session_is_replaced(container, store, active_session):
    container.session_manager.end_session(session_id=active_session.session_id, teacher_id="T1")
    store.set(
        CLASS_ACTIVE_SESSIONS_COLLECTION,
        "C1",
        {"class_id": "C1", "session_id": active_session.session_id},
    )

    fresh = container.session_manager.create_session(class_id="C1", teacher_id="T1", location=CENTER, radius_meters=50)

    assert container.sessions_repo.get_active_slot("C1") == fresh.session_id


def test_list_teacher_sessions_most_recent_first(container, clock):
    manager = container.session_manager
    first = manager.create_session(class_id="C1", teacher_id="T1", location=CENTER, radius_meters=50)
    manager.end_session(session_id=first.session_id, teacher_id="T1")
    clock.advance(hours=1)
    second = manager.create_session(class_id="C1", teacher_id="T1", location=CENTER, radius_meters=50)

    sessions = manager.list_teacher_sessions(teacher_id="T1")
    assert [s.session_id for s in sessions] == [second.session_id, first.session_id]

    ended = manager.list_teacher_sessions(teacher_id="T1", status=SessionStatus.ENDED)
    assert [s.session_id for s in ended] == [first.session_id]
    assert manager.list_teacher_sessions(teacher_id="T2") == []


def test_concurrent_create_cannot_take_over_fresh_marker(container, monkeypatch):
    manager = container.session_manager
    original_add = container.sessions_repo.add
    marker_claimed = threading.Event()
    resume = threading.Event()

    def slow_add(session):
        marker_claimed.set()
        assert resume.wait(timeout=5)
        original_add(session)

    monkeypatch.setattr(container.sessions_repo, "add", slow_add)
    results = []
    first = threading.Thread(
        target=lambda: results.append(
            manager.create_session(class_id="C1", teacher_id="T1", location=CENTER, radius_meters=50)
        )
    )
    first.start()
    try:
        assert marker_claimed.wait(timeout=5)
        monkeypatch.setattr(container.sessions_repo, "add", original_add)

        with pytest.raises(ConflictError):
            manager.create_session(class_id="C1", teacher_id="T1", location=CENTER, radius_meters=50)
    finally:
        resume.set()
        first.join(timeout=5)

    active = [s for s in container.sessions_repo.list_for_class("C1", status=SessionStatus.ACTIVE) if s.is_truly_active]
    assert [s.session_id for s in active] == [results[0].session_id]
    assert container.sessions_repo.get_active_slot("C1") == results[0].session_id


def test_marker_of_missing_session_is_held_until_abandoned(container, clock):
    container.sessions_repo.claim_active_slot("C1", "never-written", claimed_at=clock.now())

    with pytest.raises(ConflictError):
        container.session_manager.create_session(class_id="C1", teacher_id="T1", location=CENTER, radius_meters=50)

    clock.advance(seconds=ABANDONED_SLOT_SECONDS)
    fresh = container.session_manager.create_session(class_id="C1", teacher_id="T1", location=CENTER, radius_meters=50)

    assert container.sessions_repo.get_active_slot("C1") == fresh.session_id


def test_update_location_rejects_stale_active_session(container, store, active_session):
    store.update(SESSIONS_COLLECTION, active_session.session_id, {"end_time": "2025-01-06T08:30:00+00:00"})

    with pytest.raises(InvalidStateTransition):
        container.session_manager.update_session_location(
            session_id=active_session.session_id,
            teacher_id="T1",
            location=FAR,
            radius_meters=80,
        )

    stored = container.sessions_repo.get(active_session.session_id)
    assert stored.location == active_session.location
    assert stored.radius_meters == 50
