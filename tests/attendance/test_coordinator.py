from dataclasses import replace

import pytest

from src.geo_attendance.geo_attendance.core.enums import AttendanceStatus, VerificationRequestStatus
from src.geo_attendance.geo_attendance.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)
from tests.support import CENTER, FAR


def test_checkin_at_center_is_verified(container, active_session, clock):
    result = container.attendance_coordinator.check_in(
        session_id=active_session.session_id,
        student_id="S1",
        location=CENTER,
    )

    assert result.is_within_radius is True
    assert result.record.status == AttendanceStatus.VERIFIED
    assert result.record.is_gps_verified is True
    assert result.record.distance_meters == 0
    assert result.record.check_in_time == clock.now()
    assert container.attendance_repo.get(active_session.session_id, "S1") == result.record


def test_checkin_outside_radius_is_recorded_as_failed_location(container, active_session):
    result = container.attendance_coordinator.check_in(
        session_id=active_session.session_id,
        student_id="S1",
        location=FAR,
    )

    assert result.is_within_radius is False
    assert result.record.status == AttendanceStatus.FAILED_LOCATION
    assert result.record.is_gps_verified is False
    assert result.record.distance_meters == pytest.approx(111.2, abs=0.1)


@pytest.mark.parametrize("second_location", [CENTER, FAR])
def test_second_checkin_always_conflicts(container, active_session, second_location):
    coordinator = container.attendance_coordinator
    coordinator.check_in(session_id=active_session.session_id, student_id="S1", location=CENTER)

    with pytest.raises(ConflictError):
        coordinator.check_in(session_id=active_session.session_id, student_id="S1", location=second_location)


def test_checkin_requires_enrollment(container, active_session):
    with pytest.raises(AuthorizationError, match="not enrolled"):
        container.attendance_coordinator.check_in(
            session_id=active_session.session_id,
            student_id="OUTSIDER",
            location=CENTER,
        )


def test_checkin_requires_active_session(container, active_session):
    container.session_manager.end_session(session_id=active_session.session_id, teacher_id="T1")

    with pytest.raises(InvalidStateTransition, match="ended"):
        container.attendance_coordinator.check_in(
            session_id=active_session.session_id,
            student_id="S1",
            location=CENTER,
        )
    with pytest.raises(NotFoundError):
        container.attendance_coordinator.check_in(session_id="missing", student_id="S1", location=CENTER)


def test_checkin_rejects_bad_location(container, active_session):
    with pytest.raises(ValidationError):
        container.attendance_coordinator.check_in(
            session_id=active_session.session_id,
            student_id="S1",
            location={"latitude": "x", "longitude": 0},
        )
    assert container.attendance_repo.get(active_session.session_id, "S1") is None


def test_checkout_ten_minutes_later_keeps_verified(container, active_session, clock):
    coordinator = container.attendance_coordinator
    coordinator.check_in(session_id=active_session.session_id, student_id="S1", location=CENTER)
    clock.advance(minutes=10)

    result = coordinator.check_out(session_id=active_session.session_id, student_id="S1")

    assert result.already_checked_out is False
    assert result.record.check_out_time == clock.now()
    assert result.record.duration_minutes == 10
    assert result.record.status == AttendanceStatus.VERIFIED


def test_checkout_is_idempotent(container, active_session, clock):
    coordinator = container.attendance_coordinator
    coordinator.check_in(session_id=active_session.session_id, student_id="S1", location=CENTER)
    clock.advance(minutes=3)
    first = coordinator.check_out(session_id=active_session.session_id, student_id="S1")
    clock.advance(minutes=3)

    second = coordinator.check_out(session_id=active_session.session_id, student_id="S1")

    assert second.already_checked_out is True
    assert second.record.check_out_time == first.record.check_out_time


def test_checkout_of_pending_record_is_early_checkout(container, active_session):
    coordinator = container.attendance_coordinator
    coordinator.check_in(session_id=active_session.session_id, student_id="S2", location=CENTER)
    record = container.attendance_repo.get(active_session.session_id, "S2")
    container.attendance_repo.put(replace(record, status=AttendanceStatus.PENDING, is_gps_verified=False))

    result = coordinator.check_out(session_id=active_session.session_id, student_id="S2")

    assert result.record.status == AttendanceStatus.CHECKED_OUT_EARLY
    assert result.record.is_gps_verified is False


def test_checkout_merges_extension_into_checkout_info(container, active_session, clock):
    coordinator = container.attendance_coordinator
    coordinator.check_in(
        session_id=active_session.session_id,
        student_id="S1",
        location=CENTER,
        extension={"device": "phone"},
    )

    result = coordinator.check_out(
        session_id=active_session.session_id,
        student_id="S1",
        extension={"reason": "doctor"},
    )

    assert result.record.extension["device"] == "phone"
    assert result.record.extension["reason"] == "doctor"
    assert result.record.extension["checkout_info"]["reason"] == "doctor"
    assert result.record.extension["checkout_info"]["timestamp"] == clock.now().isoformat()


def test_checkout_without_checkin_is_not_found(container, active_session):
    with pytest.raises(NotFoundError, match="must check in"):
        container.attendance_coordinator.check_out(session_id=active_session.session_id, student_id="S3")


def test_checkout_from_ended_session_is_rejected(container, active_session):
    container.attendance_coordinator.check_in(session_id=active_session.session_id, student_id="S1", location=CENTER)
    container.session_manager.end_session(session_id=active_session.session_id, teacher_id="T1")

    with pytest.raises(InvalidStateTransition, match="inactive session"):
        container.attendance_coordinator.check_out(session_id=active_session.session_id, student_id="S1")


def test_manual_absent_deletes_record(container, active_session):
    container.attendance_coordinator.check_in(session_id=active_session.session_id, student_id="S1", location=CENTER)

    result = container.attendance_coordinator.manual_override(
        session_id=active_session.session_id,
        student_id="S1",
        new_status="absent",
        teacher_id="T1",
    )

    assert result.status == AttendanceStatus.ABSENT
    assert result.record is None
    assert container.attendance_repo.get(active_session.session_id, "S1") is None

    summary = container.report_service.get_session_attendance(session_id=active_session.session_id)
    row = next(r for r in summary.records if r.student_id == "S1")
    assert row.status == AttendanceStatus.ABSENT
    assert row.has_attended is False
    assert row.record is None


def test_manual_override_creates_and_updates_records(container, active_session, clock):
    coordinator = container.attendance_coordinator

    created = coordinator.manual_override(
        session_id=active_session.session_id,
        student_id="S3",
        new_status="verified",
        teacher_id="T1",
    )
    assert created.record.status == AttendanceStatus.VERIFIED
    assert created.record.is_gps_verified is True
    assert created.record.manually_updated is True
    assert created.record.manually_updated_by == "T1"
    assert created.record.check_in_time == clock.now()

    coordinator.check_in(session_id=active_session.session_id, student_id="S1", location=CENTER)
    downgraded = coordinator.manual_override(
        session_id=active_session.session_id,
        student_id="S1",
        new_status="failed_location",
        teacher_id="T1",
    )
    assert downgraded.record.status == AttendanceStatus.FAILED_LOCATION
    assert downgraded.record.is_gps_verified is False
    assert downgraded.record.distance_meters == 0


def test_manual_override_works_on_ended_session(container, active_session):
    container.session_manager.end_session(session_id=active_session.session_id, teacher_id="T1")

    result = container.attendance_coordinator.manual_override(
        session_id=active_session.session_id,
        student_id="S2",
        new_status="verified",
        teacher_id="T1",
    )

    assert result.record.status == AttendanceStatus.VERIFIED


def test_manual_override_checks(container, active_session):
    coordinator = container.attendance_coordinator

    with pytest.raises(AuthorizationError):
        coordinator.manual_override(
            session_id=active_session.session_id,
            student_id="S1",
            new_status="verified",
            teacher_id="T2",
        )
    with pytest.raises(ValidationError, match="Invalid status"):
        coordinator.manual_override(
            session_id=active_session.session_id,
            student_id="S1",
            new_status="present",
            teacher_id="T1",
        )
    with pytest.raises(ValidationError):
        coordinator.manual_override(
            session_id=active_session.session_id,
            student_id="S1",
            new_status="pending",
            teacher_id="T1",
        )
    with pytest.raises(NotFoundError, match="not enrolled"):
        coordinator.manual_override(
            session_id=active_session.session_id,
            student_id="OUTSIDER",
            new_status="verified",
            teacher_id="T1",
        )


def test_verification_request_and_response_upgrades_record(container, active_session, clock):
    coordinator = container.attendance_coordinator
    coordinator.check_in(session_id=active_session.session_id, student_id="S1", location=FAR)

    request = coordinator.request_verification(
        session_id=active_session.session_id,
        student_id="S1",
        teacher_id="T1",
    )
    assert request.status == VerificationRequestStatus.PENDING
    again = coordinator.request_verification(session_id=active_session.session_id, student_id="S1", teacher_id="T1")
    assert again == request

    clock.advance(minutes=2)
    outcome = coordinator.respond_to_verification(
        session_id=active_session.session_id,
        student_id="S1",
        payload={"location": CENTER, "accuracy": 8, "extension": {"source": "gps"}},
    )

    assert outcome.verified is True
    assert outcome.distance_meters == 0
    assert outcome.record.status == AttendanceStatus.VERIFIED
    assert outcome.record.is_gps_verified is True
    assert outcome.record.verification_response_time == clock.now()
    assert outcome.request.status == VerificationRequestStatus.COMPLETED
    assert outcome.request.response_data["accuracy"] == 8
    assert outcome.request.response_data["location"] == CENTER

    stored = container.attendance_repo.get_verification_request(active_session.session_id, "S1")
    assert stored.status == VerificationRequestStatus.COMPLETED
    with pytest.raises(InvalidStateTransition):
        coordinator.respond_to_verification(
            session_id=active_session.session_id,
            student_id="S1",
            payload={"location": CENTER},
        )


def test_verification_response_outside_keeps_status(container, active_session):
    coordinator = container.attendance_coordinator
    coordinator.check_in(session_id=active_session.session_id, student_id="S1", location=FAR)
    coordinator.request_verification(session_id=active_session.session_id, student_id="S1", teacher_id="T1")

    outcome = coordinator.respond_to_verification(
        session_id=active_session.session_id,
        student_id="S1",
        payload={"location": FAR},
    )

    assert outcome.verified is False
    assert outcome.record.status == AttendanceStatus.FAILED_LOCATION


def test_verification_response_without_request_is_not_found(container, active_session):
    container.attendance_coordinator.check_in(session_id=active_session.session_id, student_id="S1", location=CENTER)

    with pytest.raises(NotFoundError, match="No verification request"):
        container.attendance_coordinator.respond_to_verification(
            session_id=active_session.session_id,
            student_id="S1",
            payload={"location": CENTER},
        )


def test_validate_location(container, active_session):
    inside = container.attendance_coordinator.validate_location(session_id=active_session.session_id, location=CENTER)
    outside = container.attendance_coordinator.validate_location(session_id=active_session.session_id, location=FAR)

    assert inside.is_within_radius is True
    assert outside.is_within_radius is False
    assert outside.radius_meters == 50


def test_checkout_info_supplied_by_caller_is_not_nested_in_itself(container, active_session, clock):
    coordinator = container.attendance_coordinator
    coordinator.check_in(session_id=active_session.session_id, student_id="S1", location=CENTER)

    result = coordinator.check_out(
        session_id=active_session.session_id,
        student_id="S1",
        extension={"checkout_info": {"reason": "bus"}, "device": "tablet"},
    )

    info = result.record.extension["checkout_info"]
    assert info == {"reason": "bus", "device": "tablet", "timestamp": clock.now().isoformat()}
    assert "checkout_info" not in info
