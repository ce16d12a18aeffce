from __future__ import annotations

from flask import Flask

from ..common.http import current_user_id, json_body, json_result, login_required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    api = container.api

    # Student actions

    @app.route("/api/sessions/<session_id>/check-in", methods=["POST"], endpoint="check_in")
    @login_required
    def check_in(session_id: str):
        data = json_body()
        result = api.check_in(
            session_id=session_id,
            student_id=current_user_id(),
            location=data.get("location"),
            extension=data.get("extension"),
        )
        return json_result(result, created=True)

    @app.route("/api/sessions/<session_id>/check-out", methods=["POST"], endpoint="check_out")
    @login_required
    def check_out(session_id: str):
        data = json_body()
        result = api.check_out(
            session_id=session_id,
            student_id=current_user_id(),
            extension=data.get("extension"),
        )
        return json_result(result)

    @app.route("/api/sessions/<session_id>/attendance/me", methods=["GET"], endpoint="my_attendance_status")
    @login_required
    def my_attendance_status(session_id: str):
        return json_result(api.get_attendance_status(session_id=session_id, student_id=current_user_id()))

    @app.route(
        "/api/sessions/<session_id>/verification-response",
        methods=["POST"],
        endpoint="respond_to_verification",
    )
    @login_required
    def respond_to_verification(session_id: str):
        result = api.respond_to_verification(
            session_id=session_id,
            student_id=current_user_id(),
            payload=json_body(),
        )
        return json_result(result)

    @app.route("/api/sessions/<session_id>/validate-location", methods=["POST"], endpoint="validate_location")
    @login_required
    def validate_location(session_id: str):
        return json_result(api.validate_location(session_id=session_id, location=json_body().get("location")))

    @app.route("/api/students/me/active-sessions", methods=["GET"], endpoint="student_active_sessions")
    @login_required
    def student_active_sessions():
        return json_result(api.list_active_sessions_for_student(student_id=current_user_id()))

    # Teacher actions

    @app.route("/api/sessions/<session_id>/attendance", methods=["GET"], endpoint="session_attendance")
    @login_required
    def session_attendance(session_id: str):
        return json_result(api.get_session_attendance(session_id=session_id, teacher_id=current_user_id()))

    @app.route(
        "/api/sessions/<session_id>/attendance/<student_id>",
        methods=["PUT"],
        endpoint="manual_override",
    )
    @login_required
    def manual_override(session_id: str, student_id: str):
        data = json_body()
        result = api.manual_override(
            session_id=session_id,
            student_id=student_id,
            new_status=data.get("status"),
            teacher_id=current_user_id(),
            extension=data.get("extension"),
        )
        return json_result(result)

    @app.route(
        "/api/sessions/<session_id>/attendance/<student_id>/verification-request",
        methods=["POST"],
        endpoint="request_verification",
    )
    @login_required
    def request_verification(session_id: str, student_id: str):
        result = api.request_verification(
            session_id=session_id,
            student_id=student_id,
            teacher_id=current_user_id(),
            extension=json_body().get("extension"),
        )
        return json_result(result, created=True)
