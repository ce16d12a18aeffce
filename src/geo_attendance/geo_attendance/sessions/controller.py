from __future__ import annotations

from flask import Flask, current_app, request

from ..common.http import current_user_id, json_body, json_result, login_required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    api = container.api

    @app.route("/api/sessions", methods=["POST"], endpoint="create_session")
    @login_required
    def create_session():
        data = json_body()
        result = api.create_session(
            class_id=data.get("class_id"),
            teacher_id=current_user_id(),
            location=data.get("location"),
            radius_meters=data.get("radius_meters", current_app.config["DEFAULT_RADIUS_METERS"]),
            extension=data.get("extension"),
        )
        return json_result(result, created=True)

    @app.route("/api/sessions/schedule", methods=["POST"], endpoint="schedule_session")
    @login_required
    def schedule_session():
        data = json_body()
        result = api.schedule_session(
            class_id=data.get("class_id"),
            teacher_id=current_user_id(),
            location=data.get("location"),
            radius_meters=data.get("radius_meters", current_app.config["DEFAULT_RADIUS_METERS"]),
            extension=data.get("extension"),
        )
        return json_result(result, created=True)

    @app.route("/api/sessions/<session_id>", methods=["GET"], endpoint="get_session")
    @login_required
    def get_session(session_id: str):
        return json_result(api.get_session(session_id=session_id))

    @app.route("/api/sessions/<session_id>/start", methods=["POST"], endpoint="start_session")
    @login_required
    def start_session(session_id: str):
        return json_result(api.start_session(session_id=session_id, teacher_id=current_user_id()))

    @app.route("/api/sessions/<session_id>/end", methods=["POST"], endpoint="end_session")
    @login_required
    def end_session(session_id: str):
        return json_result(api.end_session(session_id=session_id, teacher_id=current_user_id()))

    @app.route("/api/sessions/<session_id>/cancel", methods=["POST"], endpoint="cancel_session")
    @login_required
    def cancel_session(session_id: str):
        return json_result(api.cancel_session(session_id=session_id, teacher_id=current_user_id()))

    @app.route("/api/sessions/<session_id>/location", methods=["PUT"], endpoint="update_session_location")
    @login_required
    def update_session_location(session_id: str):
        data = json_body()
        result = api.update_session_location(
            session_id=session_id,
            teacher_id=current_user_id(),
            location=data.get("location"),
            radius_meters=data.get("radius_meters"),
            extension=data.get("extension"),
        )
        return json_result(result)

    @app.route("/api/teachers/me/sessions", methods=["GET"], endpoint="teacher_sessions")
    @login_required
    def teacher_sessions():
        result = api.list_teacher_sessions(
            teacher_id=current_user_id(),
            status=request.args.get("status"),
            class_id=request.args.get("class_id") or None,
        )
        return json_result(result)

    @app.route("/api/classes/<class_id>/attendance-history", methods=["GET"], endpoint="class_attendance_history")
    @login_required
    def class_attendance_history(class_id: str):
        return json_result(api.get_class_attendance_history(class_id=class_id, teacher_id=current_user_id()))
