from __future__ import annotations

from functools import wraps

from flask import g, jsonify, request

from ..core.result import Result

USER_HEADER = "X-User-Id"

STATUS_BY_ERROR_KIND = {
    "validation_error": 400,
    "authorization_error": 403,
    "not_found": 404,
    "invalid_state_transition": 409,
    "conflict": 409,
    "store_error": 503,
}


def login_required(view):
    """Require the caller id forwarded by the authenticating gateway."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        user_id = (request.headers.get(USER_HEADER) or "").strip()
        if not user_id:
            return jsonify({"ok": False, "error_kind": "authorization_error", "message": "Login required"}), 401
        g.user_id = user_id
        return view(*args, **kwargs)

    return wrapper


def current_user_id() -> str:
    return g.user_id


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def json_result(result: Result, *, created: bool = False):
    if result.ok:
        return jsonify(result.to_dict()), 201 if created else 200
    return jsonify(result.to_dict()), STATUS_BY_ERROR_KIND.get(result.error_kind, 500)
