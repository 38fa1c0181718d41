"""Helpers shared by the JSON controllers.

Identity comes from the Flask session, populated by the external
authentication layer; controllers only read it.
"""
from __future__ import annotations

import logging
from functools import wraps

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AlreadyClockedIn,
    AuthorizationError,
    InvalidStateError,
    StoreFailure,
    ValidationError,
)
from .serialize import to_jsonable

logger = logging.getLogger(__name__)


def current_worker_id() -> int:
    return int(session["user_id"])


def current_role() -> Role:
    try:
        return Role(str(session.get("role", Role.WORKER.value)).upper())
    except ValueError:
        return Role.WORKER


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def fail(message: str, status: int, **extra):
    payload = {"success": False, "message": message}
    payload.update(to_jsonable(extra))
    return jsonify(payload), status


def ok(message: str, status: int = 200, **data):
    payload = {"success": True, "message": message}
    payload.update(to_jsonable(data))
    return jsonify(payload), status


def api_login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return fail("Authentication required", 401)
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return fail("Authentication required", 401)
            if current_role() not in roles:
                return fail("Forbidden", 403)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def handle_domain_errors(view):
    """Map the domain error taxonomy onto JSON responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except ValidationError as e:
            return fail(str(e), 400, code="VALIDATION_ERROR")
        except AuthorizationError as e:
            return fail(str(e), 403, code="FORBIDDEN")
        except AlreadyClockedIn as e:
            return fail(str(e), 409, code=e.code, open_record=e.open_record)
        except InvalidStateError as e:
            return fail(str(e), 409, code=e.code)
        except StoreFailure as e:
            logger.warning("Store failure on %s %s: %s", request.method, request.path, e)
            return fail("Storage temporarily unavailable", 503, code="STORE_FAILURE", retryable=True)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.path)
            return fail("Internal server error", 500, code="INTERNAL_ERROR")

    return wrapper
