"""
Session authentication helpers and the JSON view decorator.
"""
from __future__ import annotations

import json
import logging
from functools import wraps
from uuid import UUID, uuid4

from django.views.decorators.csrf import csrf_exempt

from market.api.middleware import ErrorHandler
from market.errors import ServiceError
from market.infra.models import UserORM

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def login(request, user: UserORM) -> None:
    request.session.cycle_key()
    request.session[SESSION_USER_KEY] = str(user.id)


def logout(request) -> None:
    request.session.flush()


def current_user(request) -> UserORM | None:
    """User stored in the session, cached on the request."""
    if not hasattr(request, "_market_user"):
        user_id = request.session.get(SESSION_USER_KEY)
        request._market_user = UserORM.objects.filter(id=user_id).first() if user_id else None
    return request._market_user


def require_user(request) -> UserORM:
    user = current_user(request)
    if user is None:
        raise ServiceError("Unauthorized", "UNAUTHORIZED")
    return user


def require_admin(request) -> UserORM:
    user = require_user(request)
    if not user.is_admin:
        raise ServiceError("Admin access required", "FORBIDDEN")
    return user


def parse_uuid(value, field: str) -> UUID:
    if not value:
        raise ServiceError(f"{field} is required")
    try:
        return UUID(str(value))
    except ValueError:
        raise ServiceError(f"Invalid {field}: {value}")


def read_json(request) -> dict:
    """Request body as a dict; form posts read as their fields, empty bodies as {}."""
    if request.content_type in FORM_CONTENT_TYPES:
        return request.POST.dict()
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ServiceError("Invalid JSON")
    if not isinstance(data, dict):
        raise ServiceError("Request body must be a JSON object")
    return data


def api_view(methods: list[str], auth: str | None = "user"):
    """
    JSON route decorator.

    Rejects other HTTP methods, resolves the session user (``auth`` is
    ``"user"``, ``"admin"`` or ``None``), passes it as ``user`` and renders
    ``ServiceError`` through ``ErrorHandler``.
    """
    allowed = {m.upper() for m in methods}

    def decorator(view):
        @csrf_exempt
        @wraps(view)
        def wrapper(request, *args, **kwargs):
            request_id = request.headers.get("X-Request-ID") or str(uuid4())
            if request.method not in allowed:
                response = ErrorHandler.error_response(
                    "METHOD_NOT_ALLOWED", f"Method {request.method} not allowed"
                )
                response["Allow"] = ", ".join(sorted(allowed))
                return response
            try:
                if auth == "admin":
                    kwargs["user"] = require_admin(request)
                elif auth == "user":
                    kwargs["user"] = require_user(request)
                response = view(request, *args, **kwargs)
            except ServiceError as e:
                logger.info(
                    "api_error",
                    extra={
                        "request_id": request_id,
                        "path": request.path,
                        "method": request.method,
                        "status": e.code,
                        "error": e.message,
                    },
                )
                response = ErrorHandler.handle_error(e)
            except Exception as e:
                response = ErrorHandler.handle_error(e)
            response["X-Request-ID"] = request_id
            return response
        return wrapper
    return decorator
