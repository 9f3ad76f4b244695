"""
Middleware for CORS and error handling.
"""
import logging

from django.conf import settings
from django.http import HttpResponse, JsonResponse

from market.errors import ServiceError

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Error handler for API responses."""

    ERROR_CODES = {
        "VALIDATION_ERROR": 400,
        "INSUFFICIENT_BALANCE": 400,
        "INVALID_STATE": 400,
        "INVALID_SIGNATURE": 400,
        "UNAUTHORIZED": 401,
        "INVALID_TOKEN": 401,
        "FORBIDDEN": 403,
        "NOT_FOUND": 404,
        "METHOD_NOT_ALLOWED": 405,
        "DUPLICATE_REQUEST": 409,
        "INTERNAL_ERROR": 500,
        "CONFIGURATION_ERROR": 500,
        "GATEWAY_ERROR": 502,
    }

    @classmethod
    def error_response(cls, code: str, message: str) -> JsonResponse:
        return JsonResponse(
            {
                "error": {
                    "code": code,
                    "message": message,
                }
            },
            status=cls.ERROR_CODES.get(code, 400),
        )

    @classmethod
    def handle_error(cls, error: Exception) -> JsonResponse:
        """Handle error and return JSON response."""
        if isinstance(error, ServiceError):
            return cls.error_response(error.code, error.message)

        # Log unexpected errors
        logger.error(
            "unexpected_error",
            extra={"error": f"{type(error).__name__}: {error}"},
            exc_info=True,
        )
        return cls.error_response("INTERNAL_ERROR", "An internal error occurred")


class CorsMiddleware:
    """Adds CORS headers to /api/ responses and answers preflight requests."""

    allowed_methods = "GET, POST, PATCH, DELETE, OPTIONS"
    allowed_headers = "Content-Type, Authorization, Idempotency-Key, X-Request-ID, X-Callback-Token"

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if not request.path.startswith("/api/"):
            return self.get_response(request)

        if request.method == "OPTIONS":
            response = HttpResponse(status=204)
        else:
            response = self.get_response(request)

        response["Access-Control-Allow-Origin"] = settings.CORS_ALLOW_ORIGIN
        response["Access-Control-Allow-Methods"] = self.allowed_methods
        response["Access-Control-Allow-Headers"] = self.allowed_headers
        if settings.CORS_ALLOW_ORIGIN != "*":
            response["Access-Control-Allow-Credentials"] = "true"
            response["Vary"] = "Origin"
        return response
