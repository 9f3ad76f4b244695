"""
GraphQL view with structured logging.
"""
import json
import logging
from uuid import uuid4

from ariadne import graphql_sync
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from market.api.auth import current_user
from market.api.middleware import ErrorHandler
from market.api.schema import schema

logger = logging.getLogger(__name__)


class MarketGraphQLView:
    """GraphQL view sharing the REST session."""

    def dispatch(self, request, *args, **kwargs):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        user = current_user(request)
        user_id = str(user.id) if user else None

        logger.info(
            "graphql_request",
            extra={"request_id": request_id, "user_id": user_id, "operation": "graphql"},
        )

        try:
            response = self._process_graphql_request(request)
        except Exception as e:
            response = ErrorHandler.handle_error(e)
            logger.error(
                "graphql_error",
                extra={"request_id": request_id, "user_id": user_id, "error": str(e)},
            )

        logger.info(
            "graphql_response",
            extra={"request_id": request_id, "user_id": user_id, "status": response.status_code},
        )
        response["X-Request-ID"] = request_id
        return response

    def _process_graphql_request(self, request):
        """Process GraphQL request."""
        if request.method == "GET":
            return JsonResponse({"message": "GraphQL endpoint. Use POST for queries."})

        try:
            data = json.loads(request.body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return ErrorHandler.error_response("VALIDATION_ERROR", "Invalid JSON")

        success, result = graphql_sync(
            schema,
            data,
            context_value={"request": request},
        )
        # Resolver errors still carry a "data" key; parse and validation failures do not
        status_code = 200 if success or "data" in result else 400
        return JsonResponse(result, status=status_code)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def graphql_view(request):
    """GraphQL endpoint."""
    view = MarketGraphQLView()
    return view.dispatch(request)
