"""
Project-level endpoints: liveness probe and JSON handlers for unmatched routes.
"""

import logging

from django.conf import settings
from django.http import JsonResponse
from django.utils import timezone
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny

from users.authentication import OptionalBearerTokenAuthentication

from .exceptions import InternalError, error_envelope
from .responses import success_response

logger = logging.getLogger(__name__)


@api_view(["GET"])
@authentication_classes([OptionalBearerTokenAuthentication])
@permission_classes([AllowAny])
def health(request):
    """Liveness probe; reports whether the caller presented a valid token."""
    return success_response(
        message="Finance Records API is running",
        timestamp=timezone.now().isoformat(),
        environment=settings.ENVIRONMENT,
        authenticated=bool(request.user and request.user.is_authenticated),
    )


def not_found(request, exception=None):
    return JsonResponse(
        error_envelope(f"Route {request.method} {request.path} not found", "NOT_FOUND"),
        status=404,
    )


def server_error(request):
    logger.error(
        "Unhandled error outside the API layer",
        extra={
            "request_method": request.method,
            "request_path": request.path,
            "action": "server_error",
            "component": "server_error",
            "severity": "critical",
        },
    )
    return JsonResponse(
        error_envelope(InternalError.default_detail, InternalError.default_code),
        status=500,
    )
