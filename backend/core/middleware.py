import logging
import time

from django.conf import settings
from django.db import connection

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    """
    Access log for every request: method, path, status, duration and, when
    DEBUG is on, the number of database queries it issued.
    """

    # Query count thresholds per severity
    QUERY_THRESHOLDS = {"HIGH": 50, "MEDIUM": 25}

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.monotonic()
        initial_queries = len(connection.queries) if settings.DEBUG else 0

        response = self.get_response(request)

        duration_ms = round((time.monotonic() - started) * 1000, 2)
        query_count = (
            len(connection.queries) - initial_queries if settings.DEBUG else None
        )

        self._log_request(request, response, duration_ms, query_count)
        return response

    def _log_request(self, request, response, duration_ms, query_count):
        user = getattr(request, "user", None)
        extra_context = {
            "request_method": request.method,
            "request_path": request.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
            "user_id": (
                str(user.id) if getattr(user, "is_authenticated", False) else None
            ),
            "query_count": query_count,
            "action": "request_completed",
            "component": "RequestLoggingMiddleware",
        }

        message = f"{request.method} {request.path} {response.status_code} {duration_ms}ms"

        if response.status_code >= 500:
            logger.error(message, extra={**extra_context, "severity": "high"})
        elif response.status_code >= 400:
            logger.warning(message, extra={**extra_context, "severity": "low"})
        else:
            logger.info(message, extra=extra_context)

        if query_count is not None and query_count >= self.QUERY_THRESHOLDS["HIGH"]:
            logger.warning(
                "High query count detected",
                extra={
                    **extra_context,
                    "severity": "high",
                    "threshold": self.QUERY_THRESHOLDS["HIGH"],
                    "recommendation": "Check for N+1 queries and optimize database calls",
                },
            )
        elif query_count is not None and query_count >= self.QUERY_THRESHOLDS["MEDIUM"]:
            logger.info(
                "Medium query count",
                extra={
                    **extra_context,
                    "severity": "medium",
                    "threshold": self.QUERY_THRESHOLDS["MEDIUM"],
                },
            )
