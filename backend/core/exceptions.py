"""
Application error taxonomy and the project-wide DRF exception handler.

Every error the API returns is rendered in the same envelope::

    {"success": false, "error": "<message>", "code": "<MACHINE_CODE>", "details": [...]}

Error classes are DRF ``APIException`` subclasses, so they can be raised from
authentication classes, permissions, serializers, views and services alike.
Datastore errors are translated at the boundary, and anything unexpected is
logged with request context and answered with a generic 500.
"""

import logging
import traceback

from django.conf import settings
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.db import DatabaseError, IntegrityError, connections, transaction
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response

logger = logging.getLogger(__name__)

# Fields whose submitted values are never echoed back in validation details
SENSITIVE_FIELD_MARKERS = ("password", "token", "secret")
MASKED_VALUE = "***"


class AppError(exceptions.APIException):
    """
    Base class for every application error.

    Carries an HTTP status, a machine-readable ``code`` and a human-readable
    message. Subclasses fix the status and default code; call sites may pass a
    more specific message or code (``AppError("Category not found", "CATEGORY_NOT_FOUND")``).
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"
    default_code = "INTERNAL_ERROR"

    def __init__(self, message=None, code=None, details=None):
        self.message = str(message or self.default_detail)
        self.error_code = code or self.default_code
        self.details = details
        super().__init__(detail=self.message, code=self.error_code)


# =============================================================================
# 401 - AUTHENTICATION
# =============================================================================


class NoToken(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Access token required"
    default_code = "NO_TOKEN"


class InvalidToken(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid token"
    default_code = "INVALID_TOKEN"


class TokenExpired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Token expired"
    default_code = "TOKEN_EXPIRED"


class UserNotFound(AppError):
    """Token was valid but no active user backs it."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "User not found or inactive"
    default_code = "USER_NOT_FOUND"


class InvalidCredentials(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid email or password"
    default_code = "INVALID_CREDENTIALS"


class AccountDeactivated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Account is deactivated"
    default_code = "ACCOUNT_DEACTIVATED"


class InvalidRefreshToken(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid refresh token"
    default_code = "INVALID_REFRESH_TOKEN"


# =============================================================================
# 403 - AUTHORIZATION
# =============================================================================


class AdminRequired(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Administrator access required"
    default_code = "ADMIN_REQUIRED"


class InsufficientPermissions(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Insufficient permissions"
    default_code = "INSUFFICIENT_PERMISSIONS"


class AccessDenied(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied"
    default_code = "ACCESS_DENIED"


# =============================================================================
# 400 - BAD REQUEST
# =============================================================================


class BadRequest(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request"
    default_code = "BAD_REQUEST"


class ValidationFailed(BadRequest):
    """Aggregated input violations; ``details`` is a list of ``{field, message, value}``."""

    default_detail = "Validation failed"
    default_code = "VALIDATION_ERROR"


class NoUpdateFields(BadRequest):
    default_detail = "No fields to update"
    default_code = "NO_UPDATE_FIELDS"


class InvalidFilename(BadRequest):
    default_detail = "Invalid filename"
    default_code = "INVALID_FILENAME"


class SelfActionForbidden(BadRequest):
    """An administrator tried to deactivate, delete or reset their own account."""

    default_detail = "This action cannot be performed on your own account"
    default_code = "CANNOT_MODIFY_SELF"


class ResourceInUse(BadRequest):
    default_detail = "Resource is in use"
    default_code = "RESOURCE_IN_USE"


class NoFileUploaded(BadRequest):
    default_detail = "No file uploaded"
    default_code = "NO_FILE_UPLOADED"


class UnexpectedFile(BadRequest):
    default_detail = "Unexpected file field"
    default_code = "UNEXPECTED_FILE"


class InvalidFileType(BadRequest):
    default_detail = "Invalid file type"
    default_code = "INVALID_FILE_TYPE"


class FileTooLarge(BadRequest):
    default_detail = "File too large"
    default_code = "FILE_TOO_LARGE"


class NoFileAttached(BadRequest):
    default_detail = "No file attached to this transaction"
    default_code = "NO_FILE_ATTACHED"


class ForeignKeyConstraint(BadRequest):
    default_detail = "Referenced resource does not exist"
    default_code = "FOREIGN_KEY_CONSTRAINT"


class RefreshTokenRequired(BadRequest):
    default_detail = "Refresh token required"
    default_code = "REFRESH_TOKEN_REQUIRED"


class InvalidCurrentPassword(BadRequest):
    default_detail = "Current password is incorrect"
    default_code = "INVALID_CURRENT_PASSWORD"


# =============================================================================
# 404 / 409 / 500
# =============================================================================


class ResourceNotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"
    default_code = "RESOURCE_NOT_FOUND"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists"
    default_code = "CONFLICT"


class DuplicateEntry(Conflict):
    default_detail = "Duplicate entry"
    default_code = "DUPLICATE_ENTRY"


class DatabaseFailure(AppError):
    default_detail = "Database error"
    default_code = "DATABASE_ERROR"


class FileDeleteError(AppError):
    default_detail = "Failed to delete file"
    default_code = "FILE_DELETE_ERROR"


class InternalError(AppError):
    default_detail = "Internal server error"
    default_code = "INTERNAL_ERROR"


# =============================================================================
# TRANSLATION HELPERS
# =============================================================================

# DRF built-in exceptions mapped onto the application taxonomy
DRF_EXCEPTION_CODES = {
    exceptions.NotAuthenticated: "NO_TOKEN",
    exceptions.AuthenticationFailed: "INVALID_TOKEN",
    exceptions.PermissionDenied: "ACCESS_DENIED",
    exceptions.NotFound: "NOT_FOUND",
    exceptions.MethodNotAllowed: "METHOD_NOT_ALLOWED",
    exceptions.NotAcceptable: "NOT_ACCEPTABLE",
    exceptions.UnsupportedMediaType: "UNSUPPORTED_MEDIA_TYPE",
    exceptions.ParseError: "INVALID_JSON",
    exceptions.Throttled: "TOO_MANY_REQUESTS",
}


def mask_value(field, value):
    """Hide values of credential-like fields."""
    if any(marker in str(field).lower() for marker in SENSITIVE_FIELD_MARKERS):
        return MASKED_VALUE
    return value


def _submitted_value(request, field):
    if request is None:
        return None
    for source in (getattr(request, "data", None), getattr(request, "query_params", None)):
        if source is None or not hasattr(source, "get"):
            continue
        try:
            value = source.get(field)
        except (AttributeError, TypeError):
            continue
        if value is not None:
            if hasattr(value, "name") and hasattr(value, "size"):
                return value.name
            return value
    return None


def flatten_validation_errors(detail, request=None, prefix=""):
    """
    Flatten a DRF ``ValidationError.detail`` structure into ``{field, message, value}`` items.

    Nested serializer errors produce dotted field paths; list errors keep the
    field name of their parent.
    """
    items = []

    if isinstance(detail, dict):
        for field, messages in detail.items():
            path = f"{prefix}.{field}" if prefix else str(field)
            items.extend(flatten_validation_errors(messages, request, path))
    elif isinstance(detail, (list, tuple)):
        for message in detail:
            items.extend(flatten_validation_errors(message, request, prefix))
    else:
        field = prefix or "non_field_errors"
        top_level = field.split(".")[0]
        items.append(
            {
                "field": field,
                "message": str(detail),
                "value": mask_value(field, _submitted_value(request, top_level)),
            }
        )

    return items


def translate_database_error(exc):
    """
    Map a datastore error onto the application taxonomy.

    Unique violations become ``DUPLICATE_ENTRY`` (409), foreign-key violations
    ``FOREIGN_KEY_CONSTRAINT`` (400) and anything else ``DATABASE_ERROR`` (500).
    """
    cause = getattr(exc, "__cause__", None)
    sqlstate = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    text = str(exc).upper()

    if isinstance(exc, IntegrityError):
        if sqlstate == "23505" or "UNIQUE" in text or "DUPLICATE" in text:
            return DuplicateEntry()
        if sqlstate == "23503" or "FOREIGN KEY" in text:
            return ForeignKeyConstraint()
    return DatabaseFailure()


def error_envelope(message, code, details=None, stack=None):
    body = {"success": False, "error": message, "code": code}
    if details:
        body["details"] = details
    if stack:
        body["stack"] = stack
    return body


def rollback_atomic_requests():
    """Mark every open ``ATOMIC_REQUESTS`` transaction for rollback."""
    for connection in connections.all():
        if connection.settings_dict.get("ATOMIC_REQUESTS") and connection.in_atomic_block:
            transaction.set_rollback(True, using=connection.alias)


def _request_context(context):
    request = context.get("request") if context else None
    view = context.get("view") if context else None
    user = getattr(request, "user", None)
    meta = getattr(request, "META", {}) or {}
    return {
        "request_method": getattr(request, "method", None),
        "request_path": getattr(request, "path", None),
        "user_id": str(user.id) if getattr(user, "is_authenticated", False) else None,
        "client_ip": meta.get("HTTP_X_FORWARDED_FOR", meta.get("REMOTE_ADDR")),
        "view": type(view).__name__ if view is not None else None,
    }


# =============================================================================
# DRF EXCEPTION HANDLER
# =============================================================================


def envelope_exception_handler(exc, context):
    """
    Render every exception raised inside a DRF view as an error envelope.

    Args:
        exc: The raised exception
        context: DRF handler context with ``view`` and ``request``

    Returns:
        Response: Error envelope with the mapped HTTP status
    """
    request = context.get("request") if context else None

    if isinstance(exc, Http404):
        exc = ResourceNotFound("Resource not found", "NOT_FOUND")
    elif isinstance(exc, DjangoPermissionDenied):
        exc = AccessDenied()
    elif isinstance(exc, DatabaseError):
        translated = translate_database_error(exc)
        log = logger.error if translated.status_code >= 500 else logger.warning
        log(
            "Database error translated",
            extra={
                **_request_context(context),
                "error_type": type(exc).__name__,
                "error_message": str(exc),
                "error_code": translated.error_code,
                "action": "database_error_translated",
                "component": "envelope_exception_handler",
                "severity": "high" if translated.status_code >= 500 else "medium",
            },
            exc_info=translated.status_code >= 500,
        )
        exc = translated
    elif isinstance(exc, exceptions.ValidationError) and not isinstance(exc, AppError):
        exc = ValidationFailed(details=flatten_validation_errors(exc.detail, request))

    if isinstance(exc, AppError):
        rollback_atomic_requests()
        return Response(
            error_envelope(exc.message, exc.error_code, exc.details),
            status=exc.status_code,
        )

    if isinstance(exc, exceptions.APIException):
        rollback_atomic_requests()
        code = DRF_EXCEPTION_CODES.get(type(exc))
        if code is None:
            for exc_type, mapped in DRF_EXCEPTION_CODES.items():
                if isinstance(exc, exc_type):
                    code = mapped
                    break
        headers = {}
        if getattr(exc, "auth_header", None):
            headers["WWW-Authenticate"] = exc.auth_header
        if getattr(exc, "wait", None):
            headers["Retry-After"] = str(int(exc.wait))
        message = exc.detail if isinstance(exc.detail, str) else str(exc.default_detail)
        return Response(
            error_envelope(str(message), code or str(exc.default_code).upper()),
            status=exc.status_code,
            headers=headers,
        )

    logger.error(
        "Unhandled exception while processing request",
        extra={
            **_request_context(context),
            "error_type": type(exc).__name__,
            "error_message": str(exc),
            "action": "unhandled_exception",
            "component": "envelope_exception_handler",
            "severity": "critical",
        },
        exc_info=exc,
    )
    rollback_atomic_requests()
    stack = (
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        if settings.DEBUG
        else None
    )
    return Response(
        error_envelope(InternalError.default_detail, InternalError.default_code, stack=stack),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
