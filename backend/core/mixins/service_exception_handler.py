# core/mixins/service_exception_handler.py
"""
Service exception handler mixin.

Views call services through ``handle_service_call``; application errors and
DRF exceptions pass through unchanged, everything else is translated into
the error taxonomy of ``core.exceptions`` and logged with the caller's
context.
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
from rest_framework.exceptions import APIException

from core.exceptions import (
    AccessDenied,
    AppError,
    InternalError,
    ValidationFailed,
    translate_database_error,
)

logger = logging.getLogger(__name__)


def django_validation_details(error):
    """``{field, message, value}`` entries for a Django ``ValidationError``."""
    if hasattr(error, "message_dict"):
        return [
            {"field": field, "message": message, "value": None}
            for field, messages in error.message_dict.items()
            for message in messages
        ]
    return [
        {"field": "non_field_errors", "message": message, "value": None}
        for message in error.messages
    ]


class ServiceExceptionHandlerMixin:
    """
    Mixin for views that delegate to the service layer.

    Usage:
        transaction = self.handle_service_call(
            self.transaction_service.create_transaction, request.user, data
        )
    """

    def _service_context(self, service_call):
        request = getattr(self, "request", None)
        user = getattr(request, "user", None)
        return {
            "service_name": getattr(service_call, "__self__", self).__class__.__name__,
            "method_name": getattr(service_call, "__name__", repr(service_call)),
            "user_id": str(user.id) if getattr(user, "is_authenticated", False) else None,
            "component": "ServiceExceptionHandlerMixin",
        }

    def handle_service_call(self, service_call, *args, **kwargs):
        """
        Run ``service_call(*args, **kwargs)`` and translate what it raises.

        Returns:
            Any: Result from service call

        Raises:
            APIException: ``AppError`` subclasses and DRF exceptions unchanged
            ValidationFailed: From a Django ``ValidationError``
            AccessDenied: From ``PermissionError``
            AppError: Translated database failure
            InternalError: Anything else; the original message is not exposed
        """
        context = self._service_context(service_call)
        logger.debug(
            "Service call execution initiated",
            extra={**context, "action": "service_call_start"},
        )

        try:
            result = service_call(*args, **kwargs)
        except APIException as e:
            server_side = e.status_code >= 500
            log = logger.error if server_side else logger.warning
            log(
                "Service raised API error",
                extra={
                    **context,
                    "error_code": e.error_code if isinstance(e, AppError) else None,
                    "error_detail": e.detail,
                    "status_code": e.status_code,
                    "action": "service_api_error",
                    "severity": "high" if server_side else "medium",
                },
            )
            raise
        except DjangoValidationError as e:
            logger.warning(
                "Service validation error",
                extra={
                    **context,
                    "error_messages": e.messages,
                    "action": "service_validation_error",
                    "severity": "medium",
                },
            )
            raise ValidationFailed(details=django_validation_details(e))
        except PermissionError as e:
            logger.warning(
                "Service permission denied",
                extra={
                    **context,
                    "error_message": str(e),
                    "action": "service_permission_denied",
                    "severity": "high",
                },
            )
            raise AccessDenied(str(e) or None)
        except DatabaseError as e:
            translated = translate_database_error(e)
            logger.error(
                "Service database error",
                extra={
                    **context,
                    "error_type": type(e).__name__,
                    "error_code": translated.error_code,
                    "action": "service_database_error",
                    "severity": "high",
                },
                exc_info=translated.status_code >= 500,
            )
            raise translated
        except Exception as e:
            logger.error(
                "Service operation failed unexpectedly",
                extra={
                    **context,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                    "action": "service_unexpected_error",
                    "severity": "critical",
                },
                exc_info=True,
            )
            raise InternalError()

        logger.debug(
            "Service call completed successfully",
            extra={
                **context,
                "result_type": type(result).__name__,
                "action": "service_call_success",
            },
        )
        return result
