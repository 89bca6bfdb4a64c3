# finance/tests/unit/test_service_exception_handler.py

import os
import subprocess
import sys
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError
from django.http import Http404
from rest_framework.exceptions import (
    APIException,
    MethodNotAllowed,
    ValidationError as DRFValidationError,
)
from rest_framework.test import APIRequestFactory

from core.exceptions import (
    AccessDenied,
    DatabaseFailure,
    DuplicateEntry,
    ForeignKeyConstraint,
    InternalError,
    ResourceNotFound,
    ValidationFailed,
    envelope_exception_handler,
    flatten_validation_errors,
    translate_database_error,
)
from core.mixins import ServiceExceptionHandlerMixin

BACKEND_DIR = Path(__file__).resolve().parents[3]


class MockService:
    """A mock service to simulate different exception scenarios."""

    def method_success(self):
        return "success"

    def method_app_error(self):
        raise ResourceNotFound("Category not found", "CATEGORY_NOT_FOUND")

    def method_drf_validation_error(self):
        raise DRFValidationError("DRF validation error")

    def method_django_validation_error(self):
        raise DjangoValidationError({"name": ["Name is taken"]})

    def method_python_permission_error(self):
        raise PermissionError("Python permission error")

    def method_integrity_error(self):
        raise IntegrityError("UNIQUE constraint failed: categories.name")

    def method_api_exception(self):
        raise APIException("API exception")

    def method_generic_exception(self):
        raise Exception("Generic service error")


class TestServiceExceptionHandlerMixin:
    """Tests for ServiceExceptionHandlerMixin."""

    def setup_method(self, method):
        self.mixin_instance = ServiceExceptionHandlerMixin()
        self.mixin_instance.request = Mock()
        self.mixin_instance.request.user = Mock(id=1, is_authenticated=True)
        self.mock_service = MockService()

    @patch("core.mixins.service_exception_handler.logger")
    def test_handle_service_call_success(self, mock_logger):
        result = self.mixin_instance.handle_service_call(self.mock_service.method_success)

        assert result == "success"
        messages = {call_args[0] for call_args, _ in mock_logger.debug.call_args_list}
        assert "Service call completed successfully" in messages
        for call_args, call_kwargs in mock_logger.debug.call_args_list:
            if call_args[0] == "Service call completed successfully":
                assert call_kwargs["extra"]["service_name"] == "MockService"
                assert call_kwargs["extra"]["method_name"] == "method_success"
                assert call_kwargs["extra"]["user_id"] == "1"
                assert call_kwargs["extra"]["result_type"] == "str"

    @patch("core.mixins.service_exception_handler.logger")
    def test_app_error_propagates_unchanged(self, mock_logger):
        with pytest.raises(ResourceNotFound) as exc_info:
            self.mixin_instance.handle_service_call(self.mock_service.method_app_error)

        assert exc_info.value.error_code == "CATEGORY_NOT_FOUND"
        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args[1]["extra"]["error_code"] == "CATEGORY_NOT_FOUND"

    @patch("core.mixins.service_exception_handler.logger")
    def test_drf_validation_error_propagates(self, mock_logger):
        with pytest.raises(DRFValidationError):
            self.mixin_instance.handle_service_call(
                self.mock_service.method_drf_validation_error
            )
        mock_logger.warning.assert_called_once()

    @patch("core.mixins.service_exception_handler.logger")
    def test_django_validation_error_is_translated(self, mock_logger):
        with pytest.raises(ValidationFailed) as exc_info:
            self.mixin_instance.handle_service_call(
                self.mock_service.method_django_validation_error
            )

        assert exc_info.value.details == [
            {"field": "name", "message": "Name is taken", "value": None}
        ]

    @patch("core.mixins.service_exception_handler.logger")
    def test_python_permission_error_is_translated(self, mock_logger):
        with pytest.raises(AccessDenied, match="Python permission error"):
            self.mixin_instance.handle_service_call(
                self.mock_service.method_python_permission_error
            )

    @patch("core.mixins.service_exception_handler.logger")
    def test_database_error_is_translated(self, mock_logger):
        with pytest.raises(DuplicateEntry):
            self.mixin_instance.handle_service_call(self.mock_service.method_integrity_error)
        mock_logger.error.assert_called_once()

    @patch("core.mixins.service_exception_handler.logger")
    def test_api_exception_propagates(self, mock_logger):
        with pytest.raises(APIException, match="API exception"):
            self.mixin_instance.handle_service_call(self.mock_service.method_api_exception)

    @patch("core.mixins.service_exception_handler.logger")
    def test_generic_exception_is_hidden(self, mock_logger):
        with pytest.raises(InternalError) as exc_info:
            self.mixin_instance.handle_service_call(
                self.mock_service.method_generic_exception
            )

        assert "Generic service error" not in exc_info.value.message
        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args[1]["extra"]["severity"] == "critical"


class DriverError(Exception):
    """Database driver error carrying a PostgreSQL SQLSTATE, as psycopg raises."""

    def __init__(self, sqlstate):
        super().__init__(sqlstate)
        self.sqlstate = sqlstate


class TestTranslateDatabaseError:
    def test_unique_violation(self):
        assert isinstance(
            translate_database_error(IntegrityError("UNIQUE constraint failed: x")),
            DuplicateEntry,
        )

    def test_foreign_key_violation(self):
        assert isinstance(
            translate_database_error(IntegrityError("FOREIGN KEY constraint failed")),
            ForeignKeyConstraint,
        )

    def test_foreign_key_sqlstate_of_cause(self):
        error = IntegrityError("violation")
        error.__cause__ = DriverError("23503")

        assert isinstance(translate_database_error(error), ForeignKeyConstraint)

    def test_unique_sqlstate_of_cause(self):
        error = IntegrityError("violation")
        error.__cause__ = DriverError("23505")

        assert isinstance(translate_database_error(error), DuplicateEntry)

    def test_other_database_error(self):
        translated = translate_database_error(DatabaseError("connection lost"))

        assert isinstance(translated, DatabaseFailure)
        assert translated.status_code == 500


class TestFlattenValidationErrors:
    def test_flattens_and_masks(self):
        request = Mock(data={"email": "bad", "password": "123"}, query_params={})

        details = flatten_validation_errors(
            {"email": ["Invalid email"], "password": ["Too short"]}, request
        )

        assert details == [
            {"field": "email", "message": "Invalid email", "value": "bad"},
            {"field": "password", "message": "Too short", "value": "***"},
        ]

    def test_nested_paths(self):
        details = flatten_validation_errors({"profile": {"name": ["Required"]}})

        assert details == [{"field": "profile.name", "message": "Required", "value": None}]


class TestEnvelopeExceptionHandler:
    def setup_method(self, method):
        request = APIRequestFactory().get("/api/categories")
        request.user = Mock(is_authenticated=False)
        request.data = {}
        request.query_params = {}
        self.context = {"request": request, "view": Mock()}

    def test_app_error(self):
        response = envelope_exception_handler(
            ResourceNotFound("Category not found", "CATEGORY_NOT_FOUND"), self.context
        )

        assert response.status_code == 404
        assert response.data == {
            "success": False,
            "error": "Category not found",
            "code": "CATEGORY_NOT_FOUND",
        }

    def test_drf_validation_error(self):
        response = envelope_exception_handler(
            DRFValidationError({"name": ["Too short"]}), self.context
        )

        assert response.status_code == 400
        assert response.data["code"] == "VALIDATION_ERROR"
        assert response.data["details"][0]["field"] == "name"

    def test_http404(self):
        response = envelope_exception_handler(Http404(), self.context)

        assert response.status_code == 404
        assert response.data["code"] == "NOT_FOUND"

    def test_builtin_drf_exception(self):
        response = envelope_exception_handler(MethodNotAllowed("PATCH"), self.context)

        assert response.status_code == 405
        assert response.data["code"] == "METHOD_NOT_ALLOWED"

    def test_database_error(self):
        response = envelope_exception_handler(
            IntegrityError("UNIQUE constraint failed: categories.name"), self.context
        )

        assert response.status_code == 409
        assert response.data["code"] == "DUPLICATE_ENTRY"

    @patch("core.exceptions.logger")
    def test_unexpected_error(self, mock_logger, settings):
        settings.DEBUG = False

        response = envelope_exception_handler(RuntimeError("boom"), self.context)

        assert response.status_code == 500
        assert response.data == {
            "success": False,
            "error": "Internal server error",
            "code": "INTERNAL_ERROR",
        }
        mock_logger.error.assert_called_once()

    @patch("core.exceptions.logger")
    def test_unexpected_error_in_debug_includes_stack(self, mock_logger, settings):
        settings.DEBUG = True

        response = envelope_exception_handler(RuntimeError("boom"), self.context)

        assert "RuntimeError: boom" in response.data["stack"]


class TestExceptionsModuleImport:
    def test_importable_before_rest_framework_views(self):
        # Authentication classes import core.exceptions while DRF settings load
        script = (
            "import django; django.setup(); "
            "import core.exceptions; "
            "import rest_framework.views; "
            "import users.authentication"
        )
        env = {**os.environ, "DJANGO_SETTINGS_MODULE": "core.settings.test"}

        result = subprocess.run(
            [sys.executable, "-c", script],
            cwd=BACKEND_DIR,
            env=env,
            capture_output=True,
            text=True,
        )

        assert result.returncode == 0, result.stderr
