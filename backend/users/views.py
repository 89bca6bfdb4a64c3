"""
API views for authentication, user administration and profiles.

Views stay thin: serializers validate input, services own the business
rules, and ``handle_service_call`` logs and translates service failures.
Each viewset declares its interceptor chain in ``get_permissions``.
"""

import logging

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny

from core.mixins import ServiceExceptionHandlerMixin
from core.responses import created_response, success_response

from .permissions import (
    HasValidLookup,
    IsIdentified,
    IsSelfOrAdmin,
    IsSelfOrAdminOrManager,
    RequireAdmin,
    RequireAdminOrManager,
)
from .serializers import (
    ChangePasswordSerializer,
    CurrentUserSerializer,
    LoginSerializer,
    ProfileFilterSerializer,
    ProfileSerializer,
    ProfileUpdateSerializer,
    ResetPasswordSerializer,
    UserCreateSerializer,
    UserFilterSerializer,
    UserSerializer,
    UserUpdateSerializer,
)
from .services.auth_service import AuthService
from .services.profile_service import ProfileService
from .services.user_service import UserService

logger = logging.getLogger(__name__)


class AuthViewSet(ServiceExceptionHandlerMixin, viewsets.ViewSet):
    """
    Login, token refresh, logout, current identity and password change.
    """

    permission_classes = [IsIdentified]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.auth_service = AuthService()

    @action(
        detail=False,
        methods=["post"],
        authentication_classes=[],
        permission_classes=[AllowAny],
    )
    def login(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.handle_service_call(
            self.auth_service.login,
            serializer.validated_data["email"],
            serializer.validated_data["password"],
        )
        return success_response(result, "Login successful")

    @action(
        detail=False,
        methods=["post"],
        authentication_classes=[],
        permission_classes=[AllowAny],
    )
    def refresh(self, request):
        result = self.handle_service_call(
            self.auth_service.refresh, request.data.get("refreshToken")
        )
        return success_response(result, "Token refreshed successfully")

    @action(detail=False, methods=["get"])
    def me(self, request):
        data = {"user": CurrentUserSerializer(request.user).data}
        return success_response(data, "User profile retrieved successfully")

    @action(detail=False, methods=["post"])
    def logout(self, request):
        # Tokens are stateless; the client discards them
        logger.info(
            "User logged out",
            extra={
                "user_id": str(request.user.id),
                "action": "logout",
                "component": "AuthViewSet",
            },
        )
        return success_response(message="Logout successful")

    @action(detail=False, methods=["post"], url_path="change-password")
    def change_password(self, request):
        serializer = ChangePasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        self.handle_service_call(
            self.auth_service.change_password,
            request.user,
            serializer.validated_data["current_password"],
            serializer.validated_data["new_password"],
        )
        return success_response(message="Password changed successfully")


class UserViewSet(ServiceExceptionHandlerMixin, viewsets.GenericViewSet):
    """
    Administrator-only account management.
    """

    serializer_class = UserSerializer
    lookup_kind = "uuid"
    default_limit = 10

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_service = UserService()

    def get_permissions(self):
        return [RequireAdmin(), HasValidLookup()]

    def list(self, request):
        filters = UserFilterSerializer(data=request.query_params.dict())
        filters.is_valid(raise_exception=True)

        queryset = self.user_service.list_users(filters.validated_data.get("search"))
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(UserSerializer(page, many=True).data)

    def retrieve(self, request, pk=None):
        user = self.handle_service_call(self.user_service.get_user, pk)
        return success_response(UserSerializer(user).data)

    def create(self, request):
        serializer = UserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = self.handle_service_call(
            self.user_service.create_user, request.user, **serializer.validated_data
        )
        return created_response(UserSerializer(user).data, "User created successfully")

    def update(self, request, pk=None):
        serializer = UserUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = self.handle_service_call(
            self.user_service.update_user, request.user, pk, serializer.validated_data
        )
        return success_response(UserSerializer(user).data, "User updated successfully")

    def destroy(self, request, pk=None):
        self.handle_service_call(self.user_service.delete_user, request.user, pk)
        return success_response(message="User permanently deleted successfully")

    @action(detail=True, methods=["delete"])
    def deactivate(self, request, pk=None):
        self.handle_service_call(self.user_service.deactivate_user, request.user, pk)
        return success_response(message="User deactivated successfully")

    @action(detail=True, methods=["put"], url_path="reset-password")
    def reset_password(self, request, pk=None):
        serializer = ResetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        self.handle_service_call(
            self.user_service.reset_password,
            request.user,
            pk,
            serializer.validated_data.get("new_password"),
        )
        return success_response(message="User password reset successfully")


class ProfileViewSet(ServiceExceptionHandlerMixin, viewsets.GenericViewSet):
    """
    Profile listing and statistics for administrators/managers; any user may
    read and edit their own profile.
    """

    serializer_class = ProfileSerializer
    lookup_kind = "uuid"
    default_limit = 10

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.profile_service = ProfileService()

    def get_permissions(self):
        if self.action in ["list", "summary"]:
            return [RequireAdminOrManager()]
        if self.action == "retrieve":
            return [IsIdentified(), HasValidLookup(), IsSelfOrAdminOrManager()]
        if self.action == "update":
            return [IsIdentified(), HasValidLookup(), IsSelfOrAdmin()]
        return [IsIdentified(), HasValidLookup()]

    def list(self, request):
        filters = ProfileFilterSerializer(data=request.query_params.dict())
        filters.is_valid(raise_exception=True)

        queryset = self.profile_service.list_profiles(**filters.validated_data)
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(ProfileSerializer(page, many=True).data)

    def retrieve(self, request, pk=None):
        profile = self.handle_service_call(self.profile_service.get_profile, pk)
        return success_response(ProfileSerializer(profile).data)

    def update(self, request, pk=None):
        serializer = ProfileUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        profile = self.handle_service_call(
            self.profile_service.update_profile,
            request.user,
            pk,
            serializer.validated_data,
        )
        return success_response(
            ProfileSerializer(profile).data, "Profile updated successfully"
        )

    @action(detail=False, methods=["get"], url_path="stats/summary")
    def summary(self, request):
        stats = self.handle_service_call(self.profile_service.get_summary)
        return success_response(stats)
