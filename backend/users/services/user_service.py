"""
Administrative user management: creation, updates, deactivation, deletion
and password resets. Every account is a user row plus its profile row, and
the two are always written together.
"""

import logging

from django.db import IntegrityError
from django.db.models import Q
from rest_framework.fields import empty

from core.datastore import Datastore
from core.exceptions import BadRequest, Conflict, ResourceNotFound, SelfActionForbidden
from core.query_utils import build_update_query, db_value

from ..models import Profile, User
from .credential_service import CredentialService

logger = logging.getLogger(__name__)

MIN_RESET_PASSWORD_LENGTH = 8

PROFILE_UPDATE_FIELDS = ("name", "phone", "role", "status")


class UserService:
    """
    Production user administration service.

    The datastore client is injected so partial updates run through the
    parameterized update builder on an explicit connection.
    """

    def __init__(self, datastore=None, credential_service=None):
        self.datastore = datastore or Datastore()
        self.credential_service = credential_service or CredentialService()

    def list_users(self, search=None):
        queryset = User.objects.select_related("profile").order_by("-profile__created_at")
        if search:
            queryset = queryset.filter(
                Q(profile__name__icontains=search) | Q(email__icontains=search)
            )
        return queryset

    def get_user(self, user_id):
        try:
            return User.objects.select_related("profile").get(pk=user_id)
        except User.DoesNotExist:
            raise ResourceNotFound("User not found", "USER_NOT_FOUND")

    def create_user(self, actor, email, password, name, role, phone=None):
        """
        Create a user and its profile atomically.

        Raises:
            Conflict: ``EMAIL_EXISTS`` when the email is taken
        """
        logger.info(
            "User creation initiated",
            extra={
                "actor_id": str(actor.id),
                "email": email,
                "role": role,
                "action": "user_create_start",
                "component": "UserService",
            },
        )

        if User.objects.filter(email__iexact=email).exists():
            raise Conflict("Email already exists", "EMAIL_EXISTS")

        try:
            with self.datastore.atomic():
                user = User(email=email, password=self.credential_service.hash_password(password))
                user.save(using=self.datastore.alias)
                Profile.objects.using(self.datastore.alias).create(
                    user=user, name=name, phone=phone, role=role
                )
        except IntegrityError:
            # Lost a race with a concurrent create for the same email
            raise Conflict("Email already exists", "EMAIL_EXISTS")

        logger.info(
            "User created",
            extra={
                "actor_id": str(actor.id),
                "user_id": str(user.id),
                "role": role,
                "action": "user_create_success",
                "component": "UserService",
            },
        )
        return self.get_user(user.id)

    def update_user(self, actor, user_id, changes):
        """
        Update profile fields (name, phone, role, status) of a user.

        Args:
            actor: Administrator performing the change
            user_id: Target user id
            changes: Validated fields; absent fields are left untouched

        Raises:
            ResourceNotFound: ``USER_NOT_FOUND``
            SelfActionForbidden: Administrator deactivating themselves
            NoUpdateFields: Nothing submitted
        """
        if not Profile.objects.filter(pk=user_id).exists():
            raise ResourceNotFound("User not found", "USER_NOT_FOUND")

        if changes.get("status") is False and str(user_id) == str(actor.id):
            raise SelfActionForbidden(
                "Cannot deactivate your own account", "CANNOT_DEACTIVATE_SELF"
            )

        updates = {field: changes.get(field, empty) for field in PROFILE_UPDATE_FIELDS}
        query = build_update_query(
            "profiles",
            updates,
            "id = %s",
            [db_value("profiles", "id", user_id, using=self.datastore.alias)],
            using=self.datastore.alias,
        )
        self.datastore.execute(query)

        logger.info(
            "User updated",
            extra={
                "actor_id": str(actor.id),
                "user_id": str(user_id),
                "fields": [f for f in PROFILE_UPDATE_FIELDS if f in changes],
                "action": "user_update_success",
                "component": "UserService",
            },
        )
        return self.get_user(user_id)

    def deactivate_user(self, actor, user_id):
        if not Profile.objects.filter(pk=user_id).exists():
            raise ResourceNotFound("User not found", "USER_NOT_FOUND")
        if str(user_id) == str(actor.id):
            raise SelfActionForbidden(
                "Cannot deactivate your own account", "CANNOT_DEACTIVATE_SELF"
            )

        Profile.objects.filter(pk=user_id).update(status=False)

        logger.info(
            "User deactivated",
            extra={
                "actor_id": str(actor.id),
                "user_id": str(user_id),
                "action": "user_deactivated",
                "component": "UserService",
            },
        )

    def delete_user(self, actor, user_id):
        """
        Permanently delete a user and its profile in one transaction.

        Raises:
            ResourceNotFound: ``USER_NOT_FOUND``
            SelfActionForbidden: ``CANNOT_DELETE_SELF``
        """
        if not Profile.objects.filter(pk=user_id).exists():
            raise ResourceNotFound("User not found", "USER_NOT_FOUND")
        if str(user_id) == str(actor.id):
            raise SelfActionForbidden("Cannot delete your own account", "CANNOT_DELETE_SELF")

        with self.datastore.atomic():
            Profile.objects.filter(pk=user_id).delete()
            User.objects.filter(pk=user_id).delete()

        logger.warning(
            "User permanently deleted",
            extra={
                "actor_id": str(actor.id),
                "user_id": str(user_id),
                "action": "user_hard_deleted",
                "component": "UserService",
                "severity": "high",
            },
        )

    def reset_password(self, actor, user_id, new_password):
        if (
            not new_password
            or not isinstance(new_password, str)
            or len(new_password) < MIN_RESET_PASSWORD_LENGTH
        ):
            raise BadRequest(
                "New password must be at least 8 characters long", "INVALID_PASSWORD"
            )
        if not User.objects.filter(pk=user_id).exists():
            raise ResourceNotFound("User not found", "USER_NOT_FOUND")
        if str(user_id) == str(actor.id):
            raise SelfActionForbidden(
                "Use change-password endpoint to update your own password",
                "CANNOT_RESET_OWN_PASSWORD",
            )

        query = build_update_query(
            "users",
            {"password": self.credential_service.hash_password(new_password)},
            "id = %s",
            [db_value("users", "id", user_id, using=self.datastore.alias)],
            using=self.datastore.alias,
        )
        self.datastore.execute(query)

        logger.info(
            "User password reset by administrator",
            extra={
                "actor_id": str(actor.id),
                "user_id": str(user_id),
                "action": "user_password_reset",
                "component": "UserService",
                "severity": "medium",
            },
        )
