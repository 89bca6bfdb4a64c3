# finance/tests/unit/test_permissions.py
from unittest.mock import Mock

from django.contrib.auth.models import AnonymousUser
from django.test import RequestFactory, TestCase

from core.exceptions import (
    AccessDenied,
    AdminRequired,
    InsufficientPermissions,
    NoToken,
    ValidationFailed,
)
from users.models import Role
from users.permissions import (
    ROLE_CAPABILITIES,
    HasValidLookup,
    IsIdentified,
    IsSelfOrAdmin,
    IsSelfOrAdminOrManager,
    RequireAdmin,
    RequireAdminOrManager,
    has_capability,
)
from users.tests.factories import UserFactory


class BasePermissionTest(TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.admin = UserFactory(role=Role.ADMINISTRATOR)
        self.manager = UserFactory(role=Role.MANAGER)
        self.viewer = UserFactory(role=Role.VIEWER)

    def _request(self, user, path="/api/transactions", method="get"):
        request = getattr(self.factory, method)(path)
        request.user = user
        return request

    def _view(self, lookup_kind=None, **kwargs):
        view = Mock(spec=["kwargs", "lookup_kind", "lookup_field", "lookup_url_kwarg"])
        view.kwargs = kwargs
        view.lookup_kind = lookup_kind
        view.lookup_field = "pk"
        view.lookup_url_kwarg = None
        return view


class RoleTableTest(TestCase):
    def test_every_role_has_an_entry(self):
        self.assertEqual(set(ROLE_CAPABILITIES), set(Role))

    def test_unknown_role_has_no_capability(self):
        self.assertFalse(has_capability(Mock(role="auditor"), "read"))
        self.assertFalse(has_capability(AnonymousUser(), "read"))


class RoleGateTest(BasePermissionTest):
    def test_identified_rejects_anonymous(self):
        with self.assertRaises(NoToken):
            IsIdentified().has_permission(self._request(AnonymousUser()), self._view())

    def test_require_admin(self):
        view = self._view()
        self.assertTrue(RequireAdmin().has_permission(self._request(self.admin), view))
        for user in (self.manager, self.viewer):
            with self.assertRaises(AdminRequired):
                RequireAdmin().has_permission(self._request(user), view)

    def test_require_admin_or_manager(self):
        view = self._view()
        for user in (self.admin, self.manager):
            self.assertTrue(
                RequireAdminOrManager().has_permission(self._request(user), view)
            )
        with self.assertRaises(InsufficientPermissions):
            RequireAdminOrManager().has_permission(self._request(self.viewer), view)

    def test_require_admin_or_manager_anonymous(self):
        with self.assertRaises(NoToken):
            RequireAdminOrManager().has_permission(
                self._request(AnonymousUser()), self._view()
            )

    def test_self_or_admin(self):
        own = self._view(pk=str(self.viewer.id))
        other = self._view(pk=str(self.manager.id))

        self.assertTrue(IsSelfOrAdmin().has_permission(self._request(self.viewer), own))
        self.assertTrue(IsSelfOrAdmin().has_permission(self._request(self.admin), other))
        with self.assertRaises(AccessDenied):
            IsSelfOrAdmin().has_permission(self._request(self.viewer), other)

    def test_self_or_admin_or_manager(self):
        target = self._view(pk=str(self.viewer.id))

        self.assertTrue(
            IsSelfOrAdminOrManager().has_permission(self._request(self.manager), target)
        )
        with self.assertRaises(AccessDenied):
            IsSelfOrAdmin().has_permission(self._request(self.manager), target)


class HasValidLookupTest(BasePermissionTest):
    def test_list_routes_pass(self):
        self.assertTrue(
            HasValidLookup().has_permission(self._request(self.viewer), self._view("transaction"))
        )

    def test_valid_identifiers(self):
        cases = [
            ("transaction", "txn-001"),
            ("transaction", "txn-1000"),
            ("category", "cat-food-1"),
            ("category", "3f2b8c1e-9a4d-4c6b-8e2f-1a2b3c4d5e6f"),
            ("subcategory", "sub-groceries-12"),
            ("uuid", str(self.viewer.id)),
        ]
        for kind, value in cases:
            with self.subTest(kind=kind, value=value):
                self.assertTrue(
                    HasValidLookup().has_permission(
                        self._request(self.viewer), self._view(kind, pk=value)
                    )
                )

    def test_invalid_identifiers(self):
        cases = [
            ("transaction", "123", "Invalid transaction ID format"),
            ("transaction", "txn-abc", "Invalid transaction ID format"),
            ("category", "food", "Invalid category ID format"),
            ("subcategory", "cat-food-1", "Invalid subcategory ID format"),
            ("uuid", "42", "Invalid ID format"),
        ]
        for kind, value, message in cases:
            with self.subTest(kind=kind, value=value):
                with self.assertRaises(ValidationFailed) as ctx:
                    HasValidLookup().has_permission(
                        self._request(self.viewer), self._view(kind, pk=value)
                    )
                self.assertEqual(ctx.exception.details[0]["message"], message)
                self.assertEqual(ctx.exception.details[0]["value"], value)
