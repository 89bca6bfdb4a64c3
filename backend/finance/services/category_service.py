"""
Category management service.

Category names are unique. A category cannot be removed while subcategories
or transactions still reference it; those checks run before the delete.
"""

import logging

from django.db import IntegrityError
from django.db.models import Count

from core.datastore import Datastore
from core.exceptions import Conflict, ResourceInUse, ResourceNotFound
from core.query_utils import build_search_query, build_update_query, find_resource_or_fail

from ..models import Category, Subcategory, Transaction, new_identifier

logger = logging.getLogger(__name__)


class CategoryService:
    """
    Category CRUD with uniqueness and in-use guards.
    """

    def __init__(self, datastore=None):
        self.datastore = datastore or Datastore()

    def _base_queryset(self):
        return Category.objects.select_related("created_by__profile")

    def list_categories(self, search=None):
        queryset = self._base_queryset().order_by("name")
        return build_search_query(queryset, {"name_like": search})

    def get_category(self, category_id):
        queryset = self._base_queryset().annotate(subcategories_count=Count("subcategories"))
        try:
            return queryset.get(pk=category_id)
        except Category.DoesNotExist:
            raise self._not_found()

    def create_category(self, actor, name):
        """
        Create a category owned by ``actor``.

        Raises:
            Conflict: ``CATEGORY_EXISTS`` when the name is taken
        """
        if Category.objects.filter(name=name).exists():
            raise self._name_taken()

        try:
            with self.datastore.atomic():
                category = Category.objects.using(self.datastore.alias).create(
                    id=new_identifier(), name=name, created_by=actor
                )
        except IntegrityError:
            raise self._name_taken()

        logger.info(
            "Category created",
            extra={
                "user_id": str(actor.id),
                "category_id": category.id,
                "action": "category_created",
                "component": "CategoryService",
            },
        )
        return self.get_category(category.id)

    def update_category(self, actor, category_id, name):
        find_resource_or_fail(
            "categories", category_id, "Category not found", "CATEGORY_NOT_FOUND"
        )
        if Category.objects.filter(name=name).exclude(pk=category_id).exists():
            raise self._name_taken()

        query = build_update_query(
            "categories",
            {"name": name},
            "id = %s",
            [category_id],
            using=self.datastore.alias,
        )
        self.datastore.execute(query)

        logger.info(
            "Category updated",
            extra={
                "user_id": str(actor.id),
                "category_id": category_id,
                "action": "category_updated",
                "component": "CategoryService",
            },
        )
        return self.get_category(category_id)

    def delete_category(self, actor, category_id):
        """
        Delete an unused category.

        Raises:
            ResourceNotFound: ``CATEGORY_NOT_FOUND``
            ResourceInUse: ``CATEGORY_HAS_SUBCATEGORIES`` or ``CATEGORY_IN_USE``
        """
        category = find_resource_or_fail(
            "categories", category_id, "Category not found", "CATEGORY_NOT_FOUND"
        )

        if Subcategory.objects.filter(category_id=category_id).exists():
            raise ResourceInUse(
                "Cannot delete category with subcategories", "CATEGORY_HAS_SUBCATEGORIES"
            )
        if Transaction.objects.filter(category_id=category_id).exists():
            raise ResourceInUse(
                "Cannot delete category used in transactions", "CATEGORY_IN_USE"
            )

        category.delete()

        logger.info(
            "Category deleted",
            extra={
                "user_id": str(actor.id),
                "category_id": category_id,
                "action": "category_deleted",
                "component": "CategoryService",
            },
        )

    @staticmethod
    def _not_found():
        return ResourceNotFound("Category not found", "CATEGORY_NOT_FOUND")

    @staticmethod
    def _name_taken():
        return Conflict("Category name already exists", "CATEGORY_EXISTS")
