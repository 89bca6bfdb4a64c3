"""
Subcategory management service. Names are unique within the parent category.
"""

import logging

from django.db import IntegrityError

from core.datastore import Datastore
from core.exceptions import Conflict, ResourceInUse, ResourceNotFound
from core.query_utils import (
    build_search_query,
    build_update_query,
    find_resource_or_fail,
    resource_exists,
)

from ..models import Subcategory, Transaction, new_identifier

logger = logging.getLogger(__name__)


class SubcategoryService:
    def __init__(self, datastore=None):
        self.datastore = datastore or Datastore()

    def _base_queryset(self):
        return Subcategory.objects.select_related("category", "created_by__profile")

    def list_subcategories(self, search=None, category_id=None):
        queryset = self._base_queryset().order_by("category__name", "name")
        return build_search_query(
            queryset, {"name_like": search, "category_id": category_id}
        )

    def get_subcategory(self, subcategory_id):
        try:
            return self._base_queryset().get(pk=subcategory_id)
        except Subcategory.DoesNotExist:
            raise ResourceNotFound("Subcategory not found", "SUBCATEGORY_NOT_FOUND")

    def create_subcategory(self, actor, name, category_id):
        """
        Create a subcategory under an existing category.

        Raises:
            ResourceNotFound: ``CATEGORY_NOT_FOUND`` for an unknown parent
            Conflict: ``SUBCATEGORY_EXISTS`` when the name is taken in that category
        """
        self._require_category(category_id)
        if Subcategory.objects.filter(name=name, category_id=category_id).exists():
            raise self._name_taken()

        try:
            with self.datastore.atomic():
                subcategory = Subcategory.objects.using(self.datastore.alias).create(
                    id=new_identifier(),
                    name=name,
                    category_id=category_id,
                    created_by=actor,
                )
        except IntegrityError:
            raise self._name_taken()

        logger.info(
            "Subcategory created",
            extra={
                "user_id": str(actor.id),
                "subcategory_id": subcategory.id,
                "category_id": category_id,
                "action": "subcategory_created",
                "component": "SubcategoryService",
            },
        )
        return self.get_subcategory(subcategory.id)

    def update_subcategory(self, actor, subcategory_id, name, category_id):
        find_resource_or_fail(
            "subcategories", subcategory_id, "Subcategory not found", "SUBCATEGORY_NOT_FOUND"
        )
        self._require_category(category_id)
        duplicates = Subcategory.objects.filter(name=name, category_id=category_id).exclude(
            pk=subcategory_id
        )
        if duplicates.exists():
            raise self._name_taken()

        query = build_update_query(
            "subcategories",
            {"name": name, "category_id": category_id},
            "id = %s",
            [subcategory_id],
            using=self.datastore.alias,
        )
        self.datastore.execute(query)

        logger.info(
            "Subcategory updated",
            extra={
                "user_id": str(actor.id),
                "subcategory_id": subcategory_id,
                "action": "subcategory_updated",
                "component": "SubcategoryService",
            },
        )
        return self.get_subcategory(subcategory_id)

    def delete_subcategory(self, actor, subcategory_id):
        subcategory = find_resource_or_fail(
            "subcategories", subcategory_id, "Subcategory not found", "SUBCATEGORY_NOT_FOUND"
        )
        if Transaction.objects.filter(subcategory_id=subcategory_id).exists():
            raise ResourceInUse(
                "Cannot delete subcategory used in transactions", "SUBCATEGORY_IN_USE"
            )

        subcategory.delete()

        logger.info(
            "Subcategory deleted",
            extra={
                "user_id": str(actor.id),
                "subcategory_id": subcategory_id,
                "action": "subcategory_deleted",
                "component": "SubcategoryService",
            },
        )

    @staticmethod
    def _require_category(category_id):
        if not resource_exists("categories", category_id):
            raise ResourceNotFound("Category not found", "CATEGORY_NOT_FOUND")

    @staticmethod
    def _name_taken():
        return Conflict(
            "Subcategory name already exists in this category", "SUBCATEGORY_EXISTS"
        )
