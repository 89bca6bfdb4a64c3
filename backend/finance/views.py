"""
API views for categories, subcategories, transactions and receipt files.

Reads require an identified user; writes require an administrator or
manager. Path identifiers are format-checked by ``HasValidLookup`` before
any handler runs.
"""

import logging

from django.conf import settings
from django.http import FileResponse
from rest_framework import viewsets
from rest_framework.decorators import action

from core.mixins import ServiceExceptionHandlerMixin
from core.responses import created_response, success_response
from users.permissions import HasValidLookup, IsIdentified, RequireAdminOrManager

from .serializers import (
    CategoryDetailSerializer,
    CategoryFilterSerializer,
    CategoryInputSerializer,
    CategorySerializer,
    SubcategoryFilterSerializer,
    SubcategoryInputSerializer,
    SubcategorySerializer,
    TransactionFilterSerializer,
    TransactionInputSerializer,
    TransactionSerializer,
    TransactionStatsFilterSerializer,
)
from .services.category_service import CategoryService
from .services.receipt_service import ReceiptService
from .services.subcategory_service import SubcategoryService
from .services.transaction_service import TransactionService

# Get structured logger for this module
logger = logging.getLogger(__name__)

READ_ACTIONS = ["list", "retrieve", "summary"]


class ReadOrManageViewSet(ServiceExceptionHandlerMixin, viewsets.GenericViewSet):
    """
    Base for resources any identified user may read and only administrators
    or managers may change.
    """

    def get_permissions(self):
        if self.action in READ_ACTIONS:
            return [IsIdentified(), HasValidLookup()]
        return [RequireAdminOrManager(), HasValidLookup()]


# -------------------------------------------------------------------
# CATEGORIES
# -------------------------------------------------------------------


class CategoryViewSet(ReadOrManageViewSet):
    serializer_class = CategorySerializer
    lookup_kind = "category"
    default_limit = 50

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.category_service = CategoryService()

    def list(self, request):
        filters = CategoryFilterSerializer(data=request.query_params.dict())
        filters.is_valid(raise_exception=True)

        queryset = self.category_service.list_categories(filters.validated_data.get("search"))
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(CategorySerializer(page, many=True).data)

    def retrieve(self, request, pk=None):
        category = self.handle_service_call(self.category_service.get_category, pk)
        return success_response(CategoryDetailSerializer(category).data)

    def create(self, request):
        serializer = CategoryInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        category = self.handle_service_call(
            self.category_service.create_category,
            request.user,
            serializer.validated_data["name"],
        )
        return created_response(
            CategoryDetailSerializer(category).data, "Category created successfully"
        )

    def update(self, request, pk=None):
        serializer = CategoryInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        category = self.handle_service_call(
            self.category_service.update_category,
            request.user,
            pk,
            serializer.validated_data["name"],
        )
        return success_response(
            CategoryDetailSerializer(category).data, "Category updated successfully"
        )

    def destroy(self, request, pk=None):
        self.handle_service_call(self.category_service.delete_category, request.user, pk)
        return success_response(message="Category deleted successfully")


# -------------------------------------------------------------------
# SUBCATEGORIES
# -------------------------------------------------------------------


class SubcategoryViewSet(ReadOrManageViewSet):
    serializer_class = SubcategorySerializer
    lookup_kind = "subcategory"
    default_limit = 50

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.subcategory_service = SubcategoryService()

    def list(self, request):
        filters = SubcategoryFilterSerializer(data=request.query_params.dict())
        filters.is_valid(raise_exception=True)

        queryset = self.subcategory_service.list_subcategories(**filters.validated_data)
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(SubcategorySerializer(page, many=True).data)

    def retrieve(self, request, pk=None):
        subcategory = self.handle_service_call(
            self.subcategory_service.get_subcategory, pk
        )
        return success_response(SubcategorySerializer(subcategory).data)

    def create(self, request):
        serializer = SubcategoryInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        subcategory = self.handle_service_call(
            self.subcategory_service.create_subcategory,
            request.user,
            **serializer.validated_data,
        )
        return created_response(
            SubcategorySerializer(subcategory).data, "Subcategory created successfully"
        )

    def update(self, request, pk=None):
        serializer = SubcategoryInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        subcategory = self.handle_service_call(
            self.subcategory_service.update_subcategory,
            request.user,
            pk,
            **serializer.validated_data,
        )
        return success_response(
            SubcategorySerializer(subcategory).data, "Subcategory updated successfully"
        )

    def destroy(self, request, pk=None):
        self.handle_service_call(
            self.subcategory_service.delete_subcategory, request.user, pk
        )
        return success_response(message="Subcategory deleted successfully")


# -------------------------------------------------------------------
# TRANSACTIONS
# -------------------------------------------------------------------


class TransactionViewSet(ReadOrManageViewSet):
    serializer_class = TransactionSerializer
    lookup_kind = "transaction"
    default_limit = 20

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.transaction_service = TransactionService()

    def list(self, request):
        filters = TransactionFilterSerializer(data=request.query_params.dict())
        filters.is_valid(raise_exception=True)

        queryset = self.transaction_service.list_transactions(filters.validated_data)
        page = self.paginate_queryset(queryset)
        return self.get_paginated_response(TransactionSerializer(page, many=True).data)

    def retrieve(self, request, pk=None):
        transaction = self.handle_service_call(
            self.transaction_service.get_transaction, pk
        )
        return success_response(TransactionSerializer(transaction).data)

    def create(self, request):
        serializer = TransactionInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        transaction = self.handle_service_call(
            self.transaction_service.create_transaction,
            request.user,
            serializer.validated_data,
        )
        return created_response(
            TransactionSerializer(transaction).data, "Transaction created successfully"
        )

    def update(self, request, pk=None):
        serializer = TransactionInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        transaction = self.handle_service_call(
            self.transaction_service.update_transaction,
            request.user,
            pk,
            serializer.validated_data,
        )
        return success_response(
            TransactionSerializer(transaction).data, "Transaction updated successfully"
        )

    def destroy(self, request, pk=None):
        self.handle_service_call(
            self.transaction_service.delete_transaction, request.user, pk
        )
        return success_response(
            message="Transaction and associated receipt deleted successfully"
        )

    @action(detail=True, methods=["delete"], url_path="file")
    def remove_file(self, request, pk=None):
        self.handle_service_call(self.transaction_service.remove_file, request.user, pk)
        return success_response(message="File removed successfully")

    @action(detail=False, methods=["get"], url_path="stats/summary")
    def summary(self, request):
        filters = TransactionStatsFilterSerializer(data=request.query_params.dict())
        filters.is_valid(raise_exception=True)

        stats = self.handle_service_call(
            self.transaction_service.get_summary, **filters.validated_data
        )
        return success_response(stats)


# -------------------------------------------------------------------
# RECEIPT FILES
# -------------------------------------------------------------------


class FileViewSet(ServiceExceptionHandlerMixin, viewsets.ViewSet):
    """
    Receipt upload, listing, inspection, deletion and streaming.

    Streaming (``view``) is open to any identified user so receipts can be
    embedded by the frontend; everything else needs an administrator or
    manager.
    """

    lookup_field = "filename"
    lookup_value_regex = r"[^/]+"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.receipt_service = ReceiptService()

    def get_permissions(self):
        if self.action == "view_file":
            return [IsIdentified()]
        return [RequireAdminOrManager()]

    def list(self, request):
        files = self.handle_service_call(self.receipt_service.list_files)
        return success_response(files, count=len(files))

    def retrieve(self, request, filename=None):
        info = self.handle_service_call(self.receipt_service.stat, filename)
        return success_response(info)

    def destroy(self, request, filename=None):
        self.handle_service_call(self.receipt_service.delete, filename)
        return success_response(message="File deleted successfully")

    @action(detail=False, methods=["post"])
    def upload(self, request):
        info = self.handle_service_call(
            self.receipt_service.upload, request.user, request.FILES
        )
        return created_response(info, "File uploaded successfully")

    @action(
        detail=False,
        methods=["get"],
        url_path=r"view/(?P<filename>[^/]+)",
        url_name="view",
    )
    def view_file(self, request, filename=None):
        handle, content_type, size = self.handle_service_call(
            self.receipt_service.open, filename
        )

        response = FileResponse(handle, content_type=content_type)
        response["Content-Length"] = str(size)
        response["Cache-Control"] = "public, max-age=31536000"
        # Receipts are embedded in an iframe by the frontend
        allowed_origin = settings.FILE_VIEW_ALLOWED_ORIGIN
        response["X-Frame-Options"] = "SAMEORIGIN"
        response["Content-Security-Policy"] = f"frame-ancestors 'self' {allowed_origin}"
        response["Access-Control-Allow-Origin"] = allowed_origin
        response["Access-Control-Allow-Credentials"] = "true"
        return response
