"""
URL configuration for the financial records API.

Defines the RESTful routes for categories, subcategories, transactions and
receipt files, plus their custom action endpoints.
"""

from django.urls import include, path

from core.routers import OptionalSlashRouter

from . import views

# Trailing slash optional on every route
router = OptionalSlashRouter()

# Category endpoints (reads: any user, writes: administrator/manager)
router.register(r"categories", views.CategoryViewSet, basename="category")

# Subcategory endpoints
router.register(r"subcategories", views.SubcategoryViewSet, basename="subcategory")

# Transaction endpoints, receipt detachment and statistics
router.register(r"transactions", views.TransactionViewSet, basename="transaction")

# Receipt upload, listing, deletion and streaming
router.register(r"files", views.FileViewSet, basename="file")

urlpatterns = [
    path("", include(router.urls)),
]
