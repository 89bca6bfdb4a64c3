"""
Root URL configuration.

Every API route lives under ``/api``; the trailing slash is optional.
Unmatched paths fall through to the JSON ``not_found`` handler.
"""

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path, re_path

from . import views

urlpatterns = [
    re_path(r"^health/?$", views.health, name="health"),
    path("admin/", admin.site.urls),
    path("api/", include("users.urls")),
    path("api/", include("finance.urls")),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)

handler404 = "core.views.not_found"
handler500 = "core.views.server_error"
