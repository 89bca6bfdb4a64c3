"""
Page/limit pagination rendered inside the success envelope.

List endpoints accept ``?page=<n>&limit=<m>``; the default limit comes from the
view's ``default_limit`` attribute and never exceeds ``max_limit``. A page past
the end returns an empty ``data`` list with accurate totals.
"""

import math

from rest_framework.pagination import BasePagination
from rest_framework.response import Response

from .exceptions import ValidationFailed


class EnvelopePagination(BasePagination):
    default_limit = 10
    max_limit = 100
    page_query_param = "page"
    limit_query_param = "limit"

    def paginate_queryset(self, queryset, request, view=None):
        self.request = request
        self.page = self._read_int(request, self.page_query_param, 1, minimum=1)
        self.limit = self._read_int(
            request,
            self.limit_query_param,
            getattr(view, "default_limit", self.default_limit),
            minimum=1,
            maximum=self.max_limit,
        )
        self.message = getattr(view, "list_message", None)

        self.total = queryset.count() if hasattr(queryset, "count") else len(queryset)
        offset = (self.page - 1) * self.limit
        return list(queryset[offset : offset + self.limit])

    def get_paginated_response(self, data):
        body = {"success": True}
        if self.message:
            body["message"] = self.message
        body["data"] = data
        body["pagination"] = {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": math.ceil(self.total / self.limit) if self.total else 0,
        }
        return Response(body)

    def _read_int(self, request, name, default, minimum=None, maximum=None):
        raw = request.query_params.get(name)
        if raw in (None, ""):
            return default

        try:
            value = int(raw)
        except (TypeError, ValueError):
            value = None

        if (
            value is None
            or (minimum is not None and value < minimum)
            or (maximum is not None and value > maximum)
        ):
            bounds = f"between {minimum} and {maximum}" if maximum else f"at least {minimum}"
            raise ValidationFailed(
                details=[
                    {
                        "field": name,
                        "message": f"{name.capitalize()} must be an integer {bounds}",
                        "value": raw,
                    }
                ]
            )
        return value
