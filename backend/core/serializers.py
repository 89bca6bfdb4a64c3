"""
Serializer base classes shared by the API apps.
"""

from rest_framework import serializers


class QueryFilterSerializer(serializers.Serializer):
    """
    Validates query-string filters.

    Blank parameters (``?type=``) are treated as absent, so optional filters
    never fail on an empty value.
    """

    def to_internal_value(self, data):
        data = {key: value for key, value in data.items() if value not in ("", None)}
        return super().to_internal_value(data)
