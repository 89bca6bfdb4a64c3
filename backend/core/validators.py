"""
Identifier and field format rules shared by serializers and lookup validation.
"""

import re
import uuid

from django.core.validators import RegexValidator
from rest_framework.exceptions import ValidationError as DRFValidationError

from .exceptions import ValidationFailed

CATEGORY_ID_PATTERN = re.compile(r"^cat-[a-z]+-\d+$")
SUBCATEGORY_ID_PATTERN = re.compile(r"^sub-[a-z]+-\d+$")
TRANSACTION_ID_PATTERN = re.compile(r"^txn-\d+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9][0-9 ()\-]{5,19}$")

phone_validator = RegexValidator(PHONE_PATTERN, "Invalid phone number format")


def is_uuid(value):
    try:
        uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return False
    return True


def is_category_id(value):
    """Category ids are either legacy ``cat-<word>-<number>`` values or UUID strings."""
    return bool(CATEGORY_ID_PATTERN.match(str(value))) or is_uuid(value)


def is_subcategory_id(value):
    return bool(SUBCATEGORY_ID_PATTERN.match(str(value))) or is_uuid(value)


def is_transaction_id(value):
    return bool(TRANSACTION_ID_PATTERN.match(str(value)))


# kind -> (predicate, message)
LOOKUP_RULES = {
    "uuid": (is_uuid, "Invalid ID format"),
    "category": (is_category_id, "Invalid category ID format"),
    "subcategory": (is_subcategory_id, "Invalid subcategory ID format"),
    "transaction": (is_transaction_id, "Invalid transaction ID format"),
}


def validate_identifier(kind, value, field="id"):
    """
    Raise ``ValidationFailed`` unless ``value`` matches the identifier format for ``kind``.

    Args:
        kind: One of ``uuid``, ``category``, ``subcategory``, ``transaction``
        value: Submitted identifier
        field: Field name reported in the error details

    Returns:
        str: The identifier as a string
    """
    predicate, message = LOOKUP_RULES[kind]
    if not predicate(value):
        raise ValidationFailed(
            details=[{"field": field, "message": message, "value": value}]
        )
    return str(value)


class IdentifierFormatValidator:
    """DRF/Django field validator wrapper around ``LOOKUP_RULES``."""

    def __init__(self, kind):
        self.kind = kind

    def __call__(self, value):
        predicate, message = LOOKUP_RULES[self.kind]
        if not predicate(value):
            raise DRFValidationError(message)
