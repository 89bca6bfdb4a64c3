"""
Parameterized query construction and lookup helpers.

Table and column identifiers are resolved only through the model registry
below, so no caller-supplied string ever reaches SQL as an identifier. Values
are always bound parameters.
"""

import logging
from collections import namedtuple

from django.apps import apps
from django.core.exceptions import FieldDoesNotExist
from django.db import DEFAULT_DB_ALIAS, connections
from django.db.models import BigIntegerField, Max, Q
from django.db.models.functions import Cast, Substr
from rest_framework.fields import empty

from .exceptions import NoUpdateFields, ResourceNotFound

logger = logging.getLogger(__name__)

UpdateQuery = namedtuple("UpdateQuery", ["sql", "params"])

# Logical table name -> model label
TABLE_REGISTRY = {
    "users": "users.User",
    "profiles": "users.Profile",
    "categories": "finance.Category",
    "subcategories": "finance.Subcategory",
    "transactions": "finance.Transaction",
}

TIMESTAMP_COLUMN = "updated_at"

# Filter-key suffix -> ORM lookup, checked in order
SEARCH_SUFFIXES = (
    ("_date_from", "gte"),
    ("_date_to", "lte"),
    ("_like", "icontains"),
    ("_min", "gte"),
    ("_max", "lte"),
)

TRANSACTION_ID_PREFIX = "txn-"
TRANSACTION_ID_WIDTH = 3


def get_model(table):
    try:
        return apps.get_model(TABLE_REGISTRY[table])
    except KeyError:
        raise ValueError(f"Unknown table: {table}")


def _field_for(model, column):
    for field in model._meta.concrete_fields:
        if column in (field.column, field.name, field.attname):
            return field
    raise ValueError(f"Unknown column {column!r} for {model._meta.db_table}")


def db_value(table, column, value, using=DEFAULT_DB_ALIAS):
    """Prepare ``value`` for binding against ``table.column`` on the given connection."""
    field = _field_for(get_model(table), column)
    return field.get_db_prep_value(value, connections[using], prepared=False)


def build_update_query(table, updates, where_clause, where_params=(), using=DEFAULT_DB_ALIAS):
    """
    Build a parameterized partial ``UPDATE`` statement.

    Keys whose value is DRF's ``empty`` sentinel (field not submitted) are
    skipped. ``None`` is a real value and sets the column to NULL. The
    ``updated_at`` column is touched whenever at least one field changes.

    Args:
        table: Logical table name from ``TABLE_REGISTRY``
        updates: Mapping of column (or field) name to new value
        where_clause: SQL predicate using ``%s`` placeholders
        where_params: Values for the predicate placeholders
        using: Database alias whose quoting and value preparation apply

    Returns:
        UpdateQuery: ``(sql, params)`` with update values before where values

    Raises:
        NoUpdateFields: If nothing remains to update
        ValueError: For unknown tables or columns
    """
    model = get_model(table)
    connection = connections[using]
    quote = connection.ops.quote_name

    set_parts = []
    params = []
    for column, value in updates.items():
        if value is empty or column == TIMESTAMP_COLUMN:
            continue
        field = _field_for(model, column)
        if field.primary_key:
            raise ValueError(f"Primary key {column!r} cannot be updated")
        set_parts.append(f"{quote(field.column)} = %s")
        params.append(field.get_db_prep_save(value, connection))

    if not set_parts:
        raise NoUpdateFields()

    field_names = {field.column for field in model._meta.concrete_fields}
    if TIMESTAMP_COLUMN in field_names:
        set_parts.append(f"{quote(TIMESTAMP_COLUMN)} = CURRENT_TIMESTAMP")

    sql = (
        f"UPDATE {quote(model._meta.db_table)} "
        f"SET {', '.join(set_parts)} WHERE {where_clause}"
    )
    params.extend(where_params)

    logger.debug(
        "Update query built",
        extra={
            "table": table,
            "columns": [part.split(" = ")[0] for part in set_parts],
            "param_count": len(params),
            "action": "update_query_built",
            "component": "query_utils",
        },
    )

    return UpdateQuery(sql, params)


def build_search_query(queryset, filters, allowed_fields=None):
    """
    AND filter predicates onto ``queryset``.

    ``<col>_like`` is a case-insensitive contains match, ``<col>_date_from`` /
    ``<col>_min`` are ``>=`` and ``<col>_date_to`` / ``<col>_max`` are ``<=``.
    Any other key is an equality match. ``None`` and empty-string values are
    ignored.

    Args:
        queryset: Base queryset; existing filters are preserved
        filters: Mapping of filter key to value
        allowed_fields: Optional whitelist of column paths (may include ``__`` joins)

    Returns:
        QuerySet: The filtered queryset

    Raises:
        ValueError: For columns outside the whitelist or the model
    """
    model = queryset.model
    predicate = Q()

    for key, value in filters.items():
        if value is None or value == "":
            continue

        column, lookup = key, "exact"
        for suffix, suffix_lookup in SEARCH_SUFFIXES:
            if key.endswith(suffix):
                column, lookup = key[: -len(suffix)], suffix_lookup
                break

        if allowed_fields is not None:
            if column not in allowed_fields:
                raise ValueError(f"Filtering on {column!r} is not allowed")
        else:
            try:
                model._meta.get_field(column.split("__")[0])
            except FieldDoesNotExist:
                raise ValueError(f"Unknown filter column: {column!r}")

        predicate &= Q(**{f"{column}__{lookup}": value})

    return queryset.filter(predicate)


def resource_exists(table, value, column="id"):
    model = get_model(table)
    return model._default_manager.filter(**{column: value}).exists()


def find_resource_or_fail(
    table, value, message="Resource not found", code="RESOURCE_NOT_FOUND", column="id"
):
    """Fetch a single row or raise ``ResourceNotFound`` with the given message and code."""
    model = get_model(table)
    try:
        return model._default_manager.get(**{column: value})
    except model.DoesNotExist:
        raise ResourceNotFound(message, code)


def generate_next_transaction_id():
    """
    Allocate the next sequential transaction id.

    The highest numeric suffix among ids shaped ``txn-<digits>`` wins, compared
    as numbers so ``txn-1000`` follows ``txn-999``. Returns ``txn-001`` on an
    empty table. Suffixes are zero-padded to three digits and grow naturally.
    """
    model = get_model("transactions")
    current = (
        model._default_manager.filter(id__regex=r"^txn-[0-9]+$")
        .annotate(
            sequence=Cast(
                Substr("id", len(TRANSACTION_ID_PREFIX) + 1), BigIntegerField()
            )
        )
        .aggregate(highest=Max("sequence"))["highest"]
    )

    next_number = (current or 0) + 1
    return f"{TRANSACTION_ID_PREFIX}{next_number:0{TRANSACTION_ID_WIDTH}d}"
