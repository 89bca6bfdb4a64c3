"""
Explicit datastore client handed to services.

Django owns connection pooling and lifecycle; services receive a ``Datastore``
instead of reaching for a module-level connection so tests can point them at a
different alias or substitute a double.
"""

import logging

from django.db import DEFAULT_DB_ALIAS, connections, transaction

logger = logging.getLogger(__name__)


class Datastore:
    def __init__(self, alias=DEFAULT_DB_ALIAS):
        self.alias = alias

    @property
    def connection(self):
        return connections[self.alias]

    def execute(self, query):
        """
        Run a parameterized statement and return the affected row count.

        Args:
            query: ``UpdateQuery``-like object with ``sql`` and ``params``

        Returns:
            int: Number of rows affected
        """
        with self.connection.cursor() as cursor:
            cursor.execute(query.sql, query.params)
            rowcount = cursor.rowcount

        logger.debug(
            "Statement executed",
            extra={
                "alias": self.alias,
                "rowcount": rowcount,
                "action": "datastore_execute",
                "component": "Datastore",
            },
        )
        return rowcount

    def atomic(self):
        return transaction.atomic(using=self.alias)
