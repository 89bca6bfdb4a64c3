"""
Service for transaction operations with proper error handling and logging.

Transactions get sequential ``txn-<n>`` identifiers. Category and subcategory
references are cross-checked before every write, and receipt files replaced
or orphaned by a write are removed afterwards through ``ReceiptService``.
"""

import logging
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError
from django.db.models import Avg, Count, F, Q, Sum
from django.db.models.functions import TruncMonth

from core.datastore import Datastore
from core.exceptions import (
    DuplicateEntry,
    NoFileAttached,
    ResourceNotFound,
    translate_database_error,
)
from core.query_utils import (
    build_search_query,
    build_update_query,
    generate_next_transaction_id,
    resource_exists,
)

from ..models import Subcategory, Transaction, TransactionType
from .receipt_service import ReceiptService

# Get structured logger for this module
logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Query-string filter -> build_search_query key
LIST_FILTER_KEYS = {
    "search": "description_like",
    "type": "type",
    "category_id": "category_id",
    "subcategory_id": "subcategory_id",
    "start_date": "date_date_from",
    "end_date": "date_date_to",
    "min_amount": "amount_min",
    "max_amount": "amount_max",
}


class TransactionService:
    """
    Transaction CRUD, receipt detachment and statistics.

    Args:
        datastore: Datastore client used for parameterized updates
        receipt_service: Receipt storage used to clean up replaced files
    """

    def __init__(self, datastore=None, receipt_service=None):
        self.datastore = datastore or Datastore()
        self.receipt_service = receipt_service or ReceiptService()

    def _base_queryset(self):
        return Transaction.objects.select_related(
            "category", "subcategory", "created_by__profile"
        )

    # -------------------------------------------------------------------
    # READ
    # -------------------------------------------------------------------

    def list_transactions(self, filters=None):
        """
        Filtered listing ordered by date, newest first.

        Args:
            filters: Validated query filters (search, type, category_id,
                subcategory_id, start_date, end_date, min_amount, max_amount)
        """
        filters = filters or {}
        queryset = self._base_queryset().order_by("-date", "-created_at")
        search_filters = {
            key: filters.get(name) for name, key in LIST_FILTER_KEYS.items()
        }
        return build_search_query(queryset, search_filters)

    def get_transaction(self, transaction_id):
        try:
            return self._base_queryset().get(pk=transaction_id)
        except Transaction.DoesNotExist:
            raise ResourceNotFound("Transaction not found", "TRANSACTION_NOT_FOUND")

    # -------------------------------------------------------------------
    # WRITE
    # -------------------------------------------------------------------

    def create_transaction(self, actor, data):
        """
        Create a transaction with the next sequential id.

        Allocation takes the current maximum and relies on the primary key to
        reject a concurrent duplicate; a duplicate is retried with a fresh id
        up to ``TRANSACTION_ID_MAX_ATTEMPTS`` times.

        Raises:
            ResourceNotFound: ``CATEGORY_NOT_FOUND`` / ``SUBCATEGORY_NOT_FOUND``
            DuplicateEntry: No free id after all attempts
            IntegrityError: Any other constraint violation, unretried
        """
        category_id = data.get("category_id")
        subcategory_id = data.get("subcategory_id")
        self._check_references(category_id, subcategory_id)

        attempts = settings.TRANSACTION_ID_MAX_ATTEMPTS
        for attempt in range(1, attempts + 1):
            transaction_id = generate_next_transaction_id()
            try:
                with self.datastore.atomic():
                    Transaction.objects.using(self.datastore.alias).create(
                        id=transaction_id,
                        amount=data["amount"],
                        type=data["type"],
                        description=data["description"],
                        date=data["date"],
                        category_id=category_id,
                        subcategory_id=subcategory_id,
                        receipt_url=data.get("receipt_url") or None,
                        created_by=actor,
                    )
            except IntegrityError as e:
                if not isinstance(translate_database_error(e), DuplicateEntry):
                    raise
                logger.warning(
                    "Transaction id collision, retrying",
                    extra={
                        "transaction_id": transaction_id,
                        "attempt": attempt,
                        "max_attempts": attempts,
                        "action": "transaction_id_collision",
                        "component": "TransactionService",
                        "severity": "medium",
                    },
                )
                continue

            logger.info(
                "Transaction created",
                extra={
                    "user_id": str(actor.id),
                    "transaction_id": transaction_id,
                    "type": data["type"],
                    "action": "transaction_created",
                    "component": "TransactionService",
                },
            )
            return self.get_transaction(transaction_id)

        logger.error(
            "Transaction id allocation exhausted",
            extra={
                "user_id": str(actor.id),
                "max_attempts": attempts,
                "action": "transaction_id_exhausted",
                "component": "TransactionService",
                "severity": "high",
            },
        )
        raise DuplicateEntry("Could not allocate a transaction id", "DUPLICATE_ENTRY")

    def update_transaction(self, actor, transaction_id, data):
        """
        Replace a transaction's fields (PUT semantics).

        ``receipt_url`` absent keeps the stored receipt; null or empty removes
        it. A receipt that is removed or replaced is deleted from storage after
        the row is written, best effort.
        """
        current = self.get_transaction(transaction_id)
        category_id = data.get("category_id")
        subcategory_id = data.get("subcategory_id")
        self._check_references(category_id, subcategory_id)

        if "receipt_url" in data:
            receipt_url = data["receipt_url"] or None
        else:
            receipt_url = current.receipt_url

        query = build_update_query(
            "transactions",
            {
                "amount": data["amount"],
                "type": data["type"],
                "description": data["description"],
                "date": data["date"],
                "category_id": category_id,
                "subcategory_id": subcategory_id,
                "receipt_url": receipt_url,
            },
            "id = %s",
            [transaction_id],
            using=self.datastore.alias,
        )
        self.datastore.execute(query)

        if current.receipt_url and current.receipt_url != receipt_url:
            self.receipt_service.discard(current.receipt_url)

        logger.info(
            "Transaction updated",
            extra={
                "user_id": str(actor.id),
                "transaction_id": transaction_id,
                "receipt_changed": current.receipt_url != receipt_url,
                "action": "transaction_updated",
                "component": "TransactionService",
            },
        )
        return self.get_transaction(transaction_id)

    def delete_transaction(self, actor, transaction_id):
        current = self.get_transaction(transaction_id)
        receipt_url = current.receipt_url

        Transaction.objects.filter(pk=transaction_id).delete()

        if receipt_url:
            self.receipt_service.discard(receipt_url)

        logger.info(
            "Transaction deleted",
            extra={
                "user_id": str(actor.id),
                "transaction_id": transaction_id,
                "action": "transaction_deleted",
                "component": "TransactionService",
            },
        )

    def remove_file(self, actor, transaction_id):
        """
        Detach and delete the receipt of a transaction.

        Raises:
            NoFileAttached: The transaction has no receipt
            FileDeleteError: The file could not be deleted; the row is untouched
        """
        current = self.get_transaction(transaction_id)
        if not current.receipt_url:
            raise NoFileAttached("Transaction has no attached file", "NO_FILE_ATTACHED")

        self.receipt_service.remove_attached(current.receipt_url)

        query = build_update_query(
            "transactions",
            {"receipt_url": None},
            "id = %s",
            [transaction_id],
            using=self.datastore.alias,
        )
        self.datastore.execute(query)

        logger.info(
            "Receipt detached from transaction",
            extra={
                "user_id": str(actor.id),
                "transaction_id": transaction_id,
                "action": "transaction_receipt_removed",
                "component": "TransactionService",
            },
        )

    # -------------------------------------------------------------------
    # STATISTICS
    # -------------------------------------------------------------------

    def get_summary(self, start_date=None, end_date=None):
        """
        Totals, monthly and per-category breakdowns over an optional date range.

        Returns:
            dict: ``summary``, ``monthly_breakdown`` (12 most recent months
            present) and ``category_breakdown``
        """
        queryset = build_search_query(
            Transaction.objects.all(),
            {"date_date_from": start_date, "date_date_to": end_date},
        )
        income = Q(type=TransactionType.INCOME)
        expense = Q(type=TransactionType.EXPENSE)

        totals = queryset.aggregate(
            total_transactions=Count("id"),
            total_income=Sum("amount", filter=income, default=ZERO),
            total_expenses=Sum("amount", filter=expense, default=ZERO),
            income_count=Count("id", filter=income),
            expense_count=Count("id", filter=expense),
            avg_income=Avg("amount", filter=income),
            avg_expense=Avg("amount", filter=expense),
        )
        totals["net_balance"] = totals["total_income"] - totals["total_expenses"]

        monthly = (
            queryset.annotate(month=TruncMonth("date"))
            .values("month")
            .annotate(
                income=Sum("amount", filter=income, default=ZERO),
                expenses=Sum("amount", filter=expense, default=ZERO),
                transaction_count=Count("id"),
            )
            .order_by("-month")[:12]
        )
        monthly_breakdown = [
            {**row, "month": row["month"].strftime("%Y-%m")} for row in monthly
        ]

        category_breakdown = list(
            queryset.values("category_id", "type")
            .annotate(
                category_name=F("category__name"),
                total_amount=Sum("amount"),
                transaction_count=Count("id"),
            )
            .order_by("-total_amount")
        )

        return {
            "summary": totals,
            "monthly_breakdown": monthly_breakdown,
            "category_breakdown": category_breakdown,
        }

    # -------------------------------------------------------------------
    # HELPERS
    # -------------------------------------------------------------------

    def _check_references(self, category_id, subcategory_id):
        if category_id and not resource_exists("categories", category_id):
            raise ResourceNotFound("Category not found", "CATEGORY_NOT_FOUND")

        if subcategory_id:
            subcategories = Subcategory.objects.filter(pk=subcategory_id)
            if category_id:
                subcategories = subcategories.filter(category_id=category_id)
            if not subcategories.exists():
                raise ResourceNotFound(
                    "Subcategory not found or does not belong to the specified category",
                    "SUBCATEGORY_NOT_FOUND",
                )
