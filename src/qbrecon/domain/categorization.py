"""Category matching for QuickBooks transactions."""

import logging
from dataclasses import dataclass, field
from typing import Optional, Iterable

from sqlalchemy.exc import SQLAlchemyError

from qbrecon.database.base import Database
from qbrecon.domain.account import qb_key
from qbrecon.domain.entities import Category, TransactionType
from qbrecon.domain.errors import require_user
from qbrecon.parsers.rules import type_from_label
from qbrecon.utils.similarity import normalize_qb_name

logger = logging.getLogger(__name__)


def _eligible(categories: Iterable[Category], transaction_type: TransactionType) -> list[Category]:
    # Transfers may land in a category of any type
    if transaction_type == TransactionType.TRANSFER:
        return list(categories)
    return [cat for cat in categories if cat.category_type == transaction_type]


def find_exact_match(
    qb_account: str, categories: Iterable[Category], transaction_type: TransactionType
) -> Optional[int]:
    key = qb_key(qb_account)
    for category in _eligible(categories, transaction_type):
        if any(qb_key(alias) == key for alias in category.qb_category_names):
            return category.id
    return None


def find_normalized_match(
    qb_account: str, categories: Iterable[Category], transaction_type: TransactionType
) -> Optional[int]:
    normalized = normalize_qb_name(qb_account)
    for category in _eligible(categories, transaction_type):
        if any(normalize_qb_name(alias) == normalized for alias in category.qb_category_names):
            return category.id
    return None


def find_category_for_transaction(
    qb_account: Optional[str],
    qb_transaction_type: Optional[str],
    categories: Iterable[Category],
) -> Optional[int]:
    """Find the category whose aliases match a QuickBooks account name.

    Only categories whose type agrees with the transaction type label are
    considered. An exact (case-insensitive) alias match is tried before a
    match on normalized names.

    Args:
        qb_account: QuickBooks account name (usually the split account)
        qb_transaction_type: QuickBooks transaction type label
        categories: The user's categories

    Returns:
        Category ID or None
    """
    if not qb_account or not qb_account.strip():
        return None

    categories = list(categories)
    transaction_type = type_from_label(qb_transaction_type)
    return find_exact_match(qb_account, categories, transaction_type) or find_normalized_match(
        qb_account, categories, transaction_type
    )


@dataclass
class CategorizeResult:
    """Outcome of categorizing stored transactions."""

    total: int = 0
    categorized: int = 0
    failures: list[tuple[int, str]] = field(default_factory=list)


class CategorizationService:
    """Applies category aliases to transactions already stored."""

    def __init__(self, db: Database, user_id: Optional[str]):
        self.db = db
        self.user_id = require_user(user_id)

    def categorize_transactions(self, recategorize_all: bool = False) -> CategorizeResult:
        """Assign categories from QuickBooks names.

        Args:
            recategorize_all: Also revisit transactions that already have a category

        Returns:
            Counts and per-transaction failures
        """
        categories = self.db.list_categories(self.user_id)
        candidates = [
            txn
            for txn in self.db.list_transactions(self.user_id)
            if txn.qb_account and (recategorize_all or txn.category_id is None)
        ]
        result = CategorizeResult(total=len(candidates))

        for txn in candidates:
            category_id = find_category_for_transaction(
                txn.split_account or txn.qb_account, txn.qb_transaction_type, categories
            )
            if category_id is None or category_id == txn.category_id:
                continue
            try:
                self.db.update_transaction_category(self.user_id, txn.id, category_id)
            except SQLAlchemyError as e:
                logger.warning("Could not categorize transaction %s: %s", txn.id, e)
                result.failures.append((txn.id, str(e)))
                continue
            result.categorized += 1

        return result
