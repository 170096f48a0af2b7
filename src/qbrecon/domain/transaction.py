"""Transaction domain service."""

import logging
from datetime import date
from typing import Optional, Iterable

from qbrecon.database.base import Database
from qbrecon.domain.entities import Transaction as TransactionEntity
from qbrecon.domain.errors import (
    NotFoundError,
    category_not_found,
    require_user,
    transaction_not_found,
)

logger = logging.getLogger(__name__)


class TransactionService:
    """Service for reading and maintaining stored transactions."""

    def __init__(self, db: Database, user_id: Optional[str]):
        """Initialize transaction service.

        Args:
            db: Database instance
            user_id: Owning user
        """
        self.db = db
        self.user_id = require_user(user_id)

    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(self.user_id, transaction_id)

    def list_transactions(
        self,
        account_id: Optional[int] = None,
        import_batch_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        unlinked_only: bool = False,
    ) -> list[TransactionEntity]:
        """List transactions with optional filters, newest first."""
        return self.db.list_transactions(
            self.user_id,
            account_id=account_id,
            import_batch_id=import_batch_id,
            start_date=start_date,
            end_date=end_date,
            unlinked_only=unlinked_only,
        )

    def update_category(self, transaction_id: int, category_id: Optional[int]) -> None:
        """Update transaction category.

        Args:
            transaction_id: Transaction ID
            category_id: Category ID or None to clear

        Raises:
            NotFoundError: If transaction or category doesn't exist
        """
        if self.get_transaction(transaction_id) is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        if category_id is not None and self.db.get_category(self.user_id, category_id) is None:
            raise NotFoundError(category_not_found(category_id))
        self.db.update_transaction_category(self.user_id, transaction_id, category_id)

    def delete_transactions(self, transaction_ids: Iterable[int]) -> int:
        """Delete transactions owned by the current user.

        IDs belonging to other users or not existing are ignored.

        Returns:
            Number of transactions deleted
        """
        deleted = self.db.delete_transactions(self.user_id, transaction_ids)
        logger.info("Deleted %d transactions for %s", deleted, self.user_id)
        return deleted
