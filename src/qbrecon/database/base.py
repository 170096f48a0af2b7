"""Abstract database interface.

Every query is scoped to the owning user. Balance snapshots are scoped
through their account, whose ownership the services check first.
"""

from abc import ABC, abstractmethod
from typing import Optional, Any, Iterable
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from qbrecon.domain.entities import (
    Account,
    AccountBalance,
    BalanceSource,
    Category,
    ImportBatch,
    ImportStatus,
    Investment,
    QBAccountClassification,
    Transaction,
    TransactionDraft,
    TransactionType,
    TransactionTypeMapping,
)


class Database(ABC):
    """Abstract database interface for qbrecon."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        user_id: str,
        name: str,
        account_type: str,
        net_worth_bucket: str,
        is_active: bool = True,
        qb_account_names: Iterable[str] = (),
        institution: Optional[str] = None,
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, user_id: str, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self, user_id: str, active_only: bool = False) -> list[Account]:
        """List accounts ordered by name."""
        pass

    @abstractmethod
    def update_account(self, user_id: str, account_id: int, changes: dict[str, Any]) -> None:
        """Update account columns. Keys are column names; None clears a value."""
        pass

    @abstractmethod
    def set_account_qb_names(self, user_id: str, account_id: int, names: list[str]) -> None:
        """Replace an account's QuickBooks alias list."""
        pass

    @abstractmethod
    def delete_account(self, user_id: str, account_id: int) -> None:
        """Delete an account, detaching its transactions."""
        pass

    @abstractmethod
    def get_account_transaction_count(self, user_id: str, account_id: int) -> int:
        """Get count of transactions associated with an account."""
        pass

    # Balance snapshot operations
    @abstractmethod
    def list_account_balances(
        self, account_id: int, source: Optional[BalanceSource] = None
    ) -> list[AccountBalance]:
        """List balance snapshots ordered by date then creation."""
        pass

    @abstractmethod
    def upsert_account_balance(
        self, account_id: int, balance_date: date, balance: Decimal, source: BalanceSource
    ) -> int:
        """Insert or replace the snapshot for (account, date). Returns its ID."""
        pass

    @abstractmethod
    def delete_account_balances(self, account_id: int, source: Optional[BalanceSource] = None) -> int:
        """Delete snapshots, optionally only those of one source. Returns count."""
        pass

    # Category operations
    @abstractmethod
    def create_category(
        self,
        user_id: str,
        name: str,
        category_type: str,
        parent_id: Optional[int] = None,
        color: Optional[str] = None,
        qb_category_names: Iterable[str] = (),
    ) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, user_id: str, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def list_categories(self, user_id: str) -> list[Category]:
        """List categories ordered by name."""
        pass

    @abstractmethod
    def set_category_qb_names(self, user_id: str, category_id: int, names: list[str]) -> None:
        """Replace a category's QuickBooks alias list."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transactions(self, user_id: str, drafts: list[TransactionDraft]) -> list[int]:
        """Insert transactions in one commit. Returns IDs in input order."""
        pass

    @abstractmethod
    def get_transaction(self, user_id: str, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        user_id: str,
        account_id: Optional[int] = None,
        import_batch_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        unlinked_only: bool = False,
    ) -> list[Transaction]:
        """List transactions with optional filters, newest first."""
        pass

    @abstractmethod
    def update_transaction_link(
        self,
        user_id: str,
        transaction_id: int,
        account_id: Optional[int],
        amount: Optional[Decimal] = None,
        via_counter: Optional[bool] = None,
    ) -> None:
        """Set a transaction's account, optionally replacing its amount.

        via_counter records whether the stored amount is negated relative to
        the parsed one; None leaves the flag as it is.
        """
        pass

    @abstractmethod
    def update_transaction_category(
        self, user_id: str, transaction_id: int, category_id: Optional[int]
    ) -> None:
        """Set or clear a transaction's category."""
        pass

    @abstractmethod
    def delete_transactions(self, user_id: str, transaction_ids: Iterable[int]) -> int:
        """Delete the user's transactions among the IDs. Returns count."""
        pass

    # Import batch operations
    @abstractmethod
    def create_import_batch(
        self,
        user_id: str,
        filename: str,
        file_type: str,
        status: ImportStatus = ImportStatus.PENDING,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        """Create an import batch. Returns batch ID."""
        pass

    @abstractmethod
    def get_import_batch(self, batch_id: int) -> Optional[ImportBatch]:
        """Get a batch by ID regardless of owner (callers check ownership)."""
        pass

    @abstractmethod
    def list_import_batches(self, user_id: str) -> list[ImportBatch]:
        """List batches, newest first."""
        pass

    @abstractmethod
    def update_import_batch(
        self,
        batch_id: int,
        status: Optional[ImportStatus] = None,
        record_count: Optional[int] = None,
        error_message: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """Update batch state."""
        pass

    @abstractmethod
    def delete_import_batch(self, batch_id: int) -> int:
        """Delete a batch with its transactions and holdings. Returns transactions deleted."""
        pass

    # Investment operations
    @abstractmethod
    def create_investment(
        self,
        user_id: str,
        symbol: str,
        quantity: Decimal,
        as_of_date: date,
        account_id: Optional[int] = None,
        import_batch_id: Optional[int] = None,
        name: Optional[str] = None,
        cost_basis: Optional[Decimal] = None,
        current_price: Optional[Decimal] = None,
        current_value: Optional[Decimal] = None,
        asset_class: Optional[str] = None,
        sector: Optional[str] = None,
    ) -> int:
        """Create a holding row. Returns its ID."""
        pass

    @abstractmethod
    def list_investments(self, user_id: str, account_id: Optional[int] = None) -> list[Investment]:
        """List holdings, newest snapshot first."""
        pass

    @abstractmethod
    def delete_investments(self, user_id: str, as_of_date: date) -> int:
        """Delete the user's holdings snapshot for a date. Returns count."""
        pass

    # Mapping record operations
    @abstractmethod
    def add_ignored_account(self, user_id: str, qb_account_name: str) -> None:
        """Upsert an ignored QuickBooks account name."""
        pass

    @abstractmethod
    def remove_ignored_account(self, user_id: str, qb_account_name: str) -> bool:
        """Remove an ignored name (case-insensitive). Returns True if removed."""
        pass

    @abstractmethod
    def list_ignored_accounts(self, user_id: str) -> list[str]:
        """List ignored QuickBooks account names."""
        pass

    @abstractmethod
    def set_transaction_type_mapping(
        self, user_id: str, qb_transaction_type: str, mapped_type: TransactionType
    ) -> None:
        """Upsert the remembered type for a QuickBooks transaction type label."""
        pass

    @abstractmethod
    def remove_transaction_type_mapping(self, user_id: str, qb_transaction_type: str) -> bool:
        """Remove a remembered label type. Returns True if removed."""
        pass

    @abstractmethod
    def list_transaction_type_mappings(self, user_id: str) -> list[TransactionTypeMapping]:
        """List remembered label types."""
        pass

    @abstractmethod
    def set_account_classification(
        self, user_id: str, qb_account_name: str, classification: TransactionType
    ) -> None:
        """Upsert the remembered income/expense classification for a name."""
        pass

    @abstractmethod
    def remove_account_classification(self, user_id: str, qb_account_name: str) -> bool:
        """Remove a remembered classification. Returns True if removed."""
        pass

    @abstractmethod
    def list_account_classifications(self, user_id: str) -> list[QBAccountClassification]:
        """List remembered classifications."""
        pass
