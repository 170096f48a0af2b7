"""QuickBooks mapping records and the per-run mapping context.

A user's decisions about QuickBooks names live in five places: the
ignored-name table, account alias lists, category alias lists, the
transaction-type memory and the account classification memory. They are
loaded together into a MappingContext once per pipeline run and that value
is passed to the classification, categorization and linking code, so one
run never sees a half-updated set of mappings.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from qbrecon.database.base import Database
from qbrecon.domain.account import AccountService, qb_key
from qbrecon.domain.category import CategoryService
from qbrecon.domain.entities import AccountType, MappingType, TransactionType, is_liability_type
from qbrecon.domain.errors import ValidationError, require_user

logger = logging.getLogger(__name__)

_MEMORY_TYPES = (TransactionType.INCOME, TransactionType.EXPENSE)


@dataclass(frozen=True)
class AccountRef:
    """Account an alias resolves to."""

    id: int
    name: str
    account_type: AccountType

    @property
    def mapping_type(self) -> MappingType:
        return MappingType.LIABILITY if is_liability_type(self.account_type) else MappingType.ASSET


@dataclass(frozen=True)
class CategoryRef:
    """Category an alias resolves to."""

    id: int
    name: str
    category_type: TransactionType

    @property
    def mapping_type(self) -> MappingType:
        # Transfer categories classify as expense
        return MappingType.INCOME if self.category_type == TransactionType.INCOME else MappingType.EXPENSE


@dataclass(frozen=True)
class MappingContext:
    """Snapshot of every mapping record of one user.

    All keys are QuickBooks names (or type labels) trimmed and lowercased.
    """

    ignored: frozenset[str] = frozenset()
    account_aliases: dict[str, AccountRef] = field(default_factory=dict)
    category_aliases: dict[str, CategoryRef] = field(default_factory=dict)
    type_memory: dict[str, TransactionType] = field(default_factory=dict)
    classification_memory: dict[str, TransactionType] = field(default_factory=dict)

    def is_ignored(self, name: Optional[str]) -> bool:
        return qb_key(name) in self.ignored

    def account_for(self, name: Optional[str]) -> Optional[AccountRef]:
        key = qb_key(name)
        return self.account_aliases.get(key) if key else None

    def category_for(self, name: Optional[str]) -> Optional[CategoryRef]:
        key = qb_key(name)
        return self.category_aliases.get(key) if key else None

    def remembered_type(self, label: Optional[str]) -> Optional[TransactionType]:
        """Remembered income/expense type for a QuickBooks transaction type label."""
        return self.type_memory.get(qb_key(label))

    def remembered_classification(self, name: Optional[str]) -> Optional[TransactionType]:
        """Remembered income/expense classification for an account name."""
        return self.classification_memory.get(qb_key(name))


@dataclass(frozen=True)
class MappingRecord:
    """One row of the combined mapping listing."""

    qb_name: str
    mapping_type: MappingType
    target: Optional[str] = None
    source: str = ""


class QBMappingService:
    """Persists mapping decisions and loads them as a MappingContext."""

    def __init__(self, db: Database, user_id: Optional[str]):
        self.db = db
        self.user_id = require_user(user_id)
        self.account_service = AccountService(db, self.user_id)
        self.category_service = CategoryService(db, self.user_id)

    def load_context(self) -> MappingContext:
        """Read all mapping records of the user into one immutable value."""
        ignored = frozenset(qb_key(name) for name in self.db.list_ignored_accounts(self.user_id))

        account_aliases: dict[str, AccountRef] = {}
        for account in self.db.list_accounts(self.user_id):
            ref = AccountRef(account.id, account.name, account.account_type)
            for alias in account.qb_account_names:
                # First account listing an alias wins
                account_aliases.setdefault(qb_key(alias), ref)

        category_aliases: dict[str, CategoryRef] = {}
        for category in self.db.list_categories(self.user_id):
            ref = CategoryRef(category.id, category.name, category.category_type)
            for alias in category.qb_category_names:
                category_aliases.setdefault(qb_key(alias), ref)

        type_memory = {
            qb_key(m.qb_transaction_type): m.mapped_type
            for m in self.db.list_transaction_type_mappings(self.user_id)
        }
        classification_memory = {
            qb_key(c.qb_account_name): c.classification
            for c in self.db.list_account_classifications(self.user_id)
        }

        logger.debug(
            "Loaded mapping context: %d ignored, %d account aliases, %d category aliases",
            len(ignored),
            len(account_aliases),
            len(category_aliases),
        )
        return MappingContext(
            ignored=ignored,
            account_aliases=account_aliases,
            category_aliases=category_aliases,
            type_memory=type_memory,
            classification_memory=classification_memory,
        )

    # Ignored names
    def add_ignored(self, qb_name: str) -> None:
        self.db.add_ignored_account(self.user_id, _required_name(qb_name))

    def remove_ignored(self, qb_name: str) -> bool:
        return self.db.remove_ignored_account(self.user_id, qb_name)

    def list_ignored(self) -> list[str]:
        return self.db.list_ignored_accounts(self.user_id)

    # Aliases
    def add_account_alias(self, qb_name: str, account_id: int) -> bool:
        """Attach a QuickBooks name to an account. Returns False if already attached."""
        return self.account_service.add_qb_name(account_id, _required_name(qb_name))

    def remove_account_alias(self, qb_name: str) -> bool:
        """Detach a QuickBooks name from whichever accounts list it."""
        removed = False
        for account in self.account_service.list_accounts():
            if any(qb_key(alias) == qb_key(qb_name) for alias in account.qb_account_names):
                removed = self.account_service.remove_qb_name(account.id, qb_name) or removed
        return removed

    def add_category_alias(self, qb_name: str, category_id: int) -> bool:
        """Attach a QuickBooks name to a category. Returns False if already attached."""
        return self.category_service.add_qb_name(category_id, _required_name(qb_name))

    def remove_category_alias(self, qb_name: str) -> bool:
        """Detach a QuickBooks name from whichever categories list it."""
        removed = False
        for category in self.category_service.list_categories():
            if any(qb_key(alias) == qb_key(qb_name) for alias in category.qb_category_names):
                removed = self.category_service.remove_qb_name(category.id, qb_name) or removed
        return removed

    # Memories
    def set_transaction_type_mapping(self, qb_transaction_type: str, mapped_type: TransactionType | str) -> None:
        """Remember income/expense for a QuickBooks transaction type label."""
        self.db.set_transaction_type_mapping(
            self.user_id, _required_name(qb_transaction_type), _memory_type(mapped_type)
        )

    def remove_transaction_type_mapping(self, qb_transaction_type: str) -> bool:
        return self.db.remove_transaction_type_mapping(self.user_id, qb_transaction_type)

    def set_classification(self, qb_name: str, classification: TransactionType | str) -> None:
        """Remember income/expense for a QuickBooks account name."""
        self.db.set_account_classification(
            self.user_id, _required_name(qb_name), _memory_type(classification)
        )

    def remove_classification(self, qb_name: str) -> bool:
        return self.db.remove_account_classification(self.user_id, qb_name)

    def clear_mapping(self, qb_name: str) -> bool:
        """Forget every decision about a name, returning it to unmapped."""
        results = [
            self.remove_ignored(qb_name),
            self.remove_account_alias(qb_name),
            self.remove_category_alias(qb_name),
            self.remove_classification(qb_name),
        ]
        return any(results)

    def list_all_mappings(self) -> list[MappingRecord]:
        """Every mapping record as one flat list sorted by QuickBooks name."""
        records = [
            MappingRecord(name, MappingType.IGNORED, source="ignored")
            for name in self.db.list_ignored_accounts(self.user_id)
        ]
        for account in self.account_service.list_accounts():
            mapping_type = MappingType.LIABILITY if account.is_liability else MappingType.ASSET
            records.extend(
                MappingRecord(alias, mapping_type, account.name, "account")
                for alias in account.qb_account_names
            )
        for category in self.category_service.list_categories():
            ref = CategoryRef(category.id, category.name, category.category_type)
            records.extend(
                MappingRecord(alias, ref.mapping_type, category.name, "category")
                for alias in category.qb_category_names
            )
        for classification in self.db.list_account_classifications(self.user_id):
            records.append(
                MappingRecord(
                    classification.qb_account_name,
                    MappingType(classification.classification.value),
                    source="classification",
                )
            )
        for mapping in self.db.list_transaction_type_mappings(self.user_id):
            records.append(
                MappingRecord(
                    mapping.qb_transaction_type,
                    MappingType(mapping.mapped_type.value),
                    source="transaction_type",
                )
            )
        return sorted(records, key=lambda r: (qb_key(r.qb_name), r.source))

    def known_qb_names(self) -> list[str]:
        """Distinct QuickBooks account names referenced by stored transactions."""
        seen: dict[str, str] = {}
        for txn in self.db.list_transactions(self.user_id):
            for name in (txn.qb_account, txn.split_account):
                if name and name.strip():
                    seen.setdefault(qb_key(name), name.strip())
        return sorted(seen.values(), key=str.lower)


def _required_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("QuickBooks name cannot be empty")
    return name


def _memory_type(value: TransactionType | str) -> TransactionType:
    try:
        mapped = TransactionType(value)
    except ValueError:
        mapped = None
    if mapped not in _MEMORY_TYPES:
        raise ValidationError(f"Mapping must be income or expense, got '{value}'")
    return mapped

