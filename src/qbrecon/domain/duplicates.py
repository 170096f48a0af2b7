"""Exact and near duplicate detection.

Exact duplicates share date, absolute amount, normalized description and
QuickBooks account. Near duplicates share date, amount and account but not
the description, which is what a re-export of an edited QuickBooks entry
looks like; those need a decision per pair. Nothing here deletes without an
explicit request.
"""

import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

from qbrecon.database.base import Database
from qbrecon.domain.account import qb_key
from qbrecon.domain.entities import Transaction
from qbrecon.domain.errors import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
    import_batch_not_found,
    require_user,
)

logger = logging.getLogger(__name__)

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")
_CENT = Decimal("0.01")


def normalize_description(text: Optional[str]) -> str:
    """Lowercase with every non-alphanumeric character removed."""
    if not text:
        return ""
    return _NON_ALPHANUMERIC.sub("", text.lower())


def duplicate_key(txn: Transaction) -> tuple[date, Decimal, str, str]:
    """Grouping key: date, |amount| to the cent, description, QuickBooks account."""
    return (
        txn.transaction_date,
        abs(txn.amount).quantize(_CENT),
        normalize_description(txn.description or txn.memo),
        qb_key(txn.qb_account),
    )


@dataclass(frozen=True)
class DuplicateGroup:
    """Transactions sharing a duplicate key, earliest created first."""

    transaction_date: date
    amount: Decimal
    description: str
    qb_account: str
    transactions: tuple[Transaction, ...]

    @property
    def keep(self) -> Transaction:
        return self.transactions[0]

    @property
    def extras(self) -> tuple[Transaction, ...]:
        return self.transactions[1:]


def group_duplicates(transactions: Iterable[Transaction]) -> list[DuplicateGroup]:
    """Groups of two or more, largest first, then most recent date first."""
    groups: dict[tuple, list[Transaction]] = defaultdict(list)
    for txn in transactions:
        groups[duplicate_key(txn)].append(txn)

    result = [
        DuplicateGroup(
            transaction_date=key[0],
            amount=key[1],
            description=key[2] or "(no description)",
            qb_account=key[3],
            transactions=tuple(sorted(members, key=lambda t: t.id)),
        )
        for key, members in groups.items()
        if len(members) > 1
    ]
    result.sort(key=lambda g: (-len(g.transactions), -g.transaction_date.toordinal()))
    return result


def select_all_but_earliest(groups: Iterable[DuplicateGroup]) -> list[int]:
    """IDs of every transaction except the earliest of each group."""
    return [txn.id for group in groups for txn in group.extras]


class DuplicateResolution(str, Enum):
    """Decision for a near-duplicate pair."""

    KEEP_NEW = "keep_new"
    KEEP_EXISTING = "keep_existing"
    KEEP_BOTH = "keep_both"


@dataclass(frozen=True)
class PotentialDuplicate:
    """A newly imported transaction and a stored one it may replace."""

    new: Transaction
    existing: Transaction


@dataclass(frozen=True)
class ResolutionResult:
    """Deletions made while resolving near duplicates."""

    deleted: int
    kept_new: int
    kept_existing: int
    kept_both: int


def _same_account(a: Transaction, b: Transaction) -> bool:
    if a.account_id is not None and b.account_id is not None:
        return a.account_id == b.account_id
    return qb_key(a.qb_account) == qb_key(b.qb_account)


def find_near_duplicates(
    new_transactions: Sequence[Transaction], existing: Iterable[Transaction]
) -> list[PotentialDuplicate]:
    """Pairs with equal date, amount and account but different descriptions."""
    by_date_amount: dict[tuple[date, Decimal], list[Transaction]] = defaultdict(list)
    for txn in existing:
        by_date_amount[(txn.transaction_date, txn.amount)].append(txn)

    pairs = []
    for new in sorted(new_transactions, key=lambda t: t.id):
        new_description = normalize_description(new.description or new.memo)
        for old in by_date_amount.get((new.transaction_date, new.amount), []):
            if not _same_account(new, old):
                continue
            if normalize_description(old.description or old.memo) == new_description:
                continue
            pairs.append(PotentialDuplicate(new=new, existing=old))
    return pairs


class DuplicateService:
    """Finds and resolves duplicate transactions of one user."""

    def __init__(self, db: Database, user_id: Optional[str]):
        self.db = db
        self.user_id = require_user(user_id)

    def find_duplicates(self) -> list[DuplicateGroup]:
        """Exact-duplicate groups across all the user's transactions."""
        groups = group_duplicates(self.db.list_transactions(self.user_id))
        logger.info("Found %d duplicate groups", len(groups))
        return groups

    def delete_transactions(self, transaction_ids: Iterable[int]) -> int:
        """Delete the user's transactions among the IDs. Returns the count."""
        ids = list(transaction_ids)
        if not ids:
            raise ValidationError("No transaction IDs provided")
        return self.db.delete_transactions(self.user_id, ids)

    def find_potential_duplicates(self, batch_id: int) -> list[PotentialDuplicate]:
        """Near duplicates between a batch and everything stored before it.

        Raises:
            NotFoundError: If the batch doesn't exist
            AuthorizationError: If the batch belongs to another user
        """
        batch = self.db.get_import_batch(batch_id)
        if batch is None:
            raise NotFoundError(import_batch_not_found(batch_id))
        if batch.user_id != self.user_id:
            raise AuthorizationError(f"Import batch {batch_id} belongs to another user")

        transactions = self.db.list_transactions(self.user_id)
        new = [t for t in transactions if t.import_batch_id == batch_id]
        existing = [t for t in transactions if t.import_batch_id != batch_id]
        return find_near_duplicates(new, existing)

    def resolve_potential_duplicates(
        self,
        pairs: Sequence[PotentialDuplicate],
        decisions: Mapping[int, DuplicateResolution],
    ) -> ResolutionResult:
        """Apply keep-new / keep-existing / keep-both per new transaction.

        Args:
            pairs: Pairs from find_potential_duplicates
            decisions: New transaction ID to decision; undecided pairs keep both
        """
        to_delete: set[int] = set()
        for pair in pairs:
            decision = DuplicateResolution(decisions.get(pair.new.id, DuplicateResolution.KEEP_BOTH))
            if decision == DuplicateResolution.KEEP_NEW:
                to_delete.add(pair.existing.id)
            elif decision == DuplicateResolution.KEEP_EXISTING:
                to_delete.add(pair.new.id)

        deleted = self.db.delete_transactions(self.user_id, sorted(to_delete)) if to_delete else 0
        values = [DuplicateResolution(v) for v in decisions.values()]
        return ResolutionResult(
            deleted=deleted,
            kept_new=values.count(DuplicateResolution.KEEP_NEW),
            kept_existing=values.count(DuplicateResolution.KEEP_EXISTING),
            kept_both=values.count(DuplicateResolution.KEEP_BOTH),
        )
