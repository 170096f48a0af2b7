"""Linking of transactions to internal accounts through QuickBooks aliases.

A QuickBooks entry names two accounts: its own (qb_account) and the
offsetting one (split_account). A transaction is linked to the account whose
aliases contain the primary name; failing that, to the account matching the
counter name, in which case the amount is negated because the stored sign
must reflect the linked account's own side of the entry.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from qbrecon.database.base import Database
from qbrecon.domain.entities import Transaction
from qbrecon.domain.errors import require_user
from qbrecon.domain.qb_mapping import AccountRef, MappingContext, QBMappingService

logger = logging.getLogger(__name__)

CHUNK_SIZE = 100


class LinkScope(str, Enum):
    """Which transactions a linking run visits."""

    UNLINKED_ONLY = "unlinked_only"
    ALL = "all"


@dataclass(frozen=True)
class LinkMatch:
    """Account a transaction resolves to and how."""

    account: AccountRef
    via_counter: bool

    def linked_amount(self, amount: Decimal) -> Decimal:
        """Stored amount for a parsed amount linked through this match."""
        return -amount if self.via_counter else amount


def parsed_amount(txn: Transaction) -> Decimal:
    """Amount as imported, undoing an earlier counter-side negation."""
    return -txn.amount if txn.linked_via_counter else txn.amount


def already_linked(txn: Transaction, match: LinkMatch) -> bool:
    return txn.account_id == match.account.id and txn.linked_via_counter == match.via_counter


@dataclass(frozen=True)
class LinkFailure:
    """A transaction whose update was rejected by the store."""

    transaction_id: int
    error: str


@dataclass
class LinkResult:
    """Counts reported by a linking run.

    Attributes:
        total: Transactions visited
        updated: Transactions written
        linked_via_primary: Written through the primary reference
        linked_via_counter: Written through the counter reference (amount negated)
        unchanged: Already linked to the resolved account (ALL scope only)
        failures: Rejected updates, one per transaction
    """

    total: int = 0
    updated: int = 0
    linked_via_primary: int = 0
    linked_via_counter: int = 0
    unchanged: int = 0
    failures: list[LinkFailure] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        """Transactions left without a (new) link."""
        return self.total - self.updated - self.unchanged


def match_account(
    qb_account: Optional[str],
    split_account: Optional[str],
    ctx: MappingContext,
    allow_counter: bool = True,
) -> Optional[LinkMatch]:
    """Resolve the account for a pair of QuickBooks references."""
    account = ctx.account_for(qb_account)
    if account is not None:
        return LinkMatch(account, via_counter=False)
    if allow_counter:
        account = ctx.account_for(split_account)
        if account is not None:
            return LinkMatch(account, via_counter=True)
    return None


def _chunks(items: Sequence[Transaction], size: int = CHUNK_SIZE):
    for start in range(0, len(items), size):
        yield items[start : start + size]


class TransactionLinkingService:
    """Resolves account_id for stored transactions."""

    def __init__(self, db: Database, user_id: Optional[str]):
        self.db = db
        self.user_id = require_user(user_id)
        self.mapping_service = QBMappingService(db, self.user_id)

    def _candidates(self, scope: LinkScope) -> list[Transaction]:
        transactions = self.db.list_transactions(
            self.user_id, unlinked_only=LinkScope(scope) == LinkScope.UNLINKED_ONLY
        )
        # Oldest first so runs are reproducible
        return sorted(transactions, key=lambda t: t.id)

    def link_transactions(
        self, scope: LinkScope = LinkScope.UNLINKED_ONLY, ctx: Optional[MappingContext] = None
    ) -> LinkResult:
        """Link transactions via primary then counter references.

        The new amount is derived from the parsed amount, never from a
        previously negated one, so relinking after an alias moves keeps the
        sign rule. In ALL scope a transaction already linked to the account
        and path it resolves to is left untouched.

        Args:
            scope: UNLINKED_ONLY or ALL
            ctx: Mapping context; loaded when omitted

        Returns:
            LinkResult with per-path counts and failures
        """
        ctx = ctx if ctx is not None else self.mapping_service.load_context()
        transactions = self._candidates(scope)
        result = LinkResult(total=len(transactions))

        if not ctx.account_aliases:
            logger.info("No account aliases configured; nothing to link")
            return result

        for chunk in _chunks(transactions):
            for txn in chunk:
                match = match_account(txn.qb_account, txn.split_account, ctx)
                if match is None:
                    continue
                if already_linked(txn, match):
                    result.unchanged += 1
                    continue
                try:
                    self.db.update_transaction_link(
                        self.user_id,
                        txn.id,
                        match.account.id,
                        match.linked_amount(parsed_amount(txn)),
                        via_counter=match.via_counter,
                    )
                except SQLAlchemyError as e:
                    logger.warning("Failed to link transaction %s: %s", txn.id, e)
                    result.failures.append(LinkFailure(txn.id, str(e)))
                    continue

                result.updated += 1
                if match.via_counter:
                    result.linked_via_counter += 1
                else:
                    result.linked_via_primary += 1

        logger.info(
            "Linked %d of %d transactions (%d primary, %d counter)",
            result.updated,
            result.total,
            result.linked_via_primary,
            result.linked_via_counter,
        )
        return result

    def apply_account_mappings(self, remap_all: bool = False) -> LinkResult:
        """Link through the primary reference only.

        Amounts keep their parsed sign; one negated by an earlier counter
        link is restored.

        Args:
            remap_all: Revisit transactions that already have an account
        """
        ctx = self.mapping_service.load_context()
        scope = LinkScope.ALL if remap_all else LinkScope.UNLINKED_ONLY
        transactions = [t for t in self._candidates(scope) if t.qb_account]
        result = LinkResult(total=len(transactions))

        for chunk in _chunks(transactions):
            for txn in chunk:
                match = match_account(txn.qb_account, None, ctx, allow_counter=False)
                if match is None:
                    continue
                if already_linked(txn, match):
                    result.unchanged += 1
                    continue
                try:
                    self.db.update_transaction_link(
                        self.user_id, txn.id, match.account.id, parsed_amount(txn), via_counter=False
                    )
                except SQLAlchemyError as e:
                    logger.warning("Failed to map transaction %s: %s", txn.id, e)
                    result.failures.append(LinkFailure(txn.id, str(e)))
                    continue
                result.updated += 1
                result.linked_via_primary += 1

        return result
