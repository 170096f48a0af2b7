"""Classification of discovered QuickBooks account names.

Every name found in an export is in exactly one state: unmapped, or one of
ignored, asset, liability, income, expense. The state is derived on every
import from the persisted mapping records; nothing is cached between runs.
User choices for unmapped names are collected in a PendingMappings value and
written only when ClassificationService.resolve_pending is called.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Union

from qbrecon.database.base import Database
from qbrecon.domain.account import AccountService, qb_key
from qbrecon.domain.category import CategoryService
from qbrecon.domain.entities import AccountType, MappingType, NetWorthBucket, is_liability_type
from qbrecon.domain.errors import MappingIncompleteError, ValidationError, require_user
from qbrecon.domain.qb_mapping import AccountRef, CategoryRef, MappingContext, QBMappingService
from qbrecon.parsers.base import DiscoveredAccount
from qbrecon.parsers.rules import guess_account_type, suggest_mapping_type
from qbrecon.utils.similarity import SimilarName, find_similar

logger = logging.getLogger(__name__)

SUGGESTION_THRESHOLD = 0.65

BALANCE_SHEET_TYPES = (MappingType.ASSET, MappingType.LIABILITY)
CATEGORY_TYPES = (MappingType.INCOME, MappingType.EXPENSE)


def classify_name(name: str, ctx: MappingContext) -> MappingType:
    """Current state of a QuickBooks name.

    Lookup order: ignored, account alias, category alias, remembered
    classification (account name first, then transaction type label).
    """
    if ctx.is_ignored(name):
        return MappingType.IGNORED

    account = ctx.account_for(name)
    if account is not None:
        return account.mapping_type

    category = ctx.category_for(name)
    if category is not None:
        return category.mapping_type

    remembered = ctx.remembered_classification(name) or ctx.remembered_type(name)
    if remembered is not None:
        return MappingType(remembered.value)

    return MappingType.UNMAPPED


@dataclass(frozen=True)
class ClassifiedName:
    """A discovered name with its state, suggestion and resolved target."""

    name: str
    mapping_type: MappingType
    suggestion: MappingType
    target: Optional[Union[AccountRef, CategoryRef]] = None
    discovered: Optional[DiscoveredAccount] = None

    @property
    def is_mapped(self) -> bool:
        return self.mapping_type != MappingType.UNMAPPED


@dataclass(frozen=True)
class ClassificationResult:
    """Partition of discovered names into unmapped and mapped."""

    unmapped: tuple[ClassifiedName, ...] = ()
    mapped: tuple[ClassifiedName, ...] = ()

    @property
    def unmapped_names(self) -> list[str]:
        return [item.name for item in self.unmapped]

    @property
    def is_complete(self) -> bool:
        return not self.unmapped


def classify_discovered(
    discovered: Iterable[Union[DiscoveredAccount, str]], ctx: MappingContext
) -> ClassificationResult:
    """Classify each discovered name against the mapping context.

    Pure: the same names and context always give the same partition.
    Names are de-duplicated case-insensitively, first spelling wins.
    """
    unmapped: list[ClassifiedName] = []
    mapped: list[ClassifiedName] = []
    seen: set[str] = set()

    for item in discovered:
        account = item if isinstance(item, DiscoveredAccount) else None
        name = account.name if account is not None else item
        key = qb_key(name)
        if not key or key in seen:
            continue
        seen.add(key)

        mapping_type = classify_name(name, ctx)
        target = None
        if mapping_type in BALANCE_SHEET_TYPES:
            target = ctx.account_for(name)
        elif mapping_type in CATEGORY_TYPES:
            target = ctx.category_for(name)

        classified = ClassifiedName(
            name=name,
            mapping_type=mapping_type,
            suggestion=suggest_mapping_type(name),
            target=target,
            discovered=account,
        )
        (mapped if classified.is_mapped else unmapped).append(classified)

    return ClassificationResult(unmapped=tuple(unmapped), mapped=tuple(mapped))


@dataclass(frozen=True)
class MappingDecision:
    """A user's choice for one QuickBooks name, not yet saved.

    Attributes:
        mapping_type: The chosen disposition (never unmapped)
        target_id: Existing account (asset/liability) or category (income/expense)
        new_account_name: Display name for a new account; defaults to the QuickBooks name
        new_account_type: Type for a new account; guessed from the name when omitted
    """

    mapping_type: MappingType
    target_id: Optional[int] = None
    new_account_name: Optional[str] = None
    new_account_type: Optional[AccountType] = None

    def __post_init__(self):
        if MappingType(self.mapping_type) == MappingType.UNMAPPED:
            raise ValidationError("A mapping decision cannot be 'unmapped'")


@dataclass
class PendingMappings:
    """Undecided-to-decided choices keyed by QuickBooks name (case-insensitive)."""

    _decisions: dict[str, tuple[str, MappingDecision]] = field(default_factory=dict)

    def set(self, qb_name: str, decision: MappingDecision) -> None:
        self._decisions[qb_key(qb_name)] = (qb_name.strip(), decision)

    def get(self, qb_name: str) -> Optional[MappingDecision]:
        entry = self._decisions.get(qb_key(qb_name))
        return entry[1] if entry else None

    def discard(self, qb_name: str) -> None:
        self._decisions.pop(qb_key(qb_name), None)

    def clear(self) -> None:
        self._decisions.clear()

    def items(self) -> Iterator[tuple[str, MappingDecision]]:
        for name, decision in sorted(self._decisions.values(), key=lambda e: qb_key(e[0])):
            yield name, decision

    def __contains__(self, qb_name: object) -> bool:
        return isinstance(qb_name, str) and qb_key(qb_name) in self._decisions

    def __len__(self) -> int:
        return len(self._decisions)


@dataclass
class ResolutionSummary:
    """What resolve_pending wrote."""

    ignored: list[str] = field(default_factory=list)
    attached: list[str] = field(default_factory=list)
    created_accounts: list[str] = field(default_factory=list)
    classified: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.ignored) + len(self.attached) + len(self.created_accounts) + len(self.classified)


class ClassificationService:
    """Classifies discovered names and persists pending decisions."""

    def __init__(self, db: Database, user_id: Optional[str]):
        self.db = db
        self.user_id = require_user(user_id)
        self.mapping_service = QBMappingService(db, self.user_id)
        self.account_service = AccountService(db, self.user_id)
        self.category_service = CategoryService(db, self.user_id)

    def classify(self, discovered: Iterable[Union[DiscoveredAccount, str]]) -> ClassificationResult:
        """Classify names against freshly loaded mapping records."""
        return classify_discovered(discovered, self.mapping_service.load_context())

    def resolve_pending(
        self, discovered_names: Iterable[str], pending: PendingMappings
    ) -> ResolutionSummary:
        """Persist pending decisions once every discovered name is decided.

        Args:
            discovered_names: Every name found in the file being imported
            pending: Decisions collected from the user

        Returns:
            Summary of the records written

        Raises:
            MappingIncompleteError: If a discovered name is neither mapped
                nor decided; nothing is written in that case
        """
        result = self.classify(discovered_names)
        missing = [name for name in result.unmapped_names if name not in pending]
        if missing:
            raise MappingIncompleteError(missing)

        summary = ResolutionSummary()
        for qb_name, decision in pending.items():
            self._apply(qb_name, decision, summary)
        pending.clear()

        logger.info(
            "Saved %d mapping decisions (%d new accounts)",
            summary.total,
            len(summary.created_accounts),
        )
        return summary

    def _apply(self, qb_name: str, decision: MappingDecision, summary: ResolutionSummary) -> None:
        mapping_type = MappingType(decision.mapping_type)

        if mapping_type == MappingType.IGNORED:
            self.mapping_service.add_ignored(qb_name)
            summary.ignored.append(qb_name)
        elif mapping_type in BALANCE_SHEET_TYPES:
            self._attach_account(qb_name, mapping_type, decision, summary)
        else:
            self.mapping_service.set_classification(qb_name, mapping_type.value)
            if decision.target_id is not None:
                self.category_service.add_qb_name(decision.target_id, qb_name)
            summary.classified.append(qb_name)

    def _attach_account(
        self,
        qb_name: str,
        mapping_type: MappingType,
        decision: MappingDecision,
        summary: ResolutionSummary,
    ) -> None:
        if decision.target_id is not None:
            self.account_service.add_qb_name(decision.target_id, qb_name)
            summary.attached.append(qb_name)
            return

        display_name = (decision.new_account_name or qb_name).strip()
        existing = self.account_service.find_account_by_name(display_name)
        if existing is not None:
            self.account_service.add_qb_name(existing.id, qb_name)
            summary.attached.append(qb_name)
            return

        liability = mapping_type == MappingType.LIABILITY
        account_type = new_account_type(qb_name, liability, decision.new_account_type)
        self.account_service.create_account(
            name=display_name,
            account_type=account_type,
            net_worth_bucket=NetWorthBucket.LIABILITIES if liability else NetWorthBucket.CASH,
            qb_account_names=[qb_name],
        )
        summary.created_accounts.append(display_name)

    def suggest_similar(
        self,
        qb_name: str,
        candidates: Optional[Iterable[str]] = None,
        threshold: float = SUGGESTION_THRESHOLD,
    ) -> list[SimilarName]:
        """Unmapped names resembling qb_name, best first.

        Suggestions only; nothing is mapped. Candidates default to the names
        referenced by stored transactions.
        """
        ctx = self.mapping_service.load_context()
        pool = list(candidates) if candidates is not None else self.mapping_service.known_qb_names()
        unmapped = [name for name in pool if classify_name(name, ctx) == MappingType.UNMAPPED]
        return find_similar(qb_name, unmapped, threshold=threshold)


def new_account_type(
    qb_name: str, liability: bool, requested: Optional[AccountType] = None
) -> AccountType:
    """Account type for an account created from a mapping decision.

    The type must agree with the asset/liability choice, otherwise the name
    would classify differently on the next import.
    """
    if requested is not None:
        requested = AccountType(requested)
        if is_liability_type(requested) != liability:
            side = "liability" if liability else "asset"
            raise ValidationError(f"Account type '{requested.value}' is not a {side} type")
        return requested

    guessed = guess_account_type(qb_name).account_type
    if is_liability_type(guessed) == liability:
        return guessed
    return AccountType.LOAN if liability else AccountType.OTHER
