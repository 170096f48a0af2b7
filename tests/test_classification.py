"""Tests for QuickBooks name classification and pending mapping decisions."""

import pytest

from qbrecon.domain.classification import (
    MappingDecision,
    PendingMappings,
    classify_discovered,
    classify_name,
    new_account_type,
)
from qbrecon.domain.entities import AccountType, MappingType, NetWorthBucket, TransactionType
from qbrecon.domain.errors import MappingIncompleteError, ValidationError
from qbrecon.domain.qb_mapping import AccountRef, CategoryRef, MappingContext
from qbrecon.parsers.rules import guess_account_type, suggest_mapping_type


@pytest.fixture
def context():
    """A mapping context covering every kind of record."""
    checking = AccountRef(1, "Checking", AccountType.CHECKING)
    visa = AccountRef(2, "Visa", AccountType.CREDIT_CARD)
    return MappingContext(
        ignored=frozenset({"3000 opening balance equity", "1000 checking"}),
        account_aliases={"1000 checking": checking, "2100 visa": visa},
        category_aliases={"6100 groceries": CategoryRef(5, "Groceries", TransactionType.EXPENSE)},
        type_memory={"journal entry": TransactionType.EXPENSE},
        classification_memory={"4000 salary": TransactionType.INCOME},
    )


class TestClassifyName:
    """Tests for classify_name."""

    def test_ignored_wins_over_alias(self, context):
        """An ignored name is ignored even when an account lists it."""
        assert classify_name("1000 Checking", context) == MappingType.IGNORED

    def test_account_alias_side(self, context):
        """Account aliases classify by the account's asset/liability side."""
        assert classify_name("2100 Visa", context) == MappingType.LIABILITY

    def test_category_alias(self, context):
        """Category aliases classify by the category type."""
        assert classify_name(" 6100 GROCERIES ", context) == MappingType.EXPENSE

    def test_remembered_classification(self, context):
        """Remembered classifications and type labels are consulted last."""
        assert classify_name("4000 Salary", context) == MappingType.INCOME
        assert classify_name("Journal Entry", context) == MappingType.EXPENSE

    def test_unknown_is_unmapped(self, context):
        """Names without any record are unmapped."""
        assert classify_name("7000 Travel", context) == MappingType.UNMAPPED


def test_classify_discovered_partition_is_stable(context):
    """The same names and context always give the same partition."""
    names = ["2100 Visa", "7000 Travel", "2100 VISA", "6100 Groceries"]

    first = classify_discovered(names, context)
    second = classify_discovered(names, context)

    assert first == second
    assert first.unmapped_names == ["7000 Travel"]
    assert [item.name for item in first.mapped] == ["2100 Visa", "6100 Groceries"]
    assert first.mapped[0].target.name == "Visa"
    assert not first.is_complete


def test_classify_discovered_suggestions(context):
    """Unmapped names carry a suggested disposition."""
    result = classify_discovered(["7000 Travel", "Home Mortgage"], context)
    suggestions = {item.name: item.suggestion for item in result.unmapped}
    assert suggestions == {"7000 Travel": MappingType.EXPENSE, "Home Mortgage": MappingType.LIABILITY}


@pytest.mark.parametrize(
    "name, expected",
    [
        ("1200 Brokerage", MappingType.ASSET),
        ("2100 Visa", MappingType.LIABILITY),
        ("3000 Opening Balance Equity", MappingType.IGNORED),
        ("4000 Salary", MappingType.INCOME),
        ("6100 Groceries", MappingType.EXPENSE),
        ("Chase Checking", MappingType.ASSET),
        ("Home Mortgage", MappingType.LIABILITY),
        ("Groceries", MappingType.EXPENSE),
    ],
)
def test_suggest_mapping_type(name, expected):
    """Number prefixes decide first, then the name heuristics."""
    assert suggest_mapping_type(name) == expected


def test_guess_account_type_whole_words():
    """Short keywords only match as whole words."""
    assert guess_account_type("Traditional IRA").account_type == AccountType.RETIREMENT
    assert guess_account_type("Miranda Payroll").is_income_expense_category
    assert guess_account_type("RV Loan").account_type == AccountType.LOAN
    assert guess_account_type("Driver Services").is_income_expense_category


def test_guess_account_type_number_prefix_beats_keywords():
    """Equity, income and expense numbers are categories whatever the name."""
    assert guess_account_type("6200 Credit Card Fees").is_income_expense_category
    assert guess_account_type("1500 Escrow").is_asset


class TestNewAccountType:
    """Tests for new_account_type."""

    def test_requested_type_must_match_side(self):
        """A checking account cannot be created for a liability."""
        with pytest.raises(ValidationError):
            new_account_type("2100 Visa", liability=True, requested=AccountType.CHECKING)

    def test_requested_type_kept(self):
        assert new_account_type("Anything", liability=True, requested=AccountType.MORTGAGE) == AccountType.MORTGAGE

    def test_guess_used_when_on_the_right_side(self):
        assert new_account_type("Chase Visa", liability=True) == AccountType.CREDIT_CARD

    def test_fallback_types(self):
        """Names guessed on the wrong side fall back to loan or other."""
        assert new_account_type("Misc", liability=True) == AccountType.LOAN
        assert new_account_type("Misc", liability=False) == AccountType.OTHER


def test_unmapped_decision_rejected():
    """A decision must pick an actual disposition."""
    with pytest.raises(ValidationError):
        MappingDecision(MappingType.UNMAPPED)


def test_pending_mappings_case_insensitive():
    """Pending decisions are keyed by the trimmed, lowercased name."""
    pending = PendingMappings()
    pending.set(" 2100 Visa ", MappingDecision(MappingType.LIABILITY))

    assert "2100 VISA" in pending
    assert pending.get("2100 visa").mapping_type == MappingType.LIABILITY
    assert [name for name, _ in pending.items()] == ["2100 Visa"]

    pending.discard("2100 visa")
    assert len(pending) == 0


class TestResolvePending:
    """Tests for ClassificationService.resolve_pending."""

    def test_undecided_name_blocks_everything(self, classification_service, mapping_service):
        """Nothing is written while any discovered name is undecided."""
        pending = PendingMappings()
        pending.set("3000 Opening Balance Equity", MappingDecision(MappingType.IGNORED))

        with pytest.raises(MappingIncompleteError) as excinfo:
            classification_service.resolve_pending(
                ["3000 Opening Balance Equity", "7000 Travel"], pending
            )

        assert excinfo.value.missing == ["7000 Travel"]
        assert mapping_service.list_ignored() == []
        assert len(pending) == 1

    def test_decisions_written(
        self, classification_service, account_service, category_service, sample_account, sample_categories
    ):
        """Every kind of decision is persisted and the pending set is cleared."""
        names = ["1000 Checking", "1010 Joint Checking", "2100 Visa", "3000 Equity", "4010 Bonus"]
        pending = PendingMappings()
        pending.set("1010 Joint Checking", MappingDecision(MappingType.ASSET, target_id=sample_account.id))
        pending.set("2100 Visa", MappingDecision(MappingType.LIABILITY, new_account_name="Visa Card"))
        pending.set("3000 Equity", MappingDecision(MappingType.IGNORED))
        pending.set("4010 Bonus", MappingDecision(MappingType.INCOME, target_id=sample_categories["Salary"]))

        summary = classification_service.resolve_pending(names, pending)

        assert summary.attached == ["1010 Joint Checking"]
        assert summary.created_accounts == ["Visa Card"]
        assert summary.ignored == ["3000 Equity"]
        assert summary.classified == ["4010 Bonus"]
        assert summary.total == 4
        assert len(pending) == 0

        checking = account_service.get_account(sample_account.id)
        assert "1010 Joint Checking" in checking.qb_account_names

        card = account_service.find_account_by_name("Visa Card")
        assert card.account_type == AccountType.CREDIT_CARD
        assert card.net_worth_bucket == NetWorthBucket.LIABILITIES
        assert card.qb_account_names == ("2100 Visa",)

        salary = category_service.get_category(sample_categories["Salary"])
        assert "4010 Bonus" in salary.qb_category_names

        assert classification_service.classify(names).is_complete

    def test_new_account_name_reuses_existing(self, classification_service, account_service, sample_account):
        """A new-account decision naming an existing account attaches to it."""
        pending = PendingMappings()
        pending.set("1020 Old Checking", MappingDecision(MappingType.ASSET, new_account_name="checking"))

        summary = classification_service.resolve_pending(["1020 Old Checking"], pending)

        assert summary.attached == ["1020 Old Checking"]
        assert len(account_service.list_accounts()) == 1


def test_suggest_similar_only_unmapped(classification_service, sample_categories):
    """Similar-name suggestions skip names that are already mapped."""
    matches = classification_service.suggest_similar(
        "Office Supplies", candidates=["Office Supplys", "6100 Groceries", "Rent"]
    )
    assert [m.name for m in matches] == ["Office Supplys"]
