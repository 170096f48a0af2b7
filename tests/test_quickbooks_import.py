"""Tests for the QuickBooks import pipeline."""

from datetime import date
from decimal import Decimal

import pytest

from qbrecon.domain.classification import MappingDecision, PendingMappings
from qbrecon.domain.entities import ImportFileType, ImportStatus, MappingType, TransactionType
from qbrecon.domain.errors import AuthorizationError, MappingIncompleteError, NotFoundError, ValidationError
from qbrecon.domain.quickbooks_import import ImportDialect, QuickBooksImportService, signed_amount


def _ignore_equity():
    pending = PendingMappings()
    pending.set("3000 Opening Balance Equity", MappingDecision(MappingType.IGNORED))
    return pending


@pytest.fixture
def mapped_user(sample_account, sample_card, sample_categories):
    """Accounts and categories covering the fixture exports."""
    return sample_account, sample_card, sample_categories


@pytest.fixture
def ledger_import(import_service, mapped_user, general_ledger_csv):
    """The General Ledger fixture imported with the equity section ignored."""
    parsed = import_service.ingest(general_ledger_csv, ImportDialect.GENERAL_LEDGER, "ledger.csv")
    return import_service.persist(parsed, "ledger.csv", ImportDialect.GENERAL_LEDGER, pending=_ignore_equity())


def test_signed_amount():
    """Expenses are negative, income positive, transfers unchanged."""
    assert signed_amount(Decimal("25"), TransactionType.EXPENSE) == Decimal("-25")
    assert signed_amount(Decimal("-25"), TransactionType.INCOME) == Decimal("25")
    assert signed_amount(Decimal("-25"), TransactionType.TRANSFER) == Decimal("-25")


class TestGeneralLedgerImport:
    """Tests for importing a General Ledger export."""

    def test_counts(self, ledger_import):
        """Ignored sections are skipped; the rest are linked and categorized."""
        assert ledger_import.inserted_count == 3
        assert ledger_import.skipped_ignored == 1
        assert ledger_import.skipped_duplicates == 0
        assert ledger_import.linked_count == 3
        assert ledger_import.categorized_count == 3
        assert ledger_import.errors == []

    def test_rows_stored(self, ledger_import, transaction_service, mapped_user):
        """Stored rows carry the account, category and signed amount."""
        checking, card, categories = mapped_user
        rows = {t.description: t for t in transaction_service.list_transactions()}

        payment = rows["PennyMac - January payment"]
        assert payment.amount == Decimal("-1500.00")
        assert payment.account_id == checking.id
        assert payment.category_id == categories["Mortgage"]
        assert payment.import_batch_id == ledger_import.batch_id

        groceries = rows["Grocer - Weekly shop"]
        assert groceries.amount == Decimal("-120.50")
        assert groceries.account_id == card.id
        assert groceries.category_id == categories["Groceries"]

        assert rows["Acme Corp - Paycheck"].category_id == categories["Salary"]

    def test_mapping_saved(self, ledger_import, mapping_service):
        """The pending decision is written before the rows."""
        assert mapping_service.list_ignored() == ["3000 Opening Balance Equity"]

    def test_batch_completed(self, ledger_import, import_service):
        """The batch records its status, counts and parse metadata."""
        batch = import_service.list_import_batches()[0]

        assert batch.id == ledger_import.batch_id
        assert batch.status == ImportStatus.COMPLETED
        assert batch.file_type == ImportFileType.GENERAL_LEDGER
        assert batch.record_count == 3
        assert batch.metadata["row_count"] == 15
        assert batch.metadata["ignored_skipped"] == 1
        assert batch.metadata["duplicates_skipped"] == 0

    def test_reimport_skips_duplicates(self, ledger_import, import_service, general_ledger_csv):
        """Importing the same file again stores nothing new."""
        parsed = import_service.ingest(general_ledger_csv, "general_ledger", "ledger.csv")
        again = import_service.persist(parsed, "ledger.csv", "general_ledger")

        assert again.inserted_count == 0
        assert again.skipped_duplicates == 3
        assert again.skipped_ignored == 1

    def test_batch_stats(self, ledger_import, import_service):
        stats = import_service.get_import_batch_stats(ledger_import.batch_id)

        assert stats.transaction_count == 3
        assert stats.linked_count == 3
        assert stats.categorized_count == 3
        assert stats.total_income == Decimal("3000.00")
        assert stats.total_expenses == Decimal("1620.50")
        assert stats.first_date == date(2026, 1, 2)
        assert stats.last_date == date(2026, 1, 15)


def test_undecided_name_blocks_import(import_service, mapped_user, general_ledger_csv):
    """Nothing is stored while a discovered name is unmapped."""
    parsed = import_service.ingest(general_ledger_csv, ImportDialect.GENERAL_LEDGER, "ledger.csv")

    classification = import_service.classify(parsed)
    assert classification.unmapped_names == ["3000 Opening Balance Equity"]
    assert classification.unmapped[0].suggestion == MappingType.IGNORED

    with pytest.raises(MappingIncompleteError) as excinfo:
        import_service.persist(parsed, "ledger.csv", ImportDialect.GENERAL_LEDGER)

    assert excinfo.value.missing == ["3000 Opening Balance Equity"]
    assert import_service.list_import_batches() == []


def test_transaction_detail_import(import_service, transaction_service, mapped_user, transaction_detail_csv):
    """Detail rows link through the last account column and keep warnings."""
    checking, card, _ = mapped_user
    parsed = import_service.ingest(transaction_detail_csv, ImportDialect.TRANSACTION_DETAIL, "detail.csv")

    result = import_service.persist(parsed, "detail.csv", ImportDialect.TRANSACTION_DETAIL)

    assert result.inserted_count == 3
    assert result.linked_count == 3
    assert len(result.errors) == 2
    refund = next(t for t in transaction_service.list_transactions() if t.qb_transaction_type == "Credit Card Credit")
    assert refund.account_id == card.id
    assert refund.amount == Decimal("-25.00")



def test_transaction_detail_needs_no_mapping(import_service, transaction_service, category_service):
    """Unmapped detail account names are imported and categorized where an alias exists."""
    repairs = category_service.create_category(
        "Repairs", TransactionType.EXPENSE, qb_category_names=["6300 Repairs"]
    )
    raw = (
        b"Date,Transaction Type,Name,Amount,Account full name\n"
        b"02/01/2026,Check,Hardware Store,-45.00,6300 Repairs\n"
        b"02/02/2026,Check,Gas Station,-30.00,6400 Fuel\n"
    )
    parsed = import_service.ingest(raw, ImportDialect.TRANSACTION_DETAIL, "detail.csv")

    assert import_service.classify(parsed).unmapped_names == ["6400 Fuel"]
    result = import_service.persist(parsed, "detail.csv", ImportDialect.TRANSACTION_DETAIL)

    assert result.inserted_count == 2
    assert result.linked_count == 0
    assert result.categorized_count == 1
    rows = {t.qb_account: t for t in transaction_service.list_transactions()}
    assert rows["6300 Repairs"].category_id == repairs
    assert rows["6400 Fuel"].category_id is None

def test_remembered_label_type_wins(import_service, mapping_service, transaction_service, mapped_user, transaction_detail_csv):
    """A remembered type for a QuickBooks label overrides the parser."""
    mapping_service.set_transaction_type_mapping("Credit Card Credit", TransactionType.INCOME)
    parsed = import_service.ingest(transaction_detail_csv, "transaction_detail", "detail.csv")

    import_service.persist(parsed, "detail.csv", "transaction_detail")

    refund = next(t for t in transaction_service.list_transactions() if t.qb_transaction_type == "Credit Card Credit")
    assert refund.transaction_type == TransactionType.INCOME
    assert refund.amount == Decimal("25.00")


def test_explicit_account_links_everything(import_service, transaction_service, mapped_user, transaction_detail_csv):
    """An explicit account overrides alias resolution for every row."""
    checking, _, _ = mapped_user
    parsed = import_service.ingest(transaction_detail_csv, "transaction_detail", "detail.csv")

    import_service.persist(parsed, "detail.csv", "transaction_detail", account_id=checking.id)

    assert {t.account_id for t in transaction_service.list_transactions()} == {checking.id}


def test_unparseable_file_rejected(import_service):
    """A file without any usable rows fails before anything is stored."""
    parsed = import_service.ingest(b"foo,bar\n1,2\n", "general_ledger", "bad.csv")

    with pytest.raises(ValidationError, match="Failed to parse file"):
        import_service.persist(parsed, "bad.csv", "general_ledger")
    assert import_service.list_import_batches() == []


def test_unknown_dialect(import_service):
    with pytest.raises(ValidationError):
        import_service.ingest(b"", "balance_sheet", "x.csv")


class TestBatchManagement:
    """Tests for listing and deleting import batches."""

    def test_delete_batch_removes_transactions(self, ledger_import, import_service, transaction_service):
        filename, deleted = import_service.delete_import_batch(ledger_import.batch_id)

        assert filename == "ledger.csv"
        assert deleted == 3
        assert transaction_service.list_transactions() == []
        assert import_service.list_import_batches() == []

    def test_other_user_cannot_touch_batch(self, temp_db, ledger_import):
        other = QuickBooksImportService(temp_db, "bob")

        with pytest.raises(AuthorizationError):
            other.delete_import_batch(ledger_import.batch_id)
        with pytest.raises(AuthorizationError):
            other.get_import_batch_stats(ledger_import.batch_id)
        assert other.list_import_batches() == []

    def test_missing_batch(self, import_service):
        with pytest.raises(NotFoundError):
            import_service.delete_import_batch(42)

    def test_clear_all(self, ledger_import, import_service, holdings_csv):
        import_service.import_investments(holdings_csv, "holdings.csv")

        batches, deleted = import_service.clear_all_imports()

        assert batches == 2
        assert deleted == 3


class TestInvestmentImport:
    """Tests for holdings snapshots."""

    def test_import(self, temp_db, import_service, holdings_csv):
        result = import_service.import_investments(holdings_csv, "holdings.csv", as_of=date(2026, 1, 31))

        assert result.inserted_count == 2
        assert result.skipped_count == 2
        assert result.total_value == Decimal("3950.00")
        batch = import_service.list_import_batches()[0]
        assert batch.file_type == ImportFileType.INVESTMENTS
        assert batch.metadata["total_value"] == "3950.00"
        assert len(temp_db.list_investments("alice")) == 2

    def test_same_date_replaces_snapshot(self, temp_db, import_service, holdings_csv):
        """Re-importing a snapshot date replaces the earlier holdings."""
        import_service.import_investments(holdings_csv, "holdings.csv", as_of=date(2026, 1, 31))
        import_service.import_investments(holdings_csv, "holdings.csv", as_of=date(2026, 1, 31))

        assert len(temp_db.list_investments("alice")) == 2

    def test_unknown_account(self, import_service, holdings_csv):
        with pytest.raises(NotFoundError):
            import_service.import_investments(holdings_csv, "holdings.csv", account_id=77)
