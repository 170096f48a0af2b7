"""QuickBooks import pipeline.

ingest parses raw bytes, classify reports which discovered names still need
a decision, persist resolves pending decisions and stores the rows in a new
import batch. Each store call commits on its own; a failed import is undone
by deleting its batch.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from qbrecon.database.base import Database
from qbrecon.domain.account import AccountService, qb_key
from qbrecon.domain.categorization import find_category_for_transaction
from qbrecon.domain.classification import (
    ClassificationResult,
    ClassificationService,
    PendingMappings,
)
from qbrecon.domain.entities import (
    ImportBatch,
    ImportFileType,
    ImportStatus,
    TransactionDraft,
    TransactionType,
)
from qbrecon.domain.errors import (
    AuthorizationError,
    MappingIncompleteError,
    NotFoundError,
    ValidationError,
    import_batch_not_found,
    require_user,
)
from qbrecon.domain.qb_mapping import MappingContext, QBMappingService
from qbrecon.parsers import parse_general_ledger, parse_holdings, parse_transaction_detail
from qbrecon.parsers.base import ParsedTransaction, ParseResult

logger = logging.getLogger(__name__)

CHUNK_SIZE = 100


class ImportDialect(str, Enum):
    """Layout of a QuickBooks export."""

    TRANSACTION_DETAIL = "transaction_detail"
    GENERAL_LEDGER = "general_ledger"

    @property
    def file_type(self) -> ImportFileType:
        if self == ImportDialect.GENERAL_LEDGER:
            return ImportFileType.GENERAL_LEDGER
        return ImportFileType.TRANSACTION_DETAIL


_PARSERS = {
    ImportDialect.TRANSACTION_DETAIL: parse_transaction_detail,
    ImportDialect.GENERAL_LEDGER: parse_general_ledger,
}


@dataclass
class ImportResult:
    """Outcome of persisting one parsed file."""

    batch_id: int
    inserted_count: int = 0
    skipped_ignored: int = 0
    skipped_duplicates: int = 0
    linked_count: int = 0
    categorized_count: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class InvestmentImportResult:
    """Outcome of importing a holdings file."""

    batch_id: int
    inserted_count: int
    skipped_count: int
    total_value: Decimal
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BatchStats:
    """Summary of the transactions still attached to a batch."""

    batch: ImportBatch
    transaction_count: int
    linked_count: int
    categorized_count: int
    total_income: Decimal
    total_expenses: Decimal
    first_date: Optional[date]
    last_date: Optional[date]


def _existing_key(transaction_date: date, amount: Decimal, description: Optional[str], qb_account: Optional[str]):
    return (transaction_date, abs(amount), (description or "").strip().lower(), qb_key(qb_account))


def signed_amount(amount: Decimal, transaction_type: TransactionType) -> Decimal:
    """Expenses are stored negative, income positive; transfers keep their sign."""
    if transaction_type == TransactionType.EXPENSE:
        return -abs(amount)
    if transaction_type == TransactionType.INCOME:
        return abs(amount)
    return amount


def build_draft(
    txn: ParsedTransaction,
    ctx: MappingContext,
    categories,
    batch_id: Optional[int] = None,
    account_id: Optional[int] = None,
) -> TransactionDraft:
    """Turn a parsed row into a draft ready for insertion.

    The remembered type for the QuickBooks label wins over the parser's
    guess. The account comes from the caller, else from the primary alias.
    """
    transaction_type = ctx.remembered_type(txn.qb_transaction_type) or txn.transaction_type
    if account_id is None:
        account = ctx.account_for(txn.qb_account)
        account_id = account.id if account is not None else None

    return TransactionDraft(
        transaction_date=txn.transaction_date,
        amount=signed_amount(txn.amount, transaction_type),
        description=txn.description,
        transaction_type=transaction_type,
        account_id=account_id,
        category_id=find_category_for_transaction(
            txn.split_account or txn.qb_account, txn.qb_transaction_type, categories
        ),
        import_batch_id=batch_id,
        memo=txn.memo,
        qb_transaction_type=txn.qb_transaction_type,
        qb_num=txn.qb_num,
        qb_name=txn.qb_name,
        qb_class=txn.qb_class,
        qb_split=txn.qb_split,
        qb_account=txn.qb_account,
        split_account=txn.split_account,
    )


class QuickBooksImportService:
    """Runs the import pipeline for one user."""

    def __init__(self, db: Database, user_id: Optional[str]):
        self.db = db
        self.user_id = require_user(user_id)
        self.mapping_service = QBMappingService(db, self.user_id)
        self.classification_service = ClassificationService(db, self.user_id)
        self.account_service = AccountService(db, self.user_id)

    def ingest(self, raw: bytes, dialect: ImportDialect | str, filename: str) -> ParseResult:
        """Parse an export without touching the store."""
        dialect = _dialect(dialect)
        result = _PARSERS[dialect](raw, filename)
        logger.info(
            "Parsed %s as %s: %d transactions, %d warnings",
            filename,
            dialect.value,
            len(result.transactions),
            len(result.errors),
        )
        return result

    def classify(self, parse_result: ParseResult) -> ClassificationResult:
        """Classify the discovered names of a parse against current mappings."""
        discovered = parse_result.discovered_accounts or parse_result.referenced_names
        return self.classification_service.classify(discovered)

    def persist(
        self,
        parse_result: ParseResult,
        filename: str,
        dialect: ImportDialect | str,
        pending: Optional[PendingMappings] = None,
        account_id: Optional[int] = None,
    ) -> ImportResult:
        """Store parsed transactions in a new import batch.

        Args:
            parse_result: Output of ingest
            filename: Source file name recorded on the batch
            dialect: Export layout
            pending: Decisions for unmapped names, saved before anything else
            account_id: Link every row to this account instead of resolving aliases

        Returns:
            ImportResult with the batch id and counts

        Raises:
            MappingIncompleteError: If a discovered name is still undecided
            ValidationError: If the file produced no transactions at all
            SQLAlchemyError: If inserting fails; the batch is marked failed
        """
        dialect = _dialect(dialect)
        if parse_result.errors and not parse_result.transactions:
            raise ValidationError(f"Failed to parse file: {parse_result.errors[0]}")
        if account_id is not None:
            self.account_service.require_account(account_id)

        names = parse_result.discovered_names
        if pending is not None and len(pending):
            self.classification_service.resolve_pending(names, pending)
        else:
            classification = self.classification_service.classify(names)
            if not classification.is_complete:
                raise MappingIncompleteError(classification.unmapped_names)

        ctx = self.mapping_service.load_context()
        categories = self.db.list_categories(self.user_id)
        existing = {
            _existing_key(t.transaction_date, t.amount, t.description, t.qb_account)
            for t in self.db.list_transactions(self.user_id)
        }

        batch_id = self.db.create_import_batch(
            self.user_id,
            filename,
            dialect.file_type,
            status=ImportStatus.PROCESSING,
            metadata={
                "row_count": parse_result.row_count,
                "skipped_count": parse_result.skipped_count,
                "errors": list(parse_result.errors),
            },
        )
        result = ImportResult(batch_id=batch_id, errors=list(parse_result.errors))

        drafts: list[TransactionDraft] = []
        for txn in parse_result.transactions:
            if ctx.is_ignored(txn.qb_account):
                result.skipped_ignored += 1
                continue
            key = _existing_key(txn.transaction_date, txn.amount, txn.description, txn.qb_account)
            if key in existing:
                result.skipped_duplicates += 1
                continue
            draft = build_draft(txn, ctx, categories, batch_id=batch_id, account_id=account_id)
            drafts.append(draft)
            result.linked_count += draft.account_id is not None
            result.categorized_count += draft.category_id is not None

        try:
            for start in range(0, len(drafts), CHUNK_SIZE):
                self.db.create_transactions(self.user_id, drafts[start : start + CHUNK_SIZE])
                result.inserted_count += len(drafts[start : start + CHUNK_SIZE])
        except SQLAlchemyError as e:
            logger.error("Import of %s failed after %d rows: %s", filename, result.inserted_count, e)
            self.db.update_import_batch(
                batch_id,
                status=ImportStatus.FAILED,
                record_count=result.inserted_count,
                error_message=str(e),
            )
            raise

        self.db.update_import_batch(
            batch_id,
            status=ImportStatus.COMPLETED,
            record_count=result.inserted_count,
            metadata={
                "duplicates_skipped": result.skipped_duplicates,
                "ignored_skipped": result.skipped_ignored,
            },
        )
        logger.info(
            "Imported %d transactions from %s into batch %d (%d ignored, %d duplicates)",
            result.inserted_count,
            filename,
            batch_id,
            result.skipped_ignored,
            result.skipped_duplicates,
        )
        return result

    def import_investments(
        self,
        raw: bytes,
        filename: str,
        account_id: Optional[int] = None,
        as_of: Optional[date] = None,
    ) -> InvestmentImportResult:
        """Store a holdings snapshot.

        When as_of is given the user's existing snapshot for that date is
        replaced.
        """
        if account_id is not None:
            self.account_service.require_account(account_id)
        parsed = parse_holdings(raw, as_of=as_of)
        if parsed.errors and not parsed.investments:
            raise ValidationError(f"Failed to parse file: {parsed.errors[0]}")

        batch_id = self.db.create_import_batch(
            self.user_id,
            filename,
            ImportFileType.INVESTMENTS,
            status=ImportStatus.PROCESSING,
            metadata={
                "row_count": parsed.row_count,
                "skipped_count": parsed.skipped_count,
                "total_value": str(parsed.total_value),
                "errors": list(parsed.errors),
            },
        )
        if as_of is not None:
            replaced = self.db.delete_investments(self.user_id, as_of)
            logger.debug("Replaced %d holdings dated %s", replaced, as_of)

        try:
            for inv in parsed.investments:
                self.db.create_investment(
                    self.user_id,
                    symbol=inv.symbol,
                    quantity=inv.quantity,
                    as_of_date=inv.as_of_date,
                    account_id=account_id,
                    import_batch_id=batch_id,
                    name=inv.name,
                    cost_basis=inv.cost_basis,
                    current_price=inv.current_price,
                    current_value=inv.current_value,
                    asset_class=inv.asset_class,
                    sector=inv.sector,
                )
        except SQLAlchemyError as e:
            logger.error("Holdings import of %s failed: %s", filename, e)
            self.db.update_import_batch(batch_id, status=ImportStatus.FAILED, error_message=str(e))
            raise

        self.db.update_import_batch(
            batch_id, status=ImportStatus.COMPLETED, record_count=len(parsed.investments)
        )
        return InvestmentImportResult(
            batch_id=batch_id,
            inserted_count=len(parsed.investments),
            skipped_count=parsed.skipped_count,
            total_value=parsed.total_value,
            errors=list(parsed.errors),
        )

    def list_import_batches(self) -> list[ImportBatch]:
        return self.db.list_import_batches(self.user_id)

    def _owned_batch(self, batch_id: int) -> ImportBatch:
        batch = self.db.get_import_batch(batch_id)
        if batch is None:
            raise NotFoundError(import_batch_not_found(batch_id))
        if batch.user_id != self.user_id:
            raise AuthorizationError(f"Import batch {batch_id} belongs to another user")
        return batch

    def get_import_batch_stats(self, batch_id: int) -> BatchStats:
        """Counts and totals for the transactions of a batch."""
        batch = self._owned_batch(batch_id)
        transactions = self.db.list_transactions(self.user_id, import_batch_id=batch_id)
        dates = [t.transaction_date for t in transactions]
        return BatchStats(
            batch=batch,
            transaction_count=len(transactions),
            linked_count=sum(1 for t in transactions if t.account_id is not None),
            categorized_count=sum(1 for t in transactions if t.category_id is not None),
            total_income=sum(
                (t.amount for t in transactions if t.transaction_type == TransactionType.INCOME),
                Decimal("0"),
            ),
            total_expenses=sum(
                (abs(t.amount) for t in transactions if t.transaction_type == TransactionType.EXPENSE),
                Decimal("0"),
            ),
            first_date=min(dates) if dates else None,
            last_date=max(dates) if dates else None,
        )

    def delete_import_batch(self, batch_id: int) -> tuple[str, int]:
        """Delete a batch and every transaction it created.

        Returns:
            (filename, number of transactions deleted)

        Raises:
            NotFoundError: If the batch doesn't exist
            AuthorizationError: If the batch belongs to another user
        """
        batch = self._owned_batch(batch_id)
        deleted = self.db.delete_import_batch(batch_id)
        logger.info("Deleted batch %d (%s) with %d transactions", batch_id, batch.filename, deleted)
        return batch.filename, deleted

    def clear_all_imports(self) -> tuple[int, int]:
        """Delete every batch of the user.

        Returns:
            (batches deleted, transactions deleted)
        """
        batches = self.list_import_batches()
        deleted = sum(self.db.delete_import_batch(batch.id) for batch in batches)
        return len(batches), deleted


def _dialect(value: ImportDialect | str) -> ImportDialect:
    try:
        return ImportDialect(value)
    except ValueError:
        raise ValidationError(f"Unknown QuickBooks export type '{value}'") from None
