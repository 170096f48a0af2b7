"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic: enum columns are stored as
plain strings and alias lists as JSON arrays.
"""

from qbrecon.domain import entities as domain
from qbrecon.database.models import (
    Account as ORMAccount,
    AccountBalance as ORMAccountBalance,
    Category as ORMCategory,
    ImportBatch as ORMImportBatch,
    Investment as ORMInvestment,
    QBAccountClassification as ORMQBAccountClassification,
    Transaction as ORMTransaction,
    TransactionTypeMapping as ORMTransactionTypeMapping,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        user_id=orm_account.user_id,
        name=orm_account.name,
        account_type=domain.AccountType(orm_account.account_type),
        net_worth_bucket=domain.NetWorthBucket(orm_account.net_worth_bucket),
        is_active=orm_account.is_active,
        qb_account_names=tuple(orm_account.qb_account_names or ()),
        created_at=orm_account.created_at,
        institution=orm_account.institution,
        interest_rate=orm_account.interest_rate,
        minimum_payment=orm_account.minimum_payment,
        target_payoff_date=orm_account.target_payoff_date,
        payoff_priority=orm_account.payoff_priority,
        market_value=orm_account.market_value,
        market_value_updated_at=orm_account.market_value_updated_at,
    )


def account_balance_to_domain(orm_balance: ORMAccountBalance) -> domain.AccountBalance:
    """Convert SQLAlchemy AccountBalance model to domain AccountBalance entity."""
    return domain.AccountBalance(
        id=orm_balance.id,
        account_id=orm_balance.account_id,
        balance_date=orm_balance.balance_date,
        balance=orm_balance.balance,
        source=domain.BalanceSource(orm_balance.source),
        created_at=orm_balance.created_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        user_id=orm_category.user_id,
        name=orm_category.name,
        category_type=domain.TransactionType(orm_category.category_type),
        parent_id=orm_category.parent_id,
        color=orm_category.color,
        qb_category_names=tuple(orm_category.qb_category_names or ()),
        created_at=orm_category.created_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        user_id=orm_transaction.user_id,
        transaction_date=orm_transaction.transaction_date,
        amount=orm_transaction.amount,
        description=orm_transaction.description,
        transaction_type=domain.TransactionType(orm_transaction.transaction_type),
        account_id=orm_transaction.account_id,
        category_id=orm_transaction.category_id,
        import_batch_id=orm_transaction.import_batch_id,
        created_at=orm_transaction.created_at,
        memo=orm_transaction.memo,
        qb_transaction_type=orm_transaction.qb_transaction_type,
        qb_num=orm_transaction.qb_num,
        qb_name=orm_transaction.qb_name,
        qb_class=orm_transaction.qb_class,
        qb_split=orm_transaction.qb_split,
        qb_account=orm_transaction.qb_account,
        split_account=orm_transaction.split_account,
        linked_via_counter=bool(orm_transaction.linked_via_counter),
    )


def draft_to_orm(user_id: str, draft: domain.TransactionDraft) -> ORMTransaction:
    """Build an unsaved SQLAlchemy Transaction from a domain draft."""
    return ORMTransaction(
        user_id=user_id,
        transaction_date=draft.transaction_date,
        amount=draft.amount,
        description=draft.description,
        transaction_type=domain.TransactionType(draft.transaction_type).value,
        account_id=draft.account_id,
        category_id=draft.category_id,
        import_batch_id=draft.import_batch_id,
        memo=draft.memo,
        qb_transaction_type=draft.qb_transaction_type,
        qb_num=draft.qb_num,
        qb_name=draft.qb_name,
        qb_class=draft.qb_class,
        qb_split=draft.qb_split,
        qb_account=draft.qb_account,
        split_account=draft.split_account,
    )


def import_batch_to_domain(orm_batch: ORMImportBatch) -> domain.ImportBatch:
    """Convert SQLAlchemy ImportBatch model to domain ImportBatch entity."""
    return domain.ImportBatch(
        id=orm_batch.id,
        user_id=orm_batch.user_id,
        filename=orm_batch.filename,
        file_type=domain.ImportFileType(orm_batch.file_type),
        status=domain.ImportStatus(orm_batch.status),
        record_count=orm_batch.record_count,
        created_at=orm_batch.created_at,
        error_message=orm_batch.error_message,
        metadata=dict(orm_batch.batch_metadata or {}),
    )


def investment_to_domain(orm_investment: ORMInvestment) -> domain.Investment:
    """Convert SQLAlchemy Investment model to domain Investment entity."""
    return domain.Investment(
        id=orm_investment.id,
        user_id=orm_investment.user_id,
        symbol=orm_investment.symbol,
        quantity=orm_investment.quantity,
        as_of_date=orm_investment.as_of_date,
        account_id=orm_investment.account_id,
        import_batch_id=orm_investment.import_batch_id,
        name=orm_investment.name,
        cost_basis=orm_investment.cost_basis,
        current_price=orm_investment.current_price,
        current_value=orm_investment.current_value,
        asset_class=orm_investment.asset_class,
        sector=orm_investment.sector,
    )


def transaction_type_mapping_to_domain(
    orm_mapping: ORMTransactionTypeMapping,
) -> domain.TransactionTypeMapping:
    """Convert SQLAlchemy TransactionTypeMapping model to its domain entity."""
    return domain.TransactionTypeMapping(
        user_id=orm_mapping.user_id,
        qb_transaction_type=orm_mapping.qb_transaction_type,
        mapped_type=domain.TransactionType(orm_mapping.mapped_type),
    )


def classification_to_domain(
    orm_classification: ORMQBAccountClassification,
) -> domain.QBAccountClassification:
    """Convert SQLAlchemy QBAccountClassification model to its domain entity."""
    return domain.QBAccountClassification(
        user_id=orm_classification.user_id,
        qb_account_name=orm_classification.qb_account_name,
        classification=domain.TransactionType(orm_classification.classification),
    )
