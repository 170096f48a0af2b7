"""SQLAlchemy models for qbrecon database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _now() -> datetime:
    return datetime.now(UTC)


class Account(Base):
    """Asset or liability account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    net_worth_bucket = Column(String, nullable=False)
    institution = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    qb_account_names = Column(JSON, default=list, nullable=False)
    interest_rate = Column(Numeric(7, 3), nullable=True)
    minimum_payment = Column(Numeric(12, 2), nullable=True)
    target_payoff_date = Column(Date, nullable=True)
    payoff_priority = Column(Integer, nullable=True)
    market_value = Column(Numeric(14, 2), nullable=True)
    market_value_updated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_account_user_name"),)

    # Relationships; deleting an account detaches its transactions (FK set to NULL)
    balances = relationship("AccountBalance", back_populates="account", cascade="all")
    transactions = relationship("Transaction", back_populates="account")


class AccountBalance(Base):
    """Balance snapshot for an account on a date."""

    __tablename__ = "account_balances"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    balance_date = Column(Date, nullable=False)
    balance = Column(Numeric(14, 2), nullable=False)
    source = Column(String, nullable=False, default="manual")
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("account_id", "balance_date", name="uq_balance_account_date"),)

    account = relationship("Account", back_populates="balances")


class Category(Base):
    """Category model with a single-level parent."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    category_type = Column(String, nullable=False)
    parent_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    color = Column(String, nullable=True)
    qb_category_names = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_category_user_name"),)

    parent = relationship("Category", remote_side=[id], backref="children")
    transactions = relationship("Transaction", back_populates="category")


class ImportBatch(Base):
    """One uploaded file."""

    __tablename__ = "import_batches"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    filename = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending")
    record_count = Column(Integer, nullable=False, default=0)
    error_message = Column(String, nullable=True)
    # "metadata" is reserved on declarative classes
    batch_metadata = Column("metadata", JSON, default=dict, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    transactions = relationship("Transaction", back_populates="import_batch", cascade="all")
    investments = relationship("Investment", back_populates="import_batch", cascade="all")


class Transaction(Base):
    """Transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    import_batch_id = Column(Integer, ForeignKey("import_batches.id", ondelete="CASCADE"), nullable=True)
    transaction_date = Column(Date, nullable=False, index=True)
    description = Column(String, nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    transaction_type = Column(String, nullable=False)
    memo = Column(String, nullable=True)
    qb_transaction_type = Column(String, nullable=True)
    qb_num = Column(String, nullable=True)
    qb_name = Column(String, nullable=True)
    qb_class = Column(String, nullable=True)
    qb_split = Column(String, nullable=True)
    qb_account = Column(String, nullable=True)
    split_account = Column(String, nullable=True)
    # Amount is stored negated because the link went through split_account
    linked_via_counter = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    account = relationship("Account", back_populates="transactions")
    category = relationship("Category", back_populates="transactions")
    import_batch = relationship("ImportBatch", back_populates="transactions")


class Investment(Base):
    """Brokerage holding snapshot row."""

    __tablename__ = "investments"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True)
    import_batch_id = Column(Integer, ForeignKey("import_batches.id", ondelete="CASCADE"), nullable=True)
    symbol = Column(String, nullable=False)
    name = Column(String, nullable=True)
    quantity = Column(Numeric(18, 6), nullable=False)
    cost_basis = Column(Numeric(14, 2), nullable=True)
    current_price = Column(Numeric(18, 4), nullable=True)
    current_value = Column(Numeric(14, 2), nullable=True)
    asset_class = Column(String, nullable=True)
    sector = Column(String, nullable=True)
    as_of_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    import_batch = relationship("ImportBatch", back_populates="investments")


class QBIgnoredAccount(Base):
    """QuickBooks account name the user chose to ignore."""

    __tablename__ = "qb_ignored_accounts"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False)
    qb_account_name = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "qb_account_name", name="uq_ignored_user_name"),)


class TransactionTypeMapping(Base):
    """Remembered income/expense decision for a QuickBooks transaction type label."""

    __tablename__ = "transaction_type_mappings"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False)
    qb_transaction_type = Column(String, nullable=False)
    mapped_type = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "qb_transaction_type", name="uq_type_mapping_user_label"),)


class QBAccountClassification(Base):
    """Remembered income/expense decision for a QuickBooks account name."""

    __tablename__ = "qb_account_classifications"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False)
    qb_account_name = Column(String, nullable=False)
    classification = Column(String, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "qb_account_name", name="uq_classification_user_name"),)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
