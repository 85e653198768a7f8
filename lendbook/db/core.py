import os
from typing import Optional
from sqlalchemy import create_engine, ForeignKey, Index, UniqueConstraint, Integer, String, Text, DECIMAL, DateTime, Date
from sqlalchemy.types import Enum
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Mapped, relationship, mapped_column
from datetime import datetime, date
from uuid import UUID
from decimal import Decimal
import enum


DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///lendbook.db")


class NotFoundError(Exception):
    pass


class Base(DeclarativeBase):
    pass


class AccountType(enum.Enum):
    CASH = "CASH"
    BANK = "BANK"
    MOBILE_MONEY = "MOBILE_MONEY"
    LOAN_RECEIVABLE = "LOAN_RECEIVABLE"


class AccountStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class TransactionType(enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    LOAN_PAYMENT = "LOAN_PAYMENT"
    LOAN_DISBURSEMENT = "LOAN_DISBURSEMENT"


class LoanAction(enum.Enum):
    PLAIN = "PLAIN"
    DISBURSEMENT = "DISBURSEMENT"
    PAYMENT = "PAYMENT"


class LoanStatus(enum.Enum):
    ACTIVE = "ACTIVE"
    PAID = "PAID"
    DEFAULTED = "DEFAULTED"


class UserDB(Base):
    __tablename__ = "users"

    __table_args__ = (
        # Unique constraints
        UniqueConstraint("email", name="uq_user_email"),
        UniqueConstraint("username", name="uq_user_username"),

        # Query indexes
        Index("idx_users_email", "email"),
    )

    # Core User Identification
    db_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[UUID] = mapped_column(unique=True, nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False)

    # Personal Information
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    accounts = relationship("AccountDB", back_populates="user")
    transactions = relationship("TransactionDB", back_populates="user")
    loans = relationship("LoanDB", back_populates="user")


class AccountDB(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        # Prevent duplicate account names per user
        UniqueConstraint("user_id", "account_name", name="uq_user_account_name"),
        Index("idx_accounts_user_status", "user_id", "account_status"),
    )

    # Core Account Identification
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"))

    # Account Details
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)  # "Cash Box", "FNB Cheque"
    account_type: Mapped[AccountType] = mapped_column(Enum(AccountType))
    bank_name: Mapped[Optional[str]] = mapped_column(String(255))
    account_reference: Mapped[Optional[str]] = mapped_column(String(255))
    account_status: Mapped[AccountStatus] = mapped_column(Enum(AccountStatus), default=AccountStatus.ACTIVE)

    # Balance Tracking
    current_balance: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), default=Decimal('0.00'))
    previous_balance: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), default=Decimal('0.00'))
    last_transaction_id: Mapped[Optional[UUID]] = mapped_column()  # Transaction.id of the last mutation, no FK
    balance_last_updated: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Bumped on every UPDATE; a flush against a stale row raises StaleDataError
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    user = relationship("UserDB", back_populates="accounts")
    outgoing_transactions = relationship("TransactionDB", foreign_keys="TransactionDB.from_account_id", back_populates="from_account")
    incoming_transactions = relationship("TransactionDB", foreign_keys="TransactionDB.to_account_id", back_populates="to_account")
    loans = relationship("LoanDB", back_populates="account")


class LoanDB(Base):
    __tablename__ = "loans"

    __table_args__ = (
        Index("idx_loans_user_status", "user_id", "status"),
        Index("idx_loans_account", "account_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"))
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"))  # Account the principal left from

    # Loan Terms
    borrower_name: Mapped[str] = mapped_column(String(255), nullable=False)
    principal_amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    interest_rate: Mapped[Decimal] = mapped_column(DECIMAL(5, 2), nullable=False)  # percent, 30.00 for 30%
    term_months: Mapped[int] = mapped_column(Integer, nullable=False)
    total_interest: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)

    # Repayment Tracking
    remaining_balance: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    total_paid: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), default=Decimal('0.00'))
    status: Mapped[LoanStatus] = mapped_column(Enum(LoanStatus), default=LoanStatus.ACTIVE)
    disbursement_date: Mapped[Optional[date]] = mapped_column(Date)

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("UserDB", back_populates="loans")
    account = relationship("AccountDB", back_populates="loans")
    transactions = relationship("TransactionDB", back_populates="loan")


class TransactionDB(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        # Performance indexes for common queries
        Index("idx_transactions_user_date", "user_id", "transaction_date"),
        Index("idx_transactions_date_type", "transaction_date", "transaction_type"),
        Index("idx_transactions_loan", "loan_id"),

        # Duplicate prevention
        UniqueConstraint("user_id", "reference", name="uq_user_transaction_reference"),
    )

    # Core Transaction Identification
    db_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[UUID] = mapped_column(unique=True, nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"))
    from_account_id: Mapped[Optional[int]] = mapped_column(ForeignKey("accounts.id"))
    to_account_id: Mapped[Optional[int]] = mapped_column(ForeignKey("accounts.id"))
    loan_id: Mapped[Optional[int]] = mapped_column(ForeignKey("loans.id"))

    # Basic Transaction Data
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(Enum(TransactionType))
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    reference: Mapped[str] = mapped_column(String(255), nullable=False)

    # Ledger Effects
    loan_action: Mapped[LoanAction] = mapped_column(Enum(LoanAction), default=LoanAction.PLAIN)
    balance_after_transaction: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(15, 2))

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("UserDB", back_populates="transactions")
    from_account = relationship("AccountDB", foreign_keys=[from_account_id], back_populates="outgoing_transactions")
    to_account = relationship("AccountDB", foreign_keys=[to_account_id], back_populates="incoming_transactions")
    loan = relationship("LoanDB", back_populates="transactions")

    @property
    def is_loan_disbursement(self) -> bool:
        return self.loan_action == LoanAction.DISBURSEMENT

    @property
    def is_loan_payment(self) -> bool:
        return self.loan_action == LoanAction.PAYMENT


class MonthlyReportDB(Base):
    __tablename__ = "monthly_reports"

    __table_args__ = (
        UniqueConstraint("user_id", "year", "month", name="uq_monthly_report"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"))
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)

    total_loans: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    total_payments: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    total_income: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    total_expenses: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class YearlyReportDB(Base):
    __tablename__ = "yearly_reports"

    __table_args__ = (
        UniqueConstraint("user_id", "year", name="uq_yearly_report"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"))
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    total_loans: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    total_payments: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    total_income: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    total_expenses: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


engine = create_engine(DATABASE_URL, echo=os.getenv("SQL_ECHO", "false").lower() == "true")
session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency to get the database session
def get_db():
    database = session_local()
    try:
        yield database
    finally:
        database.close()
