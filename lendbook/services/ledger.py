"""
Ledger Commit Service

Every transaction enters the ledger through commit_transaction, which runs
the balance check, balance mutation, loan lifecycle and report refresh in a
single database transaction. Either all of their effects are committed or
none are.
"""
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime
from typing import Optional, Tuple
from uuid import uuid4

from lendbook.db.core import TransactionDB, TransactionType, LoanAction, UserDB, NotFoundError
from lendbook.models.transaction import TransactionCreate
from lendbook.exceptions import (
    LedgerError,
    DuplicateReferenceError,
    InvalidTransactionError,
    ConcurrentMutationConflictError,
    ReportAggregationError,
)
from lendbook.services.balances import lock_transaction_accounts, validate_transaction_balance, apply_balance_mutation
from lendbook.services.loan_lifecycle import prepare_loan_action, apply_loan_lifecycle
from lendbook.services.reports import refresh_reports_for_period, rebuild_reports
from lendbook.logging_config import get_logger

logger = get_logger(__name__)

# How the reference constraint is named in PostgreSQL and SQLite errors
DUPLICATE_REFERENCE_MARKERS = ("uq_user_transaction_reference", "transactions.user_id, transactions.reference")


def _reference_exists(db: Session, user_id: int, reference: str) -> bool:
    return db.query(TransactionDB.db_id).filter(
        TransactionDB.user_id == user_id,
        TransactionDB.reference == reference
    ).first() is not None


def _is_duplicate_reference(error: IntegrityError) -> bool:
    message = str(error.orig)
    return any(marker in message for marker in DUPLICATE_REFERENCE_MARKERS)


def _insert_transaction(db: Session, user_id: int, transaction_data: TransactionCreate) -> TransactionDB:
    """Validate, insert and apply one transaction. Flushes but never commits."""

    if _reference_exists(db, user_id, transaction_data.reference):
        raise DuplicateReferenceError(f"Reference '{transaction_data.reference}' has already been used")

    accounts = lock_transaction_accounts(
        db, user_id, transaction_data.from_account_id, transaction_data.to_account_id
    )
    source = accounts.get(transaction_data.from_account_id)
    destination = accounts.get(transaction_data.to_account_id)

    loan_action = LoanAction(transaction_data.loan_action.value)

    # Nothing has been written yet; a rejection here leaves the ledger untouched
    validate_transaction_balance(source, transaction_data.amount)
    loan = prepare_loan_action(
        db, user_id, loan_action, source, transaction_data.description, transaction_data.loan_id
    )

    db_transaction = TransactionDB(
        id=uuid4(),
        user_id=user_id,
        from_account_id=transaction_data.from_account_id,
        to_account_id=transaction_data.to_account_id,
        loan_id=transaction_data.loan_id,
        transaction_date=transaction_data.transaction_date,
        transaction_type=TransactionType(transaction_data.transaction_type.value),
        category=transaction_data.category,
        amount=transaction_data.amount,
        description=transaction_data.description,
        reference=transaction_data.reference,
        loan_action=loan_action,
        created_at=datetime.utcnow()
    )
    db.add(db_transaction)

    apply_balance_mutation(db_transaction, source, destination)
    created_loan = apply_loan_lifecycle(db_transaction, loan)

    db.flush()

    if loan_action == LoanAction.DISBURSEMENT:
        logger.info(
            f"Loan {created_loan.id} created for '{created_loan.borrower_name}': "
            f"principal {created_loan.principal_amount}, remaining {created_loan.remaining_balance}"
        )

    try:
        refresh_reports_for_period(db, user_id, db_transaction.transaction_date)
        db.flush()
    except SQLAlchemyError as e:
        raise ReportAggregationError(f"Failed to refresh reports: {str(e)}") from e

    return db_transaction


def commit_transaction(db: Session, user_id: int, transaction_data: TransactionCreate) -> TransactionDB:
    """
    Commit one transaction to the ledger.

    Raises:
        NotFoundError: the user does not exist
        InsufficientFundsError: the source account cannot cover the amount
        ReferenceIntegrityError: an account or loan does not resolve for this user
        InvalidTransactionError: the transaction is not allowed in the current state
        DuplicateReferenceError: the reference was already used
        ConcurrentMutationConflictError: another commit changed a referenced account first
        ReportAggregationError: the report refresh failed
    """
    user = db.query(UserDB).filter(UserDB.db_id == user_id).first()
    if not user:
        raise NotFoundError(f"User with id {user_id} not found")

    try:
        db_transaction = _insert_transaction(db, user_id, transaction_data)
        db.commit()
    except LedgerError as e:
        db.rollback()
        logger.warning(f"Rejected transaction '{transaction_data.reference}': {e}")
        raise
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Concurrent update while committing '{transaction_data.reference}'")
        raise ConcurrentMutationConflictError(
            "A referenced account was modified by another transaction; retry the request"
        ) from e
    except IntegrityError as e:
        db.rollback()
        if _is_duplicate_reference(e):
            logger.warning(f"Reference '{transaction_data.reference}' was taken by a concurrent commit")
            raise DuplicateReferenceError(
                f"Reference '{transaction_data.reference}' has already been used"
            ) from e
        raise InvalidTransactionError("Transaction creation failed due to database constraint") from e
    except Exception:
        db.rollback()
        raise

    db.refresh(db_transaction)
    logger.info(
        f"Committed {db_transaction.transaction_type.value} '{db_transaction.reference}' "
        f"for {db_transaction.amount} (user {user_id})"
    )
    return db_transaction


def recalculate_reports(db: Session, user_id: Optional[int] = None) -> Tuple[int, int]:
    """Wipe and rebuild monthly/yearly reports for one user, or for all users when user_id is None."""
    try:
        counts = rebuild_reports(db, user_id)
        db.commit()
        return counts
    except SQLAlchemyError as e:
        db.rollback()
        raise ReportAggregationError(f"Report recalculation failed: {str(e)}") from e
