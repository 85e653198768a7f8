from sqlalchemy.orm import Session
from typing import Optional, List
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from lendbook.db.core import LoanDB, LoanStatus, TransactionDB, NotFoundError
from lendbook.models.loan import LoanStatusEnum, LoanMetrics
from lendbook.logging_config import get_logger

logger = get_logger(__name__)


# ===== DATABASE OPERATIONS =====
# Loans are created and paid down only by ledger commits; here they are read
# and may have their status overridden.


def read_db_loan(db: Session, loan_id: int, user_id: Optional[int] = None) -> Optional[LoanDB]:
    """Read a loan by ID, optionally filtering by user"""

    query = db.query(LoanDB).filter(LoanDB.id == loan_id)

    if user_id:
        query = query.filter(LoanDB.user_id == user_id)

    return query.first()


def read_db_loans(db: Session, user_id: int, status: Optional[LoanStatusEnum] = None,
                  skip: int = 0, limit: int = 100) -> List[LoanDB]:
    """Read loans for a user, newest first"""

    query = db.query(LoanDB).filter(LoanDB.user_id == user_id)

    if status:
        query = query.filter(LoanDB.status == LoanStatus(status.value))

    return query.order_by(LoanDB.disbursement_date.desc(), LoanDB.id.desc()).offset(skip).limit(limit).all()


def read_loan_transactions(db: Session, loan_id: int, user_id: int) -> List[TransactionDB]:
    """All transactions linked to a loan, the disbursement first"""

    loan = read_db_loan(db, loan_id, user_id)
    if not loan:
        raise NotFoundError(f"Loan with id {loan_id} not found")

    return db.query(TransactionDB).filter(
        TransactionDB.loan_id == loan_id,
        TransactionDB.user_id == user_id
    ).order_by(TransactionDB.transaction_date, TransactionDB.db_id).all()


def update_loan_status(db: Session, loan_id: int, user_id: int, status: LoanStatusEnum) -> LoanDB:
    """Set a loan's status directly, e.g. to write it off as DEFAULTED"""

    db_loan = (
        db.query(LoanDB)
        .filter(LoanDB.id == loan_id, LoanDB.user_id == user_id)
        .with_for_update()
        .first()
    )
    if not db_loan:
        raise NotFoundError(f"Loan with id {loan_id} not found")

    new_status = LoanStatus(status.value)
    if new_status == LoanStatus.PAID and db_loan.remaining_balance > 0:
        raise ValueError(f"Loan {loan_id} still has {db_loan.remaining_balance} outstanding")

    previous_status = db_loan.status
    db_loan.status = new_status
    db_loan.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(db_loan)
    logger.info(f"Loan {loan_id} status set from {previous_status.value} to {new_status.value}")
    return db_loan


def get_loan_metrics(db: Session, user_id: int) -> LoanMetrics:
    """Portfolio totals across every loan the user has issued"""

    loans = db.query(LoanDB).filter(LoanDB.user_id == user_id).all()

    total_loaned = Decimal('0.00')
    total_interest = Decimal('0.00')
    total_collected = Decimal('0.00')
    total_remaining_balance = Decimal('0.00')
    active_loans = 0
    rate_sum = Decimal('0.00')

    for loan in loans:
        total_loaned += loan.principal_amount
        total_interest += loan.total_interest
        total_collected += loan.total_paid
        rate_sum += loan.interest_rate

        if loan.status == LoanStatus.ACTIVE:
            active_loans += 1
            total_remaining_balance += loan.remaining_balance

    average_interest_rate = Decimal('0.00')
    if loans:
        average_interest_rate = (rate_sum / len(loans)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    return LoanMetrics(
        total_loaned=total_loaned,
        total_interest=total_interest,
        total_collected=total_collected,
        total_remaining_balance=total_remaining_balance,
        active_loans=active_loans,
        average_interest_rate=average_interest_rate
    )
