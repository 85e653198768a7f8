"""
Loan Lifecycle

Creates a loan when a disbursement is committed and applies payments to the
outstanding balance, moving the loan between ACTIVE and PAID.
"""
from sqlalchemy.orm import Session
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from lendbook.db.core import LoanDB, LoanStatus, LoanAction, TransactionDB, AccountDB
from lendbook.exceptions import InvalidTransactionError, ReferenceIntegrityError
from lendbook.logging_config import get_logger

logger = get_logger(__name__)

# Flat rate applied to every disbursement, as a percentage
LOAN_INTEREST_RATE = Decimal('30.00')
LOAN_TERM_MONTHS = 12

CENTS = Decimal('0.01')


def calculate_total_interest(
    principal: Decimal,
    interest_rate: Decimal = LOAN_INTEREST_RATE,
    term_months: int = LOAN_TERM_MONTHS
) -> Decimal:
    """
    Flat interest charged once at origination.

    The annual rate is spread over the term and multiplied back by the same
    term, so the result is principal * rate / 100 for any term_months.
    """
    interest = (principal * interest_rate * term_months) / (term_months * 100)
    return interest.quantize(CENTS, rounding=ROUND_HALF_UP)


def prepare_loan_action(
    db: Session,
    user_id: int,
    loan_action: LoanAction,
    source: Optional[AccountDB],
    description: Optional[str],
    loan_id: Optional[int]
) -> Optional[LoanDB]:
    """
    Check the loan side of a transaction before anything is written.
    Returns the row-locked loan a payment applies to, otherwise None.
    """
    if loan_action == LoanAction.DISBURSEMENT:
        if source is None:
            raise InvalidTransactionError("A loan disbursement needs a source account")
        if not description:
            raise InvalidTransactionError("A loan disbursement needs the borrower name as its description")
        return None

    if loan_action == LoanAction.PAYMENT:
        if loan_id is None:
            raise ReferenceIntegrityError("A loan payment must reference a loan")
        loan = (
            db.query(LoanDB)
            .filter(LoanDB.id == loan_id, LoanDB.user_id == user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not loan:
            raise ReferenceIntegrityError(f"Loan with id {loan_id} not found")
        return loan

    # Plain transactions may still be linked to a loan for reference
    if loan_id is not None:
        exists = db.query(LoanDB.id).filter(LoanDB.id == loan_id, LoanDB.user_id == user_id).first()
        if not exists:
            raise ReferenceIntegrityError(f"Loan with id {loan_id} not found")
    return None


def create_loan_from_disbursement(transaction: TransactionDB) -> LoanDB:
    """Build the loan a disbursement originates and attach it to the transaction."""
    total_interest = calculate_total_interest(transaction.amount)

    loan = LoanDB(
        user_id=transaction.user_id,
        account_id=transaction.from_account_id,
        borrower_name=transaction.description,
        principal_amount=transaction.amount,
        interest_rate=LOAN_INTEREST_RATE,
        term_months=LOAN_TERM_MONTHS,
        total_interest=total_interest,
        remaining_balance=transaction.amount + total_interest,
        total_paid=Decimal('0.00'),
        status=LoanStatus.ACTIVE,
        disbursement_date=transaction.transaction_date,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )
    transaction.loan = loan
    return loan


def apply_loan_payment(loan: LoanDB, amount: Decimal) -> LoanDB:
    """Reduce the outstanding balance; the loan is PAID once nothing remains, ACTIVE otherwise."""
    previous_status = loan.status

    loan.remaining_balance = loan.remaining_balance - amount
    loan.total_paid = (loan.total_paid or Decimal('0.00')) + amount
    loan.status = LoanStatus.PAID if loan.remaining_balance <= 0 else LoanStatus.ACTIVE
    loan.updated_at = datetime.utcnow()

    if loan.status != previous_status:
        logger.info(f"Loan {loan.id} moved from {previous_status.value} to {loan.status.value}")
    return loan


def apply_loan_lifecycle(transaction: TransactionDB, loan: Optional[LoanDB]) -> Optional[LoanDB]:
    """Run the branch matching the transaction's loan action."""
    if transaction.loan_action == LoanAction.DISBURSEMENT:
        return create_loan_from_disbursement(transaction)

    if transaction.loan_action == LoanAction.PAYMENT:
        transaction.loan = loan
        return apply_loan_payment(loan, transaction.amount)

    return None
