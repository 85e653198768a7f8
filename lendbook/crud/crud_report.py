from sqlalchemy.orm import Session
from typing import Optional, List
from decimal import Decimal

from lendbook.db.core import MonthlyReportDB, YearlyReportDB, AccountDB, AccountStatus, LoanDB, LoanStatus, TransactionDB
from lendbook.models.report import DashboardSummary
from lendbook.models.transaction import TransactionResponse

RECENT_TRANSACTION_LIMIT = 10


# ===== DATABASE OPERATIONS =====
# Report rows are maintained by lendbook.services.reports; this module only reads them.


def read_monthly_reports(db: Session, user_id: int, year: Optional[int] = None) -> List[MonthlyReportDB]:
    """Monthly reports for a user, most recent month first"""

    query = db.query(MonthlyReportDB).filter(MonthlyReportDB.user_id == user_id)

    if year:
        query = query.filter(MonthlyReportDB.year == year)

    return query.order_by(MonthlyReportDB.year.desc(), MonthlyReportDB.month.desc()).all()


def read_yearly_reports(db: Session, user_id: int, year: Optional[int] = None) -> List[YearlyReportDB]:
    """Yearly reports for a user, most recent year first"""

    query = db.query(YearlyReportDB).filter(YearlyReportDB.user_id == user_id)

    if year:
        query = query.filter(YearlyReportDB.year == year)

    return query.order_by(YearlyReportDB.year.desc()).all()


def get_dashboard_summary(db: Session, user_id: int) -> DashboardSummary:
    """Balances, active loan exposure and the latest transactions"""

    accounts = db.query(AccountDB).filter(
        AccountDB.user_id == user_id,
        AccountDB.account_status == AccountStatus.ACTIVE
    ).all()
    total_balance = sum((account.current_balance for account in accounts), Decimal('0.00'))

    active_loans = db.query(LoanDB).filter(
        LoanDB.user_id == user_id,
        LoanDB.status == LoanStatus.ACTIVE
    ).all()
    total_loaned = sum((loan.principal_amount for loan in active_loans), Decimal('0.00'))
    total_outstanding = sum((loan.remaining_balance for loan in active_loans), Decimal('0.00'))

    recent = db.query(TransactionDB).filter(
        TransactionDB.user_id == user_id
    ).order_by(TransactionDB.created_at.desc(), TransactionDB.db_id.desc()).limit(RECENT_TRANSACTION_LIMIT).all()

    return DashboardSummary(
        total_balance=total_balance,
        total_loaned=total_loaned,
        total_outstanding=total_outstanding,
        active_loans_count=len(active_loans),
        balance_accounts=len(accounts),
        recent_transactions=[TransactionResponse.model_validate(t) for t in recent]
    )
