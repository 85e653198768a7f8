"""
Monthly and Yearly Reports

Report rows are never adjusted incrementally: every refresh sums the owner's
transactions for the whole period again, so refreshing twice gives the same
totals.
"""
from sqlalchemy.orm import Session
from datetime import date, datetime
from decimal import Decimal
from itertools import groupby
from typing import Dict, Iterable, Optional, Tuple

from lendbook.db.core import TransactionDB, TransactionType, MonthlyReportDB, YearlyReportDB
from lendbook.logging_config import get_logger

logger = get_logger(__name__)

REPORT_TOTAL_FIELDS = {
    TransactionType.LOAN_DISBURSEMENT: "total_loans",
    TransactionType.LOAN_PAYMENT: "total_payments",
    TransactionType.INCOME: "total_income",
    TransactionType.EXPENSE: "total_expenses",
}


def summarize_transactions(rows: Iterable[Tuple[TransactionType, Decimal]]) -> Dict[str, Decimal]:
    """Sum (type, amount) pairs into the four report totals."""
    totals = {field: Decimal('0.00') for field in REPORT_TOTAL_FIELDS.values()}
    for transaction_type, amount in rows:
        totals[REPORT_TOTAL_FIELDS[transaction_type]] += amount
    return totals


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First day of the month and first day of the following month."""
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def _period_totals(db: Session, user_id: int, start: date, end: date) -> Dict[str, Decimal]:
    rows = db.query(TransactionDB.transaction_type, TransactionDB.amount).filter(
        TransactionDB.user_id == user_id,
        TransactionDB.transaction_date >= start,
        TransactionDB.transaction_date < end
    ).all()
    return summarize_transactions(rows)


def upsert_monthly_report(db: Session, user_id: int, year: int, month: int, totals: Dict[str, Decimal]) -> MonthlyReportDB:
    report = db.query(MonthlyReportDB).filter(
        MonthlyReportDB.user_id == user_id,
        MonthlyReportDB.year == year,
        MonthlyReportDB.month == month
    ).first()

    if report is None:
        report = MonthlyReportDB(user_id=user_id, year=year, month=month)
        db.add(report)

    for field, value in totals.items():
        setattr(report, field, value)
    report.updated_at = datetime.utcnow()
    return report


def upsert_yearly_report(db: Session, user_id: int, year: int, totals: Dict[str, Decimal]) -> YearlyReportDB:
    report = db.query(YearlyReportDB).filter(
        YearlyReportDB.user_id == user_id,
        YearlyReportDB.year == year
    ).first()

    if report is None:
        report = YearlyReportDB(user_id=user_id, year=year)
        db.add(report)

    for field, value in totals.items():
        setattr(report, field, value)
    report.updated_at = datetime.utcnow()
    return report


def refresh_reports_for_period(db: Session, user_id: int, period_date: date) -> Tuple[MonthlyReportDB, YearlyReportDB]:
    """
    Recompute the month and year containing period_date for one user.
    The caller must have flushed the transaction that triggered the refresh.
    """
    year, month = period_date.year, period_date.month

    month_start, month_end = month_bounds(year, month)
    monthly = upsert_monthly_report(db, user_id, year, month, _period_totals(db, user_id, month_start, month_end))

    yearly = upsert_yearly_report(
        db, user_id, year, _period_totals(db, user_id, date(year, 1, 1), date(year + 1, 1, 1))
    )

    logger.debug(f"Refreshed reports for user {user_id}, {year}-{month:02d}")
    return monthly, yearly


def rebuild_reports(db: Session, user_id: Optional[int] = None) -> Tuple[int, int]:
    """
    Delete report rows for one user (or everyone) and rebuild them from the
    full transaction history. Does not commit.

    Returns:
        (monthly rows written, yearly rows written)
    """
    monthly_query = db.query(MonthlyReportDB)
    yearly_query = db.query(YearlyReportDB)
    transaction_query = db.query(
        TransactionDB.user_id,
        TransactionDB.transaction_date,
        TransactionDB.transaction_type,
        TransactionDB.amount
    )

    if user_id is not None:
        monthly_query = monthly_query.filter(MonthlyReportDB.user_id == user_id)
        yearly_query = yearly_query.filter(YearlyReportDB.user_id == user_id)
        transaction_query = transaction_query.filter(TransactionDB.user_id == user_id)

    monthly_query.delete()
    yearly_query.delete()

    rows = transaction_query.order_by(TransactionDB.user_id, TransactionDB.transaction_date).all()
    now = datetime.utcnow()

    monthly_count = 0
    month_key = lambda r: (r.user_id, r.transaction_date.year, r.transaction_date.month)
    for (owner_id, year, month), group in groupby(rows, key=month_key):
        totals = summarize_transactions((r.transaction_type, r.amount) for r in group)
        db.add(MonthlyReportDB(user_id=owner_id, year=year, month=month, created_at=now, updated_at=now, **totals))
        monthly_count += 1

    yearly_count = 0
    year_key = lambda r: (r.user_id, r.transaction_date.year)
    for (owner_id, year), group in groupby(rows, key=year_key):
        totals = summarize_transactions((r.transaction_type, r.amount) for r in group)
        db.add(YearlyReportDB(user_id=owner_id, year=year, created_at=now, updated_at=now, **totals))
        yearly_count += 1

    scope = f"user {user_id}" if user_id is not None else "all users"
    logger.info(f"Rebuilt {monthly_count} monthly and {yearly_count} yearly reports for {scope}")
    return monthly_count, yearly_count
