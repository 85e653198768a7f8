from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from lendbook.crud import crud_report
from lendbook.models import report as report_models
from lendbook.db.core import get_db
from lendbook.services.ledger import recalculate_reports
from lendbook.exceptions import ReportAggregationError

router = APIRouter(
    prefix="/reports",
    tags=["reports"],
)

# This is a placeholder for a proper authentication dependency.
def get_current_user_id() -> int:
    return 1

@router.get("/monthly", response_model=List[report_models.MonthlyReportResponse])
def read_monthly_reports(
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Monthly totals of loans, payments, income and expenses.
    """
    return crud_report.read_monthly_reports(db=db, user_id=user_id, year=year)

@router.get("/yearly", response_model=List[report_models.YearlyReportResponse])
def read_yearly_reports(
    year: Optional[int] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Yearly totals of loans, payments, income and expenses.
    """
    return crud_report.read_yearly_reports(db=db, user_id=user_id, year=year)

@router.get("/dashboard", response_model=report_models.DashboardSummary)
def read_dashboard(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Headline balances, active loan exposure and the latest transactions.
    """
    return crud_report.get_dashboard_summary(db=db, user_id=user_id)

@router.post("/recalculate", response_model=report_models.RecalculateResult)
def recalculate(
    all_users: bool = False,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Rebuild report rows from the full transaction history.
    """
    try:
        monthly_count, yearly_count = recalculate_reports(db=db, user_id=None if all_users else user_id)
    except ReportAggregationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return report_models.RecalculateResult(monthly_reports=monthly_count, yearly_reports=yearly_count)
