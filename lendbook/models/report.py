from pydantic import BaseModel
from typing import List
from datetime import datetime
from decimal import Decimal

from lendbook.models.transaction import TransactionResponse


# ===== REPORT MODELS =====

class MonthlyReportResponse(BaseModel):
    user_id: int
    year: int
    month: int
    total_loans: Decimal
    total_payments: Decimal
    total_income: Decimal
    total_expenses: Decimal
    updated_at: datetime

    class Config:
        from_attributes = True


class YearlyReportResponse(BaseModel):
    user_id: int
    year: int
    total_loans: Decimal
    total_payments: Decimal
    total_income: Decimal
    total_expenses: Decimal
    updated_at: datetime

    class Config:
        from_attributes = True


class DashboardSummary(BaseModel):
    """Headline figures for the dashboard"""
    total_balance: Decimal
    total_loaned: Decimal
    total_outstanding: Decimal
    active_loans_count: int
    balance_accounts: int
    recent_transactions: List[TransactionResponse]


class RecalculateResult(BaseModel):
    monthly_reports: int
    yearly_reports: int
