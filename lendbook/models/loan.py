from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

# ===== ENUMS =====

class LoanStatusEnum(str, Enum):
    ACTIVE = "ACTIVE"
    PAID = "PAID"
    DEFAULTED = "DEFAULTED"

# ===== LOAN MODELS =====

class LoanStatusUpdate(BaseModel):
    status: LoanStatusEnum = Field(..., description="New status, typically DEFAULTED")

class LoanResponse(BaseModel):
    id: int
    user_id: int
    account_id: int
    borrower_name: str
    principal_amount: Decimal
    interest_rate: Decimal
    term_months: int
    total_interest: Decimal
    remaining_balance: Decimal
    total_paid: Decimal
    status: LoanStatusEnum
    disbursement_date: Optional[date]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class LoanMetrics(BaseModel):
    total_loaned: Decimal
    total_interest: Decimal
    total_collected: Decimal
    total_remaining_balance: Decimal
    active_loans: int
    average_interest_rate: Decimal
