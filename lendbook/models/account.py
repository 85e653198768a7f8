from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from enum import Enum


# ===== ACCOUNT PYDANTIC MODELS =====

class AccountTypeEnum(str, Enum):
    CASH = "CASH"
    BANK = "BANK"
    MOBILE_MONEY = "MOBILE_MONEY"
    LOAN_RECEIVABLE = "LOAN_RECEIVABLE"


class AccountStatusEnum(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class AccountCreate(BaseModel):
    account_name: str = Field(..., min_length=1, max_length=255, description="Account name")
    account_type: AccountTypeEnum = Field(..., description="Kind of store of funds")
    bank_name: Optional[str] = Field(None, max_length=255, description="Bank or provider name")
    account_reference: Optional[str] = Field(None, max_length=255, description="Account number or wallet reference")
    opening_balance: Decimal = Field(default=Decimal('0.00'), ge=0, description="Initial account balance")

    @field_validator('account_name')
    @classmethod
    def validate_account_name(cls, v: str) -> str:
        return v.strip()

    @field_validator('bank_name')
    @classmethod
    def validate_bank_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @field_validator('opening_balance')
    @classmethod
    def validate_opening_balance(cls, v: Decimal) -> Decimal:
        # Round to 2 decimal places
        return round(v, 2)


class AccountUpdate(BaseModel):
    """Update account metadata - balances only change through transactions"""
    account_name: Optional[str] = Field(None, min_length=1, max_length=255)
    bank_name: Optional[str] = Field(None, max_length=255)
    account_reference: Optional[str] = Field(None, max_length=255)

    @field_validator('account_name')
    @classmethod
    def validate_account_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @field_validator('bank_name')
    @classmethod
    def validate_bank_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class AccountResponse(BaseModel):
    """Account data returned to client"""
    id: int
    user_id: int
    account_name: str
    account_type: AccountTypeEnum
    bank_name: Optional[str]
    account_reference: Optional[str]
    account_status: AccountStatusEnum
    current_balance: Decimal
    previous_balance: Decimal
    last_transaction_id: Optional[UUID]
    balance_last_updated: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AccountStats(BaseModel):
    """Account statistics"""
    total_accounts: int
    active_accounts: int
    accounts_by_type: Dict[str, int]
    balance_by_type: Dict[str, Decimal]
    total_balance: Decimal
