from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime, date
from decimal import Decimal
from uuid import UUID
from enum import Enum
from typing_extensions import Self


# ===== TRANSACTION PYDANTIC MODELS =====

class TransactionTypeEnum(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    LOAN_PAYMENT = "LOAN_PAYMENT"
    LOAN_DISBURSEMENT = "LOAN_DISBURSEMENT"


class LoanActionEnum(str, Enum):
    PLAIN = "PLAIN"
    DISBURSEMENT = "DISBURSEMENT"
    PAYMENT = "PAYMENT"


# Every loan-typed transaction carries its loan effect; income and expenses never do
LOAN_ACTION_BY_TYPE = {
    TransactionTypeEnum.INCOME: LoanActionEnum.PLAIN,
    TransactionTypeEnum.EXPENSE: LoanActionEnum.PLAIN,
    TransactionTypeEnum.LOAN_DISBURSEMENT: LoanActionEnum.DISBURSEMENT,
    TransactionTypeEnum.LOAN_PAYMENT: LoanActionEnum.PAYMENT,
}


class TransactionCreate(BaseModel):
    transaction_date: date = Field(..., description="Date of the transaction")
    transaction_type: TransactionTypeEnum = Field(..., description="Type of transaction")
    category: str = Field(..., min_length=1, max_length=255, description="Transaction category")
    amount: Decimal = Field(..., gt=0, description="Transaction amount, always positive")
    description: Optional[str] = Field(None, max_length=500, description="Transaction description (borrower name for disbursements)")
    reference: str = Field(..., min_length=1, max_length=255, description="Caller supplied reference, unique per user")
    from_account_id: Optional[int] = Field(None, description="Account funds leave from")
    to_account_id: Optional[int] = Field(None, description="Account funds arrive at")
    loan_id: Optional[int] = Field(None, description="Loan a payment is applied to")
    loan_action: Optional[LoanActionEnum] = Field(None, description="Loan side effect of this transaction")

    # Flag form of loan_action, accepted for older clients
    is_loan_disbursement: bool = Field(default=False, exclude=True)
    is_loan_payment: bool = Field(default=False, exclude=True)

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        v = round(v, 2)
        if v <= 0:
            raise ValueError('Amount must be at least 0.01')
        return v

    @field_validator('category', 'reference')
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Value cannot be blank')
        return v

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @model_validator(mode="after")
    def resolve_loan_action(self) -> Self:
        if self.is_loan_disbursement and self.is_loan_payment:
            raise ValueError("A transaction cannot be both a loan disbursement and a loan payment")

        flagged = None
        if self.is_loan_disbursement:
            flagged = LoanActionEnum.DISBURSEMENT
        elif self.is_loan_payment:
            flagged = LoanActionEnum.PAYMENT

        if self.loan_action is None:
            self.loan_action = flagged or LOAN_ACTION_BY_TYPE[self.transaction_type]
        elif flagged is not None and flagged != self.loan_action:
            raise ValueError(f"loan_action {self.loan_action.value} contradicts the loan flags")

        expected = LOAN_ACTION_BY_TYPE[self.transaction_type]
        if self.loan_action != expected:
            raise ValueError(
                f"A {self.transaction_type.value} transaction must have loan_action {expected.value}, "
                f"got {self.loan_action.value}"
            )

        if self.loan_action == LoanActionEnum.DISBURSEMENT and self.loan_id is not None:
            raise ValueError("loan_id is assigned by the ledger for disbursements")
        return self


class TransactionResponse(BaseModel):
    """Transaction data returned to client"""
    id: UUID
    db_id: int
    user_id: int
    transaction_date: date
    transaction_type: TransactionTypeEnum
    category: str
    amount: Decimal
    description: Optional[str]
    reference: str
    from_account_id: Optional[int]
    to_account_id: Optional[int]
    loan_id: Optional[int]
    loan_action: LoanActionEnum
    is_loan_disbursement: bool
    is_loan_payment: bool
    balance_after_transaction: Optional[Decimal]
    created_at: datetime

    class Config:
        from_attributes = True


class TransactionFilter(BaseModel):
    """Filter parameters for transaction queries"""
    account_id: Optional[int] = None
    loan_id: Optional[int] = None
    transaction_type: Optional[TransactionTypeEnum] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
