from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from lendbook.crud import crud_loan
from lendbook.models import loan as loan_models
from lendbook.models import transaction as transaction_models
from lendbook.db.core import get_db, NotFoundError

router = APIRouter(
    prefix="/loans",
    tags=["loans"],
)

# This is a placeholder for a proper authentication dependency.
def get_current_user_id() -> int:
    return 1

# Loans are created by committing a LOAN_DISBURSEMENT transaction, not here.

@router.get("/", response_model=List[loan_models.LoanResponse])
def read_loans(
    status_filter: Optional[loan_models.LoanStatusEnum] = Query(None, alias="status"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Retrieve loans issued by the current user.
    """
    return crud_loan.read_db_loans(db=db, user_id=user_id, status=status_filter, skip=skip, limit=limit)

@router.get("/metrics", response_model=loan_models.LoanMetrics)
def get_loan_metrics(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Portfolio totals: amount loaned, interest, collected and outstanding.
    """
    return crud_loan.get_loan_metrics(db=db, user_id=user_id)

@router.get("/{loan_id}", response_model=loan_models.LoanResponse)
def read_loan(
    loan_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Retrieve a specific loan.
    """
    db_loan = crud_loan.read_db_loan(db=db, loan_id=loan_id, user_id=user_id)
    if db_loan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Loan not found")
    return db_loan

@router.get("/{loan_id}/transactions", response_model=List[transaction_models.TransactionResponse])
def read_loan_transactions(
    loan_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Retrieve the disbursement and payments of a loan.
    """
    try:
        return crud_loan.read_loan_transactions(db=db, loan_id=loan_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.put("/{loan_id}/status", response_model=loan_models.LoanResponse)
def update_loan_status(
    loan_id: int,
    status_update: loan_models.LoanStatusUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Override a loan's status, e.g. mark it DEFAULTED.
    """
    try:
        return crud_loan.update_loan_status(db=db, loan_id=loan_id, user_id=user_id, status=status_update.status)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
