from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from lendbook.crud import crud_transaction
from lendbook.models import transaction as transaction_models
from lendbook.db.core import get_db, NotFoundError
from lendbook.services.ledger import commit_transaction
from lendbook.exceptions import (
    InsufficientFundsError,
    ReferenceIntegrityError,
    InvalidTransactionError,
    DuplicateReferenceError,
    ConcurrentMutationConflictError,
    ReportAggregationError,
)

router = APIRouter(
    prefix="/transactions",
    tags=["transactions"],
)

# This is a placeholder for a proper authentication dependency.
def get_current_user_id() -> int:
    return 1

@router.post("/", response_model=transaction_models.TransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction: transaction_models.TransactionCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Commit a transaction: move the funds, apply its loan effect and refresh the reports.
    """
    try:
        return commit_transaction(db=db, user_id=user_id, transaction_data=transaction)
    except (InsufficientFundsError, InvalidTransactionError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (DuplicateReferenceError, ConcurrentMutationConflictError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except (ReferenceIntegrityError, NotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ReportAggregationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

@router.get("/", response_model=List[transaction_models.TransactionResponse])
def read_transactions(
    account_id: Optional[int] = None,
    loan_id: Optional[int] = None,
    transaction_type: Optional[transaction_models.TransactionTypeEnum] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
    order_by: str = "transaction_date",
    order_desc: bool = True,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Retrieve transactions for the current user with optional filters.
    """
    filters = transaction_models.TransactionFilter(
        account_id=account_id,
        loan_id=loan_id,
        transaction_type=transaction_type,
        date_from=date_from,
        date_to=date_to
    )
    try:
        return crud_transaction.read_db_transactions(
            db=db, user_id=user_id, filters=filters, skip=skip, limit=limit,
            order_by=order_by, order_desc=order_desc
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.get("/{transaction_id}", response_model=transaction_models.TransactionResponse)
def read_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Retrieve a specific transaction by its database ID.
    """
    db_transaction = crud_transaction.read_db_transaction(db=db, transaction_id=transaction_id, user_id=user_id)
    if db_transaction is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return db_transaction
