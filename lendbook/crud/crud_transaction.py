from sqlalchemy.orm import Session
from sqlalchemy import desc, asc, or_
from typing import Optional, List

from lendbook.db.core import TransactionDB, TransactionType
from lendbook.models.transaction import TransactionFilter

SORTABLE_COLUMNS = ("transaction_date", "amount", "created_at", "db_id", "category", "reference")


# ===== DATABASE OPERATIONS =====
# Transactions are written only through lendbook.services.ledger.commit_transaction


def read_db_transaction(db: Session, transaction_id: int, user_id: Optional[int] = None) -> Optional[TransactionDB]:
    """Read a transaction by database ID"""

    query = db.query(TransactionDB).filter(TransactionDB.db_id == transaction_id)

    if user_id:
        query = query.filter(TransactionDB.user_id == user_id)

    return query.first()


def read_db_transactions(db: Session, user_id: int, filters: Optional[TransactionFilter] = None,
                         skip: int = 0, limit: int = 100, order_by: str = "transaction_date",
                         order_desc: bool = True) -> List[TransactionDB]:
    """Read transactions with filtering and pagination"""

    query = db.query(TransactionDB).filter(TransactionDB.user_id == user_id)

    # Apply filters
    if filters:
        if filters.account_id:
            query = query.filter(
                or_(
                    TransactionDB.from_account_id == filters.account_id,
                    TransactionDB.to_account_id == filters.account_id
                )
            )

        if filters.loan_id:
            query = query.filter(TransactionDB.loan_id == filters.loan_id)

        if filters.transaction_type:
            query = query.filter(TransactionDB.transaction_type == TransactionType(filters.transaction_type.value))

        if filters.date_from:
            query = query.filter(TransactionDB.transaction_date >= filters.date_from)

        if filters.date_to:
            query = query.filter(TransactionDB.transaction_date <= filters.date_to)

    # Apply ordering
    if order_by not in SORTABLE_COLUMNS:
        raise ValueError(f"Cannot order transactions by '{order_by}'; choose one of {', '.join(SORTABLE_COLUMNS)}")

    order_column = getattr(TransactionDB, order_by)
    if order_desc:
        query = query.order_by(desc(order_column), desc(TransactionDB.db_id))
    else:
        query = query.order_by(asc(order_column), asc(TransactionDB.db_id))

    return query.offset(skip).limit(limit).all()
