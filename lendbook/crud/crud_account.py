from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from lendbook.db.core import AccountDB, UserDB, NotFoundError, AccountType, AccountStatus
from lendbook.models.account import AccountCreate, AccountUpdate, AccountStats, AccountTypeEnum
from lendbook.logging_config import get_logger

logger = get_logger(__name__)


# ===== DATABASE OPERATIONS =====

def create_db_account(db: Session, user_id: int, account_data: AccountCreate) -> AccountDB:
    """Create a new account for a user"""

    # Verify user exists
    user = db.query(UserDB).filter(UserDB.db_id == user_id).first()
    if not user:
        raise NotFoundError(f"User with id {user_id} not found")

    # Check if account name already exists for this user
    existing_account = db.query(AccountDB).filter(
        AccountDB.user_id == user_id,
        AccountDB.account_name == account_data.account_name
    ).first()
    if existing_account:
        raise ValueError(f"Account name '{account_data.account_name}' already exists")

    db_account = AccountDB(
        user_id=user_id,
        account_name=account_data.account_name,
        account_type=AccountType(account_data.account_type.value),
        bank_name=account_data.bank_name,
        account_reference=account_data.account_reference,
        account_status=AccountStatus.ACTIVE,
        current_balance=account_data.opening_balance,
        previous_balance=Decimal('0.00'),
        balance_last_updated=datetime.utcnow() if account_data.opening_balance != 0 else None,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    try:
        db.add(db_account)
        db.commit()
        db.refresh(db_account)
        logger.info(f"Created {db_account.account_type.value} account {db_account.id} for user {user_id}")
        return db_account
    except IntegrityError:
        db.rollback()
        raise ValueError("Account creation failed due to database constraint")


def read_db_account(db: Session, account_id: int, user_id: Optional[int] = None) -> Optional[AccountDB]:
    """Read an account by ID, optionally filtering by user"""

    query = db.query(AccountDB).filter(AccountDB.id == account_id)

    if user_id:
        query = query.filter(AccountDB.user_id == user_id)

    return query.first()


def read_db_accounts(db: Session, user_id: int, account_type: Optional[AccountTypeEnum] = None,
                     include_inactive: bool = False, skip: int = 0, limit: int = 100) -> List[AccountDB]:
    """Read accounts for a user, optionally filtered by account type"""

    query = db.query(AccountDB).filter(AccountDB.user_id == user_id)

    if not include_inactive:
        query = query.filter(AccountDB.account_status == AccountStatus.ACTIVE)

    if account_type:
        query = query.filter(AccountDB.account_type == AccountType(account_type.value))

    return query.order_by(AccountDB.account_type, AccountDB.id).offset(skip).limit(limit).all()


def update_db_account(db: Session, account_id: int, user_id: int, account_updates: AccountUpdate) -> AccountDB:
    """Update an account's descriptive fields"""

    db_account = db.query(AccountDB).filter(
        AccountDB.id == account_id,
        AccountDB.user_id == user_id
    ).first()

    if not db_account:
        raise NotFoundError(f"Account with id {account_id} not found")

    # Check for account name uniqueness if name is being updated
    if account_updates.account_name and account_updates.account_name != db_account.account_name:
        existing_name = db.query(AccountDB).filter(
            AccountDB.user_id == user_id,
            AccountDB.account_name == account_updates.account_name,
            AccountDB.id != account_id
        ).first()
        if existing_name:
            raise ValueError(f"Account name '{account_updates.account_name}' already exists")

    update_data = account_updates.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_account, field, value)

    db_account.updated_at = datetime.utcnow()

    try:
        db.commit()
        db.refresh(db_account)
        return db_account
    except IntegrityError:
        db.rollback()
        raise ValueError("Account update failed due to database constraint")


def deactivate_db_account(db: Session, account_id: int, user_id: int) -> AccountDB:
    """Soft-delete an account; its rows and history are kept"""

    db_account = db.query(AccountDB).filter(
        AccountDB.id == account_id,
        AccountDB.user_id == user_id
    ).first()

    if not db_account:
        raise NotFoundError(f"Account with id {account_id} not found")

    if db_account.account_status == AccountStatus.INACTIVE:
        raise ValueError(f"Account {account_id} is already inactive")

    db_account.account_status = AccountStatus.INACTIVE
    db_account.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(db_account)
    logger.info(f"Deactivated account {account_id}")
    return db_account


def get_account_stats(db: Session, user_id: int) -> AccountStats:
    """Get account statistics for a user"""

    accounts = db.query(AccountDB).filter(AccountDB.user_id == user_id).all()

    accounts_by_type = {}
    balance_by_type = {}
    total_balance = Decimal('0.00')
    active_accounts = 0

    for account in accounts:
        account_type = account.account_type.value
        accounts_by_type[account_type] = accounts_by_type.get(account_type, 0) + 1

        # Only active accounts hold spendable funds
        if account.account_status == AccountStatus.ACTIVE:
            active_accounts += 1
            balance_by_type[account_type] = balance_by_type.get(account_type, Decimal('0.00')) + account.current_balance
            total_balance += account.current_balance

    return AccountStats(
        total_accounts=len(accounts),
        active_accounts=active_accounts,
        accounts_by_type=accounts_by_type,
        balance_by_type=balance_by_type,
        total_balance=total_balance
    )
