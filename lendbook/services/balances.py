"""
Balance Validation and Mutation

Loads the accounts a pending transaction touches, checks that the source
account can cover it, and applies the debit and credit legs once the
transaction row exists.
"""
from sqlalchemy.orm import Session
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from lendbook.db.core import AccountDB, AccountStatus, TransactionDB
from lendbook.exceptions import InsufficientFundsError, InvalidTransactionError, ReferenceIntegrityError
from lendbook.logging_config import get_logger

logger = get_logger(__name__)


def lock_transaction_accounts(
    db: Session,
    user_id: int,
    from_account_id: Optional[int],
    to_account_id: Optional[int]
) -> Dict[int, AccountDB]:
    """
    Load and row-lock the source and destination accounts.
    Rows are locked in ascending id order so two commits touching the same
    pair of accounts always queue in the same order.
    """
    account_ids = sorted({a for a in (from_account_id, to_account_id) if a is not None})
    if not account_ids:
        return {}

    accounts = (
        db.query(AccountDB)
        .filter(AccountDB.id.in_(account_ids), AccountDB.user_id == user_id)
        .order_by(AccountDB.id)
        .with_for_update()
        .populate_existing()
        .all()
    )
    found = {account.id: account for account in accounts}

    for account_id in account_ids:
        if account_id not in found:
            raise ReferenceIntegrityError(f"Account with id {account_id} not found")
        if found[account_id].account_status != AccountStatus.ACTIVE:
            raise InvalidTransactionError(f"Account {account_id} is inactive")

    return found


def validate_transaction_balance(source: Optional[AccountDB], amount: Decimal) -> None:
    """Reject the transaction unless the source account covers the amount. Pure credits always pass."""
    if source is None:
        return
    if source.current_balance < amount:
        raise InsufficientFundsError(source.id, source.current_balance, amount)


def apply_balance_mutation(
    transaction: TransactionDB,
    source: Optional[AccountDB],
    destination: Optional[AccountDB]
) -> Optional[Decimal]:
    """
    Debit the source, credit the destination, and stamp the resulting balance
    onto the transaction (destination balance if there is one, else source).
    """
    now = datetime.utcnow()

    if source is not None:
        source.previous_balance = source.current_balance
        source.current_balance = source.current_balance - transaction.amount
        source.last_transaction_id = transaction.id
        source.balance_last_updated = now

    if destination is not None:
        destination.previous_balance = destination.current_balance
        destination.current_balance = destination.current_balance + transaction.amount
        destination.last_transaction_id = transaction.id
        destination.balance_last_updated = now

    stamped = destination if destination is not None else source
    if stamped is not None:
        transaction.balance_after_transaction = stamped.current_balance
        logger.debug(
            f"Transaction {transaction.reference}: account {stamped.id} balance now {stamped.current_balance}"
        )

    return transaction.balance_after_transaction
