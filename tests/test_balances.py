from decimal import Decimal

import pytest

from lendbook.db.core import AccountDB, TransactionDB
from lendbook.crud.crud_account import deactivate_db_account
from lendbook.exceptions import InsufficientFundsError, InvalidTransactionError, ReferenceIntegrityError
from lendbook.services.balances import validate_transaction_balance
from lendbook.services.ledger import commit_transaction


def test_transfer_conserves_total_balance(db, user, bank, cash, make_transaction):
    before = bank.current_balance + cash.current_balance

    transaction = commit_transaction(db, user.db_id, make_transaction(
        amount=Decimal("250.00"), from_account_id=bank.id, to_account_id=cash.id
    ))

    db.refresh(bank)
    db.refresh(cash)
    assert bank.current_balance == Decimal("4750.00")
    assert cash.current_balance == Decimal("750.00")
    assert bank.current_balance + cash.current_balance == before

    assert bank.previous_balance == Decimal("5000.00")
    assert cash.previous_balance == Decimal("500.00")
    assert bank.last_transaction_id == transaction.id
    assert cash.last_transaction_id == transaction.id
    assert bank.balance_last_updated is not None
    assert transaction.balance_after_transaction == Decimal("750.00")


def test_debit_only_stamps_source_balance(db, user, bank, make_transaction):
    transaction = commit_transaction(db, user.db_id, make_transaction(
        amount=Decimal("40.00"), from_account_id=bank.id
    ))

    assert transaction.balance_after_transaction == Decimal("4960.00")


def test_credit_only_needs_no_funds(db, user, make_account, make_transaction):
    empty = make_account(user, "Empty Wallet")

    transaction = commit_transaction(db, user.db_id, make_transaction(
        transaction_type="INCOME", amount=Decimal("100.00"), to_account_id=empty.id
    ))

    db.refresh(empty)
    assert empty.current_balance == Decimal("100.00")
    assert transaction.balance_after_transaction == Decimal("100.00")


def test_amount_above_balance_is_rejected(db, user, make_account, make_transaction):
    account = make_account(user, "Small", "100.00")

    with pytest.raises(InsufficientFundsError) as exc_info:
        commit_transaction(db, user.db_id, make_transaction(
            amount=Decimal("150.00"), from_account_id=account.id
        ))

    assert exc_info.value.account_id == account.id
    assert exc_info.value.amount == Decimal("150.00")
    db.refresh(account)
    assert account.current_balance == Decimal("100.00")
    assert db.query(TransactionDB).count() == 0


def test_amount_equal_to_balance_is_allowed(db, user, make_account, make_transaction):
    account = make_account(user, "Small", "100.00")

    commit_transaction(db, user.db_id, make_transaction(
        amount=Decimal("100.00"), from_account_id=account.id
    ))

    db.refresh(account)
    assert account.current_balance == Decimal("0.00")


def test_validate_transaction_balance_without_source():
    validate_transaction_balance(None, Decimal("1000000.00"))


def test_validate_transaction_balance_uses_current_balance():
    account = AccountDB(id=7, current_balance=Decimal("99.99"))

    with pytest.raises(InsufficientFundsError):
        validate_transaction_balance(account, Decimal("100.00"))


def test_unknown_account_is_rejected(db, user, bank, make_transaction):
    with pytest.raises(ReferenceIntegrityError):
        commit_transaction(db, user.db_id, make_transaction(
            from_account_id=bank.id, to_account_id=9999
        ))

    db.refresh(bank)
    assert bank.current_balance == Decimal("5000.00")


def test_other_users_account_is_not_visible(db, user, other_user, make_account, make_transaction):
    foreign = make_account(other_user, "Their Bank", "1000.00")

    with pytest.raises(ReferenceIntegrityError):
        commit_transaction(db, user.db_id, make_transaction(from_account_id=foreign.id))


def test_inactive_account_is_rejected(db, user, bank, cash, make_transaction):
    deactivate_db_account(db, cash.id, user.db_id)

    with pytest.raises(InvalidTransactionError):
        commit_transaction(db, user.db_id, make_transaction(
            from_account_id=bank.id, to_account_id=cash.id
        ))

    db.refresh(bank)
    assert bank.current_balance == Decimal("5000.00")
