from decimal import Decimal

import pytest
from sqlalchemy.orm.exc import StaleDataError

from lendbook.db.core import AccountDB, TransactionDB, NotFoundError
from lendbook.exceptions import ConcurrentMutationConflictError, DuplicateReferenceError
from lendbook.services import ledger
from lendbook.services.ledger import commit_transaction


def test_commit_persists_transaction(db, user, bank, make_transaction):
    transaction = commit_transaction(db, user.db_id, make_transaction(
        category="Rent", amount=Decimal("1200.00"), from_account_id=bank.id, reference="RENT-2024-03"
    ))

    stored = db.query(TransactionDB).filter(TransactionDB.reference == "RENT-2024-03").one()
    assert stored.db_id == transaction.db_id
    assert stored.id is not None
    assert stored.user_id == user.db_id
    assert stored.amount == Decimal("1200.00")
    assert not stored.is_loan_disbursement
    assert not stored.is_loan_payment


def test_duplicate_reference_is_rejected(db, user, bank, make_transaction):
    commit_transaction(db, user.db_id, make_transaction(
        amount=Decimal("100.00"), from_account_id=bank.id, reference="DUP-1"
    ))

    with pytest.raises(DuplicateReferenceError):
        commit_transaction(db, user.db_id, make_transaction(
            amount=Decimal("100.00"), from_account_id=bank.id, reference="DUP-1"
        ))

    db.refresh(bank)
    assert bank.current_balance == Decimal("4900.00")
    assert db.query(TransactionDB).count() == 1


def test_reference_taken_between_check_and_insert_is_a_duplicate(db, user, bank, make_transaction, monkeypatch):
    commit_transaction(db, user.db_id, make_transaction(
        amount=Decimal("100.00"), from_account_id=bank.id, reference="RACE-1"
    ))
    # The other commit lands after this one has already checked the reference
    monkeypatch.setattr(ledger, "_reference_exists", lambda *args: False)

    with pytest.raises(DuplicateReferenceError):
        commit_transaction(db, user.db_id, make_transaction(
            amount=Decimal("100.00"), from_account_id=bank.id, reference="RACE-1"
        ))

    db.refresh(bank)
    assert bank.current_balance == Decimal("4900.00")
    assert db.query(TransactionDB).count() == 1


def test_reference_is_unique_per_user_only(db, user, other_user, bank, make_account, make_transaction):
    their_bank = make_account(other_user, "Their Bank", "100.00")

    commit_transaction(db, user.db_id, make_transaction(from_account_id=bank.id, reference="SHARED"))
    commit_transaction(db, other_user.db_id, make_transaction(from_account_id=their_bank.id, reference="SHARED"))

    assert db.query(TransactionDB).count() == 2


def test_unknown_user_is_rejected(db, user, make_transaction):
    with pytest.raises(NotFoundError):
        commit_transaction(db, 404, make_transaction(transaction_type="INCOME"))


def test_account_version_increments_on_each_commit(db, user, bank, make_transaction):
    assert bank.version == 1

    commit_transaction(db, user.db_id, make_transaction(from_account_id=bank.id))
    commit_transaction(db, user.db_id, make_transaction(from_account_id=bank.id))

    db.refresh(bank)
    assert bank.version == 3


def test_stale_account_write_is_detected(session_factory, user, bank):
    first = session_factory()
    second = session_factory()
    try:
        stale = first.get(AccountDB, bank.id)
        fresh = second.get(AccountDB, bank.id)

        fresh.current_balance = fresh.current_balance - Decimal("10.00")
        second.commit()

        stale.current_balance = stale.current_balance - Decimal("20.00")
        with pytest.raises(StaleDataError):
            first.flush()
        first.rollback()
    finally:
        first.close()
        second.close()


def test_stale_data_is_reported_as_conflict(db, user, bank, cash, make_transaction, monkeypatch):
    def conflicting_mutation(transaction, source, destination):
        raise StaleDataError("UPDATE statement on table 'accounts' expected to update 1 row(s); 0 were matched.")

    monkeypatch.setattr(ledger, "apply_balance_mutation", conflicting_mutation)

    with pytest.raises(ConcurrentMutationConflictError):
        commit_transaction(db, user.db_id, make_transaction(
            amount=Decimal("50.00"), from_account_id=bank.id, to_account_id=cash.id
        ))

    db.refresh(bank)
    db.refresh(cash)
    assert bank.current_balance == Decimal("5000.00")
    assert cash.current_balance == Decimal("500.00")
    assert db.query(TransactionDB).count() == 0


def test_session_usable_after_rejection(db, user, bank, make_transaction):
    with pytest.raises(DuplicateReferenceError):
        commit_transaction(db, user.db_id, make_transaction(from_account_id=bank.id, reference="X"))
        commit_transaction(db, user.db_id, make_transaction(from_account_id=bank.id, reference="X"))

    commit_transaction(db, user.db_id, make_transaction(from_account_id=bank.id, reference="Y"))

    assert {t.reference for t in db.query(TransactionDB)} == {"X", "Y"}
