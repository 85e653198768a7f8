from datetime import date
from decimal import Decimal
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lendbook.db.core import Base, get_db
from lendbook.crud.crud_user import create_db_user
from lendbook.crud.crud_account import create_db_account
from lendbook.models.user import UserCreate
from lendbook.models.account import AccountCreate, AccountTypeEnum
from lendbook.models.transaction import TransactionCreate
from lendbook.main import app


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def user(db):
    return create_db_user(db, UserCreate(email="owner@example.com", username="owner"))


@pytest.fixture
def other_user(db, user):
    return create_db_user(db, UserCreate(email="other@example.com", username="other"))


@pytest.fixture
def make_account(db):
    def _make_account(owner, name, balance="0.00", account_type=AccountTypeEnum.BANK):
        return create_db_account(db, owner.db_id, AccountCreate(
            account_name=name,
            account_type=account_type,
            opening_balance=Decimal(balance),
        ))
    return _make_account


@pytest.fixture
def bank(user, make_account):
    return make_account(user, "Main Bank", "5000.00")


@pytest.fixture
def cash(user, make_account):
    return make_account(user, "Cash Box", "500.00", AccountTypeEnum.CASH)


@pytest.fixture
def make_transaction():
    references = count(1)

    def _make_transaction(**overrides):
        fields = {
            "transaction_date": date(2024, 3, 15),
            "transaction_type": "EXPENSE",
            "category": "General",
            "amount": Decimal("10.00"),
            "reference": f"REF-{next(references):04d}",
        }
        fields.update(overrides)
        return TransactionCreate(**fields)
    return _make_transaction


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
