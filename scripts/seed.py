import sys
import os
import random
from sqlalchemy.orm import Session
from datetime import date, timedelta
from decimal import Decimal

# Add the project root to the Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from faker import Faker

from lendbook.db.core import session_local, Base, engine, UserDB, LoanDB, LoanStatus
from lendbook.crud.crud_user import create_db_user
from lendbook.crud.crud_account import create_db_account
from lendbook.models.user import UserCreate
from lendbook.models.account import AccountCreate, AccountTypeEnum
from lendbook.models.transaction import TransactionCreate, TransactionTypeEnum, LoanActionEnum
from lendbook.services.ledger import commit_transaction
from lendbook.exceptions import LedgerError
from lendbook.logging_config import setup_logging

fake = Faker()

EXPENSE_CATEGORIES = ["Rent", "Transport", "Airtime", "Groceries", "Utilities", "Stationery"]
INCOME_CATEGORIES = ["Salary", "Side Business", "Gift"]


def _money(low: float, high: float) -> Decimal:
    return Decimal(str(round(random.uniform(low, high), 2)))


def seed_user(db: Session, index: int, start: date, days: int):
    user = create_db_user(db, UserCreate(
        email=fake.unique.email(),
        username=f"{fake.user_name()}_{index}".replace(".", "_"),
        first_name=fake.first_name(),
        last_name=fake.last_name(),
    ))

    cash = create_db_account(db, user.db_id, AccountCreate(
        account_name="Cash Box", account_type=AccountTypeEnum.CASH, opening_balance=_money(2000, 5000)
    ))
    bank = create_db_account(db, user.db_id, AccountCreate(
        account_name="Main Bank", account_type=AccountTypeEnum.BANK, bank_name=fake.company(),
        account_reference=fake.bban(), opening_balance=_money(10000, 30000)
    ))
    wallet = create_db_account(db, user.db_id, AccountCreate(
        account_name="Mobile Wallet", account_type=AccountTypeEnum.MOBILE_MONEY, opening_balance=_money(500, 1500)
    ))
    funding_accounts = [cash, bank, wallet]

    committed = 0
    rejected = 0
    for day in range(days):
        transaction_date = start + timedelta(days=day)
        choices = ["expense", "expense", "income", "disbursement", "payment"]

        for _ in range(random.randint(0, 3)):
            kind = random.choice(choices)
            reference = f"SEED-{user.db_id}-{transaction_date.isoformat()}-{fake.unique.pystr(min_chars=6, max_chars=6)}"
            account = random.choice(funding_accounts)

            if kind == "income":
                data = TransactionCreate(
                    transaction_date=transaction_date, transaction_type=TransactionTypeEnum.INCOME,
                    category=random.choice(INCOME_CATEGORIES), amount=_money(200, 2500),
                    description=fake.catch_phrase(), reference=reference, to_account_id=account.id,
                )
            elif kind == "expense":
                data = TransactionCreate(
                    transaction_date=transaction_date, transaction_type=TransactionTypeEnum.EXPENSE,
                    category=random.choice(EXPENSE_CATEGORIES), amount=_money(10, 400),
                    description=fake.bs(), reference=reference, from_account_id=account.id,
                )
            elif kind == "disbursement":
                data = TransactionCreate(
                    transaction_date=transaction_date, transaction_type=TransactionTypeEnum.LOAN_DISBURSEMENT,
                    category="Loan", amount=_money(300, 3000), description=fake.name(),
                    reference=reference, from_account_id=account.id, loan_action=LoanActionEnum.DISBURSEMENT,
                )
            else:
                loans = db.query(LoanDB).filter(
                    LoanDB.user_id == user.db_id,
                    LoanDB.status == LoanStatus.ACTIVE
                ).all()
                if not loans:
                    continue
                loan = random.choice(loans)
                # Mostly partial payments, sometimes the full outstanding balance
                amount = loan.remaining_balance if random.random() < 0.2 else min(
                    loan.remaining_balance, _money(50, 800)
                )
                data = TransactionCreate(
                    transaction_date=transaction_date, transaction_type=TransactionTypeEnum.LOAN_PAYMENT,
                    category="Loan Repayment", amount=amount, description=loan.borrower_name,
                    reference=reference, to_account_id=account.id, loan_id=loan.id,
                    loan_action=LoanActionEnum.PAYMENT,
                )

            try:
                commit_transaction(db, user.db_id, data)
                committed += 1
            except LedgerError as e:
                rejected += 1
                print(f"  Skipped {reference}: {e}")

    print(f"User {user.username}: {committed} transactions committed, {rejected} rejected")


def seed_database(users: int = 3, days: int = 180):
    """
    Fills the database with sample users, accounts and a history of
    transactions committed through the ledger.
    """
    Base.metadata.create_all(bind=engine)
    db: Session = session_local()

    try:
        # Check if data exists to prevent duplicate seeding
        if db.query(UserDB).count() > 0:
            print("Database appears to be already seeded. Exiting.")
            return

        print("Seeding database with sample ledger data...")
        start = date.today() - timedelta(days=days)

        for i in range(users):
            print(f"--- Seeding User {i+1}/{users} ---")
            seed_user(db, i + 1, start, days)

        print("Database seeding complete!")

    except Exception as e:
        print(f"An error occurred: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging(app_log_level="WARNING")
    seed_database()
