"""create users, accounts, loans, transactions and report tables

Revision ID: 3c1f9a7d2b44
Revises:
Create Date: 2026-10-19 09:12:40.518207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f9a7d2b44'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


account_type = sa.Enum('CASH', 'BANK', 'MOBILE_MONEY', 'LOAN_RECEIVABLE', name='accounttype')
account_status = sa.Enum('ACTIVE', 'INACTIVE', name='accountstatus')
loan_status = sa.Enum('ACTIVE', 'PAID', 'DEFAULTED', name='loanstatus')
transaction_type = sa.Enum('INCOME', 'EXPENSE', 'LOAN_PAYMENT', 'LOAN_DISBURSEMENT', name='transactiontype')
loan_action = sa.Enum('PLAIN', 'DISBURSEMENT', 'PAYMENT', name='loanaction')


def _report_totals():
    return [
        sa.Column('total_loans', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('total_payments', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('total_income', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('total_expenses', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('db_id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('id', sa.Uuid, nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
        sa.UniqueConstraint('email', name='uq_user_email'),
        sa.UniqueConstraint('username', name='uq_user_username'),
    )
    op.create_index('idx_users_email', 'users', ['email'])

    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.db_id'), nullable=False),
        sa.Column('account_name', sa.String(255), nullable=False),
        sa.Column('account_type', account_type, nullable=False),
        sa.Column('bank_name', sa.String(255), nullable=True),
        sa.Column('account_reference', sa.String(255), nullable=True),
        sa.Column('account_status', account_status, nullable=False),
        sa.Column('current_balance', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('previous_balance', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('last_transaction_id', sa.Uuid, nullable=True),
        sa.Column('balance_last_updated', sa.DateTime, nullable=True),
        sa.Column('version', sa.Integer, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
        sa.UniqueConstraint('user_id', 'account_name', name='uq_user_account_name'),
    )
    op.create_index('idx_accounts_user_status', 'accounts', ['user_id', 'account_status'])

    op.create_table(
        'loans',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.db_id'), nullable=False),
        sa.Column('account_id', sa.Integer, sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('borrower_name', sa.String(255), nullable=False),
        sa.Column('principal_amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('interest_rate', sa.DECIMAL(5, 2), nullable=False),
        sa.Column('term_months', sa.Integer, nullable=False),
        sa.Column('total_interest', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('remaining_balance', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('total_paid', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('status', loan_status, nullable=False),
        sa.Column('disbursement_date', sa.Date, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
    )
    op.create_index('idx_loans_user_status', 'loans', ['user_id', 'status'])
    op.create_index('idx_loans_account', 'loans', ['account_id'])

    op.create_table(
        'transactions',
        sa.Column('db_id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('id', sa.Uuid, nullable=False, unique=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.db_id'), nullable=False),
        sa.Column('from_account_id', sa.Integer, sa.ForeignKey('accounts.id'), nullable=True),
        sa.Column('to_account_id', sa.Integer, sa.ForeignKey('accounts.id'), nullable=True),
        sa.Column('loan_id', sa.Integer, sa.ForeignKey('loans.id'), nullable=True),
        sa.Column('transaction_date', sa.Date, nullable=False),
        sa.Column('transaction_type', transaction_type, nullable=False),
        sa.Column('category', sa.String(255), nullable=False),
        sa.Column('amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('reference', sa.String(255), nullable=False),
        sa.Column('loan_action', loan_action, nullable=False),
        sa.Column('balance_after_transaction', sa.DECIMAL(15, 2), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.UniqueConstraint('user_id', 'reference', name='uq_user_transaction_reference'),
    )
    op.create_index('idx_transactions_user_date', 'transactions', ['user_id', 'transaction_date'])
    op.create_index('idx_transactions_date_type', 'transactions', ['transaction_date', 'transaction_type'])
    op.create_index('idx_transactions_loan', 'transactions', ['loan_id'])

    op.create_table(
        'monthly_reports',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.db_id'), nullable=False),
        sa.Column('year', sa.Integer, nullable=False),
        sa.Column('month', sa.Integer, nullable=False),
        *_report_totals(),
        sa.UniqueConstraint('user_id', 'year', 'month', name='uq_monthly_report'),
    )

    op.create_table(
        'yearly_reports',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.db_id'), nullable=False),
        sa.Column('year', sa.Integer, nullable=False),
        *_report_totals(),
        sa.UniqueConstraint('user_id', 'year', name='uq_yearly_report'),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('yearly_reports')
    op.drop_table('monthly_reports')
    op.drop_index('idx_transactions_loan', table_name='transactions')
    op.drop_index('idx_transactions_date_type', table_name='transactions')
    op.drop_index('idx_transactions_user_date', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('idx_loans_account', table_name='loans')
    op.drop_index('idx_loans_user_status', table_name='loans')
    op.drop_table('loans')
    op.drop_index('idx_accounts_user_status', table_name='accounts')
    op.drop_table('accounts')
    op.drop_index('idx_users_email', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (loan_action, transaction_type, loan_status, account_status, account_type):
        enum_type.drop(bind, checkfirst=True)
