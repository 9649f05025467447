"""create users and expenses tables

Revision ID: 3b1f7c2d9e40
Revises: 
Create Date: 2026-10-19 09:12:41.508114

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b1f7c2d9e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('db_id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('id', sa.Uuid, nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
        sa.UniqueConstraint('email', name='uq_user_email'),
        sa.UniqueConstraint('username', name='uq_user_username'),
    )
    op.create_index('idx_users_email', 'users', ['email'])

    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.db_id'), nullable=False),
        sa.Column('amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('payment_method', sa.String(50), nullable=True),
        sa.Column('frequency', sa.String(20), nullable=True),  # "Daily" ... "6 Months", "Yearly"
        sa.Column('is_recurring', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('recurring_start_date', sa.Date, nullable=True),
        sa.Column('last_occurred', sa.Date, nullable=True),
        sa.Column('recurring_next_date', sa.Date, nullable=True),
        sa.Column('recurring_end_date', sa.Date, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=True),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index('idx_expenses_user_category_date', 'expenses', ['user_id', 'category', 'date'])
    op.create_index('idx_expenses_is_recurring', 'expenses', ['is_recurring'])


def downgrade() -> None:
    op.drop_index('idx_expenses_is_recurring', table_name='expenses')
    op.drop_index('idx_expenses_user_category_date', table_name='expenses')
    op.drop_table('expenses')
    op.drop_index('idx_users_email', table_name='users')
    op.drop_table('users')
