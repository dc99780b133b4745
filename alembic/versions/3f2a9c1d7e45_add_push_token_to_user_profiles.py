"""Add push_token column to user_profiles

Revision ID: 3f2a9c1d7e45
Revises:
Create Date: 2025-01-12 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision = '3f2a9c1d7e45'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    inspector = inspect(op.get_bind())
    columns = [column['name'] for column in inspector.get_columns('user_profiles')]
    if 'push_token' in columns:
        print("user_profiles.push_token already exists, skipping creation")
        return

    op.add_column('user_profiles', sa.Column('push_token', sa.String(), nullable=True))
    op.create_index('idx_user_profiles_push_token', 'user_profiles', ['push_token'], unique=False)


def downgrade() -> None:
    inspector = inspect(op.get_bind())
    columns = [column['name'] for column in inspector.get_columns('user_profiles')]
    if 'push_token' not in columns:
        print("user_profiles.push_token does not exist, skipping drop")
        return

    op.drop_index('idx_user_profiles_push_token', table_name='user_profiles')
    op.drop_column('user_profiles', 'push_token')
