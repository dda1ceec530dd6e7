"""create_access_token_tables

Revision ID: 4c2f1a9d7e30
Revises:
Create Date: 2026-10-18 09:12:44.318207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4c2f1a9d7e30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'access_tokens',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('subject_id', sa.String(length=100), nullable=False),
        sa.Column('scope', sa.String(length=19), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('use_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_by', sa.String(length=100), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.CheckConstraint('use_count >= 0', name='ck_access_tokens_use_count'),
        sa.CheckConstraint('max_uses IS NULL OR max_uses >= 1', name='ck_access_tokens_max_uses'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_access_tokens_subject_id', 'access_tokens', ['subject_id'])
    op.create_index('ix_access_tokens_subject_scope', 'access_tokens', ['subject_id', 'scope'])

    op.create_table(
        'token_access_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('token_id', sa.String(length=64), nullable=False),
        sa.Column('consumer_id', sa.String(length=100), nullable=False),
        sa.Column('accessed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('redeemed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['token_id'], ['access_tokens.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_token_access_log_token', 'token_access_log', ['token_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_token_access_log_token', table_name='token_access_log')
    op.drop_table('token_access_log')
    op.drop_index('ix_access_tokens_subject_scope', table_name='access_tokens')
    op.drop_index('ix_access_tokens_subject_id', table_name='access_tokens')
    op.drop_table('access_tokens')
