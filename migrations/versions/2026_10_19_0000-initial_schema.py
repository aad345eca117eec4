"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the urls table: short code mappings, owner reference and
    click analytics.
    """
    bind = op.get_bind()
    existing_tables = inspect(bind).get_table_names()

    if 'urls' in existing_tables:
        return

    op.create_table(
        'urls',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('original_url', sa.Text(), nullable=False),
        sa.Column('short_code', sa.String(length=32), nullable=False),
        sa.Column('custom_alias', sa.String(length=32), nullable=True),
        sa.Column('owner_id', sa.String(length=255), nullable=True),
        sa.Column('click_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_accessed', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Uniqueness of short codes is enforced here, not in application code
    op.create_index('ix_urls_short_code', 'urls', ['short_code'], unique=True)
    op.create_index('ix_urls_custom_alias', 'urls', ['custom_alias'])
    op.create_index('ix_urls_owner_id', 'urls', ['owner_id'])
    op.create_index('ix_urls_created_at', 'urls', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_urls_created_at', table_name='urls')
    op.drop_index('ix_urls_owner_id', table_name='urls')
    op.drop_index('ix_urls_custom_alias', table_name='urls')
    op.drop_index('ix_urls_short_code', table_name='urls')
    op.drop_table('urls')
