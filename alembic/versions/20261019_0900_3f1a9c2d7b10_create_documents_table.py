"""create_documents_table

Revision ID: 3f1a9c2d7b10
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create documents table."""
    op.create_table(
        'documents',
        sa.Column('collection', sa.String(length=100), primary_key=True),
        sa.Column('key', sa.String(length=255), primary_key=True),
        sa.Column('data', JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False),
    )

    # Invites and users are looked up by organization
    op.create_index(
        'idx_documents_organization_id',
        'documents',
        ['collection', sa.text("(data->>'organizationId')")],
    )


def downgrade() -> None:
    """Drop documents table."""
    op.drop_index('idx_documents_organization_id', table_name='documents')
    op.drop_table('documents')
