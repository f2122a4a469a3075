"""add document number counters

Revision ID: 0002_document_counters
Revises: 0001_inventory_ledger
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0002_document_counters'
down_revision: Union[str, Sequence[str], None] = '0001_inventory_ledger'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'document_counters',
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('current_value', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('name'),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('document_counters')
