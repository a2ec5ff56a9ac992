"""create precomputed_aggregations

Revision ID: 9f41b3c0e6a2
Revises: 5c2e8a91d4b7
Create Date: 2026-10-05 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '9f41b3c0e6a2'
down_revision: Union[str, None] = '5c2e8a91d4b7'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'precomputed_aggregations',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('aggregation_type', sa.String(), nullable=False),
        sa.Column('filter_hash', sa.String(length=64), nullable=False),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('computed_at', sa.String(length=32), nullable=False),
        sa.Column('expires_at', sa.String(length=32), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.UniqueConstraint(
            'user_id', 'aggregation_type', 'filter_hash',
            name='uq_precomputed_aggregation_key',
        ),
    )
    op.create_index(
        'ix_precomputed_aggregations_user_type',
        'precomputed_aggregations',
        ['user_id', 'aggregation_type'],
    )
    op.create_index(
        'ix_precomputed_aggregations_expires_at',
        'precomputed_aggregations',
        ['expires_at'],
    )


def downgrade() -> None:
    op.drop_index('ix_precomputed_aggregations_expires_at', table_name='precomputed_aggregations')
    op.drop_index('ix_precomputed_aggregations_user_type', table_name='precomputed_aggregations')
    op.drop_table('precomputed_aggregations')
