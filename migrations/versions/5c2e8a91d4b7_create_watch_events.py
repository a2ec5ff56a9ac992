"""create watch_events

Revision ID: 5c2e8a91d4b7
Revises:
Create Date: 2026-10-05 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c2e8a91d4b7'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'watch_events',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('video_id', sa.String(), nullable=True),
        sa.Column('video_title', sa.String(), nullable=True),
        sa.Column('channel_title', sa.String(), nullable=True),
        sa.Column('product', sa.String(), nullable=False, server_default='YouTube'),
        sa.Column('topics', sa.JSON(), nullable=False),
        sa.Column('watched_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_watch_events_user_id', 'watch_events', ['user_id'])
    op.create_index('ix_watch_events_user_time', 'watch_events', ['user_id', 'watched_at'])


def downgrade() -> None:
    op.drop_index('ix_watch_events_user_time', table_name='watch_events')
    op.drop_index('ix_watch_events_user_id', table_name='watch_events')
    op.drop_table('watch_events')
