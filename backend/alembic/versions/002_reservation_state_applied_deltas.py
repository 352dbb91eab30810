"""Add applied_deltas to channel_reservation_states

Revision ID: 002
Revises: 001
Create Date: (run alembic upgrade head)

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("channel_reservation_states", sa.Column("applied_deltas", sa.JSON(), nullable=True))


def downgrade() -> None:
    op.drop_column("channel_reservation_states", "applied_deltas")
