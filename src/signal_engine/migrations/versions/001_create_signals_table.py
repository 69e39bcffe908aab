"""Create trading_signals.signals.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SCHEMA = "trading_signals"


def upgrade() -> None:
    # Schema is created by env.py before migrations run.
    op.create_table(
        "signals",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("symbol", sa.Text, nullable=False),
        sa.Column("type", sa.Text, nullable=False),
        sa.Column("direction", sa.Text, nullable=False),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("strength", sa.Text, nullable=False),
        sa.Column("price", sa.Numeric, nullable=False),
        sa.Column("entry_price", sa.Numeric, nullable=False),
        sa.Column("stop_loss", sa.Numeric, nullable=False),
        sa.Column("target_price", sa.Numeric, nullable=False),
        sa.Column("success_rate", sa.Numeric, nullable=False),
        sa.Column("timeframe", sa.Text, nullable=False),
        sa.Column("expiry", sa.DateTime(timezone=True), nullable=False),
        sa.Column("risk_reward", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="active"),
        sa.Column("related_asset", sa.Text, nullable=True),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        schema=SCHEMA,
    )
    op.create_index("ix_signals_symbol", "signals", ["symbol"], schema=SCHEMA)
    op.create_index("ix_signals_status", "signals", ["status"], schema=SCHEMA)


def downgrade() -> None:
    op.drop_index("ix_signals_status", table_name="signals", schema=SCHEMA)
    op.drop_index("ix_signals_symbol", table_name="signals", schema=SCHEMA)
    op.drop_table("signals", schema=SCHEMA)
