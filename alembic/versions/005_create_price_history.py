"""005: create price_history table

Revision ID: 005
Revises: 004
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE price_history (
            id                  BIGSERIAL       PRIMARY KEY,
            market_id           BIGINT          NOT NULL REFERENCES markets(id),
            yes_price           BIGINT          NOT NULL,
            no_price            BIGINT          NOT NULL,
            timestamp           TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            tx_ref              VARCHAR(128)    UNIQUE
        );
    """)
    op.execute(
        "CREATE INDEX idx_price_history_market_time ON price_history (market_id, timestamp DESC);"
    )
    op.execute(
        "COMMENT ON COLUMN price_history.tx_ref IS "
        "'Trade transaction hash for event points; NULL for sync/refresh snapshots';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS price_history CASCADE;")
