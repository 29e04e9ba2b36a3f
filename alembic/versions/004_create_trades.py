"""004: create trades table

Revision ID: 004
Revises: 003
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE trades (
            id                  BIGSERIAL       PRIMARY KEY,
            market_id           BIGINT          NOT NULL REFERENCES markets(id),
            holder              VARCHAR(42)     NOT NULL,
            action              VARCHAR(8)      NOT NULL,
            shares              BIGINT          NOT NULL,
            price               BIGINT          NOT NULL,
            amount              BIGINT          NOT NULL,
            tx_ref              VARCHAR(128)    NOT NULL,
            timestamp           TIMESTAMPTZ     NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_trades_tx_ref     UNIQUE (tx_ref),
            CONSTRAINT ck_trades_action     CHECK (
                action IN ('BUY_YES', 'BUY_NO', 'SELL_YES', 'SELL_NO')
            ),
            CONSTRAINT ck_trades_shares     CHECK (shares > 0)
        );
    """)
    op.execute("CREATE INDEX idx_trades_market_time ON trades (market_id, timestamp DESC);")
    op.execute("CREATE INDEX idx_trades_holder_time ON trades (holder, timestamp DESC);")
    op.execute("COMMENT ON COLUMN trades.tx_ref IS 'Transaction hash; idempotency key';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")
