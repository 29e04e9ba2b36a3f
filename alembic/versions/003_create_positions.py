"""003: create positions table

Revision ID: 003
Revises: 002
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE positions (
            id                  BIGSERIAL       PRIMARY KEY,
            market_id           BIGINT          NOT NULL REFERENCES markets(id),
            holder              VARCHAR(42)     NOT NULL,
            side                VARCHAR(3)      NOT NULL,
            shares              BIGINT          NOT NULL DEFAULT 0,
            avg_price           BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_positions_market_holder_side UNIQUE (market_id, holder, side),
            CONSTRAINT ck_positions_side    CHECK (side IN ('YES', 'NO')),
            CONSTRAINT ck_positions_shares  CHECK (shares >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_positions_holder ON positions (holder);")
    op.execute("""
        CREATE TRIGGER trg_positions_updated_at
            BEFORE UPDATE ON positions
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS positions CASCADE;")
