"""002: create markets table

Revision ID: 002
Revises: 001
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id                  BIGSERIAL       PRIMARY KEY,
            address             VARCHAR(42)     NOT NULL,
            question            TEXT            NOT NULL,
            description         TEXT            NOT NULL DEFAULT '',
            category            VARCHAR(64)     NOT NULL DEFAULT 'general',
            resolution_date     TIMESTAMPTZ     NOT NULL,
            oracle              VARCHAR(42)     NOT NULL,
            fee_bps             INT             NOT NULL DEFAULT 0,
            yes_price           BIGINT          NOT NULL DEFAULT 500000,
            no_price            BIGINT          NOT NULL DEFAULT 500000,
            volume              BIGINT          NOT NULL DEFAULT 0,
            resolved            BOOLEAN         NOT NULL DEFAULT FALSE,
            outcome             VARCHAR(3),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_markets_address       UNIQUE (address),
            CONSTRAINT ck_markets_fee_bps       CHECK (fee_bps BETWEEN 0 AND 1000),
            CONSTRAINT ck_markets_volume        CHECK (volume >= 0),
            CONSTRAINT ck_markets_outcome       CHECK (outcome IN ('YES', 'NO')),
            CONSTRAINT ck_markets_resolved_outcome CHECK (
                (resolved = FALSE AND outcome IS NULL)
                OR (resolved = TRUE AND outcome IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_category ON markets (category);")
    op.execute("CREATE INDEX idx_markets_volume ON markets (volume DESC, created_at DESC);")
    op.execute("CREATE INDEX idx_markets_unresolved ON markets (id) WHERE resolved = FALSE;")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute(
        "COMMENT ON TABLE markets IS 'Mirror of on-chain markets; chain state is authoritative';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
