"""006: create indexer_state table

Revision ID: 006
Revises: 005
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE indexer_state (
            name                VARCHAR(64)     PRIMARY KEY,
            last_scanned_block  BIGINT          NOT NULL,
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_indexer_state_block CHECK (last_scanned_block >= 0)
        );
    """)
    op.execute(
        "COMMENT ON TABLE indexer_state IS 'Poller watermarks (last fully applied block)';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS indexer_state CASCADE;")
