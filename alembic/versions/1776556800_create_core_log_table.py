"""create_core_log_table

Revision ID: 1776556800
Revises:
Create Date: 2026-04-19 00:00:00

"""
from typing import Sequence, Union
from alembic import op


# revision identifiers, used by Alembic.
revision: str = '1776556800'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create core_log table."""
    op.execute("""
        CREATE TABLE core_log (
            id BIGINT PRIMARY KEY,
            log_content TEXT NOT NULL,
            post_date TIMESTAMPTZ NOT NULL
        )
    """)

    op.execute("CREATE INDEX idx_core_log_post_date ON core_log(post_date)")


def downgrade() -> None:
    """Drop core_log table."""
    op.execute("DROP INDEX IF EXISTS idx_core_log_post_date")
    op.execute("DROP TABLE IF EXISTS core_log")
