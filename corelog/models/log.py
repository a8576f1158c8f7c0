"""Row model for the core_log table."""
from pydantic import AwareDatetime, Field

from shared.database.table import RowModel, Table

CORE_LOG = Table(
    name="core_log",
    columns=("id", "log_content", "post_date"),
    primary_key=("id",),
)


class Log(RowModel):
    """One application log entry."""
    __table__ = CORE_LOG

    id: int = Field(..., description="BIGINT primary key")
    log_content: str
    post_date: AwareDatetime = Field(..., description="When the entry was posted")
