"""Repository for core_log rows."""
from corelog.models.log import CORE_LOG, Log
from shared.database.base_repository import UpsertRepository


class LogRepository(UpsertRepository[Log]):
    """find_by_id / find_all / insert / delete_by_id / update over core_log."""

    table = CORE_LOG
    model = Log
