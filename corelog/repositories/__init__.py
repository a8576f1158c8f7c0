"""Entity repositories."""
from .log_repository import LogRepository

__all__ = ["LogRepository"]
