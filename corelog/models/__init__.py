"""Row models."""
from .log import CORE_LOG, Log

__all__ = ["CORE_LOG", "Log"]
