import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit


# Security: Keys that should never be logged
FORBIDDEN_KEYS = {
    'authorization', 'token', 'password', 'secret',
    'api_key', 'bearer', 'credential', 'auth', 'dsn'
}

# Keys promoted to the top level of the log line; everything else goes under "data"
TOP_LEVEL_KEYS = {'table', 'operation'}

_default_level = "DEBUG"
_registered: set[str] = set()


def mask_dsn(dsn: str) -> str:
    """Return the DSN with its password replaced by '***'.

    Example:
        postgresql://app:hunter2@db:5432/core -> postgresql://app:***@db:5432/core
    """
    try:
        parts = urlsplit(dsn)
    except ValueError:
        return "<unparseable dsn>"
    if parts.password is None:
        return dsn
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
    return urlunsplit(parts._replace(netloc=netloc))


class StructuredLogger:
    """
    Structured JSON logger.

    Every line is a single JSON object:
    - timestamp, level, service, message
    - table / operation when given
    - data: everything else the caller passed

    Usage:
        logger = get_logger("shared.database.pool")
        logger.info("Pool created", data={"max_size": 30})
    """

    def __init__(self, service_name: str, level: Optional[str] = None):
        self.service_name = service_name
        self.logger = logging.getLogger(service_name)

        # Same name requested twice shares one handler
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(handler)
            self.logger.setLevel(_default_level)
        if level:
            self.logger.setLevel(level.upper())
        self.logger.propagate = False
        _registered.add(service_name)

    def _sanitize(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Remove forbidden keys for security."""
        return {
            k: v for k, v in values.items()
            if k.lower() not in FORBIDDEN_KEYS
        }

    def _log(self, level: str, message: str, **kwargs):
        """
        Build and emit one log line.

        Priority (later overrides earlier):
        1. Base fields (timestamp, level, service, message)
        2. Top-level structured fields (table, operation)
        3. Data envelope (explicit data= merged with remaining kwargs)
        """
        log_method = getattr(self.logger, level.lower())
        if not self.logger.isEnabledFor(getattr(logging, level)):
            return

        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            "level": level,
            "service": self.service_name,
            "message": message
        }

        data = kwargs.pop("data", None)
        safe_kwargs = self._sanitize(kwargs)

        for key in TOP_LEVEL_KEYS:
            if key in safe_kwargs:
                log_entry[key] = safe_kwargs.pop(key)

        envelope: Dict[str, Any] = {}
        if isinstance(data, dict):
            envelope.update(self._sanitize(data))
        elif data is not None:
            envelope["value"] = data
        envelope.update(safe_kwargs)

        if envelope:
            log_entry["data"] = envelope

        log_method(json.dumps(log_entry, default=str))

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self._log("DEBUG", message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message."""
        self._log("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message."""
        self._log("ERROR", message, **kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message."""
        self._log("CRITICAL", message, **kwargs)


def set_log_level(level: str) -> None:
    """Apply a level (e.g. Settings.log_level) to every structured logger, present and future."""
    global _default_level
    _default_level = level.upper()
    for name in _registered:
        logging.getLogger(name).setLevel(_default_level)


def get_logger(service_name: str) -> StructuredLogger:
    """Get a structured logger for the given service."""
    return StructuredLogger(service_name)
