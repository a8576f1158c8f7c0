import json
import logging
from typing import Any, Dict

from shared.observability.logger import FORBIDDEN_KEYS, get_logger, mask_dsn, set_log_level


class DummyHandler(logging.Handler):
    """Capture log records for assertions."""

    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - trivial
        self.records.append(record)


def _make_logger(service_name: str = "test-service") -> tuple[Any, DummyHandler]:
    """Create a logger instance with a dummy handler attached."""
    logger = get_logger(service_name)

    # Remove any existing handlers and attach dummy
    logger.logger.handlers = []
    logger.logger.setLevel(logging.DEBUG)
    handler = DummyHandler()
    logger.logger.addHandler(handler)

    return logger, handler


def test_logger_emits_base_fields():
    logger, handler = _make_logger()

    logger.info("Pool created")

    payload = json.loads(handler.records[0].getMessage())
    assert payload["level"] == "INFO"
    assert payload["service"] == "test-service"
    assert payload["message"] == "Pool created"
    assert payload["timestamp"].endswith("Z")
    assert "data" not in payload


def test_logger_wraps_kwargs_in_data_envelope():
    logger, handler = _make_logger()

    logger.info("Test message", extra_field="value", count=1)

    assert len(handler.records) == 1
    payload = json.loads(handler.records[0].getMessage())

    assert payload["message"] == "Test message"
    assert payload["data"] == {"extra_field": "value", "count": 1}


def test_logger_merges_explicit_data_and_kwargs():
    logger, handler = _make_logger()

    logger.info("With data", data={"a": 1}, b=2)

    payload = json.loads(handler.records[0].getMessage())
    assert payload["data"] == {"a": 1, "b": 2}


def test_logger_keeps_non_dict_data_under_value_key():
    logger, handler = _make_logger()

    logger.info("Non-dict data", data=[1, 2, 3])

    payload = json.loads(handler.records[0].getMessage())
    assert payload["data"] == {"value": [1, 2, 3]}


def test_logger_promotes_table_and_operation():
    logger, handler = _make_logger()

    logger.warning("Row not found", table="core_log", operation="find_by_id", data={"key": 7})

    payload = json.loads(handler.records[0].getMessage())
    assert payload["table"] == "core_log"
    assert payload["operation"] == "find_by_id"
    assert payload["data"] == {"key": 7}


def test_logger_filters_forbidden_keys():
    logger, handler = _make_logger()

    kwargs: Dict[str, Any] = {key: "SECRET" for key in FORBIDDEN_KEYS}
    kwargs["safe"] = "ok"

    logger.info("Secrets", data={"password": "SECRET", "dsn": "SECRET"}, **kwargs)

    payload = json.loads(handler.records[0].getMessage())

    for forbidden in FORBIDDEN_KEYS:
        assert forbidden not in payload
        assert forbidden not in payload["data"]

    assert payload["data"] == {"safe": "ok"}


def test_logger_serializes_non_json_values():
    from datetime import datetime, timezone

    logger, handler = _make_logger()

    logger.debug("Row inserted", data={"post_date": datetime(2026, 1, 1, tzinfo=timezone.utc)})

    payload = json.loads(handler.records[0].getMessage())
    assert payload["data"]["post_date"].startswith("2026-01-01")


def test_set_log_level_filters_lower_levels():
    logger, handler = _make_logger("test-level-service")

    set_log_level("WARNING")
    try:
        logger.info("dropped")
        logger.error("kept")
    finally:
        set_log_level("DEBUG")

    assert [json.loads(r.getMessage())["message"] for r in handler.records] == ["kept"]


def test_same_name_shares_one_handler():
    first = get_logger("test-shared-handler")
    second = get_logger("test-shared-handler")

    assert first.logger is second.logger
    assert len(second.logger.handlers) == 1


def test_mask_dsn_hides_password():
    assert mask_dsn("postgresql://dal:hunter2@db:5432/core") == "postgresql://dal:***@db:5432/core"
    assert mask_dsn("postgresql://dal@db/core") == "postgresql://dal@db/core"
