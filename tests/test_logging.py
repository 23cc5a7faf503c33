"""Tests for logging setup."""

from __future__ import annotations

import logging

import pytest

from playoff_pickem.core.config import get_settings
from playoff_pickem.core.logging import PickContextFilter, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    for name in ("apscheduler", "httpx", "uvicorn", "uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(name).setLevel(logging.NOTSET)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("playoff_pickem.services.picks", logging.INFO, __file__, 1, "Saved pick", None, None)
    record.__dict__.update(extra)
    return record


class TestPickContextFilter:
    def test_renders_known_extra_fields(self) -> None:
        record = _record(user_id=1, game_id=3, has_tb=False)
        assert PickContextFilter().filter(record) is True
        assert record.context == " [game_id=3 user_id=1]"

    def test_empty_without_extra(self) -> None:
        record = _record()
        PickContextFilter().filter(record)
        assert record.context == ""


def test_file_handler_gets_context(tmp_path, restore_root_logger) -> None:
    log_file = tmp_path / "logs" / "pickem.log"
    settings = get_settings().model_copy(update={"LOG_FILE": str(log_file)})

    setup_logging("info", settings=settings)
    logging.getLogger("playoff_pickem.services.scheduler").info("Running job on demand", extra={"job": "lock_games"})
    for h in restore_root_logger.handlers:
        h.flush()

    assert "Running job on demand [job=lock_games]" in log_file.read_text()


def test_third_party_loggers_quiet_unless_debug(restore_root_logger) -> None:
    settings = get_settings().model_copy(update={"LOG_FILE": None, "LOG_SQL": False})

    setup_logging("info", settings=settings)
    assert logging.getLogger("apscheduler").level == logging.WARNING
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    logging.getLogger("httpx").setLevel(logging.NOTSET)
    setup_logging("debug", settings=settings.model_copy(update={"LOG_SQL": True}))
    assert logging.getLogger("httpx").level == logging.NOTSET
    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
