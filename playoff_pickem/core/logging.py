from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

from playoff_pickem.core.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s%(context)s"

# Keys services pass through ``extra=`` that are worth printing
CONTEXT_KEYS = ("job", "season", "game_id", "user_id", "team_id")

# Chatty third-party loggers, capped unless running at DEBUG
_QUIET_LOGGERS = {
    "apscheduler": logging.WARNING,  # one line per job run
    "httpx": logging.WARNING,  # one line per feed request
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.INFO,
}


class PickContextFilter(logging.Filter):
    """Render known ``extra`` fields as a trailing ``[game_id=3 user_id=1]``."""

    def filter(self, record: logging.LogRecord) -> bool:
        parts = [f"{k}={getattr(record, k)}" for k in CONTEXT_KEYS if getattr(record, k, None) is not None]
        record.context = f" [{' '.join(parts)}]" if parts else ""
        return True


def setup_logging(level: Optional[str] = None, settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    console = logging.StreamHandler(sys.stdout)
    console.addFilter(PickContextFilter())
    handlers = [console]

    if settings.LOG_FILE:
        path = Path(settings.LOG_FILE)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=3)
        file_handler.addFilter(PickContextFilter())
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, format=LOG_FORMAT, handlers=handlers, force=True)

    if log_level > logging.DEBUG:
        for name, cap in _QUIET_LOGGERS.items():
            logging.getLogger(name).setLevel(cap)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.LOG_SQL else logging.WARNING)
