"""
Logging setup for the score service.

Called once when the FastAPI app is created. Level and format come from
LOG_LEVEL / LOG_FORMAT ("text" or "json").
"""
import json
import logging
import sys
from datetime import datetime, timezone

from realty_scores import config


class JSONFormatter(logging.Formatter):
    """Single-line JSON formatter for log aggregators."""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


# Library loggers that are noisy at INFO
_NOISY_LOGGERS = ["sqlalchemy.engine", "asyncio", "httpx", "httpcore"]


def configure_logging(level_name: str | None = None, log_format: str | None = None) -> None:
    level_name = (level_name or config.LOG_LEVEL).upper()
    level = getattr(logging, level_name, logging.INFO)
    log_format = (log_format or config.LOG_FORMAT).lower()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
