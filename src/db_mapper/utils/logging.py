"""Root logging setup for applications and the db-mapper CLI.

Library modules only create module loggers (``logging.getLogger(__name__)``)
and never install handlers.  ``configure_logging`` attaches one stderr
handler to the root logger, rendering either plain console lines or one
JSON object per record.

Usage:
    import logging

    from db_mapper.utils.logging import configure_logging

    configure_logging(level="DEBUG", json_logs=True)
    logging.getLogger("app").info("loaded", extra={"table": "article", "rows": 12})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any

CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Set on every LogRecord; any other attribute was passed through ``extra``
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    The object carries ``time``, ``level``, ``logger`` and ``message``,
    followed by every ``extra`` value and the formatted exception, if any.
    Values json cannot encode are rendered with ``str()``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _STANDARD_ATTRS and key not in entry:
                entry[key] = value
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _logging_config(level: str, json_logs: bool) -> dict[str, Any]:
    if json_logs:
        formatter: dict[str, Any] = {"()": JsonFormatter}
    else:
        formatter = {"format": CONSOLE_FORMAT, "datefmt": CONSOLE_DATEFMT}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "root": {"handlers": ["stderr"], "level": level.upper()},
    }


def configure_logging(level: str = "INFO", json_logs: bool = False, force: bool = True) -> None:
    """Install the stderr handler on the root logger.

    Args:
        level: Level name, case-insensitive (``"debug"``, ``"INFO"``...).
        json_logs: Emit JSON objects instead of console lines.
        force: Replace an existing root configuration.  When False and the
            root logger already has handlers, nothing changes.
    """
    if not force and logging.getLogger().handlers:
        return
    logging.config.dictConfig(_logging_config(level, json_logs))


__all__ = ["configure_logging", "JsonFormatter"]
