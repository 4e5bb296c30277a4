from __future__ import annotations

import json
import logging
import os

# Third-party loggers that are noisy at INFO/DEBUG (Faker logs locale lookups,
# SQLAlchemy echoes every statement with its parameters).
QUIET_LOGGERS = ("faker", "sqlalchemy.engine", "sqlalchemy.pool")

FIELDS = ("table", "primary_key", "records", "latency_ms", "error_category")


class JsonFormatter(logging.Formatter):
    """One JSON object per record with the scrub context fields."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - short
        payload = {
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            "event_type": getattr(record, "event_type", record.getMessage()),
        }
        for name in FIELDS:
            payload[name] = getattr(record, name, None)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str | int | None = None, fmt: str | None = None) -> None:
    """Configure logging.

    ``LOG_LEVEL`` and ``LOG_FORMAT`` are read when the arguments are omitted.
    The default format is human friendly; ``json`` switches to
    :class:`JsonFormatter`. Statement logging from SQLAlchemy stays off unless
    the level is DEBUG, since it would print the values being scrubbed.
    """

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
    if fmt is None:
        fmt = os.getenv("LOG_FORMAT", "plain")

    if fmt.lower() == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=level, handlers=[handler], force=True)
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%H:%M:%S",
            force=True,
        )

    quiet_level = logging.DEBUG if logging.getLogger().level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
