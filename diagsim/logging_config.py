"""Logging setup for simulator sessions.

Console output is plain text; the per-session file holds one JSON object
per line so runs can be replayed from their logs.
"""

import json
import logging
import logging.config
import uuid
from typing import Any, Dict, List, Optional

from .config_models import SystemConfig

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ContextFilter(logging.Filter):
    """Stamp every record with the simulator session id."""

    def __init__(self, session_id: str):
        super().__init__()
        self.session_id = session_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = self.session_id
        return True


class JSONFormatter(logging.Formatter):
    """One JSON line per record, including fields passed via ``extra=``."""

    _STANDARD_FIELDS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None)))

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "session_id": getattr(record, "session_id", "unknown"),
            "message": record.getMessage(),
        }
        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in self._STANDARD_FIELDS and key not in entry and not key.startswith("_")
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(config: SystemConfig, session_id: Optional[str] = None) -> str:
    """
    Configure console and JSON file logging for a session.

    Args:
        config: System configuration
        session_id: Session identifier; a UUID is generated when omitted

    Returns:
        The session id written into every record
    """
    session_id = session_id or str(uuid.uuid4())
    config.paths.log_dir.mkdir(parents=True, exist_ok=True)
    log_file = config.paths.log_dir / f"diagsim_{session_id}.jsonl"

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": config.logging.format_console, "datefmt": DATE_FORMAT},
            "json": {"()": JSONFormatter},
        },
        "filters": {
            "session": {"()": ContextFilter, "session_id": session_id},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": config.logging.level,
                "formatter": "console",
                "filters": ["session"],
                "stream": "ext://sys.stdout",
            },
            "session_file": {
                "class": "logging.FileHandler",
                "level": "DEBUG",
                "formatter": "json",
                "filters": ["session"],
                "filename": str(log_file),
                "mode": "w",
            },
        },
        "root": {"level": "DEBUG", "handlers": ["console", "session_file"]},
    })

    logging.getLogger(__name__).info(f"Logging to {log_file}")
    return session_id


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogCapture(logging.Handler):
    """Collect records from one logger inside a ``with`` block."""

    def __init__(self, logger_name: str = ""):
        super().__init__(level=logging.DEBUG)
        self.logger = logging.getLogger(logger_name)
        self.records: List[logging.LogRecord] = []
        self._saved_level = self.logger.level

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def __enter__(self) -> "LogCapture":
        self._saved_level = self.logger.level
        self.logger.setLevel(logging.DEBUG)
        self.logger.addHandler(self)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.logger.removeHandler(self)
        self.logger.setLevel(self._saved_level)

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [r.getMessage() for r in self.records if level is None or r.levelname == level]


def log_simulation_event(logger: logging.Logger, event: str, **data: Any) -> None:
    """
    Log a simulator lifecycle event with structured data.

    Snapshots go out at DEBUG, everything else at INFO. ``data`` is both
    rendered into the message and attached to the record for the JSON file.
    """
    details = " ".join(f"{key}={value}" for key, value in data.items())
    level = logging.DEBUG if event == "snapshot" else logging.INFO
    logger.log(level, f"SIMULATION {event.upper()}: {details}", extra={"event": event, **data})
