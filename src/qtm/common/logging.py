import atexit
import datetime as dt
import json
import logging
import logging.config
from pathlib import Path
from typing import override

from qtm.common.config import LOG_DIR, DEFAULT_LOG_FILE

# attributes every LogRecord carries; anything else arrived through extra={...}
RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

JSON_FIELDS = {
    "level": "levelname",
    "message": "message",
    "timestamp": "timestamp",
    "logger": "name",
    "module": "module",
    "function": "funcName",
    "line": "lineno",
    "thread_name": "threadName",
}


class JSONLogFormatter(logging.Formatter):
    # fmt_keys maps output key -> LogRecord attribute
    def __init__(self, *, fmt_keys: dict[str, str] | None = None):
        super().__init__()
        self.fmt_keys = fmt_keys if fmt_keys is not None else {}

    @override
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(self._record_dict(record), default=str)

    def _record_dict(self, record: logging.LogRecord) -> dict:
        computed = {
            "message": record.getMessage(),
            "timestamp": dt.datetime.fromtimestamp(record.created, tz=dt.timezone.utc).isoformat(),
        }
        if record.exc_info is not None:
            computed["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info is not None:
            computed["stack_info"] = self.formatStack(record.stack_info)

        payload = {}
        for key, attr in self.fmt_keys.items():
            value = computed.pop(attr, None)
            payload[key] = value if value is not None else getattr(record, attr)
        payload.update(computed)

        payload.update(
            (key, value) for key, value in record.__dict__.items() if key not in RECORD_ATTRS
        )
        return payload


def build_logging_config(log_path: Path, console_level: str = "WARNING") -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "simple": {
                "format": "[%(levelname)s|%(module)s|L%(lineno)d] %(asctime)s: %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S%z",
            },
            "json": {"()": JSONLogFormatter, "fmt_keys": JSON_FIELDS},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": console_level,
                "formatter": "simple",
                "stream": "ext://sys.stderr",
            },
            "file_json": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "DEBUG",
                "formatter": "json",
                "filename": str(log_path),
                "maxBytes": 5_000_000,
                "backupCount": 5,
            },
            "queue_handler": {
                "class": "logging.handlers.QueueHandler",
                "handlers": ["console", "file_json"],
                "respect_handler_level": True,
            },
        },
        "loggers": {"root": {"level": "DEBUG", "handlers": ["queue_handler"]}},
    }


def config_logging(
    file_name: str = DEFAULT_LOG_FILE,
    log_dir: Path = LOG_DIR,
    verbose: bool = False,
) -> Path:
    """Configure the root logger; hashing workers log from their own threads,
    so records go through a queue listener rather than straight to disk."""
    log_path = Path(log_dir) / file_name
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_path, "DEBUG" if verbose else "WARNING"))

    queue_handler = logging.getHandlerByName("queue_handler")
    if queue_handler is not None:
        queue_handler.listener.start()
        atexit.register(queue_handler.listener.stop)
    return log_path
