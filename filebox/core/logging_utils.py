import contextvars
import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

SERVICE_NAME = "filebox"

# Whatever a bare LogRecord carries is plumbing; the rest arrived via `extra=`
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"

request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


class RequestIdFilter(logging.Filter):
    """Stamp the current request id on every record that lacks one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get() or "-"
        return True


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


class JsonFormatter(logging.Formatter):
    """One JSON object per line: fixed envelope plus any `extra=` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            {k: _jsonable(v) for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _build_formatter(settings) -> logging.Formatter:
    if getattr(settings, "LOG_JSON", True):
        return JsonFormatter()
    return logging.Formatter(PLAIN_FORMAT)


def _file_handler(settings) -> Optional[logging.Handler]:
    log_file = getattr(settings, "LOG_FILE", "")
    if not log_file:
        return None
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    return RotatingFileHandler(
        log_file,
        maxBytes=int(getattr(settings, "LOG_MAX_BYTES", 5_000_000)),
        backupCount=int(getattr(settings, "LOG_BACKUP_COUNT", 5)),
        encoding="utf-8",
    )


def configure_logging(settings) -> None:
    """Console (and optional rotating file) logging for the whole process.

    Safe to call more than once: existing root handlers are replaced.
    """
    level_name = (getattr(settings, "LOG_LEVEL", "INFO") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)

    request_filter = RequestIdFilter()
    handlers = [logging.StreamHandler(), _file_handler(settings)]
    for handler in handlers:
        if handler is None:
            continue
        handler.setFormatter(_build_formatter(settings))
        handler.addFilter(request_filter)
        root.addHandler(handler)

    for noisy in ("uvicorn", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(level)
    # SQL echo is controlled by DB_ECHO on the engine
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
