"""Structured logging utilities."""
import json
import logging
import sys
from pathlib import Path

from shared.clock import utcnow

LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


class StructuredFormatter(logging.Formatter):
    """Format logs as JSON for structured logging"""

    STANDARD_ATTRS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
        'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname', 'process',
        'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
        'exc_text', 'stack_info', 'getMessage', 'taskName'
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in self.STANDARD_ATTRS and not key.startswith('_'):
                log_data[key] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return LEVELS.get(level.lower(), logging.INFO)


def setup_logging(
    service_name: str = "",
    level: str | int = logging.INFO,
    log_dir: str = "",
) -> logging.Logger:
    """Configure structured logging for the agent.

    Attaches to the root logger so every module logger created with
    ``logging.getLogger(__name__)`` shares the handlers. With ``log_dir`` set,
    also writes ``error.log`` (errors only) and ``combined.log``.
    """
    root = logging.getLogger()
    root.setLevel(parse_level(level))
    root.handlers = []
    formatter = StructuredFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        error_handler = logging.FileHandler(path / "error.log")
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        root.addHandler(error_handler)
        combined_handler = logging.FileHandler(path / "combined.log")
        combined_handler.setFormatter(formatter)
        root.addHandler(combined_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logging.getLogger(service_name or "pricebattle-agent")
