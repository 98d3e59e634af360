"""
Logging Config
==============
Process-wide logging for the healer service.

Handlers:
    console — stderr (uvicorn writes there too), coloured by level when the
              stream is a terminal and NO_COLOR is unset
    file    — optional daily healer_YYYYMMDD.log under LOG_DIR, never coloured

Pipeline loggers ("healer", "main") and uvicorn's loggers propagate to the
root handlers; httpx request chatter is held at WARNING so each model call
does not echo its URL.
"""
import logging
import os
import sys
from datetime import datetime
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

PROPAGATING_LOGGERS = ("healer", "main", "uvicorn", "uvicorn.error", "uvicorn.access")
QUIET_LOGGERS = ("httpx", "httpcore")


class LevelColorFormatter(logging.Formatter):
    """Wraps each record in the ANSI colour of its level."""

    COLORS = {
        logging.DEBUG: "\x1b[36m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[31;1m",
    }
    RESET = "\x1b[0m"

    def __init__(self, fmt: str = LOG_FORMAT, datefmt: str = DATE_FORMAT) -> None:
        super().__init__(fmt, datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = self.COLORS.get(record.levelno)
        return f"{color}{text}{self.RESET}" if color else text


def wants_color(stream) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def resolve_level(level: Union[int, str]) -> int:
    """Accept logging constants or names such as "debug"; unknown names mean INFO."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def log_file_path(log_dir: str, now: Optional[datetime] = None) -> str:
    return os.path.join(log_dir, f"healer_{(now or datetime.now()).strftime('%Y%m%d')}.log")


def setup_logging(level: Union[int, str] = logging.INFO, log_dir: str = "logs", to_file: bool = True, stream=None):
    """
    Configure root logging once per process.

    Existing root handlers are replaced, so repeated calls (uvicorn reload,
    test imports) never duplicate output.
    """
    level = resolve_level(level)
    stream = stream or sys.stderr
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler(stream)
    console_handler.setFormatter(
        LevelColorFormatter() if wants_color(stream) else logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    )
    root_logger.addHandler(console_handler)

    if to_file:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path(log_dir), encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    for name in PROPAGATING_LOGGERS:
        named = logging.getLogger(name)
        named.setLevel(level)
        named.propagate = True
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    root_logger.info(
        "Logging initialised at %s (console%s)",
        logging.getLevelName(level), f" + {log_dir}" if to_file else "",
    )
