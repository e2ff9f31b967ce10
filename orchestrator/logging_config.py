from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

LOG_LEVEL_ENV = "ORCHESTRATOR_LOG_LEVEL"

# Between INFO and WARNING, so event-log successes pass an INFO filter and stand out.
SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

_PALETTE = {
    logging.DEBUG: "36",
    logging.INFO: "34",
    SUCCESS: "32",
    logging.WARNING: "33",
    logging.ERROR: "31",
    logging.CRITICAL: "1;31",
}

# Chatty third-party loggers; they follow our level but never drop below INFO.
_QUIET_LOGGERS = ("uvicorn.access", "asyncio")


class ConsoleFormatter(logging.Formatter):
    """One line per record; the level name is colored when writing to a terminal."""

    FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    DATEFMT = "%Y-%m-%d %H:%M:%S"

    def __init__(self, *, color: bool) -> None:
        super().__init__(fmt=self.FORMAT, datefmt=self.DATEFMT)
        self.color = color

    def formatMessage(self, record: logging.LogRecord) -> str:
        code = _PALETTE.get(record.levelno) if self.color else None
        if code is None:
            return super().formatMessage(record)
        # pad before coloring so the escape codes don't eat into the column width
        styled = logging.makeLogRecord(record.__dict__)
        styled.levelname = f"\x1b[{code}m{record.levelname:<8}\x1b[0m"
        return super().formatMessage(styled)


def color_enabled(stream: TextIO) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _parse_level(name: str) -> int | None:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else None


def level_from_env(default: str = "INFO") -> int:
    level = _parse_level(os.getenv(LOG_LEVEL_ENV, default))
    return logging.INFO if level is None else level


def configure_logging(*, level: str | int | None = None, force: bool = False) -> None:
    """Send application logs to stderr.

    When the root logger already has handlers (uvicorn, pytest) only the level
    is adjusted, unless ``force`` is set. ``force`` swaps out the handler this
    function installed earlier and leaves every other handler in place.
    """
    if isinstance(level, int):
        resolved = level
    elif level:
        parsed = _parse_level(level)
        resolved = logging.INFO if parsed is None else parsed
    else:
        resolved = level_from_env()

    root = logging.getLogger()
    root.setLevel(resolved)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.INFO))

    ours = [h for h in root.handlers if getattr(h, "orchestrator_console", False)]
    if root.handlers and not force:
        for handler in ours:
            handler.setLevel(resolved)
        return
    for handler in ours:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.orchestrator_console = True
    handler.setLevel(resolved)
    handler.setFormatter(ConsoleFormatter(color=color_enabled(sys.stderr)))
    root.addHandler(handler)
