from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

DEFAULT_LOG_PATH = "rocketgraph-install.log"

_COLORS = {
    logging.DEBUG: "\033[0;36m",
    logging.INFO: "\033[0;32m",
    logging.WARNING: "\033[1;33m",
    logging.ERROR: "\033[0;31m",
    logging.CRITICAL: "\033[0;31m",
}
_RESET = "\033[0m"
_LABELS = {logging.WARNING: "WARN", logging.CRITICAL: "ERROR"}


class ConsoleFormatter(logging.Formatter):
    """`[INFO] message` lines for the terminal, colored when attached to a TTY."""

    def __init__(self, *, color: bool) -> None:
        super().__init__(fmt="%(message)s")
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        label = _LABELS.get(record.levelno, record.levelname)
        msg = super().format(record)
        if self.color:
            return f"{_COLORS.get(record.levelno, '')}[{label}]{_RESET} {msg}"
        return f"[{label}] {msg}"


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Send every command, decision and advisory to `log_path` at DEBUG, and
    the same records at `level` to stderr as `[LEVEL] message`.

    An install directory owned by another user can make `log_path`
    unwritable; the file then goes to the current directory instead.
    Returns the path actually written.
    """

    logger = logging.getLogger()

    # Idempotent: a second call keeps the first configuration.
    if getattr(logger, "_rocketgraph_configured", False):
        return getattr(logger, "_rocketgraph_log_path", log_path)

    chosen_path = log_path
    handlers: list[logging.Handler] = []

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    file_handler: Optional[logging.Handler] = None
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
    except OSError:
        # Fall back to a writable location.
        fallback = str(Path.cwd() / Path(log_path).name)
        file_handler = logging.FileHandler(fallback)
        chosen_path = fallback
    file_handler.setFormatter(fmt)
    file_handler.setLevel(logging.DEBUG)
    handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(ConsoleFormatter(color=sys.stderr.isatty()))
        console.setLevel(level)
        handlers.append(console)

    # Command output is logged at DEBUG; keep it in the file even when the console is quiet.
    logger.setLevel(logging.DEBUG)
    for h in handlers:
        logger.addHandler(h)

    setattr(logger, "_rocketgraph_configured", True)
    setattr(logger, "_rocketgraph_log_path", chosen_path)

    logging.getLogger(__name__).debug(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
