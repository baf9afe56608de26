"""
Logging setup for Layover.

Library modules log through children of the ``layover`` logger
(``layover.retry``, ``layover.throttle``, ``layover.http``, ...). No handler
is installed until setup_logging() is called, so applications embedding the
library keep control of their own logging.
"""

import logging
import sys
from pathlib import Path

from rich.logging import RichHandler

ROOT_LOGGER = "layover"

FILE_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(asctime)s - %(name)s - %(message)s"

# Level names accepted in config files and on the command line
LEVEL_MAP = {name: getattr(logging, name) for name in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")}


def parse_level(level: str | int) -> int:
    """Level number for a name such as ``"debug"``; unknown names map to INFO."""
    if isinstance(level, int):
        return level
    return LEVEL_MAP.get(str(level).strip().upper(), logging.INFO)


def _console_handler(level: int, use_rich: bool, format_string: str | None) -> logging.Handler:
    if use_rich:
        return RichHandler(
            level=level,
            show_time=True,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(format_string or CONSOLE_FORMAT))
    return handler


def _file_handler(path: Path, mode: str) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode=mode)
    # Filtering happens on the logger; the file keeps whatever passes.
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    format_string: str | None = None,
    file_mode: str = "a",
    console_enabled: bool = True,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Configure the ``layover`` logger.

    Previously installed handlers are removed first, so calling this again
    reconfigures instead of duplicating output.

    Args:
        level: Level name (DEBUG, INFO, ...) or number (default: INFO)
        log_file: Also write records to this file (default: console only)
        format_string: Format for the plain console handler
        file_mode: 'a' to append to ``log_file``, 'w' to truncate it
        console_enabled: Log to the console
        use_rich: Use rich's RichHandler for the console instead of a plain stream handler

    Returns:
        The ``layover`` logger
    """
    level_int = parse_level(level)
    root = logging.getLogger(ROOT_LOGGER)
    root.handlers.clear()
    root.setLevel(level_int)

    if console_enabled:
        root.addHandler(_console_handler(level_int, use_rich, format_string))
    if log_file:
        root.addHandler(_file_handler(Path(log_file), file_mode))

    root.propagate = True
    return root


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """
    Logger for a Layover module.

    Args:
        name: Dotted logger name, normally under ``layover``

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
