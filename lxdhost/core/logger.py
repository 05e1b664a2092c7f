"""Logging for lxdhost: Rich console output plus an optional log file.

Every module logger is a child of the ``lxdhost`` package logger and keeps
level NOTSET, so the package logger alone decides what is emitted. The
console handler stays at INFO; ``--verbose`` only deepens the log file.
"""
import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

console = Console()

PACKAGE_LOGGER = "lxdhost"
LOG_DIR = Path("/var/log/lxdhost")
LOG_FILE = LOG_DIR / "lxdhost.log"
FALLBACK_LOG_FILE = Path("/tmp/lxdhost.log")

_file_logging_configured = False


def _package_logger() -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        if logger.level == logging.NOTSET:
            logger.setLevel(logging.INFO)
    return logger


def _open_log_file(target: Path) -> logging.FileHandler:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(target)
    except PermissionError:
        return logging.FileHandler(FALLBACK_LOG_FILE)


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """Attach a file handler to the ``lxdhost`` logger.

    Args:
        log_file: Path to log file (defaults to /var/log/lxdhost/lxdhost.log)
        verbose: Record every external command at debug level

    Note:
        Falls back to /tmp/lxdhost.log when the target is not writable.
        Calling it a second time is a no-op.
    """
    global _file_logging_configured

    if _file_logging_configured:
        return

    level = logging.DEBUG if verbose else logging.INFO
    file_handler = _open_log_file(Path(log_file) if log_file else LOG_FILE)
    file_handler.setLevel(level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    package_logger = _package_logger()
    package_logger.addHandler(file_handler)
    package_logger.setLevel(level)

    _file_logging_configured = True
    package_logger.info(f"lxdhost logging initialized: {file_handler.baseFilename}")


def get_logger(name: str) -> logging.Logger:
    """Get a module logger that reports through the package handlers.

    Args:
        name: Logger name (typically __name__)
    """
    _package_logger()
    return logging.getLogger(name)
