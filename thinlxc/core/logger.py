"""Unified logging for thin-lxc with console and file output."""
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

console = Console()

LOG_DIR = Path("/var/log/thin-lxc")
LOG_FILE = LOG_DIR / "thin-lxc.log"

_file_logging_configured = False


def setup_file_logging(log_file: str = None, verbose: bool = False):
    """Set up file logging for thin-lxc operations.

    Args:
        log_file: Path to log file (defaults to /var/log/thin-lxc/thin-lxc.log)
        verbose: Enable debug-level logging

    Note:
        Falls back to /tmp if /var/log/thin-lxc is not writable.
    """
    global _file_logging_configured

    if _file_logging_configured:
        return

    target_log_file = Path(log_file) if log_file else LOG_FILE

    try:
        target_log_file.parent.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        target_log_file = Path("/tmp/thin-lxc.log")

    root_logger = logging.getLogger("thinlxc")
    file_handler = logging.FileHandler(target_log_file)
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root_logger.addHandler(file_handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    _file_logging_configured = True
    root_logger.info(f"thin-lxc logging initialized: {target_log_file}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger with Rich console output.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger with Rich console handler
    """
    logger = logging.getLogger(name)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger
