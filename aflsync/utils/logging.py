"""
Structured logging with verbosity levels for aflsync.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# Custom theme for sync transcript output
AFLSYNC_THEME = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "pod": "bold magenta",
    "transfer": "blue",
})

console = Console(theme=AFLSYNC_THEME)

# Log level mapping
LOG_LEVELS = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


def setup_logging(verbosity: int = 1, log_file: Optional[str] = None) -> None:
    """
    Configure logging for aflsync.

    Args:
        verbosity: 0=warning, 1=info, 2=debug
        log_file: Optional file path for logging output
    """
    level = LOG_LEVELS.get(verbosity, logging.DEBUG)

    handlers = [
        RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=verbosity >= 2,
        )
    ]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )

    # Suppress noisy loggers
    logging.getLogger("kubernetes").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("websocket").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class SyncLogger:
    """
    Console helper for the human-readable sync transcript.
    """

    def __init__(self, name: str):
        self.logger = get_logger(name)
        self.console = console

    def success(self, message: str) -> None:
        """Log success message with green color."""
        self.console.print(f"[success][+] {message}[/success]")
        self.logger.debug(f"[SUCCESS] {message}")

    def pod(self, message: str) -> None:
        """Log a per-pod step with magenta color."""
        self.console.print(f"[pod][*] {message}[/pod]")
        self.logger.debug(f"[POD] {message}")
