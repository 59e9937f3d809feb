"""Utility modules for logging and configuration."""

from aflsync.utils.logging import get_logger, setup_logging, SyncLogger
from aflsync.utils.config import Config

__all__ = ["get_logger", "setup_logging", "SyncLogger", "Config"]
