"""
Relaunch Utilities Package.

Configuration and logging shared across all modules.
Requires Python 3.11+.
"""

from relaunch.utils.config import Settings, WatchConfig, get_settings
from relaunch.utils.logger import configure_logging, get_logger, LoggerMixin

__all__ = [
    "Settings",
    "WatchConfig",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggerMixin",
]
