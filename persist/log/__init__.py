"""
Logging module for persist.
This module provides functionality to set up console and syslog logging.
"""

from .handler import BROADCAST, PersistSysLogHandler
from .setup import setup_logging

__all__ = ["BROADCAST", "PersistSysLogHandler", "setup_logging"]
