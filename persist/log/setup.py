import logging
import sys

from persist.config import effective_settings as config
from persist.log.handler import PersistSysLogHandler


class MainFormatter(logging.Formatter):
    """Console formatter that tags each line with the pid that wrote it."""

    def __init__(self) -> None:
        super().__init__('%(asctime)s - %(levelname)-8s - [%(process)d %(name)s] - %(message)s')


def setup_logging(console_level: int = logging.INFO) -> None:
    """
    Configures the root logger for the process.
    This sets up handlers for the console and syslog, clearing any
    previously configured handlers to prevent duplication. It is called
    again after every exec, since each image starts with a fresh interpreter.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)

    # --- Syslog Handler ---
    try:
        syslog_handler = PersistSysLogHandler(
            address=config.SYSLOG_ADDRESS,
            facility=config.SYSLOG_FACILITY,
            ident=config.SYSLOG_IDENT,
        )
        syslog_handler.setLevel(logging.INFO)
        syslog_handler.setFormatter(logging.Formatter('%(message)s'))
        root_logger.addHandler(syslog_handler)
    except (OSError, ValueError) as e:
        root_logger.error(f"Failed to initialize syslog handler at '{config.SYSLOG_ADDRESS}': {e}. Logging to syslog will be disabled.")
