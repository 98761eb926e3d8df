import logging
from pathlib import Path

import persist.settings as default_settings
from persist.exceptions import ConfigurationError

log = logging.getLogger(__name__)


class MergedSettings:
    """
    A singleton class that exposes the validated settings.

    This class provides a unified, attribute-based access point for all
    configuration. It follows a clear precedence:
    1. Base values from `settings.py`.
    2. Overrides from the `.env` file (handled by `python-dotenv` in settings.py).
    """

    def __init__(self) -> None:
        """Initializes the settings object by loading defaults."""
        self._load_defaults()

    def _load_defaults(self) -> None:
        """
        Loads all uppercase attributes from the settings.py module as defaults.
        """
        for key in dir(default_settings):
            if key.isupper():
                setattr(self, key, getattr(default_settings, key))

    def validate(self) -> None:
        """
        Checks the loaded settings for values the supervisor cannot run with.

        :raises ConfigurationError: If any setting is unusable.
        """
        for key in ("HEARTBEAT_INTERVAL", "WATCH_INTERVAL"):
            if getattr(self, key) <= 0:
                raise ConfigurationError(f"{key} must be positive, got {getattr(self, key)}")

        if not self.BIN_NAME or not self.WATCHER_NAME:
            raise ConfigurationError("BIN_NAME and WATCHER_NAME must both be set.")
        if self.BIN_NAME == self.WATCHER_NAME:
            raise ConfigurationError(
                f"BIN_NAME and WATCHER_NAME must differ, both are '{self.BIN_NAME}'."
            )

        if not isinstance(logging.getLevelName(self.LOG_LEVEL), int):
            raise ConfigurationError(f"LOG_LEVEL '{self.LOG_LEVEL}' is not a logging level.")

        if not isinstance(self.PROC_ROOT, Path):
            self.PROC_ROOT = Path(self.PROC_ROOT)
        log.debug(f"Settings validated (proc root: {self.PROC_ROOT}).")


# Create a singleton instance to be imported by other modules
effective_settings = MergedSettings()
