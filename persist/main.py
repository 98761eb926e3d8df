import sys
import logging

from persist.config import effective_settings as config
from persist.exceptions import PersistError
from persist.log.setup import setup_logging
from persist.supervisor import Supervisor

log = logging.getLogger("persist")


def main() -> None:
    """The entry point for both the primary and the watcher."""
    console_level = logging.getLevelName(config.LOG_LEVEL)
    # An unknown name comes back as a string; validate() reports it below.
    setup_logging(console_level if isinstance(console_level, int) else logging.INFO)

    try:
        config.validate()
        Supervisor(config).start()
    except PersistError as e:
        log.critical(f"{e}", exc_info=True)
        sys.exit(config.EXIT_FAILURE)
    except KeyboardInterrupt:
        log.info("Interrupted by user.")

if __name__ == "__main__":
    main()
