"""Exception hierarchy for persist.

Every fatal condition derives from :class:`PersistError`, so the entry point
can report and exit through a single clause.
"""


class PersistError(Exception):
    """Base exception for all persist errors."""


class ConfigurationError(PersistError):
    """Settings failed validation."""


class ExecutableResolutionError(PersistError):
    """The process image link could not be read at startup."""

    def __init__(self, pid: int, link: str, reason: str) -> None:
        super().__init__(f"couldn't look up original file ({pid}, {link}): {reason}")
        self.pid = pid
        self.link = link


class RestorationError(PersistError):
    """A missing binary could not be restored."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"failed to restore '{path}': {reason}")
        self.path = path
