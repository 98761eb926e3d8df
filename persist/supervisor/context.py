import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple


class ProcessRole(enum.Enum):
    """The two halves of a supervision pair."""
    PRIMARY = "primary"
    WATCHER = "watcher"


def determine_role(token: str, watcher_name: str) -> ProcessRole:
    """
    Decides the role from the token the process was invoked under.

    :param token: The process's argv[0].
    :param watcher_name: The disguise name a watcher is launched with.
    :return: WATCHER on an exact match, PRIMARY for anything else.
    """
    return ProcessRole.WATCHER if token == watcher_name else ProcessRole.PRIMARY


@dataclass(frozen=True)
class ExecutableRecord:
    """Where the tracked executable lives, resolved once at startup."""
    path: Path
    size: int
    arguments: Tuple[str, ...] = ()

    def argv(self, token: str) -> Tuple[str, ...]:
        """Builds the argument vector for re-executing under `token`."""
        return (token, *self.arguments)


@dataclass(frozen=True)
class SupervisorContext:
    """
    Everything a supervision loop needs, built once and never mutated.

    `tracked_pid` is our own pid for a primary and the parent's pid for a
    watcher.
    """
    role: ProcessRole
    tracked_pid: int
    executable: ExecutableRecord
