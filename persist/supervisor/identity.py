"""
Best-effort relabelling of a process under a different display name.

Three independent fields are rewritten:

- ``comm``: the short command name that ``ps`` and ``top`` show by default.
  The kernel honours writes from the process itself and truncates the name
  to 15 bytes.
- ``status``: the ``Name:`` line of the status record. The kernel normally
  refuses writes here, and the field layout is not a stable contract, so a
  failure is expected and only logged.
- the process title (argv area), via ``setproctitle``. Only possible for the
  calling process.

Nothing in this module raises. Callers get a MaskResult and may ignore it.
"""
import os
import logging
import setproctitle
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from persist.config import effective_settings as config
from persist.supervisor.process_utils import proc_path

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaskResult:
    comm: bool
    status: bool
    title: bool

    @property
    def any_applied(self) -> bool:
        return self.comm or self.status or self.title


def _rewrite_comm(comm_path: Path, name: str) -> bool:
    try:
        with comm_path.open("w") as f:
            f.write(name)
        return True
    except OSError as e:
        log.warning(f"Failed to rewrite command name at {comm_path}: {e}")
        return False

def _rewrite_status_name(status_path: Path, name: str) -> bool:
    label = config.STATUS_NAME_LABEL.encode()
    try:
        with status_path.open("r+b") as f:
            if f.read(len(label)) != label:
                log.warning(f"Unexpected layout in {status_path}, not rewriting the name field.")
                return False
            width = len(f.readline().rstrip(b"\n"))
            # Fit the old field exactly so the following lines stay intact.
            f.seek(len(label))
            f.write(name.encode()[:width].ljust(width))
        return True
    except OSError as e:
        log.warning(f"Failed to rewrite status name at {status_path}: {e}")
        return False

def _rewrite_title(pid: int, name: str) -> bool:
    if pid != os.getpid():
        log.debug(f"Process title can only be set for our own process, not PID {pid}.")
        return False
    setproctitle.setproctitle(name)
    return True

def mask_identity(pid: int, name: str, proc_root: Optional[Path] = None) -> MaskResult:
    """
    Attempts to make `pid` show up as `name` in process listings.

    :param pid: The process to relabel.
    :param name: The display name to adopt.
    :param proc_root: Procfs mount point, defaults to the configured one.
    :return: Which of the fields were rewritten.
    """
    result = MaskResult(
        comm=_rewrite_comm(proc_path(pid, "comm", proc_root), name),
        status=_rewrite_status_name(proc_path(pid, "status", proc_root), name),
        title=_rewrite_title(pid, name),
    )
    if result.any_applied:
        log.info(f"PID {pid} relabelled as '{name}' (comm={result.comm}, status={result.status}, title={result.title}).")
    else:
        log.warning(f"Could not relabel PID {pid} as '{name}'.")
    return result
