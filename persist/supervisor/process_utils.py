import os
import sys
import psutil
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple
from persist.config import effective_settings as config
from persist.exceptions import ExecutableResolutionError
from persist.supervisor.context import ExecutableRecord

log = logging.getLogger(__name__)


#* --- Procfs Paths ---
def proc_path(pid: int, entry: str, proc_root: Optional[Path] = None) -> Path:
    """Returns the path of a per-process procfs entry, e.g. /proc/42/exe."""
    return (proc_root or config.PROC_ROOT) / str(pid) / entry

def image_link(pid: int, proc_root: Optional[Path] = None) -> Path:
    """Returns the process image link for a pid."""
    return proc_path(pid, "exe", proc_root)


#* --- Process Status & Monitoring ---
def pid_exists(pid: int) -> bool:
    """
    Checks whether a pid is still a live process.
    A zombie counts as dead. A missing pid is a normal answer, never an error.
    """
    if not psutil.pid_exists(pid):
        return False
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        # It exists, we just can't look inside.
        return True

def invocation_token() -> str:
    """Returns the argv[0] this process was really launched with."""
    try:
        cmdline = psutil.Process().cmdline()
    except psutil.Error as e:
        log.debug(f"Could not read own command line, falling back to sys.argv: {e}")
        cmdline = []
    return cmdline[0] if cmdline else sys.argv[0]

def _command_tail(pid: int) -> Tuple[str, ...]:
    """Returns the arguments after argv[0] for a pid, or nothing if unreadable."""
    try:
        return tuple(psutil.Process(pid).cmdline()[1:])
    except psutil.Error as e:
        log.debug(f"Could not read command line of PID {pid}: {e}")
        return ()


#* --- Executable Resolution ---
def resolve_executable(pid: int, proc_root: Optional[Path] = None) -> ExecutableRecord:
    """
    Looks up the path of the executable backing a process.

    This must run before the file can be deleted: once it is unlinked the
    kernel appends " (deleted)" to the link target. The link itself can still
    be read like a normal file either way.

    :param pid: The process whose image should be located.
    :param proc_root: Procfs mount point, defaults to the configured one.
    :return: The resolved ExecutableRecord.
    :raises ExecutableResolutionError: If the link cannot be read.
    """
    link = image_link(pid, proc_root)
    try:
        target = os.readlink(link)
        size = os.stat(link).st_size
    except OSError as e:
        raise ExecutableResolutionError(pid, str(link), e.strerror or str(e)) from e

    if target.endswith(config.DELETED_SUFFIX):
        target = target[:-len(config.DELETED_SUFFIX)]
        log.warning(f"Executable for PID {pid} was already deleted at startup; using '{target}'.")

    record = ExecutableRecord(path=Path(target), size=size, arguments=_command_tail(pid))
    log.debug(f"Resolved executable for PID {pid}: {record.path} ({record.size} bytes)")
    return record


#* --- Process Creation ---
def _exec_environment() -> Dict[str, str]:
    """
    Returns the environment for a re-exec.
    Under a plain interpreter argv[0] is the disguise token, so the new
    interpreter cannot locate its prefix from it; carry sys.path across.
    """
    env = dict(os.environ)
    if not getattr(sys, "frozen", False):
        env["PYTHONPATH"] = os.pathsep.join(p for p in sys.path if p)
    return env

def flush_logs() -> None:
    """Flushes every root handler so nothing buffered is lost across an exec."""
    for handler in logging.getLogger().handlers:
        handler.flush()
    sys.stdout.flush()
    sys.stderr.flush()

def daemonize() -> None:
    """
    Detaches from the controlling terminal: fork, let the parent exit, and
    start a new session. The working directory and stdio are kept.
    """
    try:
        pid = os.fork()
    except OSError as e:
        log.warning(f"Could not detach into the background, staying in the foreground: {e}")
        return
    if pid > 0:
        os._exit(0)
    os.setsid()

def spawn_watcher(record: ExecutableRecord, token: str) -> int:
    """
    Forks and execs the tracked executable under `token` in the child.

    :return: The child's PID (in the parent only; the child never returns).
    :raises OSError: If the fork itself fails.
    """
    flush_logs()
    pid = os.fork()
    if pid == 0:
        try:
            os.execve(str(record.path), record.argv(token), _exec_environment())
        except OSError as e:
            log.critical(f"Failed to exec watcher from '{record.path}': {e}")
        flush_logs()
        os._exit(config.EXIT_FAILURE)
    log.info(f"Watcher launched with PID: {pid}")
    return pid

def restart(record: ExecutableRecord, token: str) -> None:
    """
    Replaces the current process image with the tracked executable.

    Does not return on success. If the exec fails, a warning is logged and
    control returns, leaving the next poll cycle to try again.
    """
    log.warning(f"Restarting '{record.path}' as '{token}'...")
    flush_logs()
    try:
        os.execve(str(record.path), record.argv(token), _exec_environment())
    except OSError as e:
        log.warning(f"Restart of '{record.path}' failed, will retry next cycle: {e}")
