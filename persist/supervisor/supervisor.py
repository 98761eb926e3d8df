import os
import time
import logging
from typing import NoReturn, Optional
from persist.config import MergedSettings, effective_settings
from persist.supervisor import identity, integrity, process_utils
from persist.supervisor.context import ProcessRole, SupervisorContext, determine_role
from persist.supervisor.heartbeat import HeartbeatEmitter

log = logging.getLogger(__name__)


class Supervisor:
    """
    Runs one half of a supervision pair.

    A primary forks a watcher and then only emits heartbeats. The watcher
    keeps the primary's binary on disk and execs a new primary whenever the
    old one is gone. Both loops run until the process is killed.
    """

    def __init__(self, config: Optional[MergedSettings] = None) -> None:
        self.config = config or effective_settings
        self.heartbeat = HeartbeatEmitter(self.config.HEARTBEAT_MESSAGE, self.config.HEARTBEAT_BROADCAST)

    def bootstrap(self, token: Optional[str] = None) -> SupervisorContext:
        """
        Decides the role and resolves the tracked executable.

        :param token: The invocation token; read from the process if omitted.
        :return: The context every loop runs on.
        :raises ExecutableResolutionError: If the executable cannot be located.
        """
        if token is None:
            token = process_utils.invocation_token()
        role = determine_role(token, self.config.WATCHER_NAME)

        if role is ProcessRole.WATCHER:
            tracked_pid = os.getppid()
            identity.mask_identity(os.getpid(), self.config.WATCHER_NAME, self.config.PROC_ROOT)
        else:
            process_utils.daemonize()
            tracked_pid = os.getpid()

        executable = process_utils.resolve_executable(tracked_pid, self.config.PROC_ROOT)
        log.info(f"Started as {role.value} (PID {os.getpid()}), tracking PID {tracked_pid} at '{executable.path}'.")
        return SupervisorContext(role=role, tracked_pid=tracked_pid, executable=executable)

    def start(self) -> NoReturn:
        """Bootstraps and enters the loop for this process's role."""
        context = self.bootstrap()
        if context.role is ProcessRole.PRIMARY:
            self.run_primary(context)
        else:
            self.watch_loop(context)

    def run_primary(self, context: SupervisorContext) -> NoReturn:
        """Launches the watcher, then emits heartbeats forever."""
        try:
            process_utils.spawn_watcher(context.executable, self.config.WATCHER_NAME)
        except OSError as e:
            # Deliberately dump core rather than exit cleanly.
            log.critical(f"Failed to fork the watcher: {e}. Aborting.")
            process_utils.flush_logs()
            os.abort()
        self.primary_loop()

    def primary_loop(self) -> NoReturn:
        while True:
            self.heartbeat.emit()
            time.sleep(self.config.HEARTBEAT_INTERVAL)

    def watch_loop(self, context: SupervisorContext) -> NoReturn:
        """Polls the tracked binary and process every WATCH_INTERVAL seconds."""
        log.info(f"Watching PID {context.tracked_pid} every {self.config.WATCH_INTERVAL}s.")
        while True:
            time.sleep(self.config.WATCH_INTERVAL)
            self.watch_once(context)

    def watch_once(self, context: SupervisorContext) -> None:
        """
        One watcher cycle. The binary is restored before liveness is checked,
        since a restart against a missing binary cannot succeed.

        :raises RestorationError: If a missing binary cannot be restored.
        """
        integrity.ensure_binary(context.executable.path, self.config.PROC_ROOT)

        if process_utils.pid_exists(context.tracked_pid):
            return

        log.warning(f"Tracked process {context.tracked_pid} is gone.")
        process_utils.restart(context.executable, self.config.BIN_NAME)
