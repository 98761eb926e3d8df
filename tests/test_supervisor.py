import os
from unittest.mock import MagicMock

import pytest

import persist.main
from persist.exceptions import ExecutableResolutionError, RestorationError
from persist.supervisor import Supervisor, SupervisorContext, identity, integrity, process_utils
from persist.supervisor import supervisor as supervisor_module
from persist.supervisor.context import ExecutableRecord, ProcessRole
from tests.conftest import DEAD_PID, IMAGE_BYTES, StopLoop


@pytest.fixture
def restarts(monkeypatch):
    calls = []
    monkeypatch.setattr(process_utils, "restart", lambda record, token: calls.append((record, token)))
    return calls


@pytest.fixture
def sendfile_calls(monkeypatch):
    calls = []
    real_sendfile = os.sendfile

    def counting_sendfile(*args):
        calls.append(args)
        return real_sendfile(*args)

    monkeypatch.setattr(integrity.os, "sendfile", counting_sendfile)
    return calls


def _watcher_context(binary, tracked_pid):
    record = ExecutableRecord(path=binary, size=len(IMAGE_BYTES))
    return SupervisorContext(role=ProcessRole.WATCHER, tracked_pid=tracked_pid, executable=record)


class TestWatchOnce:
    def test_present_binary_and_live_process_does_nothing(self, settings, tracked_binary, restarts, sendfile_calls):
        before = tracked_binary.stat()

        Supervisor(settings).watch_once(_watcher_context(tracked_binary, os.getpid()))

        assert sendfile_calls == []
        assert tracked_binary.stat().st_mtime_ns == before.st_mtime_ns
        assert restarts == []

    def test_deleted_binary_is_restored_without_restart(self, settings, tracked_binary, restarts):
        tracked_binary.unlink()

        Supervisor(settings).watch_once(_watcher_context(tracked_binary, os.getpid()))

        assert tracked_binary.read_bytes() == IMAGE_BYTES
        assert os.access(tracked_binary, os.X_OK)
        assert restarts == []

    def test_dead_process_is_restarted_once_as_primary(self, settings, tracked_binary, restarts, sendfile_calls):
        context = _watcher_context(tracked_binary, DEAD_PID)

        Supervisor(settings).watch_once(context)

        assert sendfile_calls == []
        assert restarts == [(context.executable, settings.BIN_NAME)]

    def test_binary_is_ensured_before_liveness(self, settings, tracked_binary, monkeypatch):
        order = []
        monkeypatch.setattr(integrity, "ensure_binary", lambda path, root: order.append("ensure"))
        monkeypatch.setattr(process_utils, "pid_exists", lambda pid: order.append("alive") or False)
        monkeypatch.setattr(process_utils, "restart", lambda record, token: order.append("restart"))

        Supervisor(settings).watch_once(_watcher_context(tracked_binary, DEAD_PID))

        assert order == ["ensure", "alive", "restart"]

    def test_restoration_failure_propagates(self, settings, tmp_path, restarts):
        missing = tmp_path / "gone" / "persist"

        with pytest.raises(RestorationError):
            Supervisor(settings).watch_once(_watcher_context(missing, DEAD_PID))
        assert restarts == []


class TestBootstrap:
    def test_disguise_token_makes_a_watcher(self, settings, fake_proc, tracked_binary, monkeypatch):
        fake_proc.add(os.getppid(), tracked_binary)
        mask = MagicMock()
        daemonize = MagicMock()
        monkeypatch.setattr(identity, "mask_identity", mask)
        monkeypatch.setattr(process_utils, "daemonize", daemonize)

        context = Supervisor(settings).bootstrap("bash")

        assert context.role is ProcessRole.WATCHER
        assert context.tracked_pid == os.getppid()
        assert context.executable.path == tracked_binary
        mask.assert_called_once_with(os.getpid(), "bash", settings.PROC_ROOT)
        daemonize.assert_not_called()

    def test_any_other_token_makes_a_primary(self, settings, running_image, monkeypatch):
        mask = MagicMock()
        daemonize = MagicMock()
        monkeypatch.setattr(identity, "mask_identity", mask)
        monkeypatch.setattr(process_utils, "daemonize", daemonize)

        context = Supervisor(settings).bootstrap("/usr/local/bin/persist")

        assert context.role is ProcessRole.PRIMARY
        assert context.tracked_pid == os.getpid()
        assert context.executable.path == running_image
        daemonize.assert_called_once_with()
        mask.assert_not_called()

    def test_unresolvable_executable_is_fatal(self, settings, monkeypatch):
        monkeypatch.setattr(identity, "mask_identity", MagicMock())

        # No fake entry exists for the parent pid.
        with pytest.raises(ExecutableResolutionError):
            Supervisor(settings).bootstrap("bash")


class TestPrimary:
    def test_spawns_watcher_under_disguise_then_beats(self, settings, tracked_binary, monkeypatch):
        spawn = MagicMock(return_value=1234)
        loop = MagicMock()
        monkeypatch.setattr(process_utils, "spawn_watcher", spawn)
        monkeypatch.setattr(Supervisor, "primary_loop", loop)
        context = _watcher_context(tracked_binary, os.getpid())

        Supervisor(settings).run_primary(context)

        spawn.assert_called_once_with(context.executable, "bash")
        loop.assert_called_once_with()

    def test_fork_failure_aborts(self, settings, tracked_binary, monkeypatch):
        def no_fork(record, token):
            raise OSError(11, "Resource temporarily unavailable")

        def fake_abort():
            raise StopLoop("aborted")

        loop = MagicMock()
        monkeypatch.setattr(process_utils, "spawn_watcher", no_fork)
        monkeypatch.setattr(supervisor_module.os, "abort", fake_abort)
        monkeypatch.setattr(Supervisor, "primary_loop", loop)

        with pytest.raises(StopLoop):
            Supervisor(settings).run_primary(_watcher_context(tracked_binary, os.getpid()))
        loop.assert_not_called()

    def test_primary_loop_emits_before_sleeping(self, settings, monkeypatch):
        events = []
        supervisor = Supervisor(settings)
        monkeypatch.setattr(supervisor.heartbeat, "emit", lambda: events.append("beat"))

        def sleep(seconds):
            events.append(("sleep", seconds))
            raise StopLoop

        monkeypatch.setattr(supervisor_module.time, "sleep", sleep)

        with pytest.raises(StopLoop):
            supervisor.primary_loop()
        assert events == ["beat", ("sleep", settings.HEARTBEAT_INTERVAL)]


def test_watch_loop_sleeps_before_each_cycle(settings, tracked_binary, monkeypatch):
    events = []
    sleeps = iter([None, StopLoop])

    def sleep(seconds):
        events.append("sleep")
        outcome = next(sleeps)
        if outcome is not None:
            raise outcome

    monkeypatch.setattr(supervisor_module.time, "sleep", sleep)
    monkeypatch.setattr(Supervisor, "watch_once", lambda self, context: events.append("cycle"))

    with pytest.raises(StopLoop):
        Supervisor(settings).watch_loop(_watcher_context(tracked_binary, os.getpid()))
    assert events == ["sleep", "cycle", "sleep"]


def test_main_exits_on_unresolvable_executable(settings, monkeypatch):
    monkeypatch.setattr(persist.main, "config", settings)
    monkeypatch.setattr(persist.main, "setup_logging", lambda level: None)
    monkeypatch.setattr(process_utils, "invocation_token", lambda: "bash")
    monkeypatch.setattr(identity, "mask_identity", MagicMock())
    watch_loop = MagicMock()
    monkeypatch.setattr(Supervisor, "watch_loop", watch_loop)

    with pytest.raises(SystemExit) as exc_info:
        persist.main.main()

    assert exc_info.value.code == settings.EXIT_FAILURE
    watch_loop.assert_not_called()
