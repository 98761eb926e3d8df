"""Shared fixtures: a fake procfs tree and settings pointing at it."""

import os
from pathlib import Path
from typing import Dict

import pytest

from persist.config import MergedSettings

# Comfortably above the kernel's pid_max, so never a live process.
DEAD_PID = 2 ** 22 + 17

IMAGE_BYTES = b"\x7fELF" + bytes(range(256)) * 64


class FakeProc:
    """A directory laid out like /proc for a handful of pids."""

    def __init__(self, base: Path) -> None:
        self.root = base / "proc"
        self.root.mkdir()
        self.entries: Dict[int, Path] = {}

    def add(self, pid: int, target: Path, name: str = "python") -> Path:
        entry = self.root / str(pid)
        entry.mkdir()
        (entry / "exe").symlink_to(target)
        (entry / "comm").write_text(f"{name}\n")
        (entry / "status").write_text(f"Name:\t{name}\nUmask:\t0022\nState:\tS (sleeping)\n")
        self.entries[pid] = entry
        return entry


@pytest.fixture
def running_image(tmp_path):
    """The bytes the current process is 'running', kept apart from the tracked binary."""
    image = tmp_path / "image" / "running"
    image.parent.mkdir()
    image.write_bytes(IMAGE_BYTES)
    return image


@pytest.fixture
def tracked_binary(tmp_path):
    binary = tmp_path / "bin" / "persist"
    binary.parent.mkdir()
    binary.write_bytes(IMAGE_BYTES)
    binary.chmod(0o755)
    return binary


@pytest.fixture
def fake_proc(tmp_path, running_image):
    proc = FakeProc(tmp_path)
    proc.add(os.getpid(), running_image)
    return proc


@pytest.fixture
def settings(fake_proc):
    config = MergedSettings()
    config.PROC_ROOT = fake_proc.root
    config.WATCH_INTERVAL = 1
    config.HEARTBEAT_INTERVAL = 1
    config.HEARTBEAT_BROADCAST = False
    return config


class StopLoop(Exception):
    """Raised by patched sleeps to break out of the infinite loops."""
