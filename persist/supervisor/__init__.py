"""
The Supervisor package.
Keeps a single executable alive and on disk.

This package contains the central Supervisor class and its helper modules,
which together handle role selection, binary restoration, liveness checks,
restarts and relabelling of the watcher process.
"""
from .context import ExecutableRecord, ProcessRole, SupervisorContext
from .supervisor import Supervisor

__all__ = ['ExecutableRecord', 'ProcessRole', 'Supervisor', 'SupervisorContext']
