"""
This module contains the configuration settings for persist.
It defines the display names, polling intervals, procfs location and the
syslog sink used by the heartbeat.
"""

import os
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=True)

#* --- Display Names ---
# BIN_NAME is the name the program is built under, WATCHER_NAME is the name
# the watcher process takes up. Neither is read from the environment.
BIN_NAME = "persist"
WATCHER_NAME = "bash"

#* --- Procfs ---
PROC_ROOT = pathlib.Path(os.getenv("PERSIST_PROC_ROOT", "/proc"))
DELETED_SUFFIX = " (deleted)"
STATUS_NAME_LABEL = "Name:\t"

#* --- Supervision Intervals ---
HEARTBEAT_INTERVAL = int(os.getenv("PERSIST_HEARTBEAT_INTERVAL", "60"))  # seconds
WATCH_INTERVAL = int(os.getenv("PERSIST_WATCH_INTERVAL", "60"))          # seconds

#* --- Heartbeat ---
HEARTBEAT_MESSAGE = "hey! you!"
# Broadcast heartbeats are sent at 'emerg' so every attached console sees them.
HEARTBEAT_BROADCAST = os.getenv("PERSIST_HEARTBEAT_BROADCAST", "False").lower() in ('true', '1', 't')

#* --- Logging ---
LOG_LEVEL = os.getenv("PERSIST_LOG_LEVEL", "INFO").upper()
SYSLOG_ADDRESS = os.getenv("PERSIST_SYSLOG_ADDRESS", "/dev/log")
SYSLOG_FACILITY = "daemon"
SYSLOG_IDENT = "persist"

#* --- Exit Codes ---
EXIT_FAILURE = 1
