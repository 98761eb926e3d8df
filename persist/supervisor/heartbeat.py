import logging
from persist.log.handler import BROADCAST

HEARTBEAT_LOGGER = "persist.heartbeat"


class HeartbeatEmitter:
    """Writes the fixed heartbeat record to the log sinks."""

    def __init__(self, message: str, broadcast: bool = False) -> None:
        """
        :param message: The fixed text of every heartbeat.
        :param broadcast: If True, heartbeats go out at syslog 'emerg' so
            every attached console shows them; otherwise at 'info'.
        """
        self.message = message
        self.level = BROADCAST if broadcast else logging.INFO
        self.logger = logging.getLogger(HEARTBEAT_LOGGER)

    def emit(self) -> None:
        self.logger.log(self.level, self.message)
