import logging
import logging.handlers
from typing import Tuple, Union

# Above CRITICAL; records at this level go out as syslog 'emerg', which
# syslogd writes to every logged-in console.
BROADCAST = 60
logging.addLevelName(BROADCAST, "BROADCAST")

SyslogAddress = Union[str, Tuple[str, int]]


def parse_syslog_address(address: str) -> SyslogAddress:
    """
    Turns a configured address into what SysLogHandler expects.

    :param address: A unix socket path (e.g. '/dev/log') or 'host:port'.
    :return: The socket path unchanged, or a (host, port) tuple.
    """
    if address.startswith("/") or ":" not in address:
        return address
    host, _, port = address.rpartition(":")
    return host, int(port)


class PersistSysLogHandler(logging.handlers.SysLogHandler):
    """
    A syslog handler that knows about the BROADCAST level and tags every
    record with the program ident.
    """
    priority_map = dict(logging.handlers.SysLogHandler.priority_map, BROADCAST="emerg")

    def __init__(self, address: str, facility: str, ident: str):
        """
        Initializes the syslog handler.

        :param address: Socket path or 'host:port' of the syslog daemon.
        :param facility: Syslog facility name, e.g. 'daemon'.
        :param ident: Program name prepended to every message.
        """
        facility_code = self.facility_names.get(facility)
        if facility_code is None:
            raise ValueError(f"Unknown syslog facility '{facility}'.")
        super().__init__(address=parse_syslog_address(address), facility=facility_code)
        self.ident = f"{ident}: "