import os
import errno
import logging
from contextlib import ExitStack
from pathlib import Path
from typing import Optional
from persist.exceptions import RestorationError
from persist.supervisor.process_utils import image_link

log = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755


def _copy_exact(src_fd: int, dst_fd: int, length: int) -> None:
    """Copies exactly `length` bytes from src to dst with sendfile(2)."""
    offset = 0
    while offset < length:
        sent = os.sendfile(dst_fd, src_fd, offset, length - offset)
        if sent == 0:
            raise OSError(errno.EIO, f"source ended after {offset} of {length} bytes")
        offset += sent

def ensure_binary(path: Path, proc_root: Optional[Path] = None) -> bool:
    """
    Makes sure the tracked executable is present at `path`.

    If it is missing, the image of the *currently running* process is copied
    there. The copy goes to a temporary sibling first and is renamed into
    place, so `path` never holds a partial file.

    :param path: Where the tracked executable should live.
    :param proc_root: Procfs mount point, defaults to the configured one.
    :return: True if the binary was restored, False if it was already present.
    :raises RestorationError: On any failure while restoring.
    """
    try:
        os.stat(path)
        return False
    except (FileNotFoundError, NotADirectoryError):
        pass
    except OSError as e:
        raise RestorationError(str(path), e.strerror or str(e)) from e

    source = image_link(os.getpid(), proc_root)
    temp_path = path.with_name(f".{path.name}.restore")
    log.warning(f"Binary '{path}' is missing. Restoring from {source}...")

    try:
        with ExitStack() as stack:
            length = os.stat(source).st_size
            dst_fd = os.open(temp_path, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, EXECUTABLE_MODE)
            stack.callback(os.close, dst_fd)
            src_fd = os.open(source, os.O_RDONLY)
            stack.callback(os.close, src_fd)

            _copy_exact(src_fd, dst_fd, length)
            # open(2) applies the umask, so set the bits explicitly.
            os.fchmod(dst_fd, EXECUTABLE_MODE)
        os.replace(temp_path, path)
    except OSError as e:
        raise RestorationError(str(path), e.strerror or str(e)) from e
    finally:
        temp_path.unlink(missing_ok=True)

    log.info(f"Restored '{path}' ({length} bytes).")
    return True
