"""Local temporary files used to stage transfers."""

import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager

from .errors import LocalIOError

logger = logging.getLogger(__name__)


def remove_quietly(path: str) -> bool:
    """Delete a local file if it exists. Returns False if deletion failed."""
    try:
        os.unlink(path)
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.warning("Could not delete temp file %s: %s", path, e)
        return False
    return True


@contextmanager
def staged_temp_file(temp_dir: str | None = None, suffix: str = "") -> Iterator[str]:
    """
    Yield the path of a fresh, empty local temp file and delete it on exit.

    The file is removed on every exit path, including exceptions raised in
    the ``with`` body.

    Raises:
        LocalIOError: If the temp file cannot be created, or cannot be
            removed after a body that completed normally.
    """
    try:
        fd, path = tempfile.mkstemp(prefix="sftp-filedesk-", suffix=suffix, dir=temp_dir)
        os.close(fd)
    except OSError as e:
        raise LocalIOError(f"Could not create temp file: {e}") from e

    logger.debug("Staging temp file %s", path)
    try:
        yield path
    except BaseException:
        remove_quietly(path)
        raise
    if not remove_quietly(path):
        raise LocalIOError(f"Could not delete temp file: {path}")
