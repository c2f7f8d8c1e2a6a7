"""
Error taxonomy for remote file operations.

Each class also derives from the closest builtin so callers that only know
about ConnectionError/OSError/ValueError keep working.
"""


class FileManagerError(Exception):
    """Base class for every failure reported by the file manager."""

    kind = "error"


class RemoteConnectionError(FileManagerError, ConnectionError):
    """Connecting (or reconnecting) to the remote host failed."""

    kind = "connection"


class TransportError(FileManagerError, OSError):
    """A single remote call failed on an otherwise established session.

    ``connection_lost`` is set when the failure shows the session itself is
    unusable, so the session manager can drop it.
    """

    kind = "transport"

    def __init__(self, message: str, errno: int | None = None, connection_lost: bool = False):
        super().__init__(message)
        self.errno = errno
        self.connection_lost = connection_lost

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class LocalIOError(FileManagerError, OSError):
    """Staging or cleaning up a local temporary file failed."""

    kind = "local_io"


class InvalidPathError(FileManagerError, ValueError):
    """A path was rejected before any remote call was made."""

    kind = "invalid_path"
