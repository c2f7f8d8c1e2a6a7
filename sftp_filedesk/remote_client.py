"""
Remote transport protocol definition.

Defines the primitives the session manager and the file manager rely on,
and the records those primitives return. SFTPTransport implements them over
paramiko; tests substitute mocks built against the same protocol.
"""

from __future__ import annotations

import stat
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

DIRECTORY = "directory"
FILE = "file"


@dataclass
class RemoteEntry:
    """One item of a directory listing."""

    name: str
    size: int  # 0 for directories
    modify_time: datetime
    access_time: datetime
    permissions: int
    type: str  # DIRECTORY or FILE
    path: str

    @property
    def is_dir(self) -> bool:
        return self.type == DIRECTORY

    @property
    def rights(self) -> str:
        """Permission bits as ``rwxr-xr-x``."""
        return stat.filemode(self.permissions)[1:]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "size": self.size,
            "modify_time": self.modify_time.isoformat(),
            "access_time": self.access_time.isoformat(),
            "permissions": self.permissions,
            "rights": self.rights,
            "type": self.type,
            "path": self.path,
        }


@dataclass
class RemoteStat:
    """Metadata for a single remote path."""

    path: str
    size: int
    modify_time: datetime
    access_time: datetime
    permissions: int
    is_directory: bool
    uid: int | None = None
    gid: int | None = None

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "size": self.size,
            "modify_time": self.modify_time.isoformat(),
            "access_time": self.access_time.isoformat(),
            "permissions": self.permissions,
            "is_directory": self.is_directory,
            "uid": self.uid,
            "gid": self.gid,
        }


@dataclass
class CommandResult:
    exit_status: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


@runtime_checkable
class CommandRunner(Protocol):
    """Runs a program on the remote host with a discrete argument list."""

    def execute(self, program: str, args: list[str]) -> CommandResult:
        """Run ``program`` with ``args``; arguments are never re-split by a shell."""
        ...


@runtime_checkable
class Transport(CommandRunner, Protocol):
    """Protocol defining the remote filesystem primitives.

    All paths are absolute remote paths. Failures raise TransportError
    (LocalIOError for local-side failures of get/put).
    """

    def connect(self) -> None:
        """Establish connection to the remote server."""
        ...

    def disconnect(self) -> None:
        """Close connection to the remote server."""
        ...

    def probe(self, timeout: float) -> None:
        """Cheap liveness check; raises TransportError if the session is unusable."""
        ...

    def list_dir(self, path: str) -> list[RemoteEntry]:
        """List contents of a directory, without ``.`` and ``..``."""
        ...

    def stat(self, path: str) -> RemoteStat:
        """Get metadata for a single file or directory."""
        ...

    def get(self, remote_path: str, local_path: str) -> None:
        """Copy a remote file to a local path."""
        ...

    def put(self, local_path: str, remote_path: str) -> None:
        """Copy a local file to a remote path."""
        ...

    def make_dirs(self, path: str) -> None:
        """Create a directory and its parents; an existing directory is not an error."""
        ...

    def remove(self, path: str) -> None:
        """Delete a single file."""
        ...

    def remove_tree(self, path: str) -> None:
        """Delete a directory and everything below it."""
        ...

    def rename(self, old_path: str, new_path: str) -> None:
        """Rename or move a file/directory."""
        ...
