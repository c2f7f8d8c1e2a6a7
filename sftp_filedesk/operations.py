"""
Remote file manager operations.

Every operation acquires a session from the SessionManager (validated for
anything that mutates the remote side), runs one or more transport
primitives and reports an OperationResult. Failures never escape as
exceptions, except from the two calls whose callers need a value back
(download_file, get_file_stats), which unwrap the result.
"""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass, field
from errno import ENOENT
from typing import Any, Callable

from .config import StagingConfig
from .errors import FileManagerError, InvalidPathError, TransportError
from .paths import basename, check_filename, join_path, normalize_path
from .remote_client import RemoteEntry, RemoteStat, Transport
from .session import SessionManager
from .staging import staged_temp_file

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Outcome of one file manager operation."""

    success: bool
    message: str
    data: Any = None
    error: FileManagerError | None = field(default=None, repr=False)

    @classmethod
    def ok(cls, message: str, data: Any = None) -> OperationResult:
        return cls(success=True, message=message, data=data)

    @classmethod
    def failed(cls, message: str, error: FileManagerError, data: Any = None) -> OperationResult:
        return cls(success=False, message=message, data=data, error=error)

    def unwrap(self) -> Any:
        """Return data, or raise the error carried by a failed result."""
        if not self.success:
            raise self.error
        return self.data

    def to_dict(self) -> dict:
        payload: dict = {"success": self.success, "message": self.message}
        if isinstance(self.data, list):
            payload["data"] = [_jsonable(item) for item in self.data]
        elif self.data is not None:
            payload["data"] = _jsonable(self.data)
        return payload


def _jsonable(value: Any) -> Any:
    return value.to_dict() if hasattr(value, "to_dict") else value


def sort_entries(entries: list[RemoteEntry]) -> list[RemoteEntry]:
    """Directories first, then by name."""
    return sorted(entries, key=lambda entry: (not entry.is_dir, entry.name))


def _run_command(handle: Transport, program: str, args: list[str]) -> None:
    result = handle.execute(program, args)
    if not result.ok:
        detail = (result.stderr or result.stdout).strip() or f"exit status {result.exit_status}"
        raise TransportError(f"{program} failed: {detail}")


def _remove_archive(handle: Transport, archive: str) -> None:
    """Delete a temporary remote archive; a missing one is already gone."""
    try:
        handle.remove(archive)
    except TransportError as e:
        if e.errno != ENOENT:
            logger.warning("Could not remove remote archive %s: %s", archive, e)


class RemoteFileManager:
    """File-manager operations over the session owned by a SessionManager."""

    def __init__(self, sessions: SessionManager, staging: StagingConfig | None = None):
        self._sessions = sessions
        self._staging = staging or StagingConfig()

    def _failed(self, action: str, error: FileManagerError) -> OperationResult:
        logger.error("Error %s: %s", action, error)
        return OperationResult.failed(f"Error {action}: {error}", error)

    def _perform(
        self,
        action: str,
        success_message: str,
        validate: bool,
        func: Callable[..., Any],
        *paths: str,
    ) -> OperationResult:
        """
        Normalize remote paths, acquire a session once and run func.

        func is called with the session handle followed by the normalized
        paths. A TransportError that reports a lost connection makes the
        session manager drop the session so the next call reconnects.
        """
        try:
            targets = [normalize_path(path) for path in paths]
            session = self._sessions.acquire(validate=validate)
        except FileManagerError as e:
            return self._failed(action, e)

        try:
            data = func(session.handle, *targets)
        except TransportError as e:
            if e.connection_lost:
                self._sessions.discard(session)
            return self._failed(action, e)
        except FileManagerError as e:
            return self._failed(action, e)
        return OperationResult.ok(success_message, data)

    def list_files(self, path: str = "/") -> OperationResult:
        """List a directory; data is a list of RemoteEntry, directories first."""
        return self._perform(
            "listing files",
            "Listed files",
            False,
            lambda handle, directory: sort_entries(handle.list_dir(directory)),
            path,
        )

    def get_file_stats(self, path: str) -> RemoteStat:
        """Stat a remote path.

        Raises:
            FileManagerError: If the session or the stat call fails.
        """
        result = self._perform(
            "getting file info",
            "Stat complete",
            False,
            lambda handle, target: handle.stat(target),
            path,
        )
        return result.unwrap()

    def create_directory(self, path: str) -> OperationResult:
        return self._perform(
            "creating directory",
            "Directory created",
            True,
            lambda handle, target: handle.make_dirs(target),
            path,
        )

    def delete_file(self, path: str) -> OperationResult:
        """Delete a file, or a directory with everything below it.

        The branch is taken on the remote type reported by stat.
        """

        def _delete(handle: Transport, target: str) -> None:
            if handle.stat(target).is_directory:
                handle.remove_tree(target)
            else:
                handle.remove(target)

        return self._perform("deleting", "Deleted", True, _delete, path)

    def upload_file(self, local_path: str, remote_path: str) -> OperationResult:
        """Upload a local file. The caller owns (and deletes) local_path."""
        return self._perform(
            "uploading file",
            "Upload complete",
            True,
            lambda handle, target: handle.put(local_path, target),
            remote_path,
        )

    def upload_files(
        self,
        remote_dir: str,
        local_paths: list[str],
        filenames: list[str] | None = None,
    ) -> OperationResult:
        """Upload several local files into one remote directory.

        Each file lands at ``remote_dir/<filename>``. ``filenames`` carries
        the names the files had before they were staged locally; without
        it the local basenames are used.

        Succeeds if at least one file was uploaded; data holds one
        ``{filename, success, message}`` record per file.
        """
        if not local_paths:
            return self._failed("uploading files", InvalidPathError("No files to upload"))
        if filenames is None:
            filenames = [os.path.basename(local_path) for local_path in local_paths]
        elif len(filenames) != len(local_paths):
            return self._failed(
                "uploading files",
                InvalidPathError(f"Got {len(filenames)} file names for {len(local_paths)} files"),
            )

        details = []
        last_error = None
        for local_path, filename in zip(local_paths, filenames):
            try:
                check_filename(filename)
            except InvalidPathError as e:
                result = self._failed("uploading file", e)
            else:
                result = self.upload_file(local_path, join_path(remote_dir, filename))
            if not result.success:
                last_error = result.error
            details.append(
                {"filename": filename, "success": result.success, "message": result.message}
            )

        uploaded = sum(1 for item in details if item["success"])
        if uploaded:
            return OperationResult.ok(f"Uploaded {uploaded}/{len(details)} files", details)
        return OperationResult.failed("All file uploads failed", last_error, details)

    def download_file(self, remote_path: str, local_path: str) -> None:
        """Download to local_path; the caller streams and deletes it.

        Raises:
            FileManagerError: If the download fails.
        """
        self._perform(
            "downloading file",
            "Download complete",
            False,
            lambda handle, source: handle.get(source, local_path),
            remote_path,
        ).unwrap()

    def download_directory(self, remote_dir: str, local_path: str) -> OperationResult:
        """Download a remote directory as one ZIP archive at local_path.

        The directory is zipped into ``staging.remote_temp_dir`` on the
        remote host, fetched, and the remote archive is deleted again
        whether or not the download worked.
        """

        def _download(handle: Transport, source: str) -> None:
            if not handle.stat(source).is_directory:
                raise TransportError(f"Not a directory: {source}")
            name = basename(source).strip("/") or "root"
            archive = join_path(
                normalize_path(self._staging.remote_temp_dir),
                f".filedesk-{uuid.uuid4().hex}-{name}.zip",
            )
            try:
                _run_command(handle, "zip", ["-r", "-q", archive, source])
                handle.get(archive, local_path)
            finally:
                _remove_archive(handle, archive)

        return self._perform(
            "downloading directory", "Directory downloaded", True, _download, remote_dir
        )

    def rename_file(self, old_path: str, new_path: str) -> OperationResult:
        return self._perform(
            "renaming", "Renamed", True, lambda handle, old, new: handle.rename(old, new),
            old_path, new_path,
        )

    def move_file(self, source_path: str, target_path: str) -> OperationResult:
        # Same primitive as rename
        return self._perform(
            "moving", "Moved", True, lambda handle, old, new: handle.rename(old, new),
            source_path, target_path,
        )

    def copy_file(self, source_path: str, target_path: str) -> OperationResult:
        """Copy a remote file by staging it through a local temp file.

        The temp file is deleted on every exit path.
        """

        def _copy(handle: Transport, source: str, target: str) -> None:
            with staged_temp_file(self._staging.temp_dir, suffix="_copy") as temp_path:
                handle.get(source, temp_path)
                handle.put(temp_path, target)

        return self._perform("copying", "Copied", True, _copy, source_path, target_path)

    def compress_file(self, source_path: str, target_path: str) -> OperationResult:
        """Zip a remote file or directory into target_path on the remote host."""

        def _compress(handle: Transport, source: str, target: str) -> None:
            if handle.stat(source).is_directory:
                args = ["-r", target, source]
            else:
                args = [target, source]
            _run_command(handle, "zip", args)

        return self._perform("compressing", "Compressed", True, _compress, source_path, target_path)

    def extract_file(self, source_path: str, target_path: str) -> OperationResult:
        """Unzip a remote archive into target_path, creating it if needed."""

        def _extract(handle: Transport, source: str, target: str) -> None:
            handle.make_dirs(target)
            _run_command(handle, "unzip", ["-o", source, "-d", target])

        return self._perform("extracting", "Extracted", True, _extract, source_path, target_path)
