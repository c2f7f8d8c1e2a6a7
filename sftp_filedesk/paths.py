"""Remote path helpers."""

import re

from .errors import InvalidPathError

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def normalize_path(path: str) -> str:
    """Ensure path has a leading slash and uses forward slashes.

    Raises:
        InvalidPathError: If the path is empty or holds control characters.
    """
    if not path:
        raise InvalidPathError("Path is empty")
    if _CONTROL_CHARS.search(path):
        raise InvalidPathError(f"Path contains control characters: {path!r}")
    path = path.replace("\\", "/")
    if not path.startswith("/"):
        path = "/" + path
    return path


def join_path(directory: str, name: str) -> str:
    """Join a directory and an entry name with exactly one separator."""
    return directory.rstrip("/") + "/" + name.lstrip("/")


def basename(path: str) -> str:
    stripped = path.rstrip("/")
    return stripped.rsplit("/", 1)[-1] if stripped else "/"


def check_filename(name: str) -> str:
    """Return name if it is a single path segment, else raise InvalidPathError."""
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise InvalidPathError(f"Invalid file name: {name!r}")
    if _CONTROL_CHARS.search(name):
        raise InvalidPathError(f"File name contains control characters: {name!r}")
    return name
