__version__ = "0.1.0"

# Public API exports
from .config import (
    AppConfig,
    ConnectionConfig,
    LogConfig,
    SSHConfig,
    StagingConfig,
    load_config,
)
from .errors import (
    FileManagerError,
    InvalidPathError,
    LocalIOError,
    RemoteConnectionError,
    TransportError,
)
from .operations import OperationResult, RemoteFileManager
from .remote_client import CommandResult, CommandRunner, RemoteEntry, RemoteStat, Transport
from .session import Session, SessionManager
from .sftp_client import SFTPTransport

__all__ = [
    "__version__",
    # Configuration
    "AppConfig",
    "SSHConfig",
    "ConnectionConfig",
    "StagingConfig",
    "LogConfig",
    "load_config",
    # Errors
    "FileManagerError",
    "RemoteConnectionError",
    "TransportError",
    "LocalIOError",
    "InvalidPathError",
    # Transport
    "Transport",
    "CommandRunner",
    "CommandResult",
    "SFTPTransport",
    "RemoteEntry",
    "RemoteStat",
    # Session lifecycle
    "Session",
    "SessionManager",
    # Operations
    "OperationResult",
    "RemoteFileManager",
]
