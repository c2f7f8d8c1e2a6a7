"""
Shared pytest fixtures for SFTP-FileDesk tests.
"""

from collections.abc import Generator
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from sftp_filedesk.config import ConnectionConfig, SSHConfig, StagingConfig
from sftp_filedesk.operations import RemoteFileManager
from sftp_filedesk.remote_client import DIRECTORY, FILE, CommandResult, RemoteEntry, RemoteStat
from sftp_filedesk.session import SessionManager
from sftp_filedesk.sftp_client import SFTPTransport


@pytest.fixture
def tmp_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a temporary INI configuration file for config tests.

    Returns:
        Path to the temporary config file.
    """
    config_content = """[sftp]
host = testserver.local
port = 2222
username = testuser
password = testpass
use_agent = false

[connection]
timeout_seconds = 45
probe_timeout_seconds = 5
probe_path = /home
command_timeout_seconds = 120
keepalive_interval_seconds = 15

[staging]
temp_dir = /var/tmp/filedesk
remote_temp_dir = /srv/scratch

[logging]
level = debug
file = test.log
console = false
"""
    config_path = tmp_path / "test_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path


@pytest.fixture
def minimal_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Creates a minimal INI configuration file with only the host."""
    config_path = tmp_path / "minimal_config.ini"
    config_path.write_text("[sftp]\nhost = minimal.server.com\n", encoding="utf-8")
    yield config_path


@pytest.fixture
def ssh_config() -> SSHConfig:
    """Creates a standard SSHConfig for testing."""
    return SSHConfig(
        host="test.ssh.local",
        port=22,
        username="testuser",
        password="testpass",
        use_agent=False,
    )


@pytest.fixture
def conn_config() -> ConnectionConfig:
    """Creates a standard ConnectionConfig for testing."""
    return ConnectionConfig(
        timeout_seconds=30,
        probe_timeout_seconds=5,
        probe_path="/",
        command_timeout_seconds=60,
        keepalive_interval_seconds=30,
    )


def make_transport() -> MagicMock:
    """A transport mock with every primitive succeeding by default."""
    transport = MagicMock(spec=SFTPTransport)
    transport.list_dir.return_value = []
    transport.execute.return_value = CommandResult(exit_status=0)
    transport.stat.return_value = make_stat("/", is_directory=True)
    return transport


def make_stat(path: str, is_directory: bool = False, size: int = 0) -> RemoteStat:
    stamp = datetime(2024, 6, 15, 10, 30)
    return RemoteStat(
        path=path,
        size=0 if is_directory else size,
        modify_time=stamp,
        access_time=stamp,
        permissions=0o755 if is_directory else 0o644,
        is_directory=is_directory,
        uid=1000,
        gid=1000,
    )


def make_entry(directory: str, name: str, is_directory: bool = False, size: int = 0) -> RemoteEntry:
    stamp = datetime(2024, 6, 15, 10, 30)
    return RemoteEntry(
        name=name,
        size=0 if is_directory else size,
        modify_time=stamp,
        access_time=stamp,
        permissions=0o755 if is_directory else 0o644,
        type=DIRECTORY if is_directory else FILE,
        path=directory.rstrip("/") + "/" + name,
    )


@pytest.fixture
def transport_factory() -> MagicMock:
    """Factory handing out a fresh transport mock per connect attempt."""
    factory = MagicMock(side_effect=lambda ssh, conn: make_transport())
    return factory


@pytest.fixture
def sessions(ssh_config, conn_config, transport_factory) -> Generator[SessionManager, None, None]:
    """SessionManager wired to mocked transports."""
    manager = SessionManager(ssh_config, conn_config, transport_factory=transport_factory)
    yield manager
    manager.disconnect()


@pytest.fixture
def transport(sessions) -> MagicMock:
    """The transport behind an already established session."""
    return sessions.acquire().handle


@pytest.fixture
def file_manager(sessions, tmp_path) -> RemoteFileManager:
    """RemoteFileManager staging temp files under a per-test directory."""
    staging_dir = tmp_path / "staging"
    staging_dir.mkdir()
    return RemoteFileManager(sessions, StagingConfig(temp_dir=str(staging_dir)))
