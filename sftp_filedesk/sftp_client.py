"""
SFTP transport implementation using paramiko.

Implements the Transport protocol over one SSH connection: an SFTP channel
for file primitives and exec channels for remote commands.
"""

import logging
import os
import shlex
import stat
from datetime import datetime
from pathlib import Path

import paramiko

from .config import ConnectionConfig, SSHConfig
from .errors import LocalIOError, TransportError
from .paths import join_path
from .remote_client import DIRECTORY, FILE, CommandResult, RemoteEntry, RemoteStat

logger = logging.getLogger(__name__)

ENOENT = 2
EACCES = 13
ENOTEMPTY = (39, 66)


class TrustOnFirstUsePolicy(paramiko.MissingHostKeyPolicy):
    """
    Trust-on-first-use host key policy (same model as OpenSSH).

    - Unknown host: accept and save key to ~/.ssh/known_hosts
    - Known host, same key: accept
    - Known host, CHANGED key: reject (possible MITM attack)
    """

    def __init__(self, known_hosts_path: Path | None = None):
        self._known_hosts_path = known_hosts_path or Path.home() / ".ssh" / "known_hosts"

    def missing_host_key(self, client, hostname, key):
        host_keys = client.get_host_keys()
        existing = host_keys.lookup(hostname)

        if existing is not None:
            existing_key = existing.get(key.get_name())
            if existing_key is not None and existing_key != key:
                raise paramiko.SSHException(
                    f"Host key for {hostname} has CHANGED. "
                    f"If the server key was legitimately changed, remove the old "
                    f"entry from {self._known_hosts_path} and try again."
                )

        logger.info("Adding host key for %s to known_hosts", hostname)
        host_keys.add(hostname, key.get_name(), key)

        try:
            self._known_hosts_path.parent.mkdir(parents=True, exist_ok=True)
            host_keys.save(str(self._known_hosts_path))
        except OSError as e:
            logger.warning("Could not save known_hosts: %s", e)


def _timestamp(value) -> datetime:
    return datetime.fromtimestamp(value) if value else datetime.fromtimestamp(0)


def _is_dir(attr) -> bool:
    return stat.S_ISDIR(attr.st_mode) if attr.st_mode else False


class LocalStream:
    """
    Local file handed to paramiko's getfo/putfo.

    Open, read, write and close failures are raised as LocalIOError so they
    are never mistaken for a remote error on the path being transferred.
    """

    def __init__(self, path: str, mode: str):
        self.path = path
        self._file = self._guard("open", open, path, mode)

    def _guard(self, action: str, func, *args):
        try:
            return func(*args)
        except OSError as e:
            raise LocalIOError(f"Could not {action} local file {self.path}: {e}") from e

    def read(self, size: int = -1) -> bytes:
        return self._guard("read", self._file.read, size)

    def write(self, data: bytes) -> int:
        return self._guard("write", self._file.write, data)

    def close(self) -> None:
        self._guard("close", self._file.close)

    def __enter__(self) -> "LocalStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SFTPTransport:
    """
    One SSH/SFTP connection exposing the Transport primitives.

    The transport does not reconnect or retry; SessionManager decides when
    a transport is replaced.
    """

    def __init__(self, ssh_config: SSHConfig, conn_config: ConnectionConfig):
        self.ssh_config = ssh_config
        self.conn_config = conn_config
        self._ssh: paramiko.SSHClient | None = None
        self._sftp: paramiko.SFTPClient | None = None

    def connect(self) -> None:
        """Establish SSH connection and open SFTP session."""
        try:
            self._ssh = paramiko.SSHClient()
            self._ssh.load_system_host_keys()
            try:
                self._ssh.load_host_keys(str(Path.home() / ".ssh" / "known_hosts"))
            except FileNotFoundError:
                pass
            self._ssh.set_missing_host_key_policy(TrustOnFirstUsePolicy())

            connect_kwargs: dict = {
                "hostname": self.ssh_config.host,
                "port": self.ssh_config.port,
                "timeout": self.conn_config.timeout_seconds,
                "allow_agent": self.ssh_config.use_agent,
            }

            if self.ssh_config.username:
                connect_kwargs["username"] = self.ssh_config.username

            # Auth priority: key file -> password -> agent/default keys
            if self.ssh_config.key_file:
                key_path = os.path.expanduser(self.ssh_config.key_file)
                connect_kwargs["key_filename"] = key_path
                if self.ssh_config.key_passphrase:
                    connect_kwargs["passphrase"] = self.ssh_config.key_passphrase
                connect_kwargs["look_for_keys"] = True
                auth = "key file"
            elif self.ssh_config.password:
                connect_kwargs["password"] = self.ssh_config.password
                connect_kwargs["look_for_keys"] = False
                auth = "password"
            else:
                connect_kwargs["look_for_keys"] = True
                auth = "agent/default keys"
            logger.debug(
                "Connecting to SSH %s:%d with %s",
                self.ssh_config.host,
                self.ssh_config.port,
                auth,
            )

            self._ssh.connect(**connect_kwargs)
            transport = self._ssh.get_transport()
            if transport is not None and self.conn_config.keepalive_interval_seconds:
                transport.set_keepalive(self.conn_config.keepalive_interval_seconds)
            self._sftp = self._ssh.open_sftp()
            logger.info(
                "Connected to SSH server %s:%d",
                self.ssh_config.host,
                self.ssh_config.port,
            )

        except paramiko.AuthenticationException as e:
            self._cleanup_connections()
            raise PermissionError(f"SSH authentication failed: {e}") from e
        except TimeoutError as e:
            self._cleanup_connections()
            raise TimeoutError(f"SSH connection timeout: {e}") from e
        except OSError as e:
            self._cleanup_connections()
            raise ConnectionError(f"SSH connection failed: {e}") from e
        except paramiko.SSHException as e:
            self._cleanup_connections()
            raise ConnectionError(f"SSH error: {e}") from e

    def _cleanup_connections(self) -> None:
        """Close SFTP and SSH without raising."""
        if self._sftp:
            try:
                self._sftp.close()
            except Exception as e:
                logger.debug("Ignoring error while closing SFTP channel: %s", e)
            self._sftp = None
        if self._ssh:
            try:
                self._ssh.close()
            except Exception as e:
                logger.debug("Ignoring error while closing SSH client: %s", e)
            self._ssh = None

    def disconnect(self) -> None:
        """Close SFTP session and SSH connection."""
        self._cleanup_connections()
        logger.debug("SSH connection closed")

    def _require_sftp(self) -> paramiko.SFTPClient:
        if self._sftp is None or self._ssh is None:
            raise TransportError("Not connected", connection_lost=True)
        return self._sftp

    def _transport_active(self) -> bool:
        transport = self._ssh.get_transport() if self._ssh else None
        return transport is not None and transport.is_active()

    def _translate_error(self, error: Exception, path: str) -> TransportError:
        """Translate paramiko/IOError failures into TransportError."""
        if isinstance(error, (paramiko.SSHException, EOFError)):
            return TransportError(f"Connection lost: {error}", connection_lost=True)
        if isinstance(error, TimeoutError):
            # A slow channel on a live transport leaves the session usable
            return TransportError(
                f"Timed out: {path}", connection_lost=not self._transport_active()
            )
        errno = getattr(error, "errno", None)
        if errno == ENOENT:
            return TransportError(f"No such file or directory: {path}", errno=errno)
        elif errno == EACCES:
            return TransportError(f"Permission denied: {path}", errno=errno)
        elif errno in ENOTEMPTY:
            return TransportError(f"Directory not empty: {path}", errno=errno)
        # A dropped socket surfaces as OSError without an SFTP status
        return TransportError(
            str(error) or type(error).__name__,
            errno=errno,
            connection_lost=not self._transport_active(),
        )

    def _call(self, operation: str, path: str, func, *args):
        """Run one primitive and translate its failure."""
        sftp = self._require_sftp()
        try:
            return func(sftp, *args)
        except (LocalIOError, TransportError):
            raise
        except (OSError, EOFError, paramiko.SSHException, paramiko.SFTPError) as e:
            logger.debug("%s failed: %s", operation, e)
            raise self._translate_error(e, path) from e

    def probe(self, timeout: float) -> None:
        """Check the transport is active and answer one stat within ``timeout``."""
        sftp = self._require_sftp()
        if not self._transport_active():
            raise TransportError("SSH transport is not active", connection_lost=True)

        channel = sftp.get_channel()
        previous = channel.gettimeout()
        channel.settimeout(timeout)
        try:
            sftp.stat(self.conn_config.probe_path)
        except (OSError, EOFError, paramiko.SSHException, paramiko.SFTPError) as e:
            raise TransportError(f"Liveness probe failed: {e}", connection_lost=True) from e
        finally:
            channel.settimeout(previous)

    def list_dir(self, path: str) -> list[RemoteEntry]:
        """List contents of a directory."""
        logger.debug("Listing directory: %s", path)

        def _list_dir(sftp):
            results = []
            for attr in sftp.listdir_attr(path):
                name = attr.filename
                if name in (".", ".."):
                    continue
                is_dir = _is_dir(attr)
                results.append(
                    RemoteEntry(
                        name=name,
                        size=attr.st_size if attr.st_size and not is_dir else 0,
                        modify_time=_timestamp(attr.st_mtime),
                        access_time=_timestamp(attr.st_atime),
                        permissions=(attr.st_mode or 0) & 0o7777,
                        type=DIRECTORY if is_dir else FILE,
                        path=join_path(path, name),
                    )
                )
            logger.debug("Listed %d entries in %s", len(results), path)
            return results

        return self._call(f"list_dir({path})", path, _list_dir)

    def stat(self, path: str) -> RemoteStat:
        """Get metadata for a single file or directory."""

        def _stat(sftp):
            attr = sftp.stat(path)
            is_dir = _is_dir(attr)
            return RemoteStat(
                path=path,
                size=attr.st_size if attr.st_size and not is_dir else 0,
                modify_time=_timestamp(attr.st_mtime),
                access_time=_timestamp(attr.st_atime),
                permissions=(attr.st_mode or 0) & 0o7777,
                is_directory=is_dir,
                uid=attr.st_uid,
                gid=attr.st_gid,
            )

        return self._call(f"stat({path})", path, _stat)

    def get(self, remote_path: str, local_path: str) -> None:
        """Download a remote file to local_path."""
        logger.debug("Downloading %s -> %s", remote_path, local_path)
        local_dir = os.path.dirname(os.path.abspath(local_path))
        if not os.path.isdir(local_dir):
            raise LocalIOError(f"Local directory does not exist: {local_dir}")

        def _get(sftp):
            with LocalStream(local_path, "wb") as local:
                sftp.getfo(remote_path, local)

        self._call(f"get({remote_path})", remote_path, _get)

    def put(self, local_path: str, remote_path: str) -> None:
        """Upload local_path to a remote file."""
        logger.debug("Uploading %s -> %s", local_path, remote_path)
        if not os.path.isfile(local_path):
            raise LocalIOError(f"Local file not found: {local_path}")

        def _put(sftp):
            with LocalStream(local_path, "rb") as local:
                sftp.putfo(local, remote_path)

        self._call(f"put({remote_path})", remote_path, _put)

    def make_dirs(self, path: str) -> None:
        """Create a directory and any missing parents."""
        logger.debug("Creating directory: %s", path)

        def _make_dirs(sftp):
            current = ""
            for part in path.strip("/").split("/"):
                if not part:
                    continue
                current = current + "/" + part
                try:
                    attr = sftp.stat(current)
                except IOError as e:
                    if getattr(e, "errno", None) != ENOENT:
                        raise
                    try:
                        sftp.mkdir(current)
                    except IOError:
                        # Created concurrently by another request
                        if not _is_dir(sftp.stat(current)):
                            raise
                    logger.debug("Created directory: %s", current)
                    continue
                if not _is_dir(attr):
                    raise TransportError(f"Not a directory: {current}")

        self._call(f"make_dirs({path})", path, _make_dirs)

    def remove(self, path: str) -> None:
        """Delete a file."""
        logger.debug("Deleting file: %s", path)
        self._call(f"remove({path})", path, lambda sftp: sftp.remove(path))

    def remove_tree(self, path: str) -> None:
        """Delete a directory recursively."""
        logger.debug("Deleting directory tree: %s", path)

        def _remove_tree(sftp, directory):
            for attr in sftp.listdir_attr(directory):
                if attr.filename in (".", ".."):
                    continue
                child = join_path(directory, attr.filename)
                if _is_dir(attr):
                    _remove_tree(sftp, child)
                else:
                    sftp.remove(child)
            sftp.rmdir(directory)

        self._call(f"remove_tree({path})", path, _remove_tree, path)

    def rename(self, old_path: str, new_path: str) -> None:
        """Rename or move a file/directory."""
        logger.debug("Renaming: %s -> %s", old_path, new_path)
        self._call(
            f"rename({old_path}, {new_path})",
            old_path,
            lambda sftp: sftp.rename(old_path, new_path),
        )

    def execute(self, program: str, args: list[str]) -> CommandResult:
        """Run a program on the remote host; every argument is shell-quoted."""
        self._require_sftp()
        command = shlex.join([program, *args])
        logger.debug("Executing remote command: %s", command)
        encoding = self.ssh_config.encoding
        timeout = self.conn_config.command_timeout_seconds
        channel = None
        try:
            stdin, stdout, stderr = self._ssh.exec_command(command, timeout=timeout)
            channel = stdout.channel
            stdin.close()
            out = stdout.read().decode(encoding, errors="replace")
            err = stderr.read().decode(encoding, errors="replace")
            status = channel.recv_exit_status()
        except TimeoutError as e:
            # Only this exec channel is abandoned; the session stays up
            if channel is not None:
                channel.close()
            lost = not self._transport_active()
            logger.warning("Remote command %s timed out after %ss", program, timeout)
            raise TransportError(f"{program} timed out", connection_lost=lost) from e
        except (OSError, EOFError, paramiko.SSHException) as e:
            raise self._translate_error(e, program) from e
        logger.debug("Remote command %s exited with %d", program, status)
        return CommandResult(exit_status=status, stdout=out, stderr=err)
