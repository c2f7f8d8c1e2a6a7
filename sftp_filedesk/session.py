"""
Session manager: owns the single remote connection for the process.

The session is created lazily, reused as-is for reads, validated with a
liveness probe before mutations and replaced when it turns out to be dead.
All of that happens under one lock, so only one connect attempt can be in
flight; callers that waited on it share its outcome.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable

from .config import ConnectionConfig, SSHConfig
from .errors import RemoteConnectionError, TransportError
from .remote_client import Transport
from .sftp_client import SFTPTransport

logger = logging.getLogger(__name__)

TransportFactory = Callable[[SSHConfig, ConnectionConfig], Transport]


@dataclass(frozen=True)
class Session:
    """A connected transport handle plus the config it was opened with."""

    handle: Transport
    config: SSHConfig
    generation: int


class SessionManager:
    """
    Process-scoped owner of the remote session.

    Construct once at startup, pass to RemoteFileManager, call disconnect()
    (or leave the ``with`` block) at shutdown.
    """

    def __init__(
        self,
        ssh_config: SSHConfig,
        conn_config: ConnectionConfig,
        transport_factory: TransportFactory = SFTPTransport,
    ):
        self._ssh_config = ssh_config
        self._conn_config = conn_config
        self._transport_factory = transport_factory
        self._session: Session | None = None
        self._lock = threading.Lock()
        # Bumped on every connect attempt, successful or not
        self._attempts = 0
        self._last_error: RemoteConnectionError | None = None

    @property
    def config(self) -> SSHConfig:
        return self._ssh_config

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def connected(self) -> bool:
        return self._session is not None

    def is_current(self, session: Session) -> bool:
        """True while ``session`` is still the one handed out by acquire()."""
        return session is not None and self._session is session

    def acquire(self, validate: bool = False) -> Session:
        """
        Return a session, connecting or reconnecting as needed.

        Args:
            validate: Probe an existing session before returning it and
                replace it if the probe fails. Reads pass False and accept a
                possibly stale session.

        Raises:
            RemoteConnectionError: If a new connection could not be opened.
        """
        observed_attempts = self._attempts
        with self._lock:
            if self._attempts != observed_attempts:
                # Another caller connected while we waited; share its outcome
                if self._session is not None:
                    return self._session
                if self._last_error is not None:
                    raise RemoteConnectionError(str(self._last_error)) from self._last_error.__cause__

            if self._session is not None:
                if not validate:
                    return self._session
                if self._probe(self._session):
                    logger.debug("Reusing validated SFTP session")
                    return self._session
                logger.info("Existing SFTP session is dead, reconnecting")
                self._drop()

            return self._connect()

    def _probe(self, session: Session) -> bool:
        try:
            session.handle.probe(self._conn_config.probe_timeout_seconds)
        except (TransportError, OSError) as e:
            logger.warning("SFTP liveness probe failed: %s", e)
            return False
        return True

    def _connect(self) -> Session:
        """Open a new transport. Caller must hold the lock."""
        transport = self._transport_factory(self._ssh_config, self._conn_config)
        try:
            transport.connect()
        except OSError as e:
            error = RemoteConnectionError(f"SFTP connection failed: {e}")
            self._last_error = error
            logger.error(
                "SFTP connection to %s:%d failed: %s",
                self._ssh_config.host,
                self._ssh_config.port,
                e,
            )
            raise error from e
        finally:
            # Waiters compare against this to detect a finished attempt
            self._attempts += 1
        self._last_error = None
        self._session = Session(handle=transport, config=self._ssh_config, generation=self._attempts)
        logger.info("SFTP session %d established", self._attempts)
        return self._session

    def _drop(self) -> None:
        """Close and forget the current session. Caller must hold the lock."""
        session, self._session = self._session, None
        if session is None:
            return
        try:
            session.handle.disconnect()
        except Exception as e:
            logger.warning("Error closing SFTP session: %s", e)

    def discard(self, session: Session) -> None:
        """Forget ``session`` after an operation found it unusable.

        A newer session opened since ``session`` was acquired is kept.
        """
        with self._lock:
            if self._session is session:
                logger.info("Discarding broken SFTP session %d", session.generation)
                self._drop()

    def disconnect(self) -> None:
        """Close the session, if any. Safe to call repeatedly."""
        with self._lock:
            if self._session is not None:
                self._drop()
                logger.info("SFTP connection closed")

    def __enter__(self) -> "SessionManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()
