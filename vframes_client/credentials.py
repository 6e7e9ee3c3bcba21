"""Credential storage and the per-session context.

A ``SessionContext`` is the one place holding a session's credentials. It is
passed explicitly to every component, so several independent sessions can live
in one process. Only two paths write credentials:

- the Session Manager (login replaces them, logout clears them)
- ``SessionContext.refresh``, driven by the authenticated transport

``SessionContext.refresh`` is single-flight: while an exchange is pending,
every caller awaits the same task instead of starting its own.
"""

import asyncio
import os
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from vframes_client.cache import JobListCache
from vframes_client.exceptions import SessionExpired
from vframes_client.logger import get_logger
from vframes_client.metrics import token_refresh
from vframes_client.models import Credentials, TokenPair

logger = get_logger(__name__)

type RefreshExchange = Callable[[str], Awaitable[TokenPair]]


class CredentialStore(ABC):
    """Persistence for the session's credentials."""

    @abstractmethod
    def load(self) -> Credentials | None:
        """Return stored credentials, or None when unauthenticated."""

    @abstractmethod
    def save(self, credentials: Credentials) -> None:
        """Replace stored credentials."""

    @abstractmethod
    def clear(self) -> None:
        """Forget stored credentials."""


class MemoryCredentialStore(CredentialStore):
    """Process-local store, lost when the process exits."""

    def __init__(self, credentials: Credentials | None = None) -> None:
        self._credentials = credentials

    def load(self) -> Credentials | None:
        return self._credentials

    def save(self, credentials: Credentials) -> None:
        self._credentials = credentials

    def clear(self) -> None:
        self._credentials = None


class FileCredentialStore(CredentialStore):
    """JSON file store surviving restarts.

    The file is readable by the owner only and is removed on ``clear``.
    Reads are served from memory after the first load.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self._credentials: Credentials | None = None
        self._loaded = False

    def load(self) -> Credentials | None:
        if self._loaded:
            return self._credentials
        self._loaded = True
        try:
            self._credentials = Credentials.model_validate_json(
                self.path.read_text(encoding="utf-8")
            )
        except FileNotFoundError:
            self._credentials = None
        except (OSError, PydanticValidationError) as e:
            logger.warning(
                "Ignoring unreadable credentials file", path=str(self.path), error=str(e)
            )
            self._credentials = None
        return self._credentials

    def save(self, credentials: Credentials) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(credentials.model_dump_json())
        tmp.replace(self.path)
        self._credentials = credentials
        self._loaded = True

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
        self._credentials = None
        self._loaded = True


class SessionContext:
    """Credentials, refresh coordination and cached data of one session.

    Attributes:
        store: Where credentials are persisted
        cache: Job listing pages fetched during this session
        refresh_failed: True once a refresh was rejected; reset by ``replace``
    """

    def __init__(
        self,
        store: CredentialStore | None = None,
        cache: JobListCache | None = None,
    ) -> None:
        self.store = store or MemoryCredentialStore()
        self.cache = cache or JobListCache()
        self.refresh_failed = False
        self._refresh_task: asyncio.Task[Credentials] | None = None
        self._invalid_listeners: list[Callable[[], None]] = []

    @property
    def credentials(self) -> Credentials | None:
        return self.store.load()

    @property
    def access_token(self) -> str | None:
        credentials = self.credentials
        return credentials.access_token if credentials else None

    @property
    def refresh_in_flight(self) -> bool:
        return self._refresh_task is not None

    def replace(self, credentials: Credentials) -> None:
        """Install fresh credentials after a login."""
        self.store.save(credentials)
        self.refresh_failed = False
        self.cache.clear()

    def clear(self) -> None:
        """Drop credentials and every piece of cached session data."""
        self.store.clear()
        self.cache.clear()

    def on_session_invalid(self, listener: Callable[[], None]) -> None:
        """Register a callback run when the session can no longer be renewed."""
        self._invalid_listeners.append(listener)

    def invalidate(self) -> None:
        """Clear credentials and notify listeners that re-authentication is needed."""
        self.refresh_failed = True
        self.clear()
        logger.info("Session invalidated, re-authentication required")
        for listener in self._invalid_listeners:
            listener()

    async def refresh(self, exchange: RefreshExchange) -> Credentials:
        """Rotate the token pair, sharing one exchange among concurrent callers.

        Args:
            exchange: Coroutine function trading a refresh token for a new pair

        Returns:
            The rotated credentials, or the ones a login installed while the
            exchange was pending; the exchanged pair is then discarded

        Raises:
            SessionExpired: No refresh token, a previous refresh failed, the
                exchange failed, or a logout happened while it was pending.
                Credentials are cleared when the exchange failed.
        """
        if self._refresh_task is None:
            if self.refresh_failed:
                raise SessionExpired
            self._refresh_task = asyncio.create_task(self._refresh(exchange))
        # shield: a cancelled waiter must not cancel the exchange others await
        return await asyncio.shield(self._refresh_task)

    async def _refresh(self, exchange: RefreshExchange) -> Credentials:
        try:
            credentials = self.credentials
            if credentials is None or not credentials.refresh_token:
                self.invalidate()
                raise SessionExpired
            logger.debug("Refreshing access token")
            try:
                pair = await exchange(credentials.refresh_token)
            except Exception as e:
                if self.credentials != credentials:
                    return self._superseded()
                token_refresh.labels("failure").inc()
                logger.warning("Access token refresh failed", error=str(e))
                self.invalidate()
                raise SessionExpired from e
            if self.credentials != credentials:
                # a login or logout happened during the exchange
                return self._superseded()
            rotated = credentials.rotated(pair)
            self.store.save(rotated)
            token_refresh.labels("success").inc()
            logger.debug("Access token refreshed")
            return rotated
        finally:
            self._refresh_task = None

    def _superseded(self) -> Credentials:
        """Drop the outcome of a refresh whose session was replaced meanwhile."""
        token_refresh.labels("superseded").inc()
        current = self.credentials
        logger.info(
            "Session changed during token refresh, discarding result",
            logged_out=current is None,
        )
        if current is None:
            raise SessionExpired
        return current
