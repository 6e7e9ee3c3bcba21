"""Tests for credential stores and the session context."""

import asyncio
import stat
from collections.abc import Awaitable, Callable
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.fakes import wait_for
from vframes_client.cache import JobListCache
from vframes_client.credentials import (
    FileCredentialStore,
    MemoryCredentialStore,
    SessionContext,
)
from vframes_client.exceptions import SessionExpired
from vframes_client.models import Credentials, Identity, JobPage, TokenPair

ADA = Identity(user_id=1, username="ada", email="ada@example.com")


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(access_token="access-1", refresh_token="refresh-1", user=ADA)


def test_file_store_persists_across_instances(
    tmp_path: Path, credentials: Credentials
) -> None:
    """Test credentials saved by one store are loaded by a fresh one."""
    path = tmp_path / "nested" / "credentials.json"
    FileCredentialStore(path).save(credentials)

    assert FileCredentialStore(path).load() == credentials


def test_file_store_is_owner_only(tmp_path: Path, credentials: Credentials) -> None:
    """Test the credentials file is not readable by other users."""
    path = tmp_path / "credentials.json"
    FileCredentialStore(path).save(credentials)

    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert not path.with_suffix(".tmp").exists()


def test_file_store_clear_removes_file(
    tmp_path: Path, credentials: Credentials
) -> None:
    """Test clearing forgets the credentials on disk and in memory."""
    path = tmp_path / "credentials.json"
    store = FileCredentialStore(path)
    store.save(credentials)

    store.clear()
    store.clear()

    assert not path.exists()
    assert store.load() is None
    assert FileCredentialStore(path).load() is None


def test_file_store_missing_file(tmp_path: Path) -> None:
    """Test a store without a file is unauthenticated."""
    assert FileCredentialStore(tmp_path / "absent.json").load() is None


def test_file_store_ignores_corrupt_file(tmp_path: Path) -> None:
    """Test an unreadable credentials file loads as no credentials."""
    path = tmp_path / "credentials.json"
    path.write_text("{not json", encoding="utf-8")

    assert FileCredentialStore(path).load() is None


def test_memory_store(credentials: Credentials) -> None:
    """Test the in-memory store round trip."""
    store = MemoryCredentialStore()
    assert store.load() is None

    store.save(credentials)
    assert store.load() == credentials

    store.clear()
    assert store.load() is None


def test_context_replace_clears_cache_and_failure(credentials: Credentials) -> None:
    """Test installing new credentials starts from a clean session."""
    cache = JobListCache()
    cache.set(20, 0, JobPage())
    context = SessionContext(cache=cache)
    context.refresh_failed = True

    context.replace(credentials)

    assert context.credentials == credentials
    assert context.access_token == "access-1"
    assert not context.refresh_failed
    assert len(cache) == 0


def test_context_invalidate_notifies_listeners(credentials: Credentials) -> None:
    """Test invalidation clears credentials and calls every listener."""
    context = SessionContext(store=MemoryCredentialStore(credentials))
    listeners = [MagicMock(), MagicMock()]
    for listener in listeners:
        context.on_session_invalid(listener)

    context.invalidate()

    assert context.credentials is None
    assert context.refresh_failed
    for listener in listeners:
        listener.assert_called_once_with()


@pytest.mark.asyncio
async def test_refresh_rotates_credentials(credentials: Credentials) -> None:
    """Test a refresh stores the new pair and keeps the identity."""
    context = SessionContext(store=MemoryCredentialStore(credentials))
    exchange = AsyncMock(
        return_value=TokenPair(access_token="access-2", refresh_token="refresh-2")
    )

    rotated = await context.refresh(exchange)

    exchange.assert_awaited_once_with("refresh-1")
    assert rotated == Credentials(
        access_token="access-2", refresh_token="refresh-2", user=ADA
    )
    assert context.credentials == rotated
    assert not context.refresh_in_flight


@pytest.mark.asyncio
async def test_refresh_is_single_flight(credentials: Credentials) -> None:
    """Test concurrent refresh calls share one exchange and its result."""
    context = SessionContext(store=MemoryCredentialStore(credentials))
    gate = asyncio.Event()
    calls: list[str] = []

    async def exchange(refresh_token: str) -> TokenPair:
        calls.append(refresh_token)
        await gate.wait()
        return TokenPair(access_token="access-2", refresh_token="refresh-2")

    waiters = [asyncio.create_task(context.refresh(exchange)) for _ in range(3)]
    await asyncio.sleep(0)
    assert context.refresh_in_flight
    gate.set()
    results = await asyncio.gather(*waiters)

    assert calls == ["refresh-1"]
    assert {r.access_token for r in results} == {"access-2"}


@pytest.mark.asyncio
async def test_failed_refresh_expires_session(credentials: Credentials) -> None:
    """Test a failing exchange clears credentials and blocks further refreshes."""
    context = SessionContext(store=MemoryCredentialStore(credentials))
    listener = MagicMock()
    context.on_session_invalid(listener)
    exchange = AsyncMock(side_effect=RuntimeError("refresh answered 401"))

    with pytest.raises(SessionExpired):
        await context.refresh(exchange)

    assert context.credentials is None
    assert context.refresh_failed
    listener.assert_called_once_with()

    with pytest.raises(SessionExpired):
        await context.refresh(exchange)
    exchange.assert_awaited_once()


@pytest.mark.asyncio
async def test_refresh_without_refresh_token() -> None:
    """Test refreshing with no refresh token expires the session without a call."""
    context = SessionContext()
    exchange = AsyncMock()

    with pytest.raises(SessionExpired):
        await context.refresh(exchange)

    exchange.assert_not_awaited()
    assert context.refresh_failed


def gated_exchange(
    gate: asyncio.Event, calls: list[str], error: Exception | None = None
) -> Callable[[str], Awaitable[TokenPair]]:
    async def exchange(refresh_token: str) -> TokenPair:
        calls.append(refresh_token)
        await gate.wait()
        if error is not None:
            raise error
        return TokenPair(access_token="access-2", refresh_token="refresh-2")

    return exchange


@pytest.mark.asyncio
async def test_refresh_after_clear_is_discarded(credentials: Credentials) -> None:
    """Test a refresh completing after logout does not bring credentials back."""
    context = SessionContext(store=MemoryCredentialStore(credentials))
    listener = MagicMock()
    context.on_session_invalid(listener)
    gate = asyncio.Event()
    calls: list[str] = []
    refreshing = asyncio.create_task(context.refresh(gated_exchange(gate, calls)))
    await wait_for(lambda: calls == ["refresh-1"])

    context.clear()
    gate.set()

    with pytest.raises(SessionExpired):
        await refreshing
    assert context.credentials is None
    assert not context.refresh_in_flight
    listener.assert_not_called()


@pytest.mark.asyncio
async def test_refresh_after_replace_returns_new_credentials(
    credentials: Credentials,
) -> None:
    """Test a refresh completing after a login keeps the login's credentials."""
    context = SessionContext(store=MemoryCredentialStore(credentials))
    grace = Identity(user_id=2, username="grace", email="grace@example.com")
    fresh = Credentials(access_token="login-a", refresh_token="login-r", user=grace)
    gate = asyncio.Event()
    calls: list[str] = []
    refreshing = asyncio.create_task(context.refresh(gated_exchange(gate, calls)))
    await wait_for(lambda: calls == ["refresh-1"])

    context.replace(fresh)
    gate.set()

    assert await refreshing == fresh
    assert context.credentials == fresh


@pytest.mark.asyncio
async def test_failed_refresh_after_replace_keeps_new_credentials(
    credentials: Credentials,
) -> None:
    """Test a stale refresh failing does not invalidate a newer login."""
    context = SessionContext(store=MemoryCredentialStore(credentials))
    listener = MagicMock()
    context.on_session_invalid(listener)
    fresh = Credentials(access_token="login-a", refresh_token="login-r", user=ADA)
    gate = asyncio.Event()
    calls: list[str] = []
    exchange = gated_exchange(gate, calls, RuntimeError("refresh answered 401"))
    refreshing = asyncio.create_task(context.refresh(exchange))
    await wait_for(lambda: calls == ["refresh-1"])

    context.replace(fresh)
    gate.set()

    assert await refreshing == fresh
    assert context.credentials == fresh
    assert not context.refresh_failed
    listener.assert_not_called()
