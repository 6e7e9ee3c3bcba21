"""Pytest configuration and fixtures."""

from pathlib import Path

import httpx
import pytest

from tests.fakes import BASE_URL, FakeVideoService
from vframes_client.api import VideoPlatformApi
from vframes_client.cache import JobListCache
from vframes_client.config import Settings
from vframes_client.credentials import SessionContext
from vframes_client.models import Credentials, Identity
from vframes_client.session import SessionManager
from vframes_client.tracker import JobStatusTracker
from vframes_client.uploads import UploadSubmitter


@pytest.fixture
def service() -> FakeVideoService:
    return FakeVideoService()


@pytest.fixture
def context() -> SessionContext:
    return SessionContext(cache=JobListCache(max_size=16, ttl=60))


@pytest.fixture
def api(context: SessionContext, service: FakeVideoService) -> VideoPlatformApi:
    return VideoPlatformApi(
        context, base_url=BASE_URL, transport=httpx.MockTransport(service)
    )


@pytest.fixture
def user(service: FakeVideoService) -> Identity:
    return service.add_user()


@pytest.fixture
def logged_in(
    context: SessionContext, service: FakeVideoService, user: Identity
) -> Credentials:
    """Install a valid token pair for ``user`` in the session context."""
    access, refresh = service.issue_tokens(user.user_id)
    credentials = Credentials(access_token=access, refresh_token=refresh, user=user)
    context.replace(credentials)
    return credentials


@pytest.fixture
def sessions(context: SessionContext, api: VideoPlatformApi) -> SessionManager:
    return SessionManager(context, api)


@pytest.fixture
def uploads(context: SessionContext, api: VideoPlatformApi) -> UploadSubmitter:
    return UploadSubmitter(context, api)


@pytest.fixture
def tracker(api: VideoPlatformApi) -> JobStatusTracker:
    return JobStatusTracker(api, poll_interval=0.01)


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        api_url=BASE_URL,
        credentials_file=tmp_path / "credentials.json",
        poll_interval=0.01,
    )
