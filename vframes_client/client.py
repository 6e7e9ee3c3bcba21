"""High-level client wiring every component to one session."""

from types import TracebackType
from typing import Self

import httpx

from vframes_client.api import VideoPlatformApi, normalize_page
from vframes_client.cache import JobListCache
from vframes_client.config import Settings, settings
from vframes_client.credentials import FileCredentialStore, SessionContext
from vframes_client.hooks import Hooks
from vframes_client.models import JobPage
from vframes_client.session import SessionManager
from vframes_client.tracker import JobStatusTracker
from vframes_client.uploads import UploadSubmitter


class VideoPlatformClient:
    """Session, uploads, job listing and job tracking against one service.

    Without an explicit ``context`` the session is persisted to
    ``settings.credentials_file`` so it survives restarts.

    Example:
        >>> async with VideoPlatformClient() as client:
        ...     await client.sessions.login("ada@example.com", "s3cret!")
        ...     result = await client.uploads.submit("holiday.mp4")
        ...     view = await client.tracker.watch(result.video_id)
    """

    def __init__(
        self,
        config: Settings | None = None,
        context: SessionContext | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        hooks: Hooks | None = None,
    ) -> None:
        self.settings = config or settings
        self.context = context or SessionContext(
            store=FileCredentialStore(self.settings.credentials_file),
            cache=JobListCache(
                max_size=self.settings.list_cache_max_size,
                ttl=self.settings.list_cache_ttl,
            ),
        )
        self.api = VideoPlatformApi(
            self.context,
            base_url=self.settings.api_url,
            timeout=self.settings.timeout,
            transport=transport,
            hooks=hooks,
        )
        self.sessions = SessionManager(self.context, self.api)
        self.uploads = UploadSubmitter(
            self.context,
            self.api,
            max_size=self.settings.max_upload_size,
            allowed_extensions=self.settings.allowed_video_extensions,
        )
        self.tracker = JobStatusTracker(
            self.api, poll_interval=self.settings.poll_interval
        )

    async def list_videos(
        self, limit: int = 20, offset: int = 0, *, use_cache: bool = True
    ) -> JobPage:
        """Fetch a page of jobs, served from the session cache when fresh."""
        limit, offset = normalize_page(limit, offset)
        if use_cache and (page := self.context.cache.get(limit, offset)) is not None:
            return page
        page = await self.api.list_videos(limit=limit, offset=offset)
        self.context.cache.set(limit, offset, page)
        return page

    async def aclose(self) -> None:
        await self.tracker.close()
        await self.api.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
