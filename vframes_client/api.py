"""Video platform API client with hook system.

One method per remote endpoint. Every method unwraps the ``{data, message}``
envelope into a pydantic model and maps failures onto the client's error
taxonomy. Authenticated endpoints go through ``AuthenticatedTransport``;
register, login and logout use the same base URL without a bearer token.
"""

import contextvars
import time
from dataclasses import dataclass
from http import HTTPStatus
from typing import IO, Any

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from vframes_client.credentials import SessionContext
from vframes_client.exceptions import (
    ApiError,
    FileTooLarge,
    InvalidCredentials,
    SessionExpired,
    TransientNetworkError,
    UnsupportedFileType,
    ValidationError,
)
from vframes_client.hooks import Hooks, invoke_with_hooks, with_hooks
from vframes_client.logger import get_logger
from vframes_client.metrics import api_request, api_request_duration, api_request_errors
from vframes_client.models import (
    DownloadLink,
    Envelope,
    Identity,
    Job,
    JobPage,
    LoginResult,
    UploadResult,
)
from vframes_client.transport import AuthenticatedTransport

logger = get_logger(__name__)

# Local storage for latency tracking (tuple stack to support nested calls)
_latency_tracker: contextvars.ContextVar[tuple[float, ...]] = contextvars.ContextVar(
    f"{__name__}.latency_tracker", default=()
)

TIMEOUT = 30.0
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class ApiCallContext:
    """Context information passed to API call hooks.

    Attributes:
        method: API method name (e.g., "videos.status")
        verb: HTTP verb (e.g., "GET")
        id: API base URL
    """

    method: str
    verb: str
    id: str


def _metrics_hook(context: ApiCallContext) -> None:
    """Built-in Prometheus metrics hook."""
    api_request.labels(context.method, context.verb).inc()


def _error_metrics_hook(context: ApiCallContext) -> None:
    api_request_errors.labels(context.method, context.verb).inc()


def _latency_start_hook(_context: ApiCallContext) -> None:
    """Built-in hook to start latency measurement."""
    _latency_tracker.set((*_latency_tracker.get(), time.perf_counter()))


def _latency_end_hook(context: ApiCallContext) -> None:
    """Built-in hook to record latency measurement."""
    stack = _latency_tracker.get()
    start_time = stack[-1]
    _latency_tracker.set(stack[:-1])
    duration = time.perf_counter() - start_time
    api_request_duration.labels(context.method, context.verb).observe(duration)


def _request_log_hook(context: ApiCallContext) -> None:
    """Built-in hook for logging API requests."""
    logger.debug("API request", method=context.method, verb=context.verb, id=context.id)


def error_message(response: httpx.Response) -> tuple[str, str | None]:
    """Extract ``(message, code)`` from an error response.

    Falls back to the HTTP reason phrase when the body is not an envelope.
    """
    try:
        envelope = Envelope.model_validate(response.json())
    except (ValueError, PydanticValidationError):
        return response.reason_phrase or f"HTTP {response.status_code}", None
    return envelope.message or response.reason_phrase, envelope.code


def parse_data[M: BaseModel](response: httpx.Response, model: type[M]) -> M:
    """Unwrap the ``data`` member of a successful envelope into ``model``."""
    try:
        envelope = Envelope.model_validate(response.json())
        if envelope.data is None:
            raise ApiError(
                envelope.message or "Response carries no data",
                status_code=response.status_code,
            )
        return model.model_validate(envelope.data)
    except (ValueError, PydanticValidationError) as e:
        raise ApiError(
            f"Malformed response from {response.request.url.path}: {e}",
            status_code=response.status_code,
        ) from e


def normalize_page(limit: int, offset: int) -> tuple[int, int]:
    """Apply the service's paging rules so cache keys match what it returns."""
    if limit <= 0 or limit > MAX_PAGE_SIZE:
        limit = DEFAULT_PAGE_SIZE
    return limit, max(offset, 0)


def raise_for_status(response: httpx.Response) -> None:
    """Raise the generic taxonomy error for an unsuccessful response.

    A 401 that survives the transport means the session could not be renewed.
    """
    if response.is_success:
        return
    message, code = error_message(response)
    if response.status_code == HTTPStatus.UNAUTHORIZED:
        raise SessionExpired(message)
    raise ApiError(message, status_code=response.status_code, code=code)


def raise_for_upload_status(response: httpx.Response) -> None:
    """Map upload rejections onto the precondition errors."""
    if response.is_success:
        return
    message, code = error_message(response)
    lowered = message.lower()
    if response.status_code == HTTPStatus.REQUEST_ENTITY_TOO_LARGE or (
        response.status_code == HTTPStatus.BAD_REQUEST and "size" in lowered
    ):
        raise FileTooLarge(message)
    if response.status_code == HTTPStatus.BAD_REQUEST and "extension" in lowered:
        raise UnsupportedFileType(message)
    if response.status_code == HTTPStatus.BAD_REQUEST:
        raise ValidationError(message, code=code)
    raise_for_status(response)


@with_hooks(
    hooks=Hooks(
        pre_hooks=[
            _metrics_hook,
            _request_log_hook,
            _latency_start_hook,
        ],
        post_hooks=[_latency_end_hook],
        error_hooks=[_error_metrics_hook],
    )
)
class VideoPlatformApi:
    """Async client for the video platform REST API.

    Hook System:
    - Always includes built-in hooks (metrics, logging, latency)
    - Supports additional custom hooks via hooks parameter
    - Hooks receive ApiCallContext with method, verb, id

    Example:
        >>> api = VideoPlatformApi(SessionContext(), base_url="https://videos.example.com")
        >>> page = await api.list_videos(limit=10)
        >>> print([v.filename for v in page.videos])
    """

    # Set by @with_hooks decorator
    _hooks: Hooks

    def __init__(
        self,
        context: SessionContext,
        base_url: str,
        timeout: float = TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        hooks: Hooks | None = None,  # noqa: ARG002 - Handled by @with_hooks decorator
    ) -> None:
        """Initialize the API client.

        Args:
            context: Session whose credentials authenticate requests
            base_url: API gateway URL (e.g., "https://videos.example.com")
            timeout: Upper bound in seconds for every request (default: 30)
            transport: Transport sending the requests (default: httpx.AsyncHTTPTransport)
            hooks: Optional custom hooks to merge with built-in hooks.
        """
        self.base_url = base_url.rstrip("/")
        self.context = context
        inner = transport or httpx.AsyncHTTPTransport()
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=AuthenticatedTransport(
                context, self.base_url, transport=inner, timeout=timeout
            ),
        )
        # shares `inner` with the authenticated client, which owns closing it
        self._public_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=inner,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    async def _send(
        client: httpx.AsyncClient, method: str, url: str, **kwargs: Any
    ) -> httpx.Response:
        try:
            return await client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise TransientNetworkError(f"{method} {url} failed: {e!r}") from e

    @invoke_with_hooks(
        lambda self: ApiCallContext(method="auth.register", verb="POST", id=self.base_url)
    )
    async def register(self, username: str, email: str, password: str) -> Identity:
        """Create an account. Does not log in."""
        response = await self._send(
            self._public_client,
            "POST",
            "/api/v1/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        if response.is_client_error:
            message, code = error_message(response)
            raise ValidationError(message, code=code)
        raise_for_status(response)
        return parse_data(response, Identity)

    @invoke_with_hooks(
        lambda self: ApiCallContext(method="auth.login", verb="POST", id=self.base_url)
    )
    async def login(self, email: str, password: str) -> LoginResult:
        """Exchange email and password for a token pair and identity."""
        response = await self._send(
            self._public_client,
            "POST",
            "/api/v1/auth/login",
            json={"email": email, "password": password},
        )
        if response.status_code == HTTPStatus.UNAUTHORIZED:
            message, code = error_message(response)
            raise InvalidCredentials(message, code=code)
        if response.is_client_error:
            message, code = error_message(response)
            raise ValidationError(message, code=code)
        raise_for_status(response)
        return parse_data(response, LoginResult)

    @invoke_with_hooks(
        lambda self: ApiCallContext(method="auth.logout", verb="POST", id=self.base_url)
    )
    async def logout(self, refresh_token: str) -> None:
        """Invalidate a refresh token server-side."""
        response = await self._send(
            self._public_client,
            "POST",
            "/api/v1/auth/logout",
            json={"refresh_token": refresh_token},
        )
        raise_for_status(response)

    @invoke_with_hooks(
        lambda self: ApiCallContext(method="videos.list", verb="GET", id=self.base_url)
    )
    async def list_videos(
        self, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
    ) -> JobPage:
        """Fetch one page of the user's jobs, newest first."""
        limit, offset = normalize_page(limit, offset)
        response = await self._send(
            self._client,
            "GET",
            "/api/v1/videos",
            params={"limit": limit, "offset": offset},
        )
        raise_for_status(response)
        return parse_data(response, JobPage)

    @invoke_with_hooks(
        lambda self: ApiCallContext(method="videos.upload", verb="POST", id=self.base_url)
    )
    async def upload_video(
        self, filename: str, content: bytes | IO[bytes], content_type: str
    ) -> UploadResult:
        """Submit a video as a multipart form (field ``video``)."""
        response = await self._send(
            self._client,
            "POST",
            "/api/v1/videos/upload",
            files={"video": (filename, content, content_type)},
        )
        raise_for_upload_status(response)
        return parse_data(response, UploadResult)

    @invoke_with_hooks(
        lambda self: ApiCallContext(method="videos.status", verb="GET", id=self.base_url)
    )
    async def video_status(self, video_id: str) -> Job:
        """Fetch the current state of one job."""
        response = await self._send(
            self._client, "GET", f"/api/v1/videos/{video_id}/status"
        )
        raise_for_status(response)
        return parse_data(response, Job)

    @invoke_with_hooks(
        lambda self: ApiCallContext(
            method="videos.download", verb="GET", id=self.base_url
        )
    )
    async def video_download(self, video_id: str) -> DownloadLink:
        """Obtain a time-limited URL for a completed job's frames."""
        response = await self._send(
            self._client, "GET", f"/api/v1/videos/{video_id}/download"
        )
        raise_for_status(response)
        return parse_data(response, DownloadLink)
