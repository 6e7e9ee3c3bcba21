"""Authenticated transport: bearer tokens plus transparent refresh-and-replay.

``AuthenticatedTransport`` wraps any ``httpx.AsyncBaseTransport``:

1. attaches ``Authorization: Bearer <access token>`` when the session has one
2. on a 401, joins the session's single-flight refresh and replays the request
   once with the new token
3. hands any second 401, or the original one when refreshing is impossible,
   back to the caller untouched

The refresh exchange itself is sent through the wrapped transport without a
bearer token, so it can never recurse into this logic.
"""

from http import HTTPStatus

import httpx

from vframes_client.credentials import SessionContext
from vframes_client.exceptions import SessionExpired
from vframes_client.logger import get_logger
from vframes_client.models import Envelope, TokenPair

logger = get_logger(__name__)

REFRESH_PATH = "/api/v1/auth/refresh"


class RefreshRejected(Exception):
    """The refresh endpoint did not return a new token pair."""


class AuthenticatedTransport(httpx.AsyncBaseTransport):
    """Transport middleware adding bearer auth with single-flight token refresh.

    Example:
        >>> context = SessionContext()
        >>> transport = AuthenticatedTransport(context, base_url="https://api.example.com")
        >>> client = httpx.AsyncClient(base_url="https://api.example.com", transport=transport)
    """

    def __init__(
        self,
        context: SessionContext,
        base_url: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the transport.

        Args:
            context: Session whose credentials are attached and rotated
            base_url: API base URL, used to address the refresh endpoint
            transport: Transport actually sending requests (default: httpx.AsyncHTTPTransport)
            timeout: Timeout in seconds for the refresh exchange
        """
        self.context = context
        self.refresh_url = httpx.URL(base_url.rstrip("/") + REFRESH_PATH)
        self._transport = transport or httpx.AsyncHTTPTransport()
        self._refresh_extensions = {"timeout": httpx.Timeout(timeout).as_dict()}

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        # buffer the body so a replay re-sends the same bytes
        await request.aread()

        sent_token = self.context.access_token
        response = await self._send(request, sent_token)
        if response.status_code != HTTPStatus.UNAUTHORIZED:
            return response

        credentials = self.context.credentials
        if credentials is None or not credentials.refresh_token:
            logger.info("Unauthorized without refresh token", url=str(request.url))
            self.context.invalidate()
            return response

        if credentials.access_token != sent_token:
            # a concurrent refresh already rotated the token this request used
            logger.debug("Replaying with already rotated token", url=str(request.url))
            return await self._replay(request, response, credentials.access_token)

        try:
            refreshed = await self.context.refresh(self._exchange)
        except SessionExpired:
            return response
        return await self._replay(request, response, refreshed.access_token)

    async def _replay(
        self, request: httpx.Request, response: httpx.Response, access_token: str
    ) -> httpx.Response:
        await response.aclose()
        return await self._send(request, access_token)

    async def _send(
        self, request: httpx.Request, access_token: str | None
    ) -> httpx.Response:
        headers = request.headers.copy()
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        else:
            headers.pop("Authorization", None)
        outbound = httpx.Request(
            request.method,
            request.url,
            headers=headers,
            content=request.content,
            extensions=request.extensions,
        )
        return await self._transport.handle_async_request(outbound)

    async def _exchange(self, refresh_token: str) -> TokenPair:
        """Trade a refresh token for a new pair via an unauthenticated call."""
        request = httpx.Request(
            "POST",
            self.refresh_url,
            json={"refresh_token": refresh_token},
            extensions=self._refresh_extensions,
        )
        response = await self._transport.handle_async_request(request)
        try:
            await response.aread()
        finally:
            await response.aclose()
        if response.status_code != HTTPStatus.OK:
            raise RefreshRejected(f"refresh answered {response.status_code}")
        envelope = Envelope.model_validate(response.json())
        if envelope.data is None:
            raise RefreshRejected("refresh response carries no token pair")
        return TokenPair.model_validate(envelope.data)

    async def aclose(self) -> None:
        await self._transport.aclose()
