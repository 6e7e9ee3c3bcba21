"""Session manager: register, login, logout and the session predicate."""

from vframes_client.api import VideoPlatformApi
from vframes_client.credentials import SessionContext
from vframes_client.exceptions import VFramesError
from vframes_client.logger import get_logger
from vframes_client.models import Credentials, Identity

logger = get_logger(__name__)


class SessionManager:
    """Owns the login/logout side effects on a ``SessionContext``.

    Example:
        >>> sessions = SessionManager(context, api)
        >>> user = await sessions.login("ada@example.com", "s3cret!")
        >>> sessions.is_session_active()
        True
    """

    def __init__(self, context: SessionContext, api: VideoPlatformApi) -> None:
        self.context = context
        self.api = api

    async def register(self, username: str, email: str, password: str) -> Identity:
        """Create an account without logging in.

        Raises:
            ValidationError: The service rejected the payload; its message is kept verbatim
            TransientNetworkError: Timeout or connectivity failure
        """
        identity = await self.api.register(username, email, password)
        logger.info("Account registered", user_id=identity.user_id)
        return identity

    async def login(self, email: str, password: str) -> Identity:
        """Authenticate and replace the session's credentials wholesale.

        Cached job listings from any previous session are dropped.

        Raises:
            InvalidCredentials: The service rejected email/password
            TransientNetworkError: Timeout or connectivity failure
        """
        result = await self.api.login(email, password)
        self.context.replace(
            Credentials(
                access_token=result.access_token,
                refresh_token=result.refresh_token,
                user=result.user,
            )
        )
        logger.info("Logged in", user_id=result.user.user_id)
        return result.user

    async def logout(self) -> None:
        """End the session locally, telling the service when possible.

        The server-side invalidation is best effort: any failure is logged
        and ignored, and local credentials are always cleared.
        """
        credentials = self.context.credentials
        try:
            if credentials is not None and credentials.refresh_token:
                await self.api.logout(credentials.refresh_token)
        except VFramesError as e:
            logger.warning("Server-side logout failed, clearing locally", error=str(e))
        finally:
            self.context.clear()
        logger.info("Logged out")

    def is_session_active(self) -> bool:
        """True iff an access token is stored. Does not contact the service."""
        return bool(self.context.access_token)

    def current_user(self) -> Identity | None:
        credentials = self.context.credentials
        return credentials.user if credentials else None
