"""Async client for the video frame-extraction platform.

Components:
- AuthenticatedTransport: bearer auth with single-flight token refresh and replay
- SessionManager: register, login, logout, session predicate
- JobStatusTracker: one polling cycle per job id until a terminal state
- UploadSubmitter: validated single-shot multipart upload
- VideoPlatformClient: all of the above wired to one SessionContext

Example:
    >>> from vframes_client import VideoPlatformClient
    >>> async with VideoPlatformClient() as client:
    ...     await client.sessions.login("ada@example.com", "s3cret!")
    ...     result = await client.uploads.submit("holiday.mp4")
    ...     view = await client.tracker.watch(result.video_id)
"""

from vframes_client.api import TIMEOUT, ApiCallContext, VideoPlatformApi
from vframes_client.cache import JobListCache
from vframes_client.client import VideoPlatformClient
from vframes_client.credentials import (
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
    SessionContext,
)
from vframes_client.exceptions import (
    ApiError,
    FileTooLarge,
    InvalidCredentials,
    SessionExpired,
    TransientNetworkError,
    UnsupportedFileType,
    ValidationError,
    VFramesError,
)
from vframes_client.models import (
    Credentials,
    DownloadLink,
    Identity,
    Job,
    JobPage,
    JobStatus,
    UploadResult,
)
from vframes_client.session import SessionManager
from vframes_client.tracker import JobStatusTracker, JobView, PollState, Subscription
from vframes_client.transport import AuthenticatedTransport
from vframes_client.uploads import UploadFile, UploadSubmitter

__all__ = [
    "TIMEOUT",
    "ApiCallContext",
    "ApiError",
    "AuthenticatedTransport",
    "CredentialStore",
    "Credentials",
    "DownloadLink",
    "FileCredentialStore",
    "FileTooLarge",
    "Identity",
    "InvalidCredentials",
    "Job",
    "JobListCache",
    "JobPage",
    "JobStatus",
    "JobStatusTracker",
    "JobView",
    "MemoryCredentialStore",
    "PollState",
    "SessionContext",
    "SessionExpired",
    "SessionManager",
    "Subscription",
    "TransientNetworkError",
    "UnsupportedFileType",
    "UploadFile",
    "UploadResult",
    "UploadSubmitter",
    "VFramesError",
    "ValidationError",
    "VideoPlatformApi",
    "VideoPlatformClient",
]
