"""Pydantic models for the video platform API.

- All models use Pydantic BaseModel
- Immutable with frozen=True
- Unknown fields sent by the service are ignored
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class JobStatus(StrEnum):
    """Server-side processing state of an uploaded video.

    Moves strictly forward: PENDING -> PROCESSING -> COMPLETED | FAILED.
    """

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in {JobStatus.COMPLETED, JobStatus.FAILED}

    @property
    def rank(self) -> int:
        """Position in the state machine; both terminal states share a rank."""
        return _STATUS_RANK[self]


_STATUS_RANK = {
    JobStatus.PENDING: 0,
    JobStatus.PROCESSING: 1,
    JobStatus.COMPLETED: 2,
    JobStatus.FAILED: 2,
}


class Identity(BaseModel):
    """Authenticated user snapshot taken at login time."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    email: str


class TokenPair(BaseModel):
    """Access/refresh pair returned by the refresh endpoint."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    expires_in: int | None = None


class LoginResult(TokenPair):
    """Token pair plus the identity it was issued for."""

    user: Identity


class Credentials(BaseModel):
    """The live credentials of a session.

    Attributes:
        access_token: Short-lived bearer token attached to API calls
        refresh_token: Longer-lived token exchanged for a new pair
        user: Identity captured at login, kept across refreshes
    """

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    user: Identity

    def rotated(self, pair: TokenPair) -> "Credentials":
        """Return credentials carrying ``pair`` and the same identity."""
        return Credentials(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            user=self.user,
        )


class Job(BaseModel):
    """A video processing job as observed by the client.

    The listing endpoint names the identifier ``id``, the status endpoint
    ``video_id``; both are accepted.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., validation_alias=AliasChoices("id", "video_id"))
    filename: str
    status: JobStatus
    frame_count: int | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class JobPage(BaseModel):
    """One page of the user's jobs."""

    model_config = ConfigDict(frozen=True)

    videos: list[Job] = Field(default_factory=list)
    total: int = 0
    limit: int = 20
    offset: int = 0
    has_more: bool = False


class UploadResult(BaseModel):
    """Job created by an upload."""

    model_config = ConfigDict(frozen=True)

    video_id: str
    filename: str
    status: JobStatus


class DownloadLink(BaseModel):
    """Time-limited URL for the extracted frames archive."""

    model_config = ConfigDict(frozen=True)

    download_url: str
    filename: str
    expires_in: int


class Envelope(BaseModel):
    """Uniform response envelope.

    Success: ``{"data": ..., "message": ...}``.
    Error: ``{"code": ..., "message": ..., "details": ...}``.
    """

    model_config = ConfigDict(frozen=True)

    data: Any = None
    message: str | None = None
    code: str | None = None
    details: str | None = None
