"""Upload submitter: one multipart POST per video, validated before sending."""

import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from vframes_client.api import VideoPlatformApi
from vframes_client.credentials import SessionContext
from vframes_client.exceptions import FileTooLarge, UnsupportedFileType
from vframes_client.logger import get_logger
from vframes_client.models import UploadResult

logger = get_logger(__name__)

MAX_UPLOAD_SIZE = 500 * 1024 * 1024
VIDEO_EXTENSIONS = (".mp4", ".avi", ".mov", ".mkv", ".webm")

# not every platform's mimetypes table knows these
_EXTRA_VIDEO_TYPES = {".mkv": "video/x-matroska", ".webm": "video/webm"}


@dataclass(frozen=True)
class UploadFile:
    """An in-memory or file-like video payload.

    Attributes:
        filename: Name sent to the service; its extension decides acceptance
        content: Bytes or a binary file object
        content_type: MIME type; guessed from ``filename`` when omitted
    """

    filename: str
    content: bytes | IO[bytes]
    content_type: str | None = None

    @property
    def media_type(self) -> str | None:
        if self.content_type:
            return self.content_type
        guessed, _ = mimetypes.guess_type(self.filename)
        return guessed or _EXTRA_VIDEO_TYPES.get(Path(self.filename).suffix.lower())

    @property
    def size(self) -> int | None:
        if isinstance(self.content, bytes | bytearray):
            return len(self.content)
        try:
            return os.fstat(self.content.fileno()).st_size
        except (AttributeError, OSError, ValueError):
            pass
        if self.content.seekable():
            position = self.content.tell()
            end = self.content.seek(0, os.SEEK_END)
            self.content.seek(position)
            return end - position
        return None


class UploadSubmitter:
    """Starts processing jobs by uploading videos.

    Example:
        >>> uploads = UploadSubmitter(context, api)
        >>> result = await uploads.submit("holiday.mp4")
        >>> tracker.subscribe(result.video_id)
    """

    def __init__(
        self,
        context: SessionContext,
        api: VideoPlatformApi,
        max_size: int = MAX_UPLOAD_SIZE,
        allowed_extensions: tuple[str, ...] | list[str] = VIDEO_EXTENSIONS,
    ) -> None:
        self.context = context
        self.api = api
        self.max_size = max_size
        self.allowed_extensions = tuple(ext.lower() for ext in allowed_extensions)

    def validate(self, upload: UploadFile) -> str:
        """Check the client-side preconditions and return the MIME type to send.

        Raises:
            UnsupportedFileType: Not a video, or an extension the service refuses
            FileTooLarge: Payload exceeds ``max_size``
        """
        media_type = upload.media_type
        if not media_type or not media_type.startswith("video/"):
            raise UnsupportedFileType(
                f"{upload.filename} is not a video (type: {media_type or 'unknown'})"
            )
        extension = Path(upload.filename).suffix.lower()
        if extension not in self.allowed_extensions:
            raise UnsupportedFileType(
                f"file extension {extension or '(none)'} not allowed, "
                f"expected one of {', '.join(self.allowed_extensions)}"
            )
        size = upload.size
        if size is not None and size > self.max_size:
            raise FileTooLarge(
                f"{upload.filename} is {size} bytes, maximum allowed is {self.max_size}"
            )
        return media_type

    async def submit(self, file: UploadFile | Path | str) -> UploadResult:
        """Upload one video and return the job it created.

        Nothing is sent when validation fails. On success the cached job
        listings are invalidated; the caller hands ``video_id`` to the tracker.

        Raises:
            UnsupportedFileType, FileTooLarge: Rejected client- or server-side
            ValidationError: Other server-side rejection
            TransientNetworkError: Timeout or connectivity failure
            SessionExpired: The session could not be renewed
        """
        if isinstance(file, UploadFile):
            return await self._submit(file)

        path = Path(file)
        # validate on the name first so non-videos are never opened
        self.validate(UploadFile(filename=path.name, content=b""))
        with path.open("rb") as f:
            return await self._submit(UploadFile(filename=path.name, content=f))

    async def _submit(self, upload: UploadFile) -> UploadResult:
        media_type = self.validate(upload)
        logger.info("Uploading video", video_name=upload.filename, size=upload.size)
        result = await self.api.upload_video(upload.filename, upload.content, media_type)
        self.context.cache.clear()
        logger.info("Video uploaded", video_id=result.video_id, status=result.status)
        return result
