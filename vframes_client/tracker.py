"""Job status tracking by polling.

The service only exposes job progress through a status endpoint, so the
tracker polls it. One ``PollSubscription`` exists per job id no matter how many
observers there are; each observer holds a ``Subscription`` handle. The poll is
a small state machine:

    ACTIVE --(COMPLETED / FAILED observed)--> STOPPED
    ACTIVE --(last observer closed)---------> cancelled and forgotten
    ACTIVE --(session expired / 4xx)--------> STOPPED, restarted by the next subscribe

While ACTIVE the status is queried immediately and then every ``interval``
seconds. A failed tick keeps the last snapshot, flags the error on the view and
waits for the next tick; there is no retry within a tick.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import StrEnum
from types import TracebackType
from typing import Self

from vframes_client.api import VideoPlatformApi
from vframes_client.exceptions import (
    ApiError,
    SessionExpired,
    TransientNetworkError,
    VFramesError,
)
from vframes_client.logger import get_logger
from vframes_client.metrics import poll_tick
from vframes_client.models import DownloadLink, Job, JobStatus

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 3.0


class PollState(StrEnum):
    ACTIVE = "active"
    STOPPED = "stopped"


@dataclass(frozen=True)
class JobView:
    """What observers see of a job; replaced, never mutated, on every change.

    Attributes:
        job_id: The tracked job
        job: Latest snapshot, None until the first successful tick
        error: Error of the latest tick, None when it succeeded
        polling: False once the poll is stopped
        download: Latest download link fetched for the job
    """

    job_id: str
    job: Job | None = None
    error: VFramesError | None = None
    polling: bool = True
    download: DownloadLink | None = None

    @property
    def status(self) -> JobStatus | None:
        return self.job.status if self.job else None

    @property
    def is_terminal(self) -> bool:
        return self.job is not None and self.job.status.is_terminal

    @property
    def download_enabled(self) -> bool:
        return self.status == JobStatus.COMPLETED


type Observer = Callable[[JobView], None]


class PollSubscription:
    """Polling cycle for one job id, shared by all of its observers."""

    def __init__(
        self,
        job_id: str,
        api: VideoPlatformApi,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.job_id = job_id
        self.api = api
        self.interval = interval
        self.state = PollState.STOPPED
        self.view = JobView(job_id=job_id, polling=False)
        self.ticks = 0
        self.subscribers: "list[Subscription]" = []
        self._task: asyncio.Task[None] | None = None
        self._stopped = asyncio.Event()

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    def start(self) -> None:
        """Enter ACTIVE and schedule the polling task."""
        if self.state is PollState.ACTIVE:
            return
        self.state = PollState.ACTIVE
        self._stopped.clear()
        self._publish(replace(self.view, polling=True))
        self._task = asyncio.create_task(self._run(), name=f"poll-job-{self.job_id}")

    def cancel(self) -> None:
        """Stop without waiting for a terminal state; no tick runs afterwards."""
        self._enter_stopped()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_stopped(self) -> JobView:
        await self._stopped.wait()
        return self.view

    async def _run(self) -> None:
        try:
            while self.state is PollState.ACTIVE:
                await self.tick()
                if self.state is not PollState.ACTIVE:
                    break
                await asyncio.sleep(self.interval)
        except Exception as e:
            logger.exception("Job status poll crashed", job_id=self.job_id)
            error = e if isinstance(e, VFramesError) else VFramesError(repr(e))
            self._stop_on_error(error)

    async def tick(self) -> None:
        """Query the status once and publish the outcome."""
        self.ticks += 1
        try:
            job = await self.api.video_status(self.job_id)
        except TransientNetworkError as e:
            self._tick_failed(e)
            return
        except ApiError as e:
            if e.is_server_error:
                self._tick_failed(e)
                return
            self._stop_on_error(e)
            return
        except SessionExpired as e:
            self._stop_on_error(e)
            return

        previous = self.view.job
        if previous is not None and job.status.rank < previous.status.rank:
            poll_tick.labels("stale").inc()
            logger.warning(
                "Ignoring stale job status",
                job_id=self.job_id,
                status=job.status,
                previous=previous.status,
            )
            return

        poll_tick.labels("ok").inc()
        self._publish(replace(self.view, job=job, error=None))
        if job.status.is_terminal:
            logger.info(
                "Job reached terminal state", job_id=self.job_id, status=job.status
            )
            self._enter_stopped()

    def _tick_failed(self, error: VFramesError) -> None:
        poll_tick.labels("transient").inc()
        logger.info(
            "Job status poll failed, waiting for next tick",
            job_id=self.job_id,
            error=str(error),
        )
        self._publish(replace(self.view, error=error))

    def _stop_on_error(self, error: VFramesError) -> None:
        poll_tick.labels("error").inc()
        logger.warning("Job status poll stopped", job_id=self.job_id, error=str(error))
        self._publish(replace(self.view, error=error))
        self._enter_stopped()

    def _enter_stopped(self) -> None:
        if self.state is PollState.STOPPED:
            return
        self.state = PollState.STOPPED
        self._publish(replace(self.view, polling=False))
        self._stopped.set()

    async def download(self) -> DownloadLink | None:
        """Fetch the download link; a no-op returning None unless COMPLETED.

        Overlapping calls are not cancelled: whichever response arrives last
        is the one exposed on the view.
        """
        if not self.view.download_enabled:
            logger.debug(
                "Download requested before completion, ignoring",
                job_id=self.job_id,
                status=self.view.status,
            )
            return None
        link = await self.api.video_download(self.job_id)
        self._publish(replace(self.view, download=link))
        return link

    def _publish(self, view: JobView) -> None:
        self.view = view
        for subscriber in list(self.subscribers):
            subscriber.notify(view)


class Subscription:
    """One observer's handle on a job's poll.

    Usable as an async context manager; leaving the block closes the handle.
    """

    def __init__(
        self,
        tracker: "JobStatusTracker",
        poll: PollSubscription,
        observer: Observer | None = None,
    ) -> None:
        self._tracker = tracker
        self._poll = poll
        self._observer = observer
        self.closed = False

    @property
    def job_id(self) -> str:
        return self._poll.job_id

    @property
    def view(self) -> JobView:
        return self._poll.view

    @property
    def download_enabled(self) -> bool:
        return self._poll.view.download_enabled

    def notify(self, view: JobView) -> None:
        if self._observer is None or self.closed:
            return
        try:
            self._observer(view)
        except Exception:
            logger.exception("Job observer failed", job_id=self.job_id)

    async def download(self) -> DownloadLink | None:
        return await self._poll.download()

    async def wait_until_stopped(self) -> JobView:
        """Wait until polling stops (terminal state or error) and return the view."""
        return await self._poll.wait_stopped()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._tracker.release(self)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class JobStatusTracker:
    """Live views of jobs, one polling cycle per job id.

    Example:
        >>> tracker = JobStatusTracker(api)
        >>> async with tracker.subscribe(video_id, observer=print) as sub:
        ...     view = await sub.wait_until_stopped()
        ...     if view.download_enabled:
        ...         link = await sub.download()
    """

    def __init__(
        self, api: VideoPlatformApi, poll_interval: float = DEFAULT_POLL_INTERVAL
    ) -> None:
        self.api = api
        self.poll_interval = poll_interval
        self._polls: dict[str, PollSubscription] = {}

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._polls

    def poll_for(self, job_id: str) -> PollSubscription | None:
        return self._polls.get(job_id)

    def subscribe(self, job_id: str, observer: Observer | None = None) -> Subscription:
        """Observe a job, joining its existing poll when there is one.

        A poll stopped by an error is restarted; one stopped at a terminal
        state is not, the final view is served as is.
        """
        poll = self._polls.get(job_id)
        if poll is None:
            poll = PollSubscription(job_id, self.api, interval=self.poll_interval)
            self._polls[job_id] = poll
        subscription = Subscription(self, poll, observer)
        poll.subscribers.append(subscription)
        if poll.state is PollState.STOPPED and not poll.view.is_terminal:
            logger.debug("Starting job poll", job_id=job_id)
            poll.start()
        return subscription

    def release(self, subscription: Subscription) -> None:
        """Detach a handle; the last one out cancels and forgets the poll."""
        poll = self._polls.get(subscription.job_id)
        if poll is None or subscription not in poll.subscribers:
            return
        poll.subscribers.remove(subscription)
        if not poll.subscribers:
            logger.debug("Last observer left, cancelling job poll", job_id=poll.job_id)
            poll.cancel()
            del self._polls[poll.job_id]

    async def watch(self, job_id: str, observer: Observer | None = None) -> JobView:
        """Poll a job until it stops and return the final view."""
        async with self.subscribe(job_id, observer) as subscription:
            return await subscription.wait_until_stopped()

    async def close(self) -> None:
        """Cancel every poll and wait for their tasks to finish."""
        polls = list(self._polls.values())
        self._polls.clear()
        for poll in polls:
            poll.subscribers.clear()
            poll.cancel()
        tasks = [poll.task for poll in polls if poll.task is not None]
        await asyncio.gather(*tasks, return_exceptions=True)
