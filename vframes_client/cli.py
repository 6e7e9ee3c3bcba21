"""Command line interface for the video platform."""

import asyncio
import functools
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from vframes_client.client import VideoPlatformClient
from vframes_client.config import Settings
from vframes_client.exceptions import SessionExpired, VFramesError
from vframes_client.logger import setup_logging
from vframes_client.models import Job, JobStatus
from vframes_client.tracker import JobView

console = Console()

STATUS_STYLES = {
    JobStatus.PENDING: "yellow",
    JobStatus.PROCESSING: "blue",
    JobStatus.COMPLETED: "green",
    JobStatus.FAILED: "red",
}


def run_async(
    function: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., None]:
    """Run an async command body with a client bound to the CLI settings."""

    @functools.wraps(function)
    def wrapper(ctx: click.Context, *args: Any, **kwargs: Any) -> None:
        async def main() -> None:
            async with VideoPlatformClient(config=ctx.obj["settings"]) as client:
                client.context.on_session_invalid(
                    lambda: console.print(
                        "[red]Session expired.[/red] Run `vframes login` again."
                    )
                )
                await function(client, *args, **kwargs)

        try:
            asyncio.run(main())
        except SessionExpired as e:
            raise click.ClickException(e.message) from e
        except VFramesError as e:
            raise click.ClickException(str(e)) from e

    return click.pass_context(wrapper)


def status_text(status: JobStatus | None) -> str:
    if status is None:
        return "-"
    return f"[{STATUS_STYLES[status]}]{status}[/{STATUS_STYLES[status]}]"


def jobs_table(jobs: list[Job]) -> Table:
    table = Table("ID", "Filename", "Status", "Frames", "Created", "Completed")
    for job in jobs:
        table.add_row(
            job.id,
            job.filename,
            status_text(job.status),
            str(job.frame_count) if job.frame_count is not None else "-",
            job.created_at.strftime("%Y-%m-%d %H:%M") if job.created_at else "-",
            job.completed_at.strftime("%Y-%m-%d %H:%M") if job.completed_at else "-",
        )
    return table


def print_view(view: JobView) -> None:
    if view.job is None:
        line = f"{view.job_id}: waiting for first status"
    else:
        line = f"{view.job_id}: {status_text(view.job.status)}"
        if view.job.frame_count is not None:
            line += f" ({view.job.frame_count} frames)"
        if view.job.error_message:
            line += f" - {view.job.error_message}"
    if view.error is not None:
        line += f" [dim](last poll failed: {view.error})[/dim]"
    console.print(line)


@click.group()
@click.option("--api-url", envvar="VFRAMES_API_URL", help="API gateway URL.")
@click.option(
    "--credentials-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where the session tokens are stored.",
)
@click.option("--log-level", default=None, help="Logging level, e.g. DEBUG.")
@click.pass_context
def root(
    ctx: click.Context,
    api_url: str | None,
    credentials_file: Path | None,
    log_level: str | None,
) -> None:
    overrides: dict[str, Any] = {}
    if api_url:
        overrides["api_url"] = api_url
    if credentials_file:
        overrides["credentials_file"] = credentials_file
    if log_level:
        overrides["log_level"] = log_level.upper()
    config = Settings(**overrides)
    setup_logging(config)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = config


@root.command()
@click.option("--username", prompt=True)
@click.option("--email", prompt=True)
@click.password_option()
@run_async
async def register(
    client: VideoPlatformClient, username: str, email: str, password: str
) -> None:
    """Create an account."""
    identity = await client.sessions.register(username, email, password)
    console.print(f"Registered {identity.username} <{identity.email}>, now run `login`.")


@root.command()
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True)
@run_async
async def login(client: VideoPlatformClient, email: str, password: str) -> None:
    """Log in and store the session."""
    identity = await client.sessions.login(email, password)
    console.print(f"Logged in as {identity.username}.")


@root.command()
@run_async
async def logout(client: VideoPlatformClient) -> None:
    """End the session."""
    await client.sessions.logout()
    console.print("Logged out.")


@root.command()
@run_async
async def whoami(client: VideoPlatformClient) -> None:
    """Show the logged in user."""
    user = client.sessions.current_user()
    if not client.sessions.is_session_active() or user is None:
        raise click.ClickException("Not logged in.")
    console.print(f"{user.username} <{user.email}> (id {user.user_id})")


@root.command(name="list")
@click.option("--limit", default=20, show_default=True)
@click.option("--offset", default=0, show_default=True)
@run_async
async def list_videos(client: VideoPlatformClient, limit: int, offset: int) -> None:
    """List uploaded videos."""
    page = await client.list_videos(limit=limit, offset=offset)
    console.print(jobs_table(page.videos))
    console.print(
        f"{page.offset + 1 if page.videos else 0}-{page.offset + len(page.videos)}"
        f" of {page.total}" + (" (more available)" if page.has_more else "")
    )


@root.command()
@click.argument(
    "file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option("--watch", is_flag=True, help="Follow processing until it ends.")
@run_async
async def upload(client: VideoPlatformClient, file: Path, *, watch: bool) -> None:
    """Upload a video and start frame extraction."""
    result = await client.uploads.submit(file)
    console.print(f"Uploaded {result.filename}: job {result.video_id} ({result.status})")
    if watch:
        await client.tracker.watch(result.video_id, observer=print_view)


@root.command()
@click.argument("video_id")
@click.option("--watch", is_flag=True, help="Follow processing until it ends.")
@run_async
async def status(client: VideoPlatformClient, video_id: str, *, watch: bool) -> None:
    """Show the processing status of a video."""
    if watch:
        await client.tracker.watch(video_id, observer=print_view)
        return
    print_view(JobView(job_id=video_id, job=await client.api.video_status(video_id)))


@root.command()
@click.argument("video_id")
@run_async
async def download(client: VideoPlatformClient, video_id: str) -> None:
    """Print the download URL of a video's frames, waiting for processing to end."""
    async with client.tracker.subscribe(video_id) as subscription:
        view = await subscription.wait_until_stopped()
        if not subscription.download_enabled:
            if view.error is not None:
                raise click.ClickException(str(view.error))
            raise click.ClickException(
                f"Video {video_id} is {view.status}, frames are not available."
            )
        link = await subscription.download()
    if link is not None:
        console.print(f"{link.filename} (expires in {link.expires_in}s)")
        console.print(link.download_url)
