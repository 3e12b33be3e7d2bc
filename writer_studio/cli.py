"""Command-line interface for running and operating the Writer Studio service."""

import asyncio
import getpass
import json
import logging
import sys
from typing import Optional

import typer
import uvicorn
from typing_extensions import Annotated

from writer_studio.api.dependencies import build_services
from writer_studio.config.settings import get_settings
from writer_studio.core.credentials import SqlUserStore, hash_password
from writer_studio.core.date_ranges import resolve_date_range
from writer_studio.core.errors import WriterStudioError
from writer_studio.core.fallback import backend_name
from writer_studio.core.metrics_sources import MetricsScope
from writer_studio.core.presentation import chart_series, format_duration, format_number, progress_bar_value
from writer_studio.utils.db_health import test_db_connection
from writer_studio.utils.db_session import dispose_engine, get_async_session_factory
from writer_studio.utils.logging_utils import setup_logging

app = typer.Typer(help="Writer Studio service commands")
logger = logging.getLogger(__name__)


@app.command("serve")
def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Bind port")] = None,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes")] = False,
) -> None:
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "writer_studio.api.main:app",
        host=host or settings.API_HOST,
        port=port or settings.API_PORT,
        reload=reload,
    )


@app.command("hash-password")
def hash_password_command(
    password: Annotated[Optional[str], typer.Argument(help="Password to hash; prompted for when omitted")] = None,
) -> None:
    """Print the bcrypt hash of a password."""
    password = password or getpass.getpass("Password: ")
    typer.echo(hash_password(password))


@app.command("create-user")
def create_user(
    username: Annotated[str, typer.Argument(help="Login name")],
    role: Annotated[str, typer.Option("--role", "-r", help="writer or admin")] = "writer",
    name: Annotated[Optional[str], typer.Option("--name", help="Writer display name")] = None,
    email: Annotated[Optional[str], typer.Option("--email", help="Writer email")] = None,
    password: Annotated[Optional[str], typer.Option("--password", help="Prompted for when omitted")] = None,
    loglevel: Annotated[str, typer.Option("--loglevel", "-l", help="Logging level")] = "INFO",
) -> None:
    """Create a login (and writer profile for writers) with a bcrypt-hashed password."""
    setup_logging(level=loglevel)
    password = password or getpass.getpass("Password: ")
    if not password:
        logger.error("Password must not be empty")
        sys.exit(1)

    async def _create():
        try:
            store = SqlUserStore(get_async_session_factory())
            return await store.create_user(username, hash_password(password), role=role,
                                           writer_name=name, writer_email=email)
        finally:
            await dispose_engine()

    user = asyncio.run(_create())
    typer.echo(json.dumps({"id": user.id, "username": user.username, "role": user.role, "writer_id": user.writer_id}))


@app.command("check-sources")
def check_sources(
    writer_id: Annotated[int, typer.Argument(help="Writer to check")],
    date_range: Annotated[str, typer.Option("--range", help="Date range selector")] = "last7days",
    loglevel: Annotated[str, typer.Option("--loglevel", "-l", help="Logging level")] = "WARNING",
) -> None:
    """Probe every configured metrics source for a writer and report which would answer."""
    setup_logging(level=loglevel)
    settings = get_settings()
    window = resolve_date_range(date_range)

    async def _check():
        services = build_services(settings)
        report = {"database": await test_db_connection(), "sources": []}
        try:
            scope = MetricsScope.writer(writer_id)
            for source in services.metrics.sources:
                entry = {"name": backend_name(source)}
                try:
                    snapshot = await source.fetch_series(scope, window)
                    total = sum(p.views for p in snapshot.points)
                    entry.update(ok=True, days=len(snapshot.points), total_views=format_number(total))
                except Exception as e:
                    entry.update(ok=False, error=str(e))
                report["sources"].append(entry)
            resolution = await services.metrics.resolve(scope, window)
            report["resolved_backend"] = resolution.backend
            report["source"] = resolution.source.value
        finally:
            await services.close()
        return report

    typer.echo(json.dumps(asyncio.run(_check()), indent=2))


@app.command("overview")
def overview(
    writer_id: Annotated[int, typer.Argument(help="Writer to summarise")],
    date_range: Annotated[str, typer.Option("--range", help="Date range selector")] = "last30days",
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of top videos")] = 5,
    loglevel: Annotated[str, typer.Option("--loglevel", "-l", help="Logging level")] = "WARNING",
) -> None:
    """Print a writer's overview: totals, progress to target and top videos."""
    setup_logging(level=loglevel)
    settings = get_settings()

    async def _overview():
        services = build_services(settings)
        try:
            return await services.overview.overview(writer_id, selector=date_range, limit=limit)
        finally:
            await services.close()

    try:
        payload = asyncio.run(_overview())
    except WriterStudioError as e:
        logger.error(e.message)
        sys.exit(1)

    typer.echo(f"Writer {writer_id} ({payload.date_range.selector}, source: {payload.source.value})")
    typer.echo(f"  Total views:   {format_number(payload.total_views)}")
    typer.echo(f"  Daily average: {format_number(payload.avg_daily_views)}")
    typer.echo(f"  Progress:      {progress_bar_value(payload.progress_to_target):.1f}%")
    for row in chart_series(payload.chart_data)[-7:]:
        typer.echo(f"  {row['date']}  {row['label']}")
    for video in payload.top_videos:
        typer.echo(f"  {format_number(video.views):>7}  {format_duration(video.duration_seconds):>8}  {video.title}")


if __name__ == "__main__":
    app()
