"""
Content catalogue adapters.

A content source lists a writer's published videos and shorts, looks up a
single video, and returns its audience retention curve. The relational store
is the primary catalogue; the secondary HTTP API mirrors the same records.
"""

import logging
from typing import Any, List, Optional, Protocol, Sequence

import httpx
from pydantic import TypeAdapter, ValidationError
from sqlalchemy import select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from writer_studio.core.date_ranges import DateRange
from writer_studio.core.errors import SourceDataError, SourceUnavailableError
from writer_studio.core.metrics_sources import EPOCH, MetricsScope
from writer_studio.models.dtos import ContentRecord, ContentType, RetentionPoint
from writer_studio.models.video_orm import VideoORM, VideoRetentionORM

logger = logging.getLogger(__name__)

VIDEO_CATEGORIES = {
    "video": ContentType.VIDEO,
    "short": ContentType.SHORT,
    "full to short": ContentType.FULL_TO_SHORT,
    "full_to_short": ContentType.FULL_TO_SHORT,
}

_records_adapter = TypeAdapter(List[ContentRecord])
_retention_adapter = TypeAdapter(List[RetentionPoint])


def category_to_type(category: Optional[str]) -> ContentType:
    return VIDEO_CATEGORIES.get((category or "video").strip().lower(), ContentType.VIDEO)


class ContentSource(Protocol):
    name: str

    async def fetch_content(self, writer_id: int, date_range: DateRange) -> List[ContentRecord]:
        ...

    async def fetch_video(self, video_id: str) -> Optional[ContentRecord]:
        ...

    async def fetch_retention(self, video_id: str) -> List[RetentionPoint]:
        ...

    async def close(self) -> None:
        ...


class PostgresContentSource:
    """Catalogue backed by the ``video`` and ``video_retention`` tables."""

    name = "postgres"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def to_record(video: VideoORM) -> ContentRecord:
        return ContentRecord(
            id=str(video.id),
            title=video.title or f"Video {video.id}",
            url=video.url,
            writer_id=video.writer_id,
            account_name=video.account_name,
            views=video.views or 0,
            likes=video.likes or 0,
            comments=video.comments or 0,
            duration_seconds=video.duration_seconds or 0,
            avg_view_duration_seconds=video.avg_view_duration_seconds,
            posted_date=video.posted_date,
            type=category_to_type(video.video_cat),
            thumbnail_variants=video.thumbnails or {},
        )

    async def _scalars(self, stmt) -> Sequence[Any]:
        try:
            async with self._session_factory() as session:
                return (await session.scalars(stmt)).all()
        except (OperationalError, InterfaceError, OSError) as e:
            raise SourceUnavailableError(self.name, str(e)) from e

    @staticmethod
    def _video_pk(video_id: str) -> int:
        try:
            return int(video_id)
        except ValueError as e:
            raise SourceDataError("postgres", f"non-numeric video id {video_id!r}") from e

    async def fetch_content(self, writer_id: int, date_range: DateRange) -> List[ContentRecord]:
        stmt = select(VideoORM).where(VideoORM.writer_id == writer_id).order_by(VideoORM.id)
        if date_range.start is not None:
            stmt = stmt.where(VideoORM.posted_date >= date_range.start)
        videos = await self._scalars(stmt)
        return [self.to_record(video) for video in videos
                if video.posted_date is None or video.posted_date.date() <= date_range.end]

    async def fetch_video(self, video_id: str) -> Optional[ContentRecord]:
        videos = await self._scalars(select(VideoORM).where(VideoORM.id == self._video_pk(video_id)))
        return self.to_record(videos[0]) if videos else None

    async def fetch_retention(self, video_id: str) -> List[RetentionPoint]:
        stmt = (
            select(VideoRetentionORM)
            .where(VideoRetentionORM.video_id == self._video_pk(video_id))
            .order_by(VideoRetentionORM.elapsed_video_time_ratio)
        )
        return [
            RetentionPoint(
                elapsed_video_time_ratio=row.elapsed_video_time_ratio,
                audience_watch_ratio=row.audience_watch_ratio,
                relative_retention_performance=row.relative_retention_performance,
            )
            for row in await self._scalars(stmt)
        ]

    async def full_to_short_urls(self, scope: MetricsScope) -> List[str]:
        """URLs of the writer's shorts that were cut from full videos."""
        stmt = select(VideoORM.url).where(
            VideoORM.writer_id == int(scope.id),
            VideoORM.video_cat.in_(["full to short", "full_to_short"]),
        )
        return list(await self._scalars(stmt))

    async def close(self) -> None:
        return None


class HttpContentSource:
    """Catalogue served by the secondary HTTP API."""

    name = "http"

    def __init__(self, base_url: str, timeout_seconds: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Accept": "application/json"},
        )

    async def _get_json(self, path: str, params: Optional[dict] = None, allow_missing: bool = False) -> Any:
        try:
            response = await self._client.get(path, params=params)
            if allow_missing and response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.TransportError as e:
            raise SourceUnavailableError(self.name, str(e) or type(e).__name__) from e
        except httpx.HTTPStatusError as e:
            raise SourceDataError(self.name, f"HTTP {e.response.status_code} for {path}") from e
        try:
            return response.json()
        except ValueError as e:
            raise SourceDataError(self.name, f"{path} did not return JSON") from e

    async def fetch_content(self, writer_id: int, date_range: DateRange) -> List[ContentRecord]:
        payload = await self._get_json(
            "/api/writer/content",
            params={
                "writer_id": writer_id,
                "startDate": (date_range.start or EPOCH).isoformat(),
                "endDate": date_range.end.isoformat(),
            },
        )
        if isinstance(payload, dict):
            payload = payload.get("videos", payload.get("data"))
        try:
            return _records_adapter.validate_python(payload)
        except ValidationError as e:
            raise SourceDataError(self.name, f"malformed content list: {e.error_count()} errors") from e

    async def fetch_video(self, video_id: str) -> Optional[ContentRecord]:
        payload = await self._get_json(f"/api/video/{video_id}", allow_missing=True)
        if payload is None:
            return None
        if isinstance(payload, dict) and "video" in payload:
            payload = payload["video"]
        try:
            return ContentRecord.model_validate(payload)
        except ValidationError as e:
            raise SourceDataError(self.name, "malformed video record") from e

    async def fetch_retention(self, video_id: str) -> List[RetentionPoint]:
        payload = await self._get_json(f"/api/video/{video_id}/retention", allow_missing=True)
        try:
            return _retention_adapter.validate_python(payload or [])
        except ValidationError as e:
            raise SourceDataError(self.name, "malformed retention data") from e

    async def close(self) -> None:
        await self._client.aclose()
