"""
Per-video analytics.

Combines a content record, its daily view series and its audience retention
curve into the numbers shown on the video page.
"""

import asyncio
import logging
from datetime import date
from typing import List, Optional, Sequence

from writer_studio.core.aggregation import collapse_duplicate_dates, round_half_up
from writer_studio.core.content import ContentService
from writer_studio.core.date_ranges import resolve_date_range
from writer_studio.core.errors import NotFoundError
from writer_studio.core.metrics_sources import MetricsScope, MetricsSourceChain
from writer_studio.models.dtos import ContentRecord, ContentType, RetentionPoint, UserProfile, VideoDetail

logger = logging.getLogger(__name__)

# Retention samples at or past this share of the video count as "stayed to the end".
END_OF_VIDEO_RATIO = 0.9


def engagement_rate(likes: int, views: int) -> float:
    """Likes per 100 views, two decimals; 0 when there are no views."""
    if views <= 0:
        return 0.0
    return round(likes / views * 100, 2)


def comment_rate(comments: int, views: int) -> float:
    if views <= 0:
        return 0.0
    return round(comments / views * 100, 3)


def retention_rate(avg_view_duration_seconds: Optional[int], duration_seconds: int) -> int:
    """Average view duration as a whole percentage of the video length."""
    if not avg_view_duration_seconds or duration_seconds <= 0:
        return 0
    return round_half_up(avg_view_duration_seconds / duration_seconds * 100)


def stayed_to_watch(points: Sequence[RetentionPoint]) -> Optional[float]:
    """Mean audience watch ratio over the last tenth of the video, as a percentage."""
    tail = [p.audience_watch_ratio for p in points if END_OF_VIDEO_RATIO <= p.elapsed_video_time_ratio <= 1.0]
    if not tail:
        return None
    return round(sum(tail) / len(tail) * 100, 1)


def views_increase(video: ContentRecord, others: Sequence[ContentRecord]) -> int:
    """How far this video's views are above (or below) the mean of the writer's other content, in percent."""
    comparison = [record.views for record in others if record.id != video.id]
    if not comparison:
        return 0
    average = sum(comparison) / len(comparison)
    if average <= 0:
        return 0
    return round_half_up((video.views - average) / average * 100)


def can_view(viewer: Optional[UserProfile], video: ContentRecord) -> bool:
    """Admins and unattributed records are visible to anyone; otherwise only to the owning writer."""
    if viewer is None or viewer.role == "admin" or video.writer_id is None:
        return True
    return video.writer_id == viewer.writer_id


class VideoAnalyticsService:
    def __init__(self, metrics: MetricsSourceChain, content: ContentService):
        self.metrics = metrics
        self.content = content

    async def video_detail(
        self,
        video_id: str,
        writer_id: Optional[int] = None,
        selector: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        viewer: Optional[UserProfile] = None,
    ) -> VideoDetail:
        """
        Build the video page payload.

        The record lookup is required; the series, the retention curve and
        the writer comparison degrade to empty values when they fail.
        When ``viewer`` is a non-admin account, videos attributed to another
        writer are reported as missing.

        Raises:
            BadRequestError: If the date range is invalid.
            NotFoundError: If the video does not exist or belongs to another writer.
            UpstreamUnavailableError: If every content source was unreachable.
        """
        date_range = resolve_date_range(selector, start_date, end_date)
        video, source = await self.content.get_video(video_id)
        if not can_view(viewer, video):
            logger.warning(f"User {viewer.id} asked for video {video_id} of writer {video.writer_id}")
            raise NotFoundError(f"Video {video_id} not found")
        owner = video.writer_id if video.writer_id is not None else writer_id

        series, retention, siblings = await asyncio.gather(
            self.metrics.resolve(MetricsScope.video(video_id), date_range),
            self.content.get_retention(video_id, source),
            self._siblings(owner),
            return_exceptions=True,
        )
        if isinstance(series, BaseException) or not series.resolved:
            points = []
        else:
            points = collapse_duplicate_dates(series.value.points)
        if isinstance(retention, BaseException):
            logger.warning(f"Retention lookup failed for video {video_id}: {retention}")
            retention = []
        if isinstance(siblings, BaseException):
            logger.warning(f"Writer comparison failed for video {video_id}: {siblings}")
            siblings = []

        return VideoDetail(
            video=video,
            chart_data=points,
            total_views_in_range=sum(point.views for point in points),
            engagement_rate=engagement_rate(video.likes, video.views),
            comment_rate=comment_rate(video.comments, video.views),
            retention_rate=retention_rate(video.avg_view_duration_seconds, video.duration_seconds),
            stayed_to_watch=stayed_to_watch(retention),
            views_increase=views_increase(video, siblings),
            retention_data=retention,
            is_short=video.type in (ContentType.SHORT, ContentType.FULL_TO_SHORT),
            date_range=date_range.to_dto(),
            source=source,
        )

    async def _siblings(self, writer_id: Optional[int]) -> List[ContentRecord]:
        if writer_id is None:
            return []
        result = await self.content.catalogue(writer_id, resolve_date_range("lifetime"), allow_mock=False)
        return result.records
