"""
Overview aggregation.

Builds the dashboard overview for a writer: the daily view series from the
metrics chain, the summary scalars derived from it, and the top and latest
content, fetched concurrently. Missing pieces degrade to empty values;
only a complete transport outage is reported as an error.
"""

import asyncio
import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

from writer_studio.core.content import ContentResult, ContentService
from writer_studio.core.date_ranges import resolve_date_range
from writer_studio.core.errors import UpstreamUnavailableError, WriterStudioError
from writer_studio.core.fallback import Resolution
from writer_studio.core.metrics_sources import MetricsScope, MetricsSourceChain
from writer_studio.models.dtos import (
    DailyViewPoint,
    DataSource,
    OverviewMetadata,
    OverviewPayload,
    SeriesSnapshot,
)

logger = logging.getLogger(__name__)

DEFAULT_VIEWS_TARGET = 100_000_000


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def collapse_duplicate_dates(points: Iterable[DailyViewPoint]) -> List[DailyViewPoint]:
    """Sum the views of points sharing a date and return them in ascending date order."""
    totals = defaultdict(int)
    for point in points:
        totals[point.date] += point.views
    return [DailyViewPoint(date=day, views=totals[day]) for day in sorted(totals)]


@dataclass(frozen=True)
class ViewSummary:
    total_views: int
    avg_daily_views: int
    highest_day: int
    lowest_day: int
    progress_to_target: float


def compute_summary(points: List[DailyViewPoint], views_target: int = DEFAULT_VIEWS_TARGET) -> ViewSummary:
    """
    Summary scalars over a collapsed series.

    ``progress_to_target`` is a percentage of ``views_target`` and is not
    clamped; capping at 100 is a display concern.
    """
    if not points:
        return ViewSummary(total_views=0, avg_daily_views=0, highest_day=0, lowest_day=0, progress_to_target=0.0)

    views = [point.views for point in points]
    total = sum(views)
    return ViewSummary(
        total_views=total,
        avg_daily_views=round_half_up(total / len(views)),
        highest_day=max(views),
        lowest_day=min(views),
        progress_to_target=total / views_target * 100,
    )


def _data_quality(series: Resolution[SeriesSnapshot], *content: ContentResult) -> str:
    if not series.resolved or not series.value.points:
        return "empty"
    if series.source is DataSource.LIVE and all(item.source is DataSource.LIVE for item in content):
        return "complete"
    return "partial"


class OverviewResolver:
    """
    Assembles the overview payload.

    Args:
        metrics: Ordered metrics sources for the view series.
        content: Content service for top and latest content.
        views_target: The lifetime views goal progress is measured against.
        top_content_limit: Default number of top content records.
    """

    def __init__(
        self,
        metrics: MetricsSourceChain,
        content: ContentService,
        views_target: int = DEFAULT_VIEWS_TARGET,
        top_content_limit: int = 10,
    ):
        self.metrics = metrics
        self.content = content
        self.views_target = views_target
        self.top_content_limit = top_content_limit

    async def overview(
        self,
        writer_id: int,
        selector: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        content_type: str = "all",
        limit: Optional[int] = None,
    ) -> OverviewPayload:
        """
        Build the overview for ``writer_id``.

        Args:
            writer_id: Writer whose data is aggregated.
            selector: Date range selector, see ``resolve_date_range``.
            start_date: Start of a custom range.
            end_date: End of a custom range.
            content_type: Type filter for top content.
            limit: Number of top content records.

        Returns:
            OverviewPayload: Always populated; empty data yields zeros and empty lists.

        Raises:
            BadRequestError: If the range or the content parameters are invalid.
            UpstreamUnavailableError: If every metrics and content backend was
                unreachable and mock fallback is disabled.
        """
        date_range = resolve_date_range(selector, start_date, end_date)
        limit = limit or self.top_content_limit

        series, top, latest = await asyncio.gather(
            self.metrics.resolve(MetricsScope.writer(writer_id), date_range),
            self.content.top_content(writer_id, date_range, limit=limit, content_type=content_type, allow_mock=False),
            self.content.latest_content(writer_id, allow_mock=False),
            return_exceptions=True,
        )

        # Input errors are the caller's problem, not a degraded backend.
        for outcome in (series, top, latest):
            if isinstance(outcome, WriterStudioError) and not isinstance(outcome, UpstreamUnavailableError):
                raise outcome

        if isinstance(series, BaseException):
            logger.error(f"Series resolution failed for writer {writer_id}: {series}", exc_info=series)
            series = Resolution(value=None, backend=None, source=DataSource.NONE)
        top = self._degrade(top, "top content", writer_id)
        latest = self._degrade(latest, "latest content", writer_id)

        everything_down = series.all_unreachable and top.all_unreachable and latest.all_unreachable
        if everything_down:
            if not self.content.mock_enabled:
                raise UpstreamUnavailableError()
            logger.warning(
                f"Every backend unreachable for writer {writer_id}, returning an empty overview",
                extra={"data_source": DataSource.NONE.value, "writer_id": writer_id},
            )

        snapshot = series.value or SeriesSnapshot()
        points = collapse_duplicate_dates(snapshot.points)
        summary = compute_summary(points, self.views_target)

        payload = OverviewPayload(
            total_views=summary.total_views,
            avg_daily_views=summary.avg_daily_views,
            highest_day=summary.highest_day,
            lowest_day=summary.lowest_day,
            progress_to_target=summary.progress_to_target,
            total_likes=snapshot.total_likes,
            total_comments=snapshot.total_comments,
            chart_data=points,
            top_videos=top.records,
            latest_content=latest.records[0] if latest.records else None,
            date_range=date_range.to_dto(),
            source=series.source,
            backend=series.backend,
            metadata=OverviewMetadata(
                last_updated=datetime.now(timezone.utc),
                data_quality=_data_quality(series, top, latest),
            ),
        )
        logger.info(
            f"Overview for writer {writer_id} ({date_range.selector}): {summary.total_views} views "
            f"over {len(points)} days from {series.backend or 'no backend'}"
        )
        return payload

    @staticmethod
    def _degrade(outcome, what: str, writer_id: int) -> ContentResult:
        if isinstance(outcome, BaseException):
            logger.error(f"{what} failed for writer {writer_id}: {outcome}", exc_info=outcome)
            return ContentResult()
        return outcome

    async def daily_views(
        self,
        writer_id: int,
        selector: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[DailyViewPoint]:
        """
        The writer's collapsed daily view series on its own, without content.

        Raises:
            BadRequestError: If the range is invalid.
            UpstreamUnavailableError: If every metrics backend was unreachable
                and mock fallback is disabled.
        """
        date_range = resolve_date_range(selector, start_date, end_date)
        series = await self.metrics.resolve(MetricsScope.writer(writer_id), date_range)
        if series.all_unreachable and not self.content.mock_enabled:
            raise UpstreamUnavailableError()

        points = collapse_duplicate_dates(series.value.points if series.value else [])
        logger.debug(f"Views series for writer {writer_id}: {len(points)} days from {series.backend or 'no backend'}")
        return points
