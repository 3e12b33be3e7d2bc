"""
Content ranking, filtering and pagination.

``ContentService`` pulls a writer's catalogue through the ordered content
sources and shapes it for the dashboard: top content by views, the most
recent upload, and the paginated video list. When no source can answer and
mock fallback is enabled, the sample catalogue is served instead, tagged
``source="mock"``.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from writer_studio.core.content_sources import ContentSource
from writer_studio.core.date_ranges import DateRange, resolve_date_range
from writer_studio.core.errors import BadRequestError, NotFoundError, UpstreamUnavailableError
from writer_studio.core.fallback import resolve_first
from writer_studio.core.mock_data import MOCK_RETENTION, mock_content_for, mock_video
from writer_studio.models.dtos import (
    ContentRecord,
    ContentType,
    DataSource,
    PaginationState,
    RetentionPoint,
)

logger = logging.getLogger(__name__)

CONTENT_TYPES = {"all", "video", "short", "full_to_short"}
SORT_ORDERS = {"asc", "desc"}


def _posted_key(record: ContentRecord) -> Tuple[bool, float]:
    # Undated records sort as the oldest.
    if record.posted_date is None:
        return (False, 0.0)
    return (True, record.posted_date.timestamp())


SORT_KEYS: Dict[str, Callable[[ContentRecord], object]] = {
    "date": _posted_key,
    "views": lambda record: record.views,
    "title": lambda record: record.title.casefold(),
    "likes": lambda record: record.likes,
}


def sort_content(records: Sequence[ContentRecord], sort_field: str = "date", order: str = "desc") -> List[ContentRecord]:
    """
    Stable sort: records with equal keys keep the order the backend returned them in.

    Raises:
        BadRequestError: If the field or order is unknown.
    """
    if sort_field not in SORT_KEYS:
        raise BadRequestError(f"Unknown sort field: {sort_field}")
    if order not in SORT_ORDERS:
        raise BadRequestError(f"Unknown sort order: {order}")
    return sorted(records, key=SORT_KEYS[sort_field], reverse=(order == "desc"))


def filter_content(
    records: Sequence[ContentRecord],
    content_type: str = "all",
    search: Optional[str] = None,
) -> List[ContentRecord]:
    """Keep records of ``content_type`` whose title or URL contains ``search`` (case-insensitive)."""
    if content_type not in CONTENT_TYPES:
        raise BadRequestError(f"Unknown content type: {content_type}")

    result = list(records)
    if content_type != "all":
        wanted = ContentType(content_type)
        result = [record for record in result if record.type == wanted]
    if search:
        needle = search.casefold()
        result = [record for record in result
                  if needle in record.title.casefold() or needle in record.url.casefold()]
    return result


def paginate(records: Sequence[ContentRecord], page: int, page_size: int) -> Tuple[List[ContentRecord], PaginationState]:
    """
    Slice one 1-based page out of ``records``.

    Pages past the end come back empty; the page number is not clamped.

    Raises:
        BadRequestError: If ``page`` or ``page_size`` is below 1.
    """
    if page < 1:
        raise BadRequestError("page must be 1 or greater")
    if page_size < 1:
        raise BadRequestError("limit must be 1 or greater")

    total_items = len(records)
    total_pages = math.ceil(total_items / page_size)
    offset = (page - 1) * page_size
    state = PaginationState(
        current_page=page,
        page_size=page_size,
        total_items=total_items,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )
    return list(records[offset:offset + page_size]), state


@dataclass
class ContentResult:
    records: List[ContentRecord] = field(default_factory=list)
    source: DataSource = DataSource.NONE
    backend: Optional[str] = None
    all_unreachable: bool = False


@dataclass
class ContentPage:
    items: List[ContentRecord]
    pagination: PaginationState
    source: DataSource


class ContentService:
    """
    Writer content through the ordered content sources.

    Args:
        sources: Content sources in priority order.
        mock_enabled: Serve the sample catalogue when every source fails.
    """

    def __init__(self, sources: Sequence[ContentSource], mock_enabled: bool = True):
        self.sources = list(sources)
        self.mock_enabled = mock_enabled

    async def catalogue(self, writer_id: int, date_range: DateRange, allow_mock: bool = True) -> ContentResult:
        """
        Fetch the writer's catalogue from the first source that answers.

        With ``allow_mock`` the sample catalogue stands in when every source
        fails (if enabled), and ``UpstreamUnavailableError`` is raised when
        every source was unreachable and there is nothing to stand in. Without
        it the failure is reported through the returned ``ContentResult``.
        """
        resolution = await resolve_first(
            self.sources,
            lambda source: source.fetch_content(writer_id, date_range),
            f"writer {writer_id} content",
        )
        if resolution.resolved:
            return ContentResult(records=resolution.value, source=resolution.source, backend=resolution.backend)

        if allow_mock and self.mock_enabled:
            logger.warning(
                f"Serving sample content for writer {writer_id}: no content source answered",
                extra={"data_source": DataSource.MOCK.value, "writer_id": writer_id},
            )
            return ContentResult(records=mock_content_for(writer_id), source=DataSource.MOCK, backend="mock")
        if allow_mock and resolution.all_unreachable:
            raise UpstreamUnavailableError()
        return ContentResult(all_unreachable=resolution.all_unreachable)

    async def top_content(
        self,
        writer_id: int,
        date_range: DateRange,
        limit: int = 10,
        content_type: str = "all",
        allow_mock: bool = True,
    ) -> ContentResult:
        """The writer's most viewed records, at most ``limit`` of them."""
        if limit < 1:
            raise BadRequestError("limit must be 1 or greater")
        result = await self.catalogue(writer_id, date_range, allow_mock=allow_mock)
        ranked = sort_content(filter_content(result.records, content_type), "views", "desc")
        result.records = ranked[:limit]
        return result

    async def latest_content(self, writer_id: int, allow_mock: bool = True) -> ContentResult:
        """The writer's most recently posted record (as a list of at most one)."""
        result = await self.catalogue(writer_id, resolve_date_range("lifetime"), allow_mock=allow_mock)
        result.records = sort_content(result.records, "date", "desc")[:1]
        return result

    async def list_content(
        self,
        writer_id: int,
        date_range: DateRange,
        page: int = 1,
        page_size: int = 20,
        content_type: str = "all",
        sort_field: str = "date",
        sort_order: str = "desc",
        search: Optional[str] = None,
    ) -> ContentPage:
        # Validate paging before touching any backend.
        paginate([], page, page_size)
        result = await self.catalogue(writer_id, date_range)
        records = sort_content(filter_content(result.records, content_type, search), sort_field, sort_order)
        items, state = paginate(records, page, page_size)
        return ContentPage(items=items, pagination=state, source=result.source)

    async def get_video(self, video_id: str) -> Tuple[ContentRecord, DataSource]:
        """
        Look up one record.

        Raises:
            NotFoundError: If no source knows the id.
            UpstreamUnavailableError: If every source was unreachable and no sample record matches.
        """
        resolution = await resolve_first(
            self.sources,
            lambda source: source.fetch_video(video_id),
            f"video {video_id}",
        )
        if resolution.resolved:
            if resolution.value is None:
                raise NotFoundError(f"Video {video_id} not found")
            return resolution.value, resolution.source

        if self.mock_enabled:
            record = mock_video(video_id)
            if record is not None:
                logger.warning(
                    f"Serving sample record for video {video_id}",
                    extra={"data_source": DataSource.MOCK.value, "video_id": video_id},
                )
                return record, DataSource.MOCK
        if resolution.all_unreachable:
            raise UpstreamUnavailableError()
        raise NotFoundError(f"Video {video_id} not found")

    async def get_retention(self, video_id: str, source: DataSource = DataSource.LIVE) -> List[RetentionPoint]:
        """Retention curve for a record; empty when no source has one."""
        if source is DataSource.MOCK:
            return list(MOCK_RETENTION)
        resolution = await resolve_first(
            self.sources,
            lambda s: s.fetch_retention(video_id),
            f"video {video_id} retention",
        )
        return resolution.value or []

    async def close(self) -> None:
        for source in self.sources:
            try:
                await source.close()
            except Exception as e:
                logger.warning(f"Error closing content source '{source.name}': {e}")
