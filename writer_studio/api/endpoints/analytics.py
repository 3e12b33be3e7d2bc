"""
Writer analytics endpoints: overview, top content and latest content.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from writer_studio.api.dependencies import (
    ServiceContainer,
    get_current_user,
    get_services,
    resolve_writer_id,
)
from writer_studio.core.date_ranges import DEFAULT_SELECTOR, resolve_date_range
from writer_studio.models.dtos import (
    ContentListResponse,
    LatestContentResponse,
    OverviewPayload,
    UserProfile,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/overview", response_model=OverviewPayload)
async def get_overview(
    selector: str = Query(DEFAULT_SELECTOR, alias="range", description="Date range selector, e.g. last30days"),
    writer_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None, description="Start of a custom range"),
    end_date: Optional[date] = Query(None, description="End of a custom range"),
    content_type: str = Query("all", alias="type", description="all, video or short"),
    limit: Optional[int] = Query(None, description="Number of top content records"),
    user: UserProfile = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> OverviewPayload:
    """
    Dashboard overview for a writer.

    Resolves the daily view series through the configured metrics sources
    (first one that answers wins), derives the summary numbers, and attaches
    top and latest content. Pieces that cannot be fetched come back empty.

    Returns:
        OverviewPayload: Summary, chart data and content, tagged with the source that served them.

    Raises:
        BadRequestError: If the range or parameters are invalid.
        UpstreamUnavailableError: If no backend could be reached at all.
    """
    writer = resolve_writer_id(user, writer_id)
    return await services.overview.overview(
        writer,
        selector=selector,
        start_date=start_date,
        end_date=end_date,
        content_type=content_type,
        limit=limit,
    )


@router.get("/writer/top-content", response_model=ContentListResponse)
async def get_top_content(
    writer_id: Optional[int] = Query(None),
    selector: str = Query(DEFAULT_SELECTOR, alias="range"),
    limit: int = Query(10),
    content_type: str = Query("all", alias="type"),
    user: UserProfile = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> ContentListResponse:
    """The writer's most viewed content in the range."""
    writer = resolve_writer_id(user, writer_id)
    result = await services.content.top_content(
        writer,
        resolve_date_range(selector),
        limit=limit,
        content_type=content_type,
    )
    return ContentListResponse(data=result.records, source=result.source)


@router.get("/writer/latest-content", response_model=LatestContentResponse)
async def get_latest_content(
    writer_id: Optional[int] = Query(None),
    user: UserProfile = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> LatestContentResponse:
    """The writer's most recently posted content, or null."""
    writer = resolve_writer_id(user, writer_id)
    result = await services.content.latest_content(writer)
    return LatestContentResponse(data=result.records[0] if result.records else None, source=result.source)
