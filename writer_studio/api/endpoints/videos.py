"""
Video list, per-video analytics and the raw writer views series.
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query

from writer_studio.api.dependencies import (
    ServiceContainer,
    get_current_user,
    get_services,
    resolve_writer_id,
)
from writer_studio.core.date_ranges import DEFAULT_SELECTOR, resolve_date_range
from writer_studio.models.dtos import DailyViewsEntry, UserProfile, VideoDetail, VideoListResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/writer/videos", response_model=VideoListResponse)
async def list_writer_videos(
    writer_id: Optional[int] = Query(None),
    selector: str = Query("lifetime", alias="range"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, description="1-based page number"),
    limit: int = Query(20, description="Page size"),
    content_type: str = Query("all", alias="type", description="all, video, short or full_to_short"),
    sort: str = Query("date", description="date, views, title or likes"),
    order: str = Query("desc", description="asc or desc"),
    search: Optional[str] = Query(None, description="Matches title or URL, case-insensitive"),
    user: UserProfile = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> VideoListResponse:
    """
    Paginated, sortable, searchable list of a writer's content.

    Pages past the end return an empty list; the page number is not clamped.
    """
    writer = resolve_writer_id(user, writer_id)
    page_result = await services.content.list_content(
        writer,
        resolve_date_range(selector, start_date, end_date),
        page=page,
        page_size=limit,
        content_type=content_type,
        sort_field=sort,
        sort_order=order,
        search=search,
    )
    return VideoListResponse(videos=page_result.items, pagination=page_result.pagination, source=page_result.source)


@router.get("/video/{video_id}", response_model=VideoDetail)
async def get_video_detail(
    video_id: str = Path(..., description="Video identifier"),
    writer_id: Optional[int] = Query(None),
    selector: str = Query(DEFAULT_SELECTOR, alias="range"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    user: UserProfile = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> VideoDetail:
    """
    Analytics for a single video: daily views, engagement and retention.

    Raises:
        NotFoundError: If the video does not exist, or belongs to another writer and the caller is not an admin.
    """
    writer = resolve_writer_id(user, writer_id) if (writer_id is not None or user.writer_id is not None) else None
    return await services.videos.video_detail(
        video_id,
        writer_id=writer,
        selector=selector,
        start_date=start_date,
        end_date=end_date,
        viewer=user,
    )


@router.get("/writer/views", response_model=List[DailyViewsEntry])
async def get_writer_views(
    writer_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    selector: str = Query(DEFAULT_SELECTOR, alias="range"),
    user: UserProfile = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> List[DailyViewsEntry]:
    """
    Daily views for a writer as ``[{time: {value}, views}]``, one entry per day.

    Giving ``startDate`` or ``endDate`` switches to a custom range, which then
    needs both.
    """
    writer = resolve_writer_id(user, writer_id)
    if start_date is not None or end_date is not None:
        selector = "custom"
    points = await services.overview.daily_views(writer, selector=selector, start_date=start_date, end_date=end_date)
    return [DailyViewsEntry.from_point(point) for point in points]
