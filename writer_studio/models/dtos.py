"""
Pydantic Data Transfer Objects (DTOs) for the Writer Studio service.

These models are used for API request/response validation and for passing
records between the stores, the source adapters and the resolvers. Response
models serialise with camelCase aliases, which is what the dashboard reads.
"""

import datetime as dt
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for DTOs exchanged with the dashboard (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class DataSource(str, Enum):
    """Where a result came from."""

    LIVE = "live"
    FALLBACK = "fallback"
    MOCK = "mock"
    NONE = "none"


class ContentType(str, Enum):
    VIDEO = "video"
    SHORT = "short"
    FULL_TO_SHORT = "full_to_short"


class SubmissionType(str, Enum):
    ORIGINAL = "Original"
    TROPE = "Trope"
    STL = "STL"
    REWRITE = "Re-write"


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    POSTED = "posted"
    DRAFT = "draft"
    UNDER_REVIEW = "under_review"


# --- Authentication -------------------------------------------------------


class LoginRequest(BaseModel):
    """Both fields are optional here so missing values produce a 400, not a 422."""

    username: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    username: str
    role: str
    message: str = "Login successful"


class TokenClaims(BaseModel):
    """Claims carried by a session token."""

    sub: str
    username: str
    role: str
    iat: int
    exp: int

    @property
    def user_id(self) -> int:
        return int(self.sub)


class UserRecord(BaseModel):
    """An account as stored, including the password hash. Never serialised to clients."""

    id: int
    username: str
    password_hash: str
    role: str = "writer"
    writer_id: Optional[int] = None
    name: Optional[str] = None

    model_config = {"from_attributes": True}


class UserProfile(CamelModel):
    id: int
    username: str
    role: str
    writer_id: Optional[int] = None
    name: Optional[str] = None


class ProfileResponse(BaseModel):
    user: UserProfile


# --- Submissions ----------------------------------------------------------


class SubmissionCreateRequest(CamelModel):
    """
    Body of ``POST /api/submissions`` and ``POST /api/scripts``.

    Accepts both ``googleDocLink`` and ``google_doc_link`` (and likewise for
    ``writer_id``). Every field is optional at the schema level; required
    fields are enforced by the submission store so the client gets a 400.
    """

    title: Optional[str] = None
    type: Optional[str] = None
    number: Optional[str] = None
    structure: Optional[str] = None
    google_doc_link: Optional[str] = None
    writer_id: Optional[int] = None

    @field_validator("number", mode="before")
    @classmethod
    def coerce_number(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(int(v))
        return v


class Submission(CamelModel):
    id: int
    writer_id: Optional[int] = None
    title: str
    type: Optional[str] = None
    number: Optional[str] = None
    structure: Optional[str] = None
    google_doc_link: str
    status: SubmissionStatus = SubmissionStatus.PENDING
    created_at: dt.datetime


class SubmissionFilter(BaseModel):
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    title_contains: Optional[str] = None


class Trope(BaseModel):
    id: int
    number: int
    name: str

    model_config = {"from_attributes": True}


class Structure(BaseModel):
    id: int
    name: str


class StructureListResponse(BaseModel):
    structures: List[Structure]


# --- Metrics and content --------------------------------------------------


class DailyViewPoint(CamelModel):
    date: dt.date
    views: int = Field(ge=0)


class DayValue(BaseModel):
    value: dt.date


class DailyViewsEntry(BaseModel):
    """One day of the writer views series, in the shape the dashboard charts read."""

    time: DayValue
    views: int

    @classmethod
    def from_point(cls, point: DailyViewPoint) -> "DailyViewsEntry":
        return cls(time=DayValue(value=point.date), views=point.views)


class SeriesSnapshot(BaseModel):
    """What a metrics backend returns for one scope and range."""

    points: List[DailyViewPoint] = Field(default_factory=list)
    total_likes: int = 0
    total_comments: int = 0


class ContentRecord(CamelModel):
    id: str
    title: str
    url: str
    writer_id: Optional[int] = None
    account_name: Optional[str] = None
    views: int = 0
    likes: int = 0
    comments: int = 0
    duration_seconds: int = 0
    avg_view_duration_seconds: Optional[int] = None
    posted_date: Optional[dt.datetime] = None
    type: ContentType = ContentType.VIDEO
    thumbnail_variants: Dict[str, str] = Field(default_factory=dict)


class RetentionPoint(CamelModel):
    elapsed_video_time_ratio: float = Field(ge=0.0, le=1.0)
    audience_watch_ratio: float
    relative_retention_performance: Optional[float] = None


class PaginationState(CamelModel):
    current_page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class DateRangeDTO(CamelModel):
    selector: str
    start_date: Optional[dt.date] = None
    end_date: dt.date


class OverviewMetadata(CamelModel):
    last_updated: dt.datetime
    data_quality: str


class OverviewPayload(CamelModel):
    total_views: int
    avg_daily_views: int
    highest_day: int
    lowest_day: int
    progress_to_target: float
    total_likes: int = 0
    total_comments: int = 0
    chart_data: List[DailyViewPoint] = Field(default_factory=list)
    top_videos: List[ContentRecord] = Field(default_factory=list)
    latest_content: Optional[ContentRecord] = None
    date_range: DateRangeDTO
    source: DataSource
    backend: Optional[str] = None
    metadata: OverviewMetadata


class ContentListResponse(CamelModel):
    data: List[ContentRecord]
    source: DataSource


class LatestContentResponse(CamelModel):
    data: Optional[ContentRecord] = None
    source: DataSource


class VideoListResponse(CamelModel):
    videos: List[ContentRecord]
    pagination: PaginationState
    source: DataSource


class VideoDetail(CamelModel):
    video: ContentRecord
    chart_data: List[DailyViewPoint] = Field(default_factory=list)
    total_views_in_range: int = 0
    engagement_rate: float = 0.0
    comment_rate: float = 0.0
    retention_rate: int = 0
    stayed_to_watch: Optional[float] = None
    views_increase: int = 0
    retention_data: List[RetentionPoint] = Field(default_factory=list)
    is_short: bool = False
    date_range: DateRangeDTO
    source: DataSource
