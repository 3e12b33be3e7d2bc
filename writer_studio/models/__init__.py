"""
Models package for the Writer Studio service.

This package contains SQLAlchemy ORM models and Pydantic DTOs.
"""

# Ensure all ORM models are registered with the Base metadata when this package is imported.
from . import account_orm
from . import base
from . import lookup_orm
from . import script_orm
from . import video_orm

from .base import Base
from .account_orm import LoginORM, WriterORM
from .lookup_orm import StructureORM, TropeORM
from .script_orm import ScriptORM
from .video_orm import VideoDailyMetricORM, VideoORM, VideoRetentionORM

from .dtos import (
    ContentListResponse,
    ContentRecord,
    ContentType,
    DailyViewPoint,
    DailyViewsEntry,
    DataSource,
    DateRangeDTO,
    LatestContentResponse,
    LoginRequest,
    LoginResponse,
    OverviewMetadata,
    OverviewPayload,
    PaginationState,
    ProfileResponse,
    RetentionPoint,
    SeriesSnapshot,
    Structure,
    StructureListResponse,
    Submission,
    SubmissionCreateRequest,
    SubmissionFilter,
    SubmissionStatus,
    SubmissionType,
    TokenClaims,
    Trope,
    UserProfile,
    UserRecord,
    VideoDetail,
    VideoListResponse,
)

__all__ = [
    # Base
    "Base",
    # ORMs
    "LoginORM",
    "WriterORM",
    "ScriptORM",
    "TropeORM",
    "StructureORM",
    "VideoORM",
    "VideoDailyMetricORM",
    "VideoRetentionORM",
    # DTOs
    "ContentListResponse",
    "ContentRecord",
    "ContentType",
    "DailyViewPoint",
    "DailyViewsEntry",
    "DataSource",
    "DateRangeDTO",
    "LatestContentResponse",
    "LoginRequest",
    "LoginResponse",
    "OverviewMetadata",
    "OverviewPayload",
    "PaginationState",
    "ProfileResponse",
    "RetentionPoint",
    "SeriesSnapshot",
    "Structure",
    "StructureListResponse",
    "Submission",
    "SubmissionCreateRequest",
    "SubmissionFilter",
    "SubmissionStatus",
    "SubmissionType",
    "TokenClaims",
    "Trope",
    "UserProfile",
    "UserRecord",
    "VideoDetail",
    "VideoListResponse",
]
