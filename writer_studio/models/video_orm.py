"""
SQLAlchemy ORM models for published videos and their per-day metrics.
"""

from sqlalchemy import (
    BigInteger,
    Column,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    PrimaryKeyConstraint,
    Text,
    TIMESTAMP,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class VideoORM(Base):
    """
    A published video attributed to a writer.

    ``video_cat`` distinguishes long-form videos, shorts, and shorts that were
    cut from a full video ("full to short"); the latter are excluded from the
    warehouse view totals.
    """
    __tablename__ = "video"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    writer_id = Column(BigInteger, ForeignKey("writer.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=True)
    url = Column(Text, nullable=False)
    account_name = Column(Text, nullable=True, comment="Channel the video was posted on.")
    video_cat = Column(Text, nullable=False, server_default="video", comment="video, short or 'full to short'.")
    posted_date = Column(TIMESTAMP(timezone=True), nullable=True)
    duration_seconds = Column(Integer, nullable=False, server_default="0")
    avg_view_duration_seconds = Column(Integer, nullable=True)
    views = Column(BigInteger, nullable=False, server_default="0")
    likes = Column(BigInteger, nullable=False, server_default="0")
    comments = Column(BigInteger, nullable=False, server_default="0")
    thumbnails = Column(JSONB, nullable=True, comment="Thumbnail URLs keyed by variant.")

    __table_args__ = (
        Index("idx_video_writer_posted", "writer_id", "posted_date"),
    )

    def __repr__(self) -> str:
        return f"<VideoORM(id={self.id}, writer_id={self.writer_id}, url='{self.url}')>"


class VideoDailyMetricORM(Base):
    """Per-day view/like/comment increments for a video."""
    __tablename__ = "video_daily_metrics"

    video_id = Column(BigInteger, ForeignKey("video.id", ondelete="CASCADE"), nullable=False)
    writer_id = Column(BigInteger, nullable=False)
    day = Column(Date, nullable=False)
    views = Column(BigInteger, nullable=False, server_default="0")
    likes = Column(BigInteger, nullable=False, server_default="0")
    comments = Column(BigInteger, nullable=False, server_default="0")

    __table_args__ = (
        PrimaryKeyConstraint("video_id", "day", name="pk_video_daily_metrics"),
        Index("idx_video_daily_metrics_writer_day", "writer_id", "day"),
    )


class VideoRetentionORM(Base):
    """Audience retention curve samples for a video."""
    __tablename__ = "video_retention"

    video_id = Column(BigInteger, ForeignKey("video.id", ondelete="CASCADE"), nullable=False)
    elapsed_video_time_ratio = Column(Float, nullable=False)
    audience_watch_ratio = Column(Float, nullable=False)
    relative_retention_performance = Column(Float, nullable=True)

    __table_args__ = (
        PrimaryKeyConstraint("video_id", "elapsed_video_time_ratio", name="pk_video_retention"),
    )
