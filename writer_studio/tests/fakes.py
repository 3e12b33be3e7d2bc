"""In-process stand-ins for metrics and content backends."""

from datetime import date
from typing import Dict, Iterable, List, Optional

from writer_studio.core.errors import SourceDataError, SourceUnavailableError
from writer_studio.models.dtos import (
    ContentRecord,
    ContentType,
    DailyViewPoint,
    RetentionPoint,
    SeriesSnapshot,
)

TEST_SECRET = "test-secret"
WRITER_ID = 7


class StaticMetricsSource:
    """Metrics source answering with a fixed snapshot, or raising a fixed error."""

    def __init__(self, name: str, snapshot: Optional[SeriesSnapshot] = None, error: Optional[Exception] = None):
        self.name = name
        self.snapshot = snapshot or SeriesSnapshot()
        self.error = error
        self.calls = []
        self.closed = False

    async def fetch_series(self, scope, date_range) -> SeriesSnapshot:
        self.calls.append((scope, date_range))
        if self.error is not None:
            raise self.error
        return self.snapshot

    async def close(self) -> None:
        self.closed = True


class StaticContentSource:
    """Content source over a fixed list of records."""

    def __init__(
        self,
        name: str,
        records: Iterable[ContentRecord] = (),
        retention: Optional[Dict[str, List[RetentionPoint]]] = None,
        error: Optional[Exception] = None,
    ):
        self.name = name
        self.records = list(records)
        self.retention = retention or {}
        self.error = error
        self.closed = False

    async def fetch_content(self, writer_id, date_range) -> List[ContentRecord]:
        if self.error is not None:
            raise self.error
        return [record for record in self.records if record.writer_id in (None, writer_id)]

    async def fetch_video(self, video_id) -> Optional[ContentRecord]:
        if self.error is not None:
            raise self.error
        return next((record for record in self.records if record.id == video_id), None)

    async def fetch_retention(self, video_id) -> List[RetentionPoint]:
        if self.error is not None:
            raise self.error
        return self.retention.get(video_id, [])

    async def close(self) -> None:
        self.closed = True


def unreachable(name: str) -> SourceUnavailableError:
    return SourceUnavailableError(name, "connection refused")


def malformed(name: str) -> SourceDataError:
    return SourceDataError(name, "unexpected payload")


def make_record(record_id, views=0, likes=0, posted=None, type=ContentType.VIDEO, title=None, writer_id=WRITER_ID, **extra):
    return ContentRecord(
        id=str(record_id),
        title=title or f"Video {record_id}",
        url=f"https://youtube.com/watch?v={record_id}",
        writer_id=writer_id,
        views=views,
        likes=likes,
        posted_date=posted,
        type=type,
        **extra,
    )


def series(*pairs, likes=0, comments=0) -> SeriesSnapshot:
    """``series(("2025-05-01", 10), ...)`` -> snapshot."""
    return SeriesSnapshot(
        points=[DailyViewPoint(date=date.fromisoformat(day), views=views) for day, views in pairs],
        total_likes=likes,
        total_comments=comments,
    )


