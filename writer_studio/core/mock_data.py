"""
Illustrative content shown when no content backend can be reached.

Everything served from here is tagged ``source="mock"`` by the content
service so the dashboard can label it as sample data.
"""

from datetime import datetime, timezone
from typing import List, Optional

from writer_studio.models.dtos import ContentRecord, ContentType, RetentionPoint


def _posted(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, 15, 0, tzinfo=timezone.utc)


MOCK_CONTENT: List[ContentRecord] = [
    ContentRecord(
        id="mock-short-1",
        title="Have you ever made a joke at the moment decisions were being made?",
        url="https://youtube.com/shorts/mock-short-1",
        account_name="AskRedditEdit",
        views=1_900_000, likes=97_800, comments=1_240,
        duration_seconds=161, avg_view_duration_seconds=98,
        posted_date=_posted(2025, 5, 6), type=ContentType.SHORT,
    ),
    ContentRecord(
        id="mock-short-2",
        title="Nightingale, what's your \"they didn't realize I could hear them\" story?",
        url="https://youtube.com/shorts/mock-short-2",
        account_name="Requestedreads",
        views=29_700, likes=2_860, comments=95,
        duration_seconds=71, avg_view_duration_seconds=44,
        posted_date=_posted(2025, 5, 4), type=ContentType.SHORT,
    ),
    ContentRecord(
        id="mock-short-3",
        title="Girls, how did you learn that your father was a sociopath?",
        url="https://youtube.com/shorts/mock-short-3",
        account_name="Requestedreads",
        views=56_500, likes=4_420, comments=212,
        duration_seconds=52, avg_view_duration_seconds=36,
        posted_date=_posted(2025, 5, 2), type=ContentType.SHORT,
    ),
    ContentRecord(
        id="mock-short-4",
        title="Parents, do you actually have a favorite child?",
        url="https://youtube.com/shorts/mock-short-4",
        account_name="UnlimitedStories",
        views=27_100, likes=1_980, comments=143,
        duration_seconds=107, avg_view_duration_seconds=61,
        posted_date=_posted(2025, 4, 29), type=ContentType.SHORT,
    ),
    ContentRecord(
        id="mock-short-5",
        title="Did you ever think your dad didn't love you?",
        url="https://youtube.com/shorts/mock-short-5",
        account_name="Thumbs Up Stories",
        views=15_100, likes=1_310, comments=77,
        duration_seconds=104, avg_view_duration_seconds=58,
        posted_date=_posted(2025, 4, 25), type=ContentType.SHORT,
    ),
    ContentRecord(
        id="mock-video-1",
        title="[FULL STORY] What made you realize that \"open relationships\" never work?",
        url="https://youtube.com/watch?v=mock-video-1",
        account_name="AskRedditEdit",
        views=1_900_000, likes=88_400, comments=3_910,
        duration_seconds=1_441, avg_view_duration_seconds=512,
        posted_date=_posted(2025, 5, 5), type=ContentType.VIDEO,
    ),
    ContentRecord(
        id="mock-video-2",
        title="[FULL STORY] What's the most insane way someone got revenge?",
        url="https://youtube.com/watch?v=mock-video-2",
        account_name="Requestedreads",
        views=29_700, likes=1_720, comments=164,
        duration_seconds=1_922, avg_view_duration_seconds=604,
        posted_date=_posted(2025, 5, 1), type=ContentType.VIDEO,
    ),
    ContentRecord(
        id="mock-video-3",
        title="[FULL STORY] When did you realize your parents were not who they said?",
        url="https://youtube.com/watch?v=mock-video-3",
        account_name="BrokenStories",
        views=14_800, likes=990, comments=58,
        duration_seconds=1_984, avg_view_duration_seconds=577,
        posted_date=_posted(2025, 4, 27), type=ContentType.VIDEO,
    ),
]

# A typical curve: steep early drop, slow decline, small bump at the end.
MOCK_RETENTION: List[RetentionPoint] = [
    RetentionPoint(elapsed_video_time_ratio=0.0, audience_watch_ratio=1.0),
    RetentionPoint(elapsed_video_time_ratio=0.1, audience_watch_ratio=0.78),
    RetentionPoint(elapsed_video_time_ratio=0.25, audience_watch_ratio=0.64),
    RetentionPoint(elapsed_video_time_ratio=0.5, audience_watch_ratio=0.52),
    RetentionPoint(elapsed_video_time_ratio=0.75, audience_watch_ratio=0.44),
    RetentionPoint(elapsed_video_time_ratio=0.9, audience_watch_ratio=0.39),
    RetentionPoint(elapsed_video_time_ratio=1.0, audience_watch_ratio=0.41),
]


def mock_content_for(writer_id: Optional[int]) -> List[ContentRecord]:
    """Fresh copies of the sample catalogue attributed to ``writer_id``."""
    return [record.model_copy(update={"writer_id": writer_id}) for record in MOCK_CONTENT]


def mock_video(video_id: str) -> Optional[ContentRecord]:
    return next((record.model_copy() for record in MOCK_CONTENT if record.id == video_id), None)
