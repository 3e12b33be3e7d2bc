from datetime import date

import pytest

from writer_studio.core.content import ContentService
from writer_studio.core.errors import NotFoundError
from writer_studio.core.metrics_sources import MetricsSourceChain
from writer_studio.core.mock_data import MOCK_RETENTION
from writer_studio.core.video_analytics import (
    VideoAnalyticsService,
    can_view,
    comment_rate,
    engagement_rate,
    retention_rate,
    stayed_to_watch,
    views_increase,
)
from writer_studio.models.dtos import ContentType, DataSource, RetentionPoint, UserProfile
from writer_studio.tests.fakes import StaticContentSource, StaticMetricsSource, make_record, series, unreachable


def test_engagement_rate():
    assert engagement_rate(97_800, 1_900_000) == 5.15
    assert engagement_rate(5, 0) == 0.0


def test_comment_rate():
    assert comment_rate(1_240, 1_900_000) == 0.065
    assert comment_rate(1, 0) == 0.0


def test_retention_rate():
    assert retention_rate(98, 161) == 61
    assert retention_rate(None, 161) == 0
    assert retention_rate(30, 0) == 0


def test_stayed_to_watch_averages_the_tail():
    assert stayed_to_watch(MOCK_RETENTION) == 40.0
    assert stayed_to_watch([RetentionPoint(elapsed_video_time_ratio=0.5, audience_watch_ratio=0.5)]) is None


def test_views_increase_against_other_videos():
    video = make_record("a", views=300)
    others = [video, make_record("b", views=100), make_record("c", views=200)]

    assert views_increase(video, others) == 100
    assert views_increase(video, [video]) == 0
    assert views_increase(video, [make_record("b", views=0)]) == 0


def _service(records, metrics=None, retention=None, content_error=None):
    content = ContentService([StaticContentSource("postgres", records, retention=retention, error=content_error)])
    return VideoAnalyticsService(MetricsSourceChain(metrics or []), content)


@pytest.mark.asyncio
async def test_video_detail():
    video = make_record("1", views=1_000, likes=50, comments=5, duration_seconds=200, avg_view_duration_seconds=90,
                        type=ContentType.SHORT)
    sibling = make_record("2", views=500)
    retention = {"1": [
        RetentionPoint(elapsed_video_time_ratio=0.9, audience_watch_ratio=0.3),
        RetentionPoint(elapsed_video_time_ratio=1.0, audience_watch_ratio=0.5),
    ]}
    metrics = StaticMetricsSource("influx", series(("2025-05-02", 4), ("2025-05-01", 6), ("2025-05-02", 1)))

    detail = await _service([video, sibling], [metrics], retention).video_detail("1", selector="last7days")

    assert detail.video.id == "1"
    assert [(p.date, p.views) for p in detail.chart_data] == [(date(2025, 5, 1), 6), (date(2025, 5, 2), 5)]
    assert detail.total_views_in_range == 11
    assert detail.engagement_rate == 5.0
    assert detail.comment_rate == 0.5
    assert detail.retention_rate == 45
    assert detail.stayed_to_watch == 40.0
    assert detail.views_increase == 100
    assert detail.is_short is True
    assert detail.source is DataSource.LIVE
    assert metrics.calls[0][0].kind == "video"


@pytest.mark.asyncio
async def test_video_detail_degrades_series_and_retention():
    video = make_record("1", views=10)
    metrics = StaticMetricsSource("influx", error=unreachable("influx"))

    detail = await _service([video], [metrics]).video_detail("1")

    assert detail.chart_data == []
    assert detail.total_views_in_range == 0
    assert detail.retention_data == []
    assert detail.stayed_to_watch is None
    assert detail.views_increase == 0


@pytest.mark.asyncio
async def test_video_detail_unknown_video():
    with pytest.raises(NotFoundError):
        await _service([make_record("1")]).video_detail("2")


@pytest.mark.asyncio
async def test_video_detail_for_sample_record_uses_sample_retention():
    service = _service([], content_error=unreachable("postgres"))

    detail = await service.video_detail("mock-short-1")

    assert detail.source is DataSource.MOCK
    assert detail.retention_data == MOCK_RETENTION
    assert detail.is_short is True
    assert detail.stayed_to_watch == 40.0


WRITER = UserProfile(id=1, username="alice", role="writer", writer_id=7)
ADMIN = UserProfile(id=2, username="root", role="admin")


def test_can_view():
    own, foreign, unattributed = make_record("1"), make_record("2", writer_id=99), make_record("3", writer_id=None)

    assert can_view(WRITER, own)
    assert not can_view(WRITER, foreign)
    assert can_view(WRITER, unattributed)
    assert can_view(ADMIN, foreign)
    assert can_view(None, foreign)


@pytest.mark.asyncio
async def test_video_detail_hides_other_writers_videos():
    service = _service([make_record("501", views=300, writer_id=99)])

    with pytest.raises(NotFoundError):
        await service.video_detail("501", writer_id=7, viewer=WRITER)


@pytest.mark.asyncio
async def test_video_detail_compares_against_the_owners_catalogue():
    records = [
        make_record("501", views=300, writer_id=99),
        make_record("502", views=100, writer_id=99),
        make_record("10", views=1_000, writer_id=7),
    ]

    detail = await _service(records).video_detail("501", writer_id=7, viewer=ADMIN)

    assert detail.views_increase == 200
