from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest

from writer_studio.core.aggregation import (
    OverviewResolver,
    collapse_duplicate_dates,
    compute_summary,
    round_half_up,
)
from writer_studio.core.content import ContentService
from writer_studio.core.errors import BadRequestError, UpstreamUnavailableError
from writer_studio.core.metrics_sources import MetricsSourceChain
from writer_studio.models.dtos import DailyViewPoint, DataSource
from writer_studio.tests.fakes import (
    StaticContentSource,
    StaticMetricsSource,
    make_record,
    series,
    unreachable,
)

D1 = date(2025, 5, 1)
D2 = date(2025, 5, 2)


def _point(day, views):
    return DailyViewPoint(date=day, views=views)


def _resolver(metrics_sources, content_sources, mock_enabled=True):
    return OverviewResolver(
        MetricsSourceChain(metrics_sources),
        ContentService(content_sources, mock_enabled=mock_enabled),
    )


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2


def test_duplicate_dates_are_summed():
    collapsed = collapse_duplicate_dates([_point(D1, 5), _point(D1, 7), _point(D2, 3)])

    assert collapsed == [_point(D1, 12), _point(D2, 3)]
    assert collapse_duplicate_dates(collapsed) == collapsed


def test_collapse_sorts_ascending():
    assert [p.date for p in collapse_duplicate_dates([_point(D2, 1), _point(D1, 1)])] == [D1, D2]


def test_summary_of_empty_series_is_zero():
    summary = compute_summary([])

    assert summary.total_views == 0
    assert summary.avg_daily_views == 0
    assert summary.highest_day == 0
    assert summary.lowest_day == 0
    assert summary.progress_to_target == 0


def test_summary_scalars():
    summary = compute_summary([_point(D1, 10), _point(D2, 15)])

    assert summary.total_views == 25
    assert summary.avg_daily_views == 13
    assert summary.highest_day == 15
    assert summary.lowest_day == 10


@pytest.mark.parametrize("total,expected", [(0, 0), (100_000_000, 100), (250_000_000, 250)])
def test_progress_to_target_is_unclamped(total, expected):
    points = [_point(D1, total)] if total else []
    assert compute_summary(points).progress_to_target == expected


@pytest.mark.asyncio
async def test_overview_from_live_backend():
    metrics = StaticMetricsSource("influx", series(("2025-05-01", 5), ("2025-05-01", 7), ("2025-05-02", 3), likes=9, comments=2))
    content = StaticContentSource("postgres", [
        make_record(1, views=10, posted=datetime(2025, 5, 1, tzinfo=timezone.utc)),
        make_record(2, views=30, posted=datetime(2025, 5, 2, tzinfo=timezone.utc)),
    ])

    payload = await _resolver([metrics], [content]).overview(7, "last30days")

    assert payload.total_views == 15
    assert [(p.date, p.views) for p in payload.chart_data] == [(D1, 12), (D2, 3)]
    assert payload.avg_daily_views == 8
    assert payload.total_likes == 9
    assert payload.total_comments == 2
    assert [v.id for v in payload.top_videos] == ["2", "1"]
    assert payload.latest_content.id == "2"
    assert payload.source is DataSource.LIVE
    assert payload.backend == "influx"
    assert payload.metadata.data_quality == "complete"
    assert payload.date_range.selector == "last30days"


@pytest.mark.asyncio
async def test_overview_fallback_is_partial():
    payload = await _resolver(
        [StaticMetricsSource("influx", error=unreachable("influx")), StaticMetricsSource("bigquery", series(("2025-05-01", 4)))],
        [StaticContentSource("postgres", [])],
    ).overview(7)

    assert payload.source is DataSource.FALLBACK
    assert payload.backend == "bigquery"
    assert payload.metadata.data_quality == "partial"


@pytest.mark.asyncio
async def test_overview_with_no_data_is_zero_not_error():
    payload = await _resolver([StaticMetricsSource("influx")], [StaticContentSource("postgres", [])]).overview(7)

    assert payload.total_views == 0
    assert payload.progress_to_target == 0
    assert payload.chart_data == []
    assert payload.top_videos == []
    assert payload.latest_content is None
    assert payload.metadata.data_quality == "empty"


@pytest.mark.asyncio
async def test_overview_content_failure_degrades_without_mock():
    payload = await _resolver(
        [StaticMetricsSource("influx", series(("2025-05-01", 4)))],
        [StaticContentSource("postgres", error=unreachable("postgres"))],
        mock_enabled=True,
    ).overview(7)

    assert payload.total_views == 4
    assert payload.top_videos == []
    assert payload.latest_content is None
    assert payload.metadata.data_quality == "partial"


@pytest.mark.asyncio
async def test_overview_total_outage_with_mock_enabled_is_empty():
    payload = await _resolver(
        [StaticMetricsSource("influx", error=unreachable("influx"))],
        [StaticContentSource("postgres", error=unreachable("postgres"))],
        mock_enabled=True,
    ).overview(7)

    assert payload.total_views == 0
    assert payload.top_videos == []
    assert payload.source is DataSource.NONE


@pytest.mark.asyncio
async def test_overview_total_outage_without_mock_is_retryable_error():
    resolver = _resolver(
        [StaticMetricsSource("influx", error=unreachable("influx"))],
        [StaticContentSource("postgres", error=unreachable("postgres"))],
        mock_enabled=False,
    )

    with pytest.raises(UpstreamUnavailableError):
        await resolver.overview(7)


@pytest.mark.asyncio
async def test_overview_rejects_bad_range_before_fetching():
    metrics = StaticMetricsSource("influx")

    with pytest.raises(BadRequestError):
        await _resolver([metrics], []).overview(7, "custom")
    assert metrics.calls == []


@pytest.mark.asyncio
async def test_overview_rejects_bad_content_type():
    with pytest.raises(BadRequestError):
        await _resolver([StaticMetricsSource("influx")], [StaticContentSource("postgres", [])]).overview(
            7, content_type="podcast"
        )


@pytest.mark.asyncio
async def test_overview_unexpected_series_failure_degrades():
    resolver = _resolver([], [StaticContentSource("postgres", [])])
    resolver.metrics.resolve = AsyncMock(side_effect=RuntimeError("boom"))

    payload = await resolver.overview(7)

    assert payload.total_views == 0
    assert payload.source is DataSource.NONE


@pytest.mark.asyncio
async def test_daily_views_collapses_the_first_answering_series():
    resolver = _resolver(
        [
            StaticMetricsSource("influx", error=unreachable("influx")),
            StaticMetricsSource("bigquery", series(("2025-05-02", 4), ("2025-05-01", 1), ("2025-05-02", 6))),
        ],
        [],
    )

    points = await resolver.daily_views(7, "custom", D1, D2)

    assert points == [_point(D1, 1), _point(D2, 10)]


@pytest.mark.asyncio
async def test_daily_views_outage():
    down = [StaticMetricsSource("influx", error=unreachable("influx"))]

    assert await _resolver(down, []).daily_views(7) == []
    with pytest.raises(UpstreamUnavailableError):
        await _resolver(down, [], mock_enabled=False).daily_views(7)


@pytest.mark.asyncio
async def test_daily_views_rejects_half_open_custom_range():
    metrics = StaticMetricsSource("influx")

    with pytest.raises(BadRequestError):
        await _resolver([metrics], []).daily_views(7, "custom", start_date=D1)
    assert metrics.calls == []
