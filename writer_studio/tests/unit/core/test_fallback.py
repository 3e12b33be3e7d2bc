import logging

import pytest

from writer_studio.core.fallback import resolve_first
from writer_studio.models.dtos import DataSource
from writer_studio.tests.fakes import StaticMetricsSource, malformed, series, unreachable


async def _fetch(source):
    return await source.fetch_series(None, None)


@pytest.mark.asyncio
async def test_first_backend_wins_and_is_live():
    primary = StaticMetricsSource("influx", series(("2025-05-01", 5)))
    secondary = StaticMetricsSource("bigquery", series(("2025-05-01", 99)))

    resolution = await resolve_first([primary, secondary], _fetch, "test")

    assert resolution.source is DataSource.LIVE
    assert resolution.backend == "influx"
    assert resolution.value.points[0].views == 5
    assert secondary.calls == []


@pytest.mark.asyncio
async def test_empty_answer_is_not_a_failure():
    primary = StaticMetricsSource("influx")
    secondary = StaticMetricsSource("bigquery", series(("2025-05-01", 99)))

    resolution = await resolve_first([primary, secondary], _fetch, "test")

    assert resolution.backend == "influx"
    assert resolution.value.points == []
    assert secondary.calls == []


@pytest.mark.asyncio
async def test_later_backend_is_tagged_fallback(caplog):
    primary = StaticMetricsSource("influx", error=unreachable("influx"))
    secondary = StaticMetricsSource("bigquery", series(("2025-05-01", 99)))

    with caplog.at_level(logging.WARNING, logger="writer_studio.core.fallback"):
        resolution = await resolve_first([primary, secondary], _fetch, "test")

    assert resolution.source is DataSource.FALLBACK
    assert resolution.backend == "bigquery"
    assert [a.backend for a in resolution.attempts] == ["influx"]
    fallback_logs = [r for r in caplog.records if getattr(r, "data_source", None) == "fallback"]
    assert fallback_logs and fallback_logs[0].backend == "bigquery"


@pytest.mark.asyncio
async def test_all_unreachable():
    backends = [StaticMetricsSource(name, error=unreachable(name)) for name in ("influx", "bigquery")]

    resolution = await resolve_first(backends, _fetch, "test")

    assert not resolution.resolved
    assert resolution.source is DataSource.NONE
    assert resolution.value is None
    assert resolution.all_unreachable


@pytest.mark.asyncio
async def test_data_error_is_not_counted_as_unreachable():
    backends = [
        StaticMetricsSource("influx", error=unreachable("influx")),
        StaticMetricsSource("http", error=malformed("http")),
    ]

    resolution = await resolve_first(backends, _fetch, "test")

    assert not resolution.resolved
    assert not resolution.all_unreachable
    assert [a.transport for a in resolution.attempts] == [True, False]


@pytest.mark.asyncio
async def test_unexpected_exception_moves_on():
    backends = [
        StaticMetricsSource("influx", error=RuntimeError("boom")),
        StaticMetricsSource("postgres", series(("2025-05-01", 1))),
    ]

    resolution = await resolve_first(backends, _fetch, "test")

    assert resolution.backend == "postgres"
    assert resolution.attempts[0].error == "boom"


@pytest.mark.asyncio
async def test_no_backends():
    resolution = await resolve_first([], _fetch, "test")

    assert not resolution.resolved
    assert not resolution.all_unreachable
