"""
Metrics source adapters.

Each adapter answers one question: the daily view series (plus like and
comment totals) for a writer or a single video over a date range. They
share the ``MetricsSource`` contract so ``MetricsSourceChain`` can try them
in priority order:

* ``InfluxMetricsSource`` - cumulative per-video snapshots in InfluxDB,
  converted to daily increases.
* ``BigQueryMetricsSource`` - the historical daily rollup table.
* ``PostgresMetricsSource`` - the ``video_daily_metrics`` table.
* ``HttpMetricsSource`` - a secondary HTTP metrics API.

Adapters raise ``SourceUnavailableError`` for transport failures and
``SourceDataError`` for answers that cannot be used; anything else they raise
is treated like a data error by the chain.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from functools import cached_property
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Protocol, Sequence

import aiohttp
import httpx
import pandas as pd
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as google_auth_exceptions
from google.cloud import bigquery
from google.oauth2 import service_account
from influxdb_client.client.influxdb_client_async import InfluxDBClientAsync
from sqlalchemy import func, select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from writer_studio.core.date_ranges import DateRange
from writer_studio.core.errors import SourceDataError, SourceError, SourceUnavailableError
from writer_studio.core.fallback import Resolution, resolve_first
from writer_studio.models.dtos import DailyViewPoint, SeriesSnapshot
from writer_studio.models.video_orm import VideoDailyMetricORM

logger = logging.getLogger(__name__)

# Lower bound used by backends that need an explicit start for "lifetime"
EPOCH = date(1970, 1, 1)


@dataclass(frozen=True)
class MetricsScope:
    """Whose metrics: a writer (``kind="writer"``) or a single video."""

    kind: str
    id: str

    @classmethod
    def writer(cls, writer_id) -> "MetricsScope":
        return cls(kind="writer", id=str(writer_id))

    @classmethod
    def video(cls, video_id) -> "MetricsScope":
        return cls(kind="video", id=str(video_id))


class MetricsSource(Protocol):
    name: str

    async def fetch_series(self, scope: MetricsScope, date_range: DateRange) -> SeriesSnapshot:
        ...

    async def close(self) -> None:
        ...


def snapshots_to_daily_increases(
    rows: Iterable[Dict[str, Any]],
    utc_offset_hours: int = -5,
) -> List[DailyViewPoint]:
    """
    Turn cumulative per-video view snapshots into daily view increases.

    Snapshot times are shifted from UTC to the reporting offset, the last
    snapshot of each video on each local day is kept, consecutive days are
    differenced per video, and the positive increases are summed per day.
    A video's first day has nothing to compare against and contributes nothing.

    Args:
        rows: Mappings with ``time`` (UTC timestamp), ``video_id`` and ``views``.
        utc_offset_hours: Offset of the reporting day from UTC.

    Returns:
        List[DailyViewPoint]: One point per day with a positive increase, ascending.
    """
    frame = pd.DataFrame(list(rows), columns=["time", "video_id", "views"])
    if frame.empty:
        return []

    frame["time"] = pd.to_datetime(frame["time"], utc=True)
    frame["views"] = pd.to_numeric(frame["views"], errors="raise")
    frame["day"] = (frame["time"] + pd.Timedelta(hours=utc_offset_hours)).dt.date

    last_per_day = (
        frame.sort_values("time", kind="stable")
        .groupby(["video_id", "day"], sort=True)
        .tail(1)
        .sort_values(["video_id", "day"], kind="stable")
    )
    last_per_day["increase"] = last_per_day.groupby("video_id")["views"].diff()
    increases = last_per_day[last_per_day["increase"] > 0]
    daily = increases.groupby("day")["increase"].sum()
    return [DailyViewPoint(date=day, views=int(total)) for day, total in daily.items()]


class InfluxMetricsSource:
    """Daily series derived from the InfluxDB ``views`` measurement."""

    name = "influx"

    def __init__(
        self,
        url: str,
        token: str,
        org: str,
        bucket: str,
        timeout_seconds: float = 10.0,
        utc_offset_hours: int = -5,
        client: Optional[InfluxDBClientAsync] = None,
    ):
        self.url = url
        self._token = token
        self.org = org
        self.bucket = bucket
        self.timeout_seconds = timeout_seconds
        self.utc_offset_hours = utc_offset_hours
        self._client = client

    def _get_client(self) -> InfluxDBClientAsync:
        # The async client owns an aiohttp session, so it is built on first use inside the loop.
        if self._client is None:
            self._client = InfluxDBClientAsync(
                url=self.url,
                token=self._token,
                org=self.org,
                timeout=int(self.timeout_seconds * 1000),
            )
        return self._client

    def _range_clause(self, date_range: DateRange) -> str:
        if date_range.lookback:
            return f"start: -{date_range.lookback}"
        if date_range.start is None:
            return "start: 0"
        stop = date_range.end + timedelta(days=1)
        return f"start: {date_range.start.isoformat()}T00:00:00Z, stop: {stop.isoformat()}T00:00:00Z"

    @staticmethod
    def _tag_for(scope: MetricsScope) -> str:
        return "video_id" if scope.kind == "video" else "writer_id"

    def build_views_query(self, scope: MetricsScope, date_range: DateRange) -> str:
        return f'''
            from(bucket: "{self.bucket}")
              |> range({self._range_clause(date_range)})
              |> filter(fn: (r) => r._measurement == "views" and r._field == "views")
              |> filter(fn: (r) => r.{self._tag_for(scope)} == params.scopeId)
              |> keep(columns: ["_time", "_value", "video_id"])
              |> sort(columns: ["_time"])
        '''

    def build_total_query(self, field: str, scope: MetricsScope, date_range: DateRange) -> str:
        # Snapshots are cumulative: take each video's latest value, then sum across videos.
        return f'''
            from(bucket: "{self.bucket}")
              |> range({self._range_clause(date_range)})
              |> filter(fn: (r) => r._measurement == "views" and r._field == "{field}")
              |> filter(fn: (r) => r.{self._tag_for(scope)} == params.scopeId)
              |> group(columns: ["video_id"])
              |> last()
              |> group()
              |> sum()
        '''

    async def _query(self, query: str, scope: MetricsScope):
        try:
            return await self._get_client().query_api().query(query, params={"scopeId": scope.id})
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError, OSError) as e:
            raise SourceUnavailableError(self.name, str(e) or type(e).__name__) from e

    async def _total(self, field: str, scope: MetricsScope, date_range: DateRange) -> int:
        tables = await self._query(self.build_total_query(field, scope, date_range), scope)
        total = 0
        for table in tables:
            for record in table.records:
                value = record.get_value()
                if value is not None:
                    total += int(value)
        return total

    async def fetch_series(self, scope: MetricsScope, date_range: DateRange) -> SeriesSnapshot:
        tables = await self._query(self.build_views_query(scope, date_range), scope)
        rows = []
        for table in tables:
            for record in table.records:
                rows.append({
                    "time": record.get_time(),
                    "video_id": record.values.get("video_id"),
                    "views": record.get_value(),
                })
        try:
            points = snapshots_to_daily_increases(rows, self.utc_offset_hours)
        except (ValueError, TypeError) as e:
            raise SourceDataError(self.name, f"unusable view snapshots: {e}") from e

        total_likes, total_comments = await asyncio.gather(
            self._total("likes", scope, date_range),
            self._total("comments", scope, date_range),
        )
        logger.debug(f"Influx returned {len(rows)} snapshots -> {len(points)} daily points for {scope}")
        return SeriesSnapshot(points=points, total_likes=total_likes, total_comments=total_comments)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


class BigQueryMetricsSource:
    """
    Daily series from the warehouse rollup table.

    The table holds one row per video per ``snapshot_date`` with that day's
    ``views``, ``likes`` and ``comments``. The most recent day is still being
    filled and is left out. Shorts cut from full videos are excluded by URL;
    the URLs come from ``excluded_urls`` (usually the relational store).
    """

    name = "bigquery"

    QUERY_TEMPLATE = """
        SELECT
          snapshot_date AS day,
          SUM(views) AS views,
          SUM(likes) AS likes,
          SUM(comments) AS comments
        FROM `{table}`
        WHERE CAST({scope_column} AS STRING) = @scope_id
          AND snapshot_date BETWEEN @start_date AND @end_date
          AND snapshot_date < DATE_SUB(CURRENT_DATE(), INTERVAL 1 DAY)
          AND url NOT IN UNNEST(@excluded_urls)
        GROUP BY day
        ORDER BY day
    """

    def __init__(
        self,
        project_id: str,
        dataset: str,
        table: str,
        credentials_json: Optional[str] = None,
        timeout_seconds: float = 10.0,
        excluded_urls: Optional[Callable[[MetricsScope], Awaitable[Sequence[str]]]] = None,
        client: Optional[bigquery.Client] = None,
    ):
        self.project_id = project_id
        self.table_id = f"{project_id}.{dataset}.{table}"
        self._credentials_json = credentials_json
        self.timeout_seconds = timeout_seconds
        self._excluded_urls = excluded_urls
        if client is not None:
            self.__dict__["client"] = client

    @cached_property
    def client(self) -> bigquery.Client:
        if self._credentials_json:
            credentials = service_account.Credentials.from_service_account_info(
                json.loads(self._credentials_json)
            )
            return bigquery.Client(project=self.project_id, credentials=credentials)
        return bigquery.Client(project=self.project_id)

    def build_query(self, scope: MetricsScope) -> str:
        scope_column = "video_id" if scope.kind == "video" else "writer_id"
        return self.QUERY_TEMPLATE.format(table=self.table_id, scope_column=scope_column)

    def _run_query(self, sql: str, job_config: bigquery.QueryJobConfig) -> list:
        job = self.client.query(sql, job_config=job_config)
        return list(job.result(timeout=self.timeout_seconds))

    async def fetch_series(self, scope: MetricsScope, date_range: DateRange) -> SeriesSnapshot:
        excluded: Sequence[str] = []
        if self._excluded_urls is not None and scope.kind == "writer":
            try:
                excluded = await self._excluded_urls(scope)
            except SourceError as e:
                logger.warning(f"Could not load full-to-short URLs for {scope}, querying without exclusions: {e}")

        job_config = bigquery.QueryJobConfig(
            query_parameters=[
                bigquery.ScalarQueryParameter("scope_id", "STRING", scope.id),
                bigquery.ScalarQueryParameter("start_date", "DATE", date_range.start or EPOCH),
                bigquery.ScalarQueryParameter("end_date", "DATE", date_range.end),
                bigquery.ArrayQueryParameter("excluded_urls", "STRING", list(excluded)),
            ]
        )
        try:
            rows = await asyncio.to_thread(self._run_query, self.build_query(scope), job_config)
        except (
            google_exceptions.ServiceUnavailable,
            google_exceptions.DeadlineExceeded,
            google_auth_exceptions.TransportError,
            OSError,
        ) as e:
            raise SourceUnavailableError(self.name, str(e)) from e

        points = []
        total_likes = total_comments = 0
        for row in rows:
            day = row["day"]
            if not isinstance(day, date):
                raise SourceDataError(self.name, f"unexpected snapshot_date value {day!r}")
            points.append(DailyViewPoint(date=day, views=max(int(row["views"] or 0), 0)))
            total_likes += int(row["likes"] or 0)
            total_comments += int(row["comments"] or 0)
        if excluded:
            logger.debug(f"BigQuery excluded {len(excluded)} full-to-short URLs for {scope}")
        return SeriesSnapshot(points=points, total_likes=total_likes, total_comments=total_comments)

    async def close(self) -> None:
        client = self.__dict__.get("client")
        if client is not None:
            await asyncio.to_thread(client.close)


class PostgresMetricsSource:
    """Daily series from the ``video_daily_metrics`` table."""

    name = "postgres"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def build_statement(self, scope: MetricsScope, date_range: DateRange):
        try:
            scope_id = int(scope.id)
        except ValueError as e:
            raise SourceDataError(self.name, f"non-numeric {scope.kind} id {scope.id!r}") from e

        column = VideoDailyMetricORM.video_id if scope.kind == "video" else VideoDailyMetricORM.writer_id
        stmt = (
            select(
                VideoDailyMetricORM.day,
                func.sum(VideoDailyMetricORM.views).label("views"),
                func.sum(VideoDailyMetricORM.likes).label("likes"),
                func.sum(VideoDailyMetricORM.comments).label("comments"),
            )
            .where(column == scope_id, VideoDailyMetricORM.day <= date_range.end)
            .group_by(VideoDailyMetricORM.day)
            .order_by(VideoDailyMetricORM.day)
        )
        if date_range.start is not None:
            stmt = stmt.where(VideoDailyMetricORM.day >= date_range.start)
        return stmt

    async def fetch_series(self, scope: MetricsScope, date_range: DateRange) -> SeriesSnapshot:
        stmt = self.build_statement(scope, date_range)
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except (OperationalError, InterfaceError, OSError) as e:
            raise SourceUnavailableError(self.name, str(e)) from e

        return SeriesSnapshot(
            points=[DailyViewPoint(date=row.day, views=int(row.views or 0)) for row in rows],
            total_likes=sum(int(row.likes or 0) for row in rows),
            total_comments=sum(int(row.comments or 0) for row in rows),
        )

    async def close(self) -> None:
        return None


def parse_views_payload(payload: Any, backend: str = "http") -> List[DailyViewPoint]:
    """
    Parse ``[{"time": {"value": "YYYY-MM-DD"}, "views": N}, ...]``.

    ``time`` may also be the bare date string.

    Raises:
        SourceDataError: If the payload does not have that shape.
    """
    if not isinstance(payload, list):
        raise SourceDataError(backend, "expected a JSON array of daily views")
    points = []
    for item in payload:
        if not isinstance(item, dict) or "time" not in item or "views" not in item:
            raise SourceDataError(backend, f"malformed daily views item: {item!r}")
        raw_time = item["time"]
        if isinstance(raw_time, dict):
            raw_time = raw_time.get("value")
        try:
            day = datetime.fromisoformat(str(raw_time)).date()
            views = int(item["views"] or 0)
        except (TypeError, ValueError) as e:
            raise SourceDataError(backend, f"malformed daily views item: {item!r}") from e
        points.append(DailyViewPoint(date=day, views=max(views, 0)))
    return points


class HttpMetricsSource:
    """Writer series from the secondary metrics API (``GET /api/writer/views``)."""

    name = "http"

    def __init__(self, base_url: str, timeout_seconds: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Accept": "application/json"},
        )

    async def fetch_series(self, scope: MetricsScope, date_range: DateRange) -> SeriesSnapshot:
        if scope.kind != "writer":
            raise SourceDataError(self.name, "only writer series are served")
        params = {
            "writer_id": scope.id,
            "startDate": (date_range.start or EPOCH).isoformat(),
            "endDate": date_range.end.isoformat(),
        }
        try:
            response = await self._client.get("/api/writer/views", params=params)
            response.raise_for_status()
        except httpx.TransportError as e:
            raise SourceUnavailableError(self.name, str(e) or type(e).__name__) from e
        except httpx.HTTPStatusError as e:
            raise SourceDataError(self.name, f"HTTP {e.response.status_code}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise SourceDataError(self.name, "response is not JSON") from e
        return SeriesSnapshot(points=parse_views_payload(payload, self.name))

    async def close(self) -> None:
        await self._client.aclose()


class MetricsSourceChain:
    """Metrics sources in priority order, resolved with ``resolve_first``."""

    def __init__(self, sources: Sequence[MetricsSource]):
        self.sources = list(sources)

    @property
    def names(self) -> List[str]:
        return [source.name for source in self.sources]

    async def resolve(self, scope: MetricsScope, date_range: DateRange) -> Resolution[SeriesSnapshot]:
        return await resolve_first(
            self.sources,
            lambda source: source.fetch_series(scope, date_range),
            f"{scope.kind} {scope.id} series ({date_range.selector})",
        )

    async def close(self) -> None:
        for source in self.sources:
            try:
                await source.close()
            except Exception as e:
                logger.warning(f"Error closing metrics source '{source.name}': {e}")
