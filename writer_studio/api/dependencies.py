"""
Service wiring and request dependencies.

All stateful collaborators are built once per process by ``build_services``
and kept on ``app.state.services``; handlers reach them through
``get_services``. Tests build their own ``ServiceContainer`` from fakes and
hand it to ``create_app``.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from writer_studio.config.settings import Settings
from writer_studio.core.aggregation import OverviewResolver
from writer_studio.core.content import ContentService
from writer_studio.core.content_sources import ContentSource, HttpContentSource, PostgresContentSource
from writer_studio.core.credentials import TOKEN_REJECTED, CredentialVerifier, SqlUserStore
from writer_studio.core.errors import BadRequestError, UnauthorizedError
from writer_studio.core.lookups import InMemoryLookupStore, LookupStore, SqlLookupStore
from writer_studio.core.metrics_sources import (
    BigQueryMetricsSource,
    HttpMetricsSource,
    InfluxMetricsSource,
    MetricsSource,
    MetricsSourceChain,
    PostgresMetricsSource,
)
from writer_studio.core.submission_store import SqlSubmissionStore, SubmissionStore
from writer_studio.core.video_analytics import VideoAnalyticsService
from writer_studio.models.dtos import UserProfile
from writer_studio.utils.db_health import test_db_connection
from writer_studio.utils.db_session import dispose_engine, get_async_session_factory

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class ServiceContainer:
    settings: Settings
    verifier: CredentialVerifier
    submissions: SubmissionStore
    metrics: MetricsSourceChain
    content: ContentService
    overview: OverviewResolver
    videos: VideoAnalyticsService
    lookups: LookupStore = field(default_factory=InMemoryLookupStore)
    owns_database: bool = False

    @classmethod
    def assemble(
        cls,
        settings: Settings,
        verifier: CredentialVerifier,
        submissions: SubmissionStore,
        metrics_sources: List[MetricsSource],
        content_sources: List[ContentSource],
        lookups: Optional[LookupStore] = None,
        owns_database: bool = False,
    ) -> "ServiceContainer":
        """Build the resolvers on top of already constructed stores and sources."""
        metrics = MetricsSourceChain(metrics_sources)
        content = ContentService(content_sources, mock_enabled=settings.MOCK_FALLBACK_ENABLED)
        return cls(
            settings=settings,
            verifier=verifier,
            submissions=submissions,
            metrics=metrics,
            content=content,
            overview=OverviewResolver(
                metrics,
                content,
                views_target=settings.VIEWS_TARGET,
                top_content_limit=settings.TOP_CONTENT_LIMIT,
            ),
            videos=VideoAnalyticsService(metrics, content),
            lookups=lookups or InMemoryLookupStore(),
            owns_database=owns_database,
        )

    async def database_ok(self) -> Optional[bool]:
        """Probe the database when this container owns it; injected containers report None."""
        if not self.owns_database:
            return None
        return await test_db_connection()

    async def close(self) -> None:
        await self.metrics.close()
        await self.content.close()
        if self.owns_database:
            await dispose_engine()


def build_metrics_sources(settings: Settings, postgres_content: PostgresContentSource) -> List[MetricsSource]:
    """Instantiate the configured metrics sources in ``METRICS_SOURCE_ORDER``."""
    session_factory = get_async_session_factory()
    timeout = settings.METRICS_TIMEOUT_SECONDS

    builders: Dict[str, Callable[[], Optional[MetricsSource]]] = {
        "influx": lambda: InfluxMetricsSource(
            url=settings.INFLUXDB_URL,
            token=settings.INFLUXDB_TOKEN,
            org=settings.INFLUXDB_ORG,
            bucket=settings.INFLUXDB_BUCKET,
            timeout_seconds=timeout,
            utc_offset_hours=settings.REPORTING_UTC_OFFSET_HOURS,
        ) if settings.influx_configured else None,
        "bigquery": lambda: BigQueryMetricsSource(
            project_id=settings.BIGQUERY_PROJECT_ID,
            dataset=settings.BIGQUERY_DATASET,
            table=settings.BIGQUERY_TABLE,
            credentials_json=settings.BIGQUERY_CREDENTIALS_JSON,
            timeout_seconds=timeout,
            excluded_urls=postgres_content.full_to_short_urls,
        ) if settings.bigquery_configured else None,
        "postgres": lambda: PostgresMetricsSource(session_factory),
        "http": lambda: HttpMetricsSource(
            settings.FALLBACK_METRICS_API_URL, timeout_seconds=timeout,
        ) if settings.FALLBACK_METRICS_API_URL else None,
    }
    return _build_in_order(settings.METRICS_SOURCE_ORDER, builders, "metrics")


def build_content_sources(settings: Settings, postgres_content: PostgresContentSource) -> List[ContentSource]:
    builders: Dict[str, Callable[[], Optional[ContentSource]]] = {
        "postgres": lambda: postgres_content,
        "http": lambda: HttpContentSource(
            settings.FALLBACK_METRICS_API_URL, timeout_seconds=settings.METRICS_TIMEOUT_SECONDS,
        ) if settings.FALLBACK_METRICS_API_URL else None,
    }
    return _build_in_order(settings.CONTENT_SOURCE_ORDER, builders, "content")


def _build_in_order(order: List[str], builders: Dict[str, Callable[[], Optional[object]]], kind: str) -> list:
    sources = []
    for name in order:
        builder = builders.get(name)
        if builder is None:
            logger.warning(f"Unknown {kind} source '{name}' in configuration, skipping")
            continue
        source = builder()
        if source is None:
            logger.info(f"{kind.capitalize()} source '{name}' is not configured, skipping")
            continue
        sources.append(source)
    logger.info(f"{kind.capitalize()} sources in order: {[s.name for s in sources] or 'none'}")
    return sources


def build_services(settings: Settings) -> ServiceContainer:
    """Build the production service container from settings."""
    session_factory = get_async_session_factory()
    postgres_content = PostgresContentSource(session_factory)
    return ServiceContainer.assemble(
        settings=settings,
        verifier=CredentialVerifier.from_settings(SqlUserStore(session_factory), settings),
        submissions=SqlSubmissionStore(session_factory),
        metrics_sources=build_metrics_sources(settings, postgres_content),
        content_sources=build_content_sources(settings, postgres_content),
        lookups=SqlLookupStore(session_factory),
        owns_database=True,
    )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: ServiceContainer = Depends(get_services),
) -> UserProfile:
    """Resolve the bearer token to the account profile, or fail with 401."""
    return await services.verifier.verify(credentials.credentials if credentials else None)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: ServiceContainer = Depends(get_services),
) -> Optional[UserProfile]:
    """
    Like ``get_current_user`` but tolerates a missing token when
    ``REQUIRE_AUTH_FOR_SUBMISSIONS`` is off. A token that is present is always checked.
    """
    if credentials is None:
        if services.settings.REQUIRE_AUTH_FOR_SUBMISSIONS:
            raise UnauthorizedError(TOKEN_REJECTED)
        return None
    return await services.verifier.verify(credentials.credentials)


def resolve_writer_id(user: Optional[UserProfile], requested: Optional[int]) -> int:
    """
    Pick the writer a request is about.

    Defaults to the caller's own writer. Writers may only name their own id;
    admins may name any. Anonymous callers must name one.

    Raises:
        BadRequestError: If no writer can be determined.
        UnauthorizedError: If a writer asks for someone else's data.
    """
    if user is None:
        if requested is None:
            raise BadRequestError("writer_id is required")
        return requested
    if requested is None:
        if user.writer_id is None:
            raise BadRequestError("writer_id is required")
        return user.writer_id
    if user.role != "admin" and requested != user.writer_id:
        logger.warning(f"User {user.id} asked for writer {requested} data")
        raise UnauthorizedError("Not authorized for this writer")
    return requested
