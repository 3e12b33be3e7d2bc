from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from pydantic import Field, PostgresDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Root of the writer_studio package
SERVICE_ROOT_DIR = Path(__file__).parent.parent.resolve()
# Repository root (one level above the package)
PROJECT_ROOT_DIR = SERVICE_ROOT_DIR.parent


def _split_csv(value: Union[str, list[str]]) -> list[str]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "WriterStudioService"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 5001

    # CORS: the dashboard is served from several origins and sends credentials
    CORS_ORIGINS: Union[str, list[str]] = "*"
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: Union[str, list[str]] = "GET,POST,PUT,DELETE,OPTIONS"
    CORS_ALLOW_HEADERS: Union[str, list[str]] = "Content-Type,Authorization"

    # Database settings
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_NAME: str = "writer_studio"
    DB_POOL_SIZE: int = 5
    DB_POOL_RECYCLE_SECONDS: int = 1800
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], values) -> str:
        if isinstance(v, str) and v:
            return v
        return str(PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=values.data.get("DB_USER"),
            password=values.data.get("DB_PASSWORD"),
            host=values.data.get("DB_HOST"),
            port=int(values.data.get("DB_PORT") or 5432),
            path=values.data.get("DB_NAME") or "",
        ))

    # Session tokens
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    TOKEN_TTL_HOURS: int = 24

    # InfluxDB (time-series snapshots)
    INFLUXDB_URL: Optional[str] = None
    INFLUXDB_TOKEN: Optional[str] = None
    INFLUXDB_ORG: Optional[str] = None
    INFLUXDB_BUCKET: str = "youtube_api"

    # BigQuery (historical daily rollups)
    BIGQUERY_PROJECT_ID: Optional[str] = None
    BIGQUERY_DATASET: str = "dbt_youtube_analytics"
    BIGQUERY_TABLE: str = "youtube_daily_rollup"
    BIGQUERY_CREDENTIALS_JSON: Optional[str] = None

    # Secondary HTTP metrics API
    FALLBACK_METRICS_API_URL: Optional[str] = None

    # Resolution policy
    METRICS_SOURCE_ORDER: Union[str, list[str]] = "influx,bigquery,postgres,http"
    CONTENT_SOURCE_ORDER: Union[str, list[str]] = "postgres,http"
    METRICS_TIMEOUT_SECONDS: float = 10.0
    MOCK_FALLBACK_ENABLED: bool = True
    REQUIRE_AUTH_FOR_SUBMISSIONS: bool = True
    VIEWS_TARGET: int = 100_000_000
    TOP_CONTENT_LIMIT: int = 10
    # Reporting days are cut in a fixed offset from UTC (EST)
    REPORTING_UTC_OFFSET_HOURS: int = -5

    # Logging
    LOG_LEVEL: str = "INFO"
    LOGGING_CONFIG_PATH: str = str(SERVICE_ROOT_DIR / "config" / "logging_config.yaml")

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def model_post_init(self, __context) -> None:
        """Parse comma-separated strings into lists after model initialization."""
        self.CORS_ORIGINS = _split_csv(self.CORS_ORIGINS)
        self.CORS_ALLOW_METHODS = _split_csv(self.CORS_ALLOW_METHODS)
        self.CORS_ALLOW_HEADERS = _split_csv(self.CORS_ALLOW_HEADERS)
        self.METRICS_SOURCE_ORDER = [name.lower() for name in _split_csv(self.METRICS_SOURCE_ORDER)]
        self.CONTENT_SOURCE_ORDER = [name.lower() for name in _split_csv(self.CONTENT_SOURCE_ORDER)]

    @property
    def influx_configured(self) -> bool:
        return bool(self.INFLUXDB_URL and self.INFLUXDB_TOKEN and self.INFLUXDB_ORG)

    @property
    def bigquery_configured(self) -> bool:
        return bool(self.BIGQUERY_PROJECT_ID)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
