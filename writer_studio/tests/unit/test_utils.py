from unittest.mock import AsyncMock, MagicMock

import pytest

from writer_studio.config.settings import Settings
from writer_studio.utils import db_health, logging_utils


def test_setup_logging_loads_yaml_config(mocker):
    dict_config = mocker.patch("writer_studio.utils.logging_utils.logging.config.dictConfig")
    set_level = mocker.patch("writer_studio.utils.logging_utils.logging.Logger.setLevel")

    logging_utils.setup_logging(level="debug")

    config = dict_config.call_args.args[0]
    assert config["formatters"]["json"]["()"] == "pythonjsonlogger.jsonlogger.JsonFormatter"
    assert config["loggers"]["writer_studio"]["propagate"] is False
    set_level.assert_called_with("DEBUG")


def test_setup_logging_falls_back_to_basic_config(mocker, tmp_path):
    basic_config = mocker.patch("writer_studio.utils.logging_utils.logging.basicConfig")
    dict_config = mocker.patch("writer_studio.utils.logging_utils.logging.config.dictConfig")

    logging_utils.setup_logging(config_path=tmp_path / "missing.yaml", level="WARNING")

    basic_config.assert_called_once_with(level="WARNING")
    dict_config.assert_not_called()


def test_setup_logging_survives_broken_yaml(mocker, tmp_path):
    broken = tmp_path / "logging.yaml"
    broken.write_text("version: 1\nhandlers: {console: {class: no.such.Handler}}\n")
    basic_config = mocker.patch("writer_studio.utils.logging_utils.logging.basicConfig")
    mocker.patch("writer_studio.utils.logging_utils.logging.config.dictConfig", side_effect=ValueError("bad handler"))

    logging_utils.setup_logging(config_path=broken)

    basic_config.assert_called_once()


def _engine(error=None):
    conn = AsyncMock()
    engine = MagicMock()
    engine.connect.return_value.__aenter__.return_value = conn
    if error is not None:
        conn.execute.side_effect = error
    return engine, conn


@pytest.mark.asyncio
async def test_db_health_ok():
    engine, conn = _engine()

    assert await db_health.test_db_connection(engine) is True
    assert str(conn.execute.call_args.args[0]) == "SELECT 1"


@pytest.mark.asyncio
async def test_db_health_failure_is_false():
    engine, _ = _engine(OSError("connection refused"))

    assert await db_health.test_db_connection(engine) is False


def test_settings_build_database_url_and_split_lists():
    settings = Settings(
        _env_file=None,
        DB_USER="writer",
        DB_PASSWORD="pw",
        DB_HOST="db",
        DB_PORT=5433,
        DB_NAME="studio",
        DATABASE_URL=None,
        METRICS_SOURCE_ORDER="Postgres, http",
        CORS_ALLOW_HEADERS="Content-Type,Authorization",
    )

    assert settings.DATABASE_URL == "postgresql+asyncpg://writer:pw@db:5433/studio"
    assert settings.METRICS_SOURCE_ORDER == ["postgres", "http"]
    assert settings.CORS_ALLOW_HEADERS == ["Content-Type", "Authorization"]


def test_settings_report_which_backends_are_configured():
    settings = Settings(
        _env_file=None,
        INFLUXDB_URL="http://influx:8086",
        INFLUXDB_TOKEN="t",
        INFLUXDB_ORG=None,
        BIGQUERY_PROJECT_ID="proj",
    )

    assert settings.influx_configured is False
    assert settings.bigquery_configured is True
