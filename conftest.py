"""Project-level pytest configuration."""

import os

from dotenv import load_dotenv

project_root = os.path.abspath(os.path.dirname(__file__))

# Load test environment variables from .env.test in the project root
dotenv_path = os.path.join(project_root, ".env.test")
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path)

# Tests never talk to real analytics backends.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("INFLUXDB_URL", "")
os.environ.setdefault("BIGQUERY_PROJECT_ID", "")
os.environ.setdefault("FALLBACK_METRICS_API_URL", "")

from writer_studio.config.settings import get_settings  # noqa: E402

get_settings.cache_clear()
