"""Unit test environment helpers."""

import pytest

_DERBY_ENV_VARS = (
    "HOST",
    "PORT",
    "LOG_LEVEL",
    "DB_POOL_MAX_SIZE",
    "DB_POOL_IDLE_TIMEOUT",
    "DB_CONNECT_TIMEOUT",
    "DATABASE_URL",
    "SQL_PATH",
    "LOG_SQL",
    "DISABLE_SQL_CACHE",
    "SQL_STATEMENT_ERROR_POLICY",
    "SQL_BINDING_FALLBACK",
    "STATIC_DIR",
    "API_PATH",
    "CORS_ENABLED",
    "CORS_ORIGIN",
    "CORS_METHODS",
    "CORS_HEADERS",
    "DAL_TRACE_QUERIES",
    "DAL_METRICS_ENABLED",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT",
    "OTEL_METRICS_EXPORTER",
    "OTEL_DISABLE_EXPORTER",
)


@pytest.fixture(autouse=True)
def _minimal_env(monkeypatch, tmp_path):
    """Isolate unit tests from the developer's environment and .env file."""
    for name in _DERBY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
