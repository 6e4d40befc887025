import os
import sys
from pathlib import Path

import pytest

# The packages live under src/ (common, dal, derby_gateway). Putting src on
# sys.path before collection lets the suite run from a plain checkout without
# an editable install.

if sys.version_info < (3, 10):
    print(
        f"ERROR: Derby requires Python 3.10+ (found {sys.version.split()[0]}).",
        file=sys.stderr,
    )
    sys.exit(1)


ROOT_DIR = Path(__file__).parent.absolute()
SRC_DIR = ROOT_DIR / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


def pytest_configure(config):
    """Register Derby's custom markers."""
    config.addinivalue_line("markers", "postgres: needs a live server at TEST_POSTGRES_URL")


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION_TESTS=1 and Postgres ones without a URL."""
    run_integration = os.getenv("RUN_INTEGRATION_TESTS", "0") == "1"
    has_postgres = bool(os.getenv("TEST_POSTGRES_URL"))

    skip_integration = pytest.mark.skip(
        reason="Skipping integration tests (set RUN_INTEGRATION_TESTS=1 to run)"
    )
    skip_postgres = pytest.mark.skip(reason="TEST_POSTGRES_URL not set")
    integration_dir = f"{os.sep}tests{os.sep}integration{os.sep}"
    for item in items:
        in_integration_dir = integration_dir in str(item.fspath)
        if in_integration_dir:
            item.add_marker(pytest.mark.integration)
        if (in_integration_dir or item.get_closest_marker("integration")) and not run_integration:
            item.add_marker(skip_integration)
        elif item.get_closest_marker("postgres") and not has_postgres:
            item.add_marker(skip_postgres)
