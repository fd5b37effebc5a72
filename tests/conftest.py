"""Root pytest configuration for test discovery and auto-skip behavior.

Test Structure:
    tests/
    ├── jelly/                 # Queue, worker, email, API
    │   ├── unit/              # Fast, isolated tests
    │   ├── persistence/       # Repositories against a SQLite file
    │   ├── api/               # FastAPI TestClient against a SQLite file
    │   ├── cli/               # typer CliRunner
    │   └── integration/       # Claim and redeem races on PostgreSQL
    ├── jelly_identity/        # Accounts, passwords, tokens, OAuth
    │   ├── unit/
    │   └── persistence/
    └── shared/                # Shared fixtures and utilities

SQLite-backed tests always run. Tests marked ``integration`` need a real
PostgreSQL (DATABASE_URL) and are skipped by default.

Environment Variables:
    RUN_INTEGRATION=1    Run @pytest.mark.integration tests
    RUN_ALL_TESTS=1      Run all tests (overrides other settings)

Pytest Options:
    --run-integration    Run integration tests
    --run-all            Run all tests
"""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

from jelly_config import clear_settings_cache

PROJECT_ROOT = Path(__file__).resolve().parents[1]

pytest_plugins = [
    "tests.shared.fixtures.database",
    "tests.shared.fixtures.settings",
]

# Load .env.dev for tests (same as local development)
CONFIG_DIR = PROJECT_ROOT / "config"
if (CONFIG_DIR / ".env.dev").exists():
    load_dotenv(CONFIG_DIR / ".env.dev")


def _enabled(value: str | None) -> bool:
    return (value or "").lower() in ("1", "true", "yes")


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests marked with @pytest.mark.integration",
    )
    parser.addoption(
        "--run-all",
        action="store_true",
        default=False,
        help="Run all tests regardless of markers",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: Tests that need a real PostgreSQL server (auto-skipped)",
    )


def pytest_collection_modifyitems(config, items):
    """Auto-skip tests based on markers unless explicitly enabled."""
    if config.getoption("--run-all") or _enabled(os.environ.get("RUN_ALL_TESTS")):
        return

    run_integration = config.getoption("--run-integration") or _enabled(
        os.environ.get("RUN_INTEGRATION"),
    )
    skip_integration = pytest.mark.skip(
        reason="Integration test - run with --run-integration or RUN_INTEGRATION=1",
    )

    for item in items:
        item_markers = {mark.name for mark in item.iter_markers()}
        if not run_integration and "integration" in item_markers:
            item.add_marker(skip_integration)


@pytest.fixture(scope="session", autouse=True)
def configure_app_settings():
    """Make sure no cached settings leak into or out of the test session."""
    clear_settings_cache()
    yield
    clear_settings_cache()
