"""Root conftest.py for the Renimusic test suite.

This file contains project-wide fixtures and pytest configuration.
"""

import os
from collections.abc import Generator

import pytest

# Importing src.api.main builds the module-level app, so the test defaults
# must be in place before any test module is collected.
os.environ.setdefault("OBSERVABILITY_CONFIG__ENABLE_TRACING", "false")
os.environ.setdefault("SESSION_CONFIG__BACKEND", "memory")
os.environ.setdefault("LOG_CONFIG__LOG_FORMATTER_TYPE", "console")
os.environ.setdefault("SECURITY_CONFIG__BCRYPT_ROUNDS", "4")

from src.core.config import get_settings  # noqa: E402
from src.core.context import RequestContext  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components in isolation"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test multiple components"
    )


@pytest.fixture(autouse=True)
def clean_request_context() -> Generator[None]:
    """Ensure no correlation or request id leaks between tests."""
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture
def clear_settings_cache() -> Generator[None]:
    """Clear the settings cache around a test that changes the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
