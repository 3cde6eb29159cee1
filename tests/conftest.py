"""Shared pytest fixtures for jsonapi-contract test suites."""

from collections.abc import Generator
from pathlib import Path
import sys

import pytest
from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from jsonapi_contract.core.config import get_settings  # noqa: E402
from jsonapi_contract.core.media_type import MEDIA_TYPE  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Generator[None, None, None]:
    """Keep cached settings from leaking between tests that patch the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def jsonapi_headers() -> dict[str, str]:
    """Headers of a well-behaved JSON:API client."""
    return {"Accept": MEDIA_TYPE, "Content-Type": MEDIA_TYPE}


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Provide a client for the packaged application."""
    from jsonapi_contract.main import create_app

    with TestClient(create_app(), raise_server_exceptions=False) as test_client:
        yield test_client
