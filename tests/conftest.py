"""
Shared fixtures for the SEE result relay tests.
"""

from __future__ import annotations

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from seeresult.config import Config
from seeresult.web import create_app, get_upstream
from tests.helpers.fakes import GRADESHEET_HTML, FakeUpstream


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")
    config.addinivalue_line("markers", "security: Security and validation tests")


@pytest.fixture
def gradesheet_html() -> str:
    return GRADESHEET_HTML


@pytest.fixture
def config() -> Config:
    """Default configuration with a test upstream URL."""
    return Config(
        upstream={"gradesheet_url": "https://upstream.test/gradesheet", "search_url": "https://upstream.test/search"},
        rate_limit={"max_requests": 1000},
    )


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def app(config: Config, fake_upstream: FakeUpstream):
    application = create_app(config)
    application.dependency_overrides[get_upstream] = lambda: fake_upstream
    return application


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client
