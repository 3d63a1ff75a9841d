"""
Integration Test Configuration

Provides an HTTP test client wired to the in-memory store, the scripted
reasoning backend and the recording mailer. When running in CI environment
(CI=true), slow tests are automatically skipped.
"""

import os

import pytest
from fastapi.testclient import TestClient

from educrm.api.app import create_app

USER = {"X-User-Id": "u-1", "X-User-Email": "maya@example.com"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}


@pytest.fixture
def is_ci_environment() -> bool:
    """
    Detect if tests are running in CI environment.

    Returns:
        True if CI environment variable is set to 'true'
    """
    return os.getenv("CI", "").lower() == "true"


@pytest.fixture(autouse=True)
def skip_slow_tests_in_ci(request, is_ci_environment):
    """Skip tests marked @pytest.mark.slow when running in CI."""
    if is_ci_environment and request.node.get_closest_marker("slow"):
        pytest.skip("Skipping slow test in CI environment")


@pytest.fixture
def app(store, reasoner, params, mailer):
    return create_app(store=store, reasoner=reasoner, params=params, mailer=mailer)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def user_headers() -> dict[str, str]:
    return dict(USER)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return dict(ADMIN)
