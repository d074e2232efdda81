"""
Pytest configuration for backend tests.

This module configures pytest behavior and provides auto-use fixtures
for common test setup/teardown.
"""
import pytest
from django.core.cache import cache

from inventory.tracker import stock_tracker
from settings.config import app_settings

from core_backend.tests.fixtures import *  # noqa: F401,F403


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def reset_stock_tracker():
    """
    Forget every reservation after each test.

    CRITICAL: The tracker is process-wide. If counters leak between tests,
    availability checks may pass or fail for the wrong reason.
    """
    yield
    stock_tracker.clear()


@pytest.fixture(autouse=True)
def reset_app_settings():
    """Drop cached runtime settings so overrides in one test never leak."""
    app_settings.invalidate()
    yield
    app_settings.invalidate()
    cache.clear()


# ============================================================================
# API CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF client; the role fixtures below sign it in."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def cashier_client(api_client, cashier):
    """API client authenticated as a cashier."""
    api_client.force_authenticate(user=cashier)
    return api_client


@pytest.fixture
def manager_client(api_client, manager):
    """API client authenticated as a manager."""
    api_client.force_authenticate(user=manager)
    return api_client
