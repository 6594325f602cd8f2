"""
Pytest configuration and fixtures for testing.

This module provides shared fixtures for the registry, the router and a
controllable clock.
"""

import os
import tempfile

import pytest

# Set environment before importing application modules
os.environ.setdefault(
    "LOG_FILE_PATH",
    os.path.join(tempfile.gettempdir(), "webhook_relay_test_errors.log"),
)
os.environ.setdefault("ENVIRONMENT", "test")


@pytest.fixture
def clock():
    """
    Provides a manually advanced clock.

    Returns:
        FakeClock: Clock starting at t=1000s
    """
    from tests.mocks.registry_mocks import FakeClock

    return FakeClock()


@pytest.fixture
def registry(clock):
    """
    Provides an empty registry driven by the fake clock.

    Args:
        clock: Fixture providing the fake clock

    Returns:
        ConnectionRegistry: Fresh registry instance
    """
    from webhook_relay.managers.connection_registry import ConnectionRegistry

    return ConnectionRegistry(clock=clock)


@pytest.fixture
def router(registry):
    """
    Provides an AlertRouter bound to the test registry.

    Args:
        registry: Fixture providing the registry

    Returns:
        AlertRouter: Router instance
    """
    from webhook_relay.managers.alert_router import AlertRouter

    return AlertRouter(registry)
