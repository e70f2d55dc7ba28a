"""
Test configuration and fixtures for the FastAPI message relay.
This centralizes all test setup, making individual tests clean.
"""

import pytest
from fastapi.testclient import TestClient

from main import app
from relay_app.dependencies import get_queue_gateway
from relay_app.queue.models import QueueHandle
from relay_app.queue.strategies import InMemoryQueueGateway


class FakeClock:
    """Manually advanced clock for visibility window tests"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def queue_handle():
    return QueueHandle(
        connection_string="memory://",
        queue_name="test-queue",
        visibility_timeout=30,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(scope="function")
def gateway(queue_handle, clock):
    """
    Fresh in-memory gateway for each test.
    This ensures tests are isolated and don't affect each other.
    """
    return InMemoryQueueGateway(queue_handle, clock=clock)


@pytest.fixture(scope="function")
def client(gateway):
    """
    Create a test client with the queue gateway dependency overridden.
    This is the main fixture that tests will use.
    """
    app.dependency_overrides[get_queue_gateway] = lambda: gateway

    with TestClient(app) as test_client:
        yield test_client

    # Clean up overrides
    app.dependency_overrides.clear()
