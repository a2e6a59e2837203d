import os
import sys

import pytest
from httpx import ASGITransport, AsyncClient

# Add the project root to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from salon_booking.api.deps.services import (
    get_booking_service,
    get_provider_schedule_service,
    get_scheduling_engine,
)
from salon_booking.main import app


@pytest.fixture
def api_app(engine, booking_service, schedule_service):
    """The FastAPI app wired to the in-memory stores."""
    app.dependency_overrides[get_scheduling_engine] = lambda: engine
    app.dependency_overrides[get_booking_service] = lambda: booking_service
    app.dependency_overrides[get_provider_schedule_service] = lambda: schedule_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(api_app):
    async with AsyncClient(
        transport=ASGITransport(app=api_app), base_url="http://test"
    ) as client:
        yield client


# Import all scheduling fixtures to make them available
pytest_plugins = ["tests.fixtures.scheduling_fixtures"]
