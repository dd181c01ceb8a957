import os
import sys
import asyncio
import inspect
from datetime import datetime
from unittest.mock import Mock

import pytest
import pytz
import redis

# Ensure project root is on sys.path so `import gds_trainer` works in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

FLIGHTS_PATH = os.path.join(ROOT, "data", "flights.json")


def pytest_pyfunc_call(pyfuncitem):
    """Allow running async tests without pytest-asyncio.

    If the test function is a coroutine, run it in a fresh event loop.
    """
    testfunction = pyfuncitem.obj
    if inspect.iscoroutinefunction(testfunction):
        funcargs = pyfuncitem.funcargs
        sig = inspect.signature(testfunction)
        # Filter only the parameters that the test function expects
        allowed = {name: funcargs[name] for name in sig.parameters.keys() if name in funcargs}
        asyncio.run(testfunction(**allowed))
        return True
    return None


def fixed_now() -> datetime:
    # Monday 19 Oct 2026, 14:30 in Buenos Aires
    return pytz.timezone("America/Argentina/Buenos_Aires").localize(datetime(2026, 10, 19, 14, 30))


@pytest.fixture
def clock():
    return fixed_now


@pytest.fixture
def repository():
    from gds_trainer.repository.memory import InMemoryFlightRepository
    return InMemoryFlightRepository(path=FLIGHTS_PATH)


def offline_redis() -> Mock:
    client = Mock()
    client.ping.side_effect = redis.ConnectionError("connection refused")
    return client


@pytest.fixture
def pnr_store():
    from gds_trainer.session.redis_store import RedisPNRStore
    return RedisPNRStore(client=offline_redis())


SINGLE_FLIGHT = {
    "id": "1",
    "airline_code": "AR",
    "flight_number": "1132",
    "departure_airport_code": "BUE",
    "arrival_airport_code": "MAD",
    "departure_date": "2026-11-15",
    "departure_time": "13:25",
    "arrival_time": "05:40",
    "duration_hours": 12.25,
    "equipment_code": "Airbus A330",
    "class_availability": {"Y": 9, "J": 2},
}


@pytest.fixture
def single_flight():
    """One AR 1132 row BUE-MAD on 15NOV with Y9 J2."""
    return dict(SINGLE_FLIGHT, class_availability=dict(SINGLE_FLIGHT["class_availability"]))


@pytest.fixture
def single_repository(single_flight):
    from gds_trainer.repository.memory import InMemoryFlightRepository
    return InMemoryFlightRepository(data={"flights": [single_flight]})
