"""
Shared test fixtures for the meshforge_health test suite.
"""

import sys

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests/", 1)[0])

from meshforge_health.core.models import NodeSample, TelemetrySample
from meshforge_health.core.queries import NetworkHealthQueries
from meshforge_health.core.storage import SQLiteTelemetryStore

# 2023-11-14T22:13:20Z
NOW = 1_700_000_000


@pytest.fixture
def now():
    """Fixed reference time shared by the query tests."""
    return NOW


@pytest.fixture
def store():
    """An empty in-memory telemetry store."""
    db = SQLiteTelemetryStore(":memory:")
    yield db
    db.close()


@pytest.fixture
def queries(store):
    """NetworkHealthQueries over the in-memory store."""
    return NetworkHealthQueries(store)


@pytest.fixture
def sample_node():
    """Create a sample NodeSample for testing."""
    return NodeSample(
        node_id="!aabbccdd",
        short_name="TST",
        long_name="Test Node",
        hw_model="TBEAM",
        role="ROUTER",
        latitude=45.5,
        longitude=-122.6,
        snr=7.5,
        last_heard=NOW - 60,
        first_heard=NOW - 86_400,
        uptime_seconds=43_200,
    )


@pytest.fixture
def sample_telemetry():
    """Create a sample TelemetrySample for testing."""
    return TelemetrySample(
        node_id="!aabbccdd",
        rx_time=NOW - 30,
        rssi=-82,
        channel_utilization=18.5,
        air_util_tx=3.25,
    )
