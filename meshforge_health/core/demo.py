"""
Demo data for running the dashboard without a real telemetry database.
"""

import logging
import random
from typing import Optional

from .models import NodeSample, TelemetrySample
from .storage import SQLiteTelemetryStore

logger = logging.getLogger(__name__)

# node_id, short, long, hardware, role, lat, lon, snr, heard_ago, known_for, uptime
DEMO_NODES = [
    ("!abc12345", "BaseStation", "HQ Base Station", "TBEAM", "ROUTER", 45.523, -122.676, 11.5, 30, 6 * 86_400, 432_000),
    ("!def67890", "Mobile1", "Field Unit Alpha", "TLORA", "CLIENT", 45.531, -122.661, 6.25, 420, 2 * 86_400, None),
    ("!fed98765", "Relay", "Mountain Repeater", "HELTEC", "REPEATER", 45.374, -121.696, 2.0, 1_800, 7 * 86_400, 86_400),
    ("!123abcde", "Solar1", "Solar Powered Node", "RAK4631", None, 45.489, -122.802, -4.5, 7_200, 3 * 86_400, 3_600),
    ("!456f0e1a", "Router", "Community Router", "TBEAM", "ROUTER", None, None, 8.75, 2 * 86_400, 5 * 86_400, None),
]

DEMO_TELEMETRY_SPAN = 2 * 3_600
DEMO_TELEMETRY_INTERVAL = 300


def seed_demo_data(store: SQLiteTelemetryStore, now: int, rng_seed: Optional[int] = 1337) -> int:
    """Populate a store with fake nodes and telemetry relative to `now`.

    Returns the number of telemetry samples written. The same seed and
    `now` always produce the same data.
    """
    rng = random.Random(rng_seed)
    samples = 0

    for node_id, short, long_name, hw, role, lat, lon, snr, heard_ago, known_for, uptime in DEMO_NODES:
        last_heard = now - heard_ago
        store.upsert_node(
            NodeSample(
                node_id=node_id,
                short_name=short,
                long_name=long_name,
                hw_model=hw,
                role=role,
                latitude=lat,
                longitude=lon,
                snr=snr,
                last_heard=last_heard,
                first_heard=now - known_for,
                uptime_seconds=uptime,
            )
        )

        base_util = rng.uniform(8.0, 45.0)
        for rx_time in range(now - DEMO_TELEMETRY_SPAN, min(now, last_heard) + 1, DEMO_TELEMETRY_INTERVAL):
            store.add_telemetry(
                TelemetrySample(
                    node_id=node_id,
                    rx_time=rx_time,
                    rssi=rng.randint(-115, -60),
                    channel_utilization=round(max(0.0, base_util + rng.uniform(-5.0, 5.0)), 2),
                    air_util_tx=round(rng.uniform(0.5, 9.0), 2),
                )
            )
            samples += 1

    logger.info("Seeded demo data: %d nodes, %d telemetry samples", len(DEMO_NODES), samples)
    return samples
