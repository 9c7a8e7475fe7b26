"""
Tests for meshforge_health.core.storage
"""

import sqlite3
import sys
import threading
from dataclasses import replace

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests/", 1)[0])

from meshforge_health.core.models import NodeSample, TelemetrySample  # noqa: E402
from meshforge_health.core.storage import SQLiteTelemetryStore  # noqa: E402

NOW = 1_700_000_000


def _node(node_id, last_heard, **kwargs):
    return NodeSample(node_id=node_id, last_heard=last_heard, **kwargs)


class TestWriters:
    """Node upserts and telemetry inserts."""

    def test_upsert_inserts_then_updates(self, store, sample_node):
        store.upsert_node(sample_node)
        store.upsert_node(replace(sample_node, snr=-2.0, last_heard=NOW))

        assert store.count_nodes_since(0) == 1
        rows = store.reliability_nodes_since(0, 10)
        assert rows[0]["last_heard"] == NOW
        assert store.node_snrs_since(0) == [-2.0]

    def test_add_telemetry(self, store, sample_telemetry):
        store.add_telemetry(sample_telemetry)
        rows = store.telemetry_since(0)
        assert rows == [
            {
                "node_id": "!aabbccdd",
                "rx_time": NOW - 30,
                "rssi": -82,
                "channel_utilization": 18.5,
                "air_util_tx": 3.25,
            }
        ]

    def test_concurrent_writes(self, store):
        def writer(offset):
            for i in range(50):
                store.add_telemetry(TelemetrySample(node_id=f"!{offset}", rx_time=NOW - i, channel_utilization=1.0))

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.telemetry_since(0)) == 200


class TestNodeReaders:
    """Counting and listing nodes by last_heard."""

    @pytest.fixture
    def populated(self, store):
        store.upsert_node(_node("!a", NOW - 60, snr=12.0, latitude=1.0, longitude=2.0, first_heard=NOW - 1_000))
        store.upsert_node(_node("!b", NOW - 7_200, snr=6.0, latitude=1.5, longitude=None, first_heard=NOW - 9_000))
        store.upsert_node(_node("!c", NOW - 2 * 86_400, latitude=3.0, longitude=4.0))
        store.upsert_node(_node("!d", NOW - 8 * 86_400, snr=-5.0, first_heard=NOW - 9 * 86_400))
        store.upsert_node(_node("!e", None, snr=1.0))
        return store

    def test_count_nodes_since(self, populated):
        assert populated.count_nodes_since(NOW - 3_600) == 1
        assert populated.count_nodes_since(NOW - 86_400) == 2
        assert populated.count_nodes_since(NOW - 7 * 86_400) == 3
        assert populated.count_nodes_since(0) == 4

    def test_cutoff_is_inclusive(self, populated):
        assert populated.count_nodes_since(NOW - 60) == 1
        assert populated.count_nodes_since(NOW - 59) == 0

    def test_node_snrs_skip_null(self, populated):
        assert sorted(populated.node_snrs_since(NOW - 7 * 86_400)) == [6.0, 12.0]

    def test_positioned_nodes(self, populated):
        rows = populated.positioned_nodes_since(NOW - 7 * 86_400, 10)
        assert [r["node_id"] for r in rows] == ["!a", "!c"]

    def test_positioned_nodes_limit(self, populated):
        rows = populated.positioned_nodes_since(0, 1)
        assert [r["node_id"] for r in rows] == ["!a"]

    def test_reliability_nodes_require_first_heard(self, populated):
        rows = populated.reliability_nodes_since(0, 10)
        assert [r["node_id"] for r in rows] == ["!a", "!b", "!d"]
        assert set(rows[0]) == {
            "node_id",
            "short_name",
            "long_name",
            "hw_model",
            "role",
            "last_heard",
            "first_heard",
            "uptime_seconds",
        }

    def test_reliability_nodes_limit_keeps_most_recent(self, populated):
        rows = populated.reliability_nodes_since(0, 2)
        assert [r["node_id"] for r in rows] == ["!a", "!b"]

    def test_empty_store(self, store):
        assert store.count_nodes_since(0) == 0
        assert store.node_snrs_since(0) == []
        assert store.positioned_nodes_since(0, 10) == []
        assert store.reliability_nodes_since(0, 10) == []


class TestTelemetryReaders:
    """Averages, latest-per-node and the congestion row set."""

    @pytest.fixture
    def populated(self, store):
        rows = [
            ("!a", NOW - 100, -80, 10.0, 2.0),
            ("!a", NOW - 50, -75, None, None),
            ("!a", NOW - 5_000, -90, 90.0, 9.0),
            ("!b", NOW - 150, None, 30.0, None),
            ("!b", NOW - 1_000, -100, None, 4.0),
        ]
        for node_id, rx_time, rssi, chan, air in rows:
            store.add_telemetry(TelemetrySample(node_id, rx_time, rssi, chan, air))
        return store

    def test_average_telemetry(self, populated):
        assert populated.average_telemetry("channel_utilization", NOW - 3_600) == 20.0
        assert populated.average_telemetry("air_util_tx", NOW - 3_600) == 3.0
        assert populated.average_telemetry("rssi", NOW - 3_600) == pytest.approx(-85.0)

    def test_average_without_rows_is_none(self, populated):
        assert populated.average_telemetry("channel_utilization", NOW + 1) is None

    def test_average_rejects_unknown_column(self, store):
        with pytest.raises(ValueError):
            store.average_telemetry("node_id; DROP TABLE nodes", 0)

    def test_latest_telemetry_per_node(self, populated):
        latest = {row["node_id"]: row for row in populated.latest_telemetry_since(0)}
        assert latest["!a"]["rx_time"] == NOW - 50
        assert latest["!a"]["rssi"] == -75
        assert latest["!b"]["rx_time"] == NOW - 150
        assert latest["!b"]["channel_utilization"] == 30.0

    def test_latest_telemetry_respects_cutoff(self, populated):
        latest = populated.latest_telemetry_since(NOW - 120)
        assert [row["node_id"] for row in latest] == ["!a"]

    def test_telemetry_since_skips_rows_without_utilization(self, populated):
        rows = populated.telemetry_since(NOW - 3_600)
        assert [r["rx_time"] for r in rows] == [NOW - 1_000, NOW - 150, NOW - 100]


class TestLifecycle:

    def test_file_database_persists(self, tmp_path, sample_node):
        path = tmp_path / "nested" / "telemetry.db"
        with SQLiteTelemetryStore(path) as db:
            db.upsert_node(sample_node)

        assert path.exists()
        with SQLiteTelemetryStore(path) as db:
            assert db.count_nodes_since(0) == 1

    def test_closed_store_raises(self):
        db = SQLiteTelemetryStore()
        db.close()
        with pytest.raises(sqlite3.ProgrammingError):
            db.count_nodes_since(0)
