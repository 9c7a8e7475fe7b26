"""
SQLite-backed data access for node and telemetry rows.

The query layer only depends on the TelemetrySource protocol; the store
below is the default implementation. All filtering by time, NULL checks and
row limits happen here so the scorers receive ready-to-use row sets.
"""

import logging
import sqlite3
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

from .models import NodeSample, TelemetrySample

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

# Columns that may be averaged through average_telemetry()
AVERAGEABLE_COLUMNS = ("channel_utilization", "air_util_tx", "rssi")

SCHEMA = """
CREATE TABLE IF NOT EXISTS nodes (
    node_id TEXT PRIMARY KEY,
    short_name TEXT,
    long_name TEXT,
    hw_model TEXT,
    role TEXT,
    latitude REAL,
    longitude REAL,
    snr REAL,
    last_heard INTEGER,
    first_heard INTEGER,
    uptime_seconds INTEGER
);
CREATE INDEX IF NOT EXISTS idx_nodes_last_heard ON nodes(last_heard);

CREATE TABLE IF NOT EXISTS telemetry (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    node_id TEXT NOT NULL,
    rx_time INTEGER NOT NULL,
    rssi INTEGER,
    channel_utilization REAL,
    air_util_tx REAL
);
CREATE INDEX IF NOT EXISTS idx_telemetry_rx_time ON telemetry(rx_time);
CREATE INDEX IF NOT EXISTS idx_telemetry_node ON telemetry(node_id, rx_time);
"""


class TelemetrySource(Protocol):
    """Row-producing collaborator consumed by NetworkHealthQueries."""

    def count_nodes_since(self, cutoff: int) -> int: ...

    def node_snrs_since(self, cutoff: int) -> List[Any]: ...

    def average_telemetry(self, column: str, since: int) -> Optional[Any]: ...

    def positioned_nodes_since(self, cutoff: int, limit: int) -> List[Row]: ...

    def latest_telemetry_since(self, cutoff: int) -> List[Row]: ...

    def telemetry_since(self, cutoff: int) -> List[Row]: ...

    def reliability_nodes_since(self, cutoff: int, limit: int) -> List[Row]: ...


class SQLiteTelemetryStore:
    """
    Small SQLite store for nodes and telemetry.

    Safe to share between threads: one connection guarded by a lock.
    Use ":memory:" for a throwaway database.
    """

    def __init__(self, path: Union[str, Path] = ":memory:"):
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._lock, self._conn:
            self._conn.executescript(SCHEMA)
        logger.debug("Opened telemetry store at %s", self.path)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "SQLiteTelemetryStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ---- helpers

    def _rows(self, sql: str, params: tuple = ()) -> List[Row]:
        with self._lock:
            cursor = self._conn.execute(sql, params)
            return [dict(row) for row in cursor.fetchall()]

    def _scalar(self, sql: str, params: tuple = ()) -> Any:
        with self._lock:
            row = self._conn.execute(sql, params).fetchone()
        return row[0] if row else None

    # ---- writers

    def upsert_node(self, node: NodeSample) -> None:
        """Insert a node or replace its stored state."""
        data = asdict(node)
        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        updates = ", ".join(f"{col} = excluded.{col}" for col in data if col != "node_id")
        with self._lock, self._conn:
            self._conn.execute(
                f"INSERT INTO nodes ({columns}) VALUES ({placeholders}) "
                f"ON CONFLICT(node_id) DO UPDATE SET {updates}",
                tuple(data.values()),
            )

    def add_telemetry(self, sample: TelemetrySample) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO telemetry (node_id, rx_time, rssi, channel_utilization, air_util_tx) "
                "VALUES (?, ?, ?, ?, ?)",
                (sample.node_id, sample.rx_time, sample.rssi, sample.channel_utilization, sample.air_util_tx),
            )

    # ---- readers (TelemetrySource)

    def count_nodes_since(self, cutoff: int) -> int:
        return int(self._scalar("SELECT COUNT(*) FROM nodes WHERE last_heard >= ?", (cutoff,)) or 0)

    def node_snrs_since(self, cutoff: int) -> List[Any]:
        rows = self._rows("SELECT snr FROM nodes WHERE last_heard >= ? AND snr IS NOT NULL", (cutoff,))
        return [row["snr"] for row in rows]

    def average_telemetry(self, column: str, since: int) -> Optional[Any]:
        """AVG of a telemetry column over non-NULL values since a timestamp."""
        if column not in AVERAGEABLE_COLUMNS:
            raise ValueError(f"Cannot average telemetry column {column!r}")
        return self._scalar(
            f"SELECT AVG({column}) FROM telemetry WHERE rx_time >= ? AND {column} IS NOT NULL",
            (since,),
        )

    def positioned_nodes_since(self, cutoff: int, limit: int) -> List[Row]:
        return self._rows(
            "SELECT * FROM nodes "
            "WHERE last_heard >= ? AND latitude IS NOT NULL AND longitude IS NOT NULL "
            "ORDER BY last_heard DESC LIMIT ?",
            (cutoff, limit),
        )

    def latest_telemetry_since(self, cutoff: int) -> List[Row]:
        # SQLite takes the bare columns from the row holding MAX(rx_time)
        return self._rows(
            "SELECT node_id, MAX(rx_time) AS rx_time, rssi, channel_utilization, air_util_tx "
            "FROM telemetry WHERE rx_time >= ? GROUP BY node_id",
            (cutoff,),
        )

    def telemetry_since(self, cutoff: int) -> List[Row]:
        return self._rows(
            "SELECT node_id, rx_time, rssi, channel_utilization, air_util_tx FROM telemetry "
            "WHERE rx_time >= ? AND (channel_utilization IS NOT NULL OR air_util_tx IS NOT NULL) "
            "ORDER BY rx_time ASC",
            (cutoff,),
        )

    def reliability_nodes_since(self, cutoff: int, limit: int) -> List[Row]:
        return self._rows(
            "SELECT node_id, short_name, long_name, hw_model, role, last_heard, first_heard, uptime_seconds "
            "FROM nodes WHERE last_heard >= ? AND first_heard IS NOT NULL "
            "ORDER BY last_heard DESC LIMIT ?",
            (cutoff, limit),
        )
