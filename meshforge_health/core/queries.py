"""
Query orchestration for the network health dashboard.

Each query pulls rows from a TelemetrySource, maps them onto typed records
and runs them through the classifiers and scorers. `now` is captured once
per call and threaded through so the same rows and `now` always give the
same result. Errors raised by the source propagate to the caller.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from .classifiers import classify_congestion_level, classify_signal_quality
from .coercion import coerce_float, coerce_integer
from .models import (
    CongestionHistory,
    CongestionSnapshot,
    HealthSummary,
    NodeSample,
    ReliabilityRecord,
    SignalQualityRecord,
    TelemetrySample,
    empty_signal_distribution,
)
from .scoring import health_score, reliability_metrics
from .storage import TelemetrySource
from .windowing import (
    DAY_SECONDS,
    DEFAULT_TIME_RANGE,
    HOUR_SECONDS,
    MAX_BUCKETS,
    WEEK_SECONDS,
    aggregate_buckets,
    resolve_bucket_seconds,
    resolve_window,
)

logger = logging.getLogger(__name__)

SIGNAL_QUALITY_LIMIT = 500
DEFAULT_RELIABILITY_LIMIT = 50
MAX_RELIABILITY_LIMIT = 100


def clamp_limit(raw: Any, default: int = DEFAULT_RELIABILITY_LIMIT, ceiling: int = MAX_RELIABILITY_LIMIT) -> int:
    """Normalise an externally supplied result limit to ``[0, ceiling]``."""
    value = coerce_integer(raw)
    if value is None:
        value = default
    return max(0, min(value, ceiling))


class NetworkHealthQueries:
    """Builds the four dashboard views from rows supplied by a source.

    Process-wide settings (the one-week lookback, result caps) are passed
    in here rather than read from global config.
    """

    def __init__(
        self,
        source: TelemetrySource,
        week_seconds: int = WEEK_SECONDS,
        signal_quality_limit: int = SIGNAL_QUALITY_LIMIT,
        max_buckets: int = MAX_BUCKETS,
        max_reliability_limit: int = MAX_RELIABILITY_LIMIT,
    ):
        self.source = source
        self.week_seconds = week_seconds
        self.signal_quality_limit = signal_quality_limit
        self.max_buckets = max_buckets
        self.max_reliability_limit = max_reliability_limit

    @staticmethod
    def _now(now: Optional[int]) -> int:
        return int(time.time()) if now is None else int(now)

    def _hourly_averages(self, now: int):
        hour_ago = now - HOUR_SECONDS
        channel = coerce_float(self.source.average_telemetry("channel_utilization", hour_ago))
        air = coerce_float(self.source.average_telemetry("air_util_tx", hour_ago))
        return channel, air

    def network_health_summary(self, now: Optional[int] = None) -> HealthSummary:
        """Aggregate health snapshot: activity, channel load and signal mix."""
        now = self._now(now)
        week_ago = now - self.week_seconds

        total_nodes = self.source.count_nodes_since(week_ago)
        nodes_24h = self.source.count_nodes_since(now - DAY_SECONDS)
        nodes_1h = self.source.count_nodes_since(now - HOUR_SECONDS)
        avg_channel_util, avg_air_util = self._hourly_averages(now)

        distribution = empty_signal_distribution()
        for snr in self.source.node_snrs_since(week_ago):
            distribution[classify_signal_quality(snr, None).value] += 1

        score = health_score(
            total_nodes=total_nodes,
            nodes_24h=nodes_24h,
            avg_channel_util=avg_channel_util,
            signal_distribution=distribution,
        )
        logger.debug("Health summary at %d: %d/%d nodes, score %d", now, nodes_24h, total_nodes, score)

        return HealthSummary(
            timestamp=now,
            health_score=score,
            total_nodes=total_nodes,
            nodes_24h=nodes_24h,
            nodes_1h=nodes_1h,
            avg_channel_utilization=avg_channel_util,
            avg_air_util_tx=avg_air_util,
            signal_distribution=distribution,
        )

    def signal_quality(self, now: Optional[int] = None) -> List[SignalQualityRecord]:
        """Positioned nodes with their latest telemetry, newest first."""
        now = self._now(now)
        week_ago = now - self.week_seconds

        latest: Dict[str, TelemetrySample] = {}
        for row in self.source.latest_telemetry_since(week_ago):
            sample = TelemetrySample.from_row(row)
            current = latest.get(sample.node_id)
            if current is None or sample.rx_time >= current.rx_time:
                latest[sample.node_id] = sample

        rows = self.source.positioned_nodes_since(week_ago, self.signal_quality_limit)
        nodes = [NodeSample.from_row(row) for row in rows]
        nodes = [n for n in nodes if n.has_position]
        nodes.sort(key=lambda n: n.last_heard or 0, reverse=True)

        records = []
        for node in nodes[: self.signal_quality_limit]:
            telemetry = latest.get(node.node_id)
            rssi = telemetry.rssi if telemetry else None
            records.append(
                SignalQualityRecord(
                    node=node,
                    quality=classify_signal_quality(node.snr, rssi),
                    telemetry=telemetry,
                )
            )
        return records

    def congestion_history(
        self, time_range: Optional[str] = DEFAULT_TIME_RANGE, now: Optional[int] = None
    ) -> CongestionHistory:
        """Bucketed utilization history for a named time range.

        The key is echoed back as given; unrecognised keys use the one-hour
        window with one-minute buckets.
        """
        now = self._now(now)
        time_range = time_range or DEFAULT_TIME_RANGE
        window_seconds = resolve_window(time_range)
        bucket_seconds = resolve_bucket_seconds(time_range)

        samples = [TelemetrySample.from_row(row) for row in self.source.telemetry_since(now - window_seconds)]
        buckets = aggregate_buckets(samples, bucket_seconds, limit=self.max_buckets)

        channel, air = self._hourly_averages(now)
        return CongestionHistory(
            time_range=time_range,
            window_seconds=window_seconds,
            bucket_seconds=bucket_seconds,
            current=CongestionSnapshot(
                channel_utilization=channel,
                air_util_tx=air,
                congestion_level=classify_congestion_level(channel),
            ),
            buckets=buckets,
        )

    def node_reliability(
        self, limit: Any = DEFAULT_RELIABILITY_LIMIT, now: Optional[int] = None
    ) -> List[ReliabilityRecord]:
        """Reliability ranking of recently heard nodes, best first."""
        now = self._now(now)
        limit = clamp_limit(limit, ceiling=self.max_reliability_limit)
        rows = self.source.reliability_nodes_since(now - self.week_seconds, limit)

        records = []
        for row in rows[:limit]:
            node = NodeSample.from_row(row)
            metrics = reliability_metrics(
                first_heard=node.first_heard,
                last_heard=node.last_heard,
                uptime_seconds=node.uptime_seconds,
                now=now,
                week_seconds=self.week_seconds,
            )
            records.append(ReliabilityRecord(node=node, metrics=metrics))

        records.sort(key=lambda r: r.reliability_score, reverse=True)
        return records
