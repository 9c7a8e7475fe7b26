"""
Data models for MeshForge Network Health.
Defines the typed records that flow between storage rows, the scorers and
the JSON responses served to the dashboard.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .coercion import coerce_float, coerce_integer, round_half_away

DEFAULT_NODE_ROLE = "CLIENT"


class SignalQuality(Enum):
    """Signal quality categories used for map display."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    UNKNOWN = "unknown"


class CongestionLevel(Enum):
    """Channel congestion levels derived from utilization."""

    UNKNOWN = "unknown"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class ConnectionStability(Enum):
    """Connection stability categories for the reliability ranking."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    NEW = "new"
    UNKNOWN = "unknown"


def iso_timestamp(epoch: Optional[int]) -> Optional[str]:
    """Format a Unix timestamp as UTC ISO-8601 (``2025-01-01T00:00:00Z``)."""
    if epoch is None:
        return None
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def compact_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None so sparse rows stay small."""
    return {k: v for k, v in row.items() if v is not None}


def _optional_str(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    return str(raw)


def _round2(value: Optional[float]) -> Optional[float]:
    return None if value is None else round_half_away(value, 2)


@dataclass
class NodeSample:
    """Latest known state of one mesh node."""

    node_id: Optional[str]
    short_name: Optional[str] = None
    long_name: Optional[str] = None
    hw_model: Optional[str] = None
    role: str = DEFAULT_NODE_ROLE
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    snr: Optional[float] = None
    last_heard: Optional[int] = None
    first_heard: Optional[int] = None
    uptime_seconds: Optional[int] = None

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "NodeSample":
        """Build a NodeSample from a storage row, coercing every field."""
        return cls(
            node_id=_optional_str(row.get("node_id")),
            short_name=_optional_str(row.get("short_name")),
            long_name=_optional_str(row.get("long_name")),
            hw_model=_optional_str(row.get("hw_model")),
            role=_optional_str(row.get("role")) or DEFAULT_NODE_ROLE,
            latitude=coerce_float(row.get("latitude")),
            longitude=coerce_float(row.get("longitude")),
            snr=coerce_float(row.get("snr")),
            last_heard=coerce_integer(row.get("last_heard")),
            first_heard=coerce_integer(row.get("first_heard")),
            uptime_seconds=coerce_integer(row.get("uptime_seconds")),
        )


@dataclass
class TelemetrySample:
    """One observation of radio and channel conditions."""

    node_id: Optional[str]
    rx_time: int
    rssi: Optional[int] = None
    channel_utilization: Optional[float] = None
    air_util_tx: Optional[float] = None

    @property
    def has_utilization(self) -> bool:
        return self.channel_utilization is not None or self.air_util_tx is not None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TelemetrySample":
        return cls(
            node_id=_optional_str(row.get("node_id")),
            rx_time=coerce_integer(row.get("rx_time")) or 0,
            rssi=coerce_integer(row.get("rssi")),
            channel_utilization=coerce_float(row.get("channel_utilization")),
            air_util_tx=coerce_float(row.get("air_util_tx")),
        )


@dataclass
class SignalQualityRecord:
    """A positioned node joined with its latest telemetry and classified."""

    node: NodeSample
    quality: SignalQuality
    telemetry: Optional[TelemetrySample] = None

    @property
    def rssi(self) -> Optional[int]:
        return self.telemetry.rssi if self.telemetry else None

    def to_dict(self) -> Dict[str, Any]:
        telemetry = self.telemetry
        return compact_row(
            {
                "node_id": self.node.node_id,
                "short_name": self.node.short_name,
                "long_name": self.node.long_name,
                "latitude": self.node.latitude,
                "longitude": self.node.longitude,
                "snr": self.node.snr,
                "rssi": self.rssi,
                "channel_utilization": telemetry.channel_utilization if telemetry else None,
                "air_util_tx": telemetry.air_util_tx if telemetry else None,
                "quality": self.quality.value,
                "last_heard": self.node.last_heard,
            }
        )


@dataclass
class CongestionBucket:
    """Aggregated utilization for ``[start, start + bucket_seconds)``."""

    start: int
    sample_count: int = 0
    avg_channel_utilization: Optional[float] = None
    max_channel_utilization: Optional[float] = None
    avg_air_util_tx: Optional[float] = None
    max_air_util_tx: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.start,
            "timestamp_iso": iso_timestamp(self.start),
            "sample_count": self.sample_count,
            "avg_channel_utilization": _round2(self.avg_channel_utilization),
            "max_channel_utilization": _round2(self.max_channel_utilization),
            "avg_air_util_tx": _round2(self.avg_air_util_tx),
            "max_air_util_tx": _round2(self.max_air_util_tx),
        }


@dataclass
class CongestionSnapshot:
    """Channel conditions averaged over the most recent hour."""

    channel_utilization: Optional[float]
    air_util_tx: Optional[float]
    congestion_level: CongestionLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel_utilization": _round2(self.channel_utilization),
            "air_util_tx": _round2(self.air_util_tx),
            "congestion_level": self.congestion_level.value,
        }


@dataclass
class CongestionHistory:
    """Bucketed congestion history plus the current snapshot."""

    time_range: str
    window_seconds: int
    bucket_seconds: int
    current: CongestionSnapshot
    buckets: List[CongestionBucket] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time_range": self.time_range,
            "window_seconds": self.window_seconds,
            "bucket_seconds": self.bucket_seconds,
            "current": self.current.to_dict(),
            "buckets": [b.to_dict() for b in self.buckets],
        }


@dataclass(frozen=True)
class ReliabilityMetrics:
    """Composite reliability result for a single node."""

    score: int
    uptime_percentage: float
    stability: ConnectionStability

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "uptime_percentage": self.uptime_percentage,
            "stability": self.stability.value,
        }


@dataclass
class ReliabilityRecord:
    """A node annotated with its reliability metrics."""

    node: NodeSample
    metrics: ReliabilityMetrics

    @property
    def reliability_score(self) -> int:
        return self.metrics.score

    def to_dict(self) -> Dict[str, Any]:
        node = self.node
        return compact_row(
            {
                "node_id": node.node_id,
                "short_name": node.short_name,
                "long_name": node.long_name,
                "hw_model": node.hw_model,
                "role": node.role,
                "last_heard": node.last_heard,
                "last_heard_iso": iso_timestamp(node.last_heard),
                "first_heard": node.first_heard,
                "uptime_seconds": node.uptime_seconds,
                "reliability_score": self.metrics.score,
                "uptime_percentage": self.metrics.uptime_percentage,
                "connection_stability": self.metrics.stability.value,
            }
        )


def empty_signal_distribution() -> Dict[str, int]:
    """Histogram with a zero count for every signal quality category."""
    return {quality.value: 0 for quality in SignalQuality}


@dataclass
class HealthSummary:
    """Snapshot of overall network health."""

    timestamp: int
    health_score: int
    total_nodes: int
    nodes_24h: int
    nodes_1h: int
    avg_channel_utilization: Optional[float] = None
    avg_air_util_tx: Optional[float] = None
    signal_distribution: Dict[str, int] = field(default_factory=empty_signal_distribution)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "timestamp_iso": iso_timestamp(self.timestamp),
            "health_score": self.health_score,
            "active_nodes": {
                "total": self.total_nodes,
                "last_24h": self.nodes_24h,
                "last_1h": self.nodes_1h,
            },
            "channel_metrics": {
                "avg_utilization": _round2(self.avg_channel_utilization),
                "avg_air_util_tx": _round2(self.avg_air_util_tx),
            },
            "signal_distribution": dict(self.signal_distribution),
        }
