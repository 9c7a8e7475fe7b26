"""
Core module for MeshForge Network Health.
Scoring engine, typed records, storage and configuration shared by the
web and terminal clients.
"""

from .models import (
    NodeSample, TelemetrySample, SignalQualityRecord, CongestionBucket, CongestionSnapshot,
    CongestionHistory, ReliabilityMetrics, ReliabilityRecord, HealthSummary,
    SignalQuality, CongestionLevel, ConnectionStability
)
from .coercion import coerce_float, coerce_integer, round_half_away
from .classifiers import classify_signal_quality, classify_congestion_level
from .windowing import TIME_RANGES, resolve_window, resolve_bucket_seconds, bucket_start, aggregate_buckets
from .scoring import health_score, reliability_metrics
from .queries import NetworkHealthQueries, clamp_limit
from .storage import SQLiteTelemetryStore, TelemetrySource
from .config import Config
from .demo import seed_demo_data

__all__ = [
    # Models
    'NodeSample', 'TelemetrySample', 'SignalQualityRecord', 'CongestionBucket', 'CongestionSnapshot',
    'CongestionHistory', 'ReliabilityMetrics', 'ReliabilityRecord', 'HealthSummary',
    'SignalQuality', 'CongestionLevel', 'ConnectionStability',
    # Coercion
    'coerce_float', 'coerce_integer', 'round_half_away',
    # Classifiers
    'classify_signal_quality', 'classify_congestion_level',
    # Windowing
    'TIME_RANGES', 'resolve_window', 'resolve_bucket_seconds', 'bucket_start', 'aggregate_buckets',
    # Scoring
    'health_score', 'reliability_metrics',
    # Queries
    'NetworkHealthQueries', 'clamp_limit',
    # Storage
    'SQLiteTelemetryStore', 'TelemetrySource',
    # Config / demo
    'Config', 'seed_demo_data',
]
