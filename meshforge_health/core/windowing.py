"""
Time windowing and bucketing for congestion history.

Buckets are aligned to absolute epoch multiples of the bucket size, not to
the start of the query window, so a given rx_time always lands in the same
bucket no matter when the query runs.
"""

from typing import Dict, Iterable, List, Optional

from .models import CongestionBucket, TelemetrySample

HOUR_SECONDS = 3_600
DAY_SECONDS = 86_400
WEEK_SECONDS = 604_800

DEFAULT_TIME_RANGE = "1h"

TIME_RANGES: Dict[str, int] = {
    "1h": HOUR_SECONDS,
    "24h": DAY_SECONDS,
    "7d": WEEK_SECONDS,
}

BUCKET_SECONDS: Dict[str, int] = {
    "7d": 3_600,  # 1 hour buckets
    "24h": 900,  # 15 minute buckets
}
DEFAULT_BUCKET_SECONDS = 60

MAX_BUCKETS = 1000


def resolve_window(range_key: Optional[str]) -> int:
    """Window length in seconds; unknown keys fall back to one hour."""
    return TIME_RANGES.get(range_key or DEFAULT_TIME_RANGE, TIME_RANGES[DEFAULT_TIME_RANGE])


def resolve_bucket_seconds(range_key: Optional[str]) -> int:
    """Bucket width for a time range key."""
    return BUCKET_SECONDS.get(range_key or DEFAULT_TIME_RANGE, DEFAULT_BUCKET_SECONDS)


def bucket_start(rx_time: int, bucket_seconds: int) -> int:
    """Start of the epoch-aligned bucket containing rx_time."""
    return (int(rx_time) // bucket_seconds) * bucket_seconds


def average(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of the non-None values, or None when there are none."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def _maximum(values: Iterable[Optional[float]]) -> Optional[float]:
    present = [v for v in values if v is not None]
    return max(present) if present else None


def aggregate_buckets(
    samples: Iterable[TelemetrySample],
    bucket_seconds: int,
    limit: int = MAX_BUCKETS,
) -> List[CongestionBucket]:
    """Group samples into fixed-width buckets, ascending by start.

    Samples with neither channel_utilization nor air_util_tx are ignored.
    Per-field averages and maxima skip missing values, like SQL AVG/MAX.
    """
    grouped: Dict[int, List[TelemetrySample]] = {}
    for sample in samples:
        if not sample.has_utilization:
            continue
        grouped.setdefault(bucket_start(sample.rx_time, bucket_seconds), []).append(sample)

    buckets = []
    for start in sorted(grouped)[:limit]:
        members = grouped[start]
        channel = [s.channel_utilization for s in members]
        air = [s.air_util_tx for s in members]
        buckets.append(
            CongestionBucket(
                start=start,
                sample_count=len(members),
                avg_channel_utilization=average(channel),
                max_channel_utilization=_maximum(channel),
                avg_air_util_tx=average(air),
                max_air_util_tx=_maximum(air),
            )
        )
    return buckets
