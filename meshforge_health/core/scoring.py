"""
Composite scoring for network health and node reliability.

Health score (0-100):
  Activity  (0-30): share of week-active nodes also heard in the last 24h
  Channel   (0-30): stepped penalty for average channel utilization
  Signal    (0-40): weighted share of excellent/good/fair links

Reliability score (0-100): 60% recency of last contact, 40% uptime
percentage.
"""

from typing import Dict, Mapping, Optional, Union

from .coercion import round_half_away
from .models import ConnectionStability, ReliabilityMetrics, SignalQuality
from .windowing import WEEK_SECONDS

# Component maxima
ACTIVITY_WEIGHT = 30
CHANNEL_WEIGHT = 30
SIGNAL_WEIGHT = 40

# Used when a component has no data to judge
NEUTRAL_CHANNEL_SCORE = 15
NEUTRAL_SIGNAL_SCORE = 20

SIGNAL_WEIGHTS = {
    SignalQuality.EXCELLENT: 40,
    SignalQuality.GOOD: 30,
    SignalQuality.FAIR: 15,
}

# (seconds since heard, score) - first bound that is not reached wins
RECENCY_STEPS = (
    (300, 100),  # 5 minutes
    (900, 80),  # 15 minutes
    (3_600, 60),  # 1 hour
    (86_400, 40),  # 1 day
)
STALE_RECENCY_SCORE = 20

RECENCY_WEIGHT = 0.6
UPTIME_WEIGHT = 0.4


def _channel_score(avg_channel_util: Optional[float]) -> int:
    if avg_channel_util is None:
        return NEUTRAL_CHANNEL_SCORE
    if avg_channel_util < 25:
        return 30
    if avg_channel_util < 50:
        return 20
    if avg_channel_util < 75:
        return 10
    return 0


def _signal_score(signal_distribution: Mapping[Union[SignalQuality, str], int]) -> int:
    # Accept either SignalQuality members or their string values as keys
    counts: Dict[str, int] = {}
    for key, count in signal_distribution.items():
        label = key.value if isinstance(key, SignalQuality) else key
        counts[label] = counts.get(label, 0) + count

    total = sum(counts.values())
    if total <= 0:
        return NEUTRAL_SIGNAL_SCORE
    weighted = sum(weight * counts.get(quality.value, 0) / total for quality, weight in SIGNAL_WEIGHTS.items())
    return int(round_half_away(weighted))


def health_score(
    total_nodes: int,
    nodes_24h: int,
    avg_channel_util: Optional[float],
    signal_distribution: Mapping[Union[SignalQuality, str], int],
) -> int:
    """Overall network health score from 0 to 100.

    An empty network scores 0 rather than dividing by zero.
    """
    if total_nodes <= 0:
        return 0

    activity = int(round_half_away(ACTIVITY_WEIGHT * nodes_24h / total_nodes))
    score = activity + _channel_score(avg_channel_util) + _signal_score(signal_distribution)
    return max(0, min(score, 100))


def recency_score(seconds_since_heard: int) -> int:
    """Stepped score for how recently a node was heard."""
    for bound, score in RECENCY_STEPS:
        if seconds_since_heard < bound:
            return score
    return STALE_RECENCY_SCORE


def connection_stability(uptime_percentage: float, recency: int) -> ConnectionStability:
    if uptime_percentage >= 90 and recency >= 80:
        return ConnectionStability.EXCELLENT
    if uptime_percentage >= 70 and recency >= 60:
        return ConnectionStability.GOOD
    if uptime_percentage >= 50 and recency >= 40:
        return ConnectionStability.FAIR
    return ConnectionStability.POOR


def reliability_metrics(
    first_heard: Optional[int],
    last_heard: Optional[int],
    uptime_seconds: Optional[int],
    now: int,
    week_seconds: int = WEEK_SECONDS,
) -> ReliabilityMetrics:
    """Reliability score, uptime percentage and stability for one node.

    When the device reports no uptime, the percentage is estimated as the
    observed span (last_heard - first_heard) over the observation window.
    That estimate approaches 100% for any node seen recently and says
    nothing about gaps in between.
    """
    if first_heard is None or last_heard is None:
        return ReliabilityMetrics(score=0, uptime_percentage=0.0, stability=ConnectionStability.UNKNOWN)

    observation_window = now - first_heard
    if observation_window <= 0:
        return ReliabilityMetrics(score=0, uptime_percentage=0.0, stability=ConnectionStability.NEW)

    recency = recency_score(now - last_heard)

    if uptime_seconds is not None and uptime_seconds > 0:
        effective_window = min(observation_window, week_seconds)
        uptime_percentage = min(uptime_seconds / effective_window * 100, 100.0)
    else:
        uptime_percentage = min((last_heard - first_heard) / observation_window * 100, 100.0)
    # A last_heard earlier than first_heard would go negative
    uptime_percentage = max(uptime_percentage, 0.0)

    score = int(round_half_away(recency * RECENCY_WEIGHT + uptime_percentage * UPTIME_WEIGHT))
    return ReliabilityMetrics(
        score=max(0, min(score, 100)),
        uptime_percentage=round_half_away(uptime_percentage, 2),
        stability=connection_stability(uptime_percentage, recency),
    )
