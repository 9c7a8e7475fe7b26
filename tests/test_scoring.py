"""
Unit tests for meshforge_health.core.scoring
"""

import itertools
import sys
import unittest

sys.path.insert(0, str(__file__).rsplit("/tests/", 1)[0])

from meshforge_health.core.models import ConnectionStability, SignalQuality  # noqa: E402
from meshforge_health.core.scoring import (  # noqa: E402
    connection_stability,
    health_score,
    recency_score,
    reliability_metrics,
)

NOW = 1_700_000_000
DAY = 86_400
WEEK = 7 * DAY


def _dist(excellent=0, good=0, fair=0, poor=0, unknown=0):
    return {"excellent": excellent, "good": good, "fair": fair, "poor": poor, "unknown": unknown}


class TestHealthScore(unittest.TestCase):
    """Test the composite network health score."""

    def test_zero_nodes_scores_zero(self):
        self.assertEqual(health_score(0, 0, None, {}), 0)
        self.assertEqual(health_score(0, 10, 5.0, _dist(excellent=10)), 0)

    def test_healthy_network(self):
        score = health_score(100, 95, 15.0, _dist(60, 30, 8, 2, 0))
        self.assertGreaterEqual(score, 70)
        # 29 activity (28.5 rounds up) + 30 channel + 34 signal
        self.assertEqual(score, 93)

    def test_congested_network(self):
        score = health_score(100, 50, 80.0, _dist(10, 20, 30, 40, 0))
        self.assertLess(score, 50)
        # 15 activity + 0 channel + 15 signal (14.5 rounds up)
        self.assertEqual(score, 30)

    def test_enum_keyed_distribution(self):
        dist = {
            SignalQuality.EXCELLENT: 60,
            SignalQuality.GOOD: 30,
            SignalQuality.FAIR: 8,
            SignalQuality.POOR: 2,
            SignalQuality.UNKNOWN: 0,
        }
        self.assertEqual(health_score(100, 95, 15.0, dist), 93)
        self.assertEqual(health_score(100, 95, 15.0, dist), health_score(100, 95, 15.0, _dist(60, 30, 8, 2, 0)))

    def test_mixed_keys_are_merged(self):
        dist = {SignalQuality.EXCELLENT: 1, "excellent": 1, "poor": 2}
        # 40 * 2/4 with no activity and a saturated channel
        self.assertEqual(health_score(1, 0, 80.0, dist), 20)

    def test_missing_data_is_neutral(self):
        # 30 activity + 15 neutral channel + 20 neutral signal
        self.assertEqual(health_score(10, 10, None, {}), 65)
        self.assertEqual(health_score(10, 10, None, _dist()), 65)

    def test_missing_channel_utilization(self):
        score = health_score(50, 40, None, _dist(25, 15, 5, 5, 0))
        self.assertGreaterEqual(score, 0)
        self.assertLessEqual(score, 100)

    def test_channel_component_steps(self):
        # With no activity and neutral signal only the channel part varies
        cases = [(0.0, 30), (24.99, 30), (25.0, 20), (49.9, 20), (50.0, 10), (74.9, 10), (75.0, 0), (100.0, 0)]
        for util, channel in cases:
            self.assertEqual(health_score(1, 0, util, {}), channel + 20, util)

    def test_poor_and_unknown_contribute_nothing(self):
        self.assertEqual(health_score(1, 0, 80.0, _dist(poor=5, unknown=5)), 0)

    def test_missing_distribution_keys(self):
        self.assertEqual(health_score(1, 0, 80.0, {"excellent": 2}), 40)

    def test_bounded(self):
        utils = [None, 0.0, 30.0, 60.0, 90.0]
        dists = [{}, _dist(excellent=5), _dist(good=1, poor=3), _dist(1, 1, 1, 1, 1)]
        for total, active, util, dist in itertools.product([1, 3, 100], [0, 1, 3, 100], utils, dists):
            score = health_score(total, min(active, total), util, dist)
            self.assertGreaterEqual(score, 0)
            self.assertLessEqual(score, 100)


class TestRecencyScore(unittest.TestCase):
    """Stepped recency of last contact."""

    def test_steps(self):
        cases = [
            (0, 100), (299, 100), (300, 80), (899, 80), (900, 60),
            (3_599, 60), (3_600, 40), (86_399, 40), (86_400, 20), (10 * DAY, 20),
        ]
        for seconds, expected in cases:
            self.assertEqual(recency_score(seconds), expected, seconds)


class TestConnectionStability(unittest.TestCase):

    def test_categories(self):
        self.assertEqual(connection_stability(95.0, 100), ConnectionStability.EXCELLENT)
        self.assertEqual(connection_stability(95.0, 60), ConnectionStability.GOOD)
        self.assertEqual(connection_stability(70.0, 60), ConnectionStability.GOOD)
        self.assertEqual(connection_stability(50.0, 40), ConnectionStability.FAIR)
        self.assertEqual(connection_stability(100.0, 20), ConnectionStability.POOR)
        self.assertEqual(connection_stability(49.9, 100), ConnectionStability.POOR)


class TestReliabilityMetrics(unittest.TestCase):
    """Test per-node reliability scoring."""

    def test_missing_timestamps(self):
        result = reliability_metrics(None, None, None, NOW)
        self.assertEqual(result.score, 0)
        self.assertEqual(result.uptime_percentage, 0.0)
        self.assertEqual(result.stability, ConnectionStability.UNKNOWN)

    def test_missing_first_heard_only(self):
        result = reliability_metrics(None, NOW - 10, 500, NOW)
        self.assertEqual(result.score, 0)
        self.assertEqual(result.stability, ConnectionStability.UNKNOWN)

    def test_new_node(self):
        result = reliability_metrics(NOW, NOW, None, NOW)
        self.assertEqual(result.stability, ConnectionStability.NEW)
        self.assertEqual(result.score, 0)
        self.assertEqual(result.uptime_percentage, 0.0)

    def test_first_heard_in_future_is_new(self):
        result = reliability_metrics(NOW + 60, NOW + 60, 100, NOW)
        self.assertEqual(result.stability, ConnectionStability.NEW)

    def test_recently_active_node(self):
        result = reliability_metrics(NOW - WEEK, NOW - 60, 6 * DAY, NOW)
        # recency 100, uptime 6/7 = 85.71%
        self.assertEqual(result.uptime_percentage, 85.71)
        self.assertEqual(result.score, 94)
        self.assertEqual(result.stability, ConnectionStability.GOOD)

    def test_node_not_recently_heard(self):
        result = reliability_metrics(NOW - WEEK, NOW - 2 * DAY, None, NOW)
        self.assertLess(result.score, 80)
        # recency 20, estimated uptime 5/7 = 71.43%
        self.assertEqual(result.score, 41)
        self.assertEqual(result.stability, ConnectionStability.POOR)

    def test_uptime_window_capped_at_one_week(self):
        result = reliability_metrics(NOW - 30 * DAY, NOW - 10, WEEK, NOW)
        self.assertEqual(result.uptime_percentage, 100.0)
        self.assertEqual(result.score, 100)
        self.assertEqual(result.stability, ConnectionStability.EXCELLENT)

    def test_custom_week_length(self):
        result = reliability_metrics(NOW - 30 * DAY, NOW - 10, DAY, NOW, week_seconds=2 * DAY)
        self.assertEqual(result.uptime_percentage, 50.0)

    def test_uptime_percentage_capped_at_100(self):
        result = reliability_metrics(NOW - 100, NOW, 10_000, NOW)
        self.assertEqual(result.uptime_percentage, 100.0)

    def test_zero_uptime_uses_estimate(self):
        result = reliability_metrics(NOW - 1_000, NOW - 500, 0, NOW)
        # recency 80, estimated 500/1000 = 50%
        self.assertEqual(result.uptime_percentage, 50.0)
        self.assertEqual(result.score, 68)
        self.assertEqual(result.stability, ConnectionStability.FAIR)

    def test_estimate_approaches_full_for_continuous_contact(self):
        result = reliability_metrics(NOW - 1_000, NOW - 10, None, NOW)
        self.assertEqual(result.uptime_percentage, 99.0)
        self.assertEqual(result.score, 100)
        self.assertEqual(result.stability, ConnectionStability.EXCELLENT)

    def test_score_bounded(self):
        for first_ago in (1, 60, DAY, WEEK, 60 * DAY):
            for heard_ago in (0, 30, 1_000, 5 * DAY):
                for uptime in (None, 0, 1, DAY, 100 * DAY):
                    result = reliability_metrics(NOW - first_ago, NOW - min(heard_ago, first_ago), uptime, NOW)
                    self.assertGreaterEqual(result.score, 0)
                    self.assertLessEqual(result.score, 100)
                    self.assertGreaterEqual(result.uptime_percentage, 0.0)
                    self.assertLessEqual(result.uptime_percentage, 100.0)
