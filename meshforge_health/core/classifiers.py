"""
Classifiers mapping continuous radio measurements to discrete categories.

Signal quality thresholds follow typical Meshtastic LoRa ranges: SNR around
+10 dB is a clean link, below 0 dB the packet is under the noise floor.
"""

from typing import Any, Dict

from .coercion import coerce_float, coerce_integer
from .models import CongestionLevel, SignalQuality

SIGNAL_THRESHOLDS: Dict[SignalQuality, Dict[str, float]] = {
    SignalQuality.EXCELLENT: {"snr_min": 10.0, "rssi_min": -70},
    SignalQuality.GOOD: {"snr_min": 5.0, "rssi_min": -85},
    SignalQuality.FAIR: {"snr_min": 0.0, "rssi_min": -100},
    SignalQuality.POOR: {"snr_min": -10.0, "rssi_min": -120},
}

# Upper bounds (exclusive) for each congestion level, in percent
CONGESTION_LOW_MAX = 25.0
CONGESTION_MODERATE_MAX = 50.0
CONGESTION_HIGH_MAX = 75.0

_RANKED = (SignalQuality.EXCELLENT, SignalQuality.GOOD, SignalQuality.FAIR)


def _classify(value: float, key: str) -> SignalQuality:
    for quality in _RANKED:
        if value >= SIGNAL_THRESHOLDS[quality][key]:
            return quality
    return SignalQuality.POOR


def classify_signal_quality(snr: Any, rssi: Any) -> SignalQuality:
    """Classify a link from its SNR, falling back to RSSI.

    SNR wins whenever it is present. Values below the lowest threshold are
    POOR; UNKNOWN is reserved for the case where neither value exists.
    """
    snr_val = coerce_float(snr)
    if snr_val is not None:
        return _classify(snr_val, "snr_min")

    rssi_val = coerce_integer(rssi)
    if rssi_val is not None:
        return _classify(rssi_val, "rssi_min")

    return SignalQuality.UNKNOWN


def classify_congestion_level(utilization: Any) -> CongestionLevel:
    """Map a channel utilization percentage onto a congestion level.

    Bands are half-open: 25.0 is MODERATE, 75.0 is CRITICAL.
    """
    value = coerce_float(utilization)
    if value is None:
        return CongestionLevel.UNKNOWN
    if value < CONGESTION_LOW_MAX:
        return CongestionLevel.LOW
    if value < CONGESTION_MODERATE_MAX:
        return CongestionLevel.MODERATE
    if value < CONGESTION_HIGH_MAX:
        return CongestionLevel.HIGH
    return CongestionLevel.CRITICAL
