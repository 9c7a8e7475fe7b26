"""Shared formatting helpers for the terminal report.

Keeps category colours and number formatting in one place so every table
uses the same styling.
"""

from typing import Optional

QUALITY_COLORS = {
    "excellent": "green bold",
    "good": "green",
    "fair": "yellow",
    "poor": "red",
    "unknown": "dim",
}

CONGESTION_COLORS = {
    "low": "green",
    "moderate": "yellow",
    "high": "orange1",
    "critical": "red bold",
    "unknown": "dim",
}

STABILITY_COLORS = {
    "excellent": "green bold",
    "good": "green",
    "fair": "yellow",
    "poor": "red",
    "new": "cyan",
    "unknown": "dim",
}


def styled(label: Optional[str], colors: dict) -> str:
    """Wrap a category label in its Rich colour markup."""
    if not label:
        return "-"
    style = colors.get(label, "white")
    return f"[{style}]{label}[/{style}]"


def format_score(score: Optional[int]) -> str:
    """Return a Rich-markup string for a 0-100 score."""
    if score is None:
        return "-"
    if score >= 70:
        style = "green"
    elif score >= 40:
        style = "yellow"
    else:
        style = "red"
    return f"[{style}]{score}[/{style}]"


def format_percent(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"{value:.1f}%"


def format_number(value, precision: int = 1, unit: str = "") -> str:
    """Format an optional number, "-" when missing."""
    if value is None:
        return "-"
    if isinstance(value, int):
        return f"{value}{unit}"
    return f"{value:.{precision}f}{unit}"
