#!/usr/bin/env python3
"""
MeshForge Network Health terminal report.
Renders the four dashboard views (summary, signal quality, congestion,
reliability) with Rich, once or continuously with --watch.
"""

import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from rich import box  # noqa: E402
from rich.console import Console, Group  # noqa: E402
from rich.live import Live  # noqa: E402
from rich.panel import Panel  # noqa: E402
from rich.table import Table  # noqa: E402

from meshforge_health import __version__ as VERSION  # noqa: E402
from meshforge_health.core import (  # noqa: E402
    Config,
    CongestionHistory,
    HealthSummary,
    NetworkHealthQueries,
    ReliabilityRecord,
    SignalQualityRecord,
    SQLiteTelemetryStore,
    seed_demo_data,
)
from meshforge_health.core.windowing import DEFAULT_TIME_RANGE, TIME_RANGES  # noqa: E402
from meshforge_health.tui.helpers import (  # noqa: E402
    CONGESTION_COLORS,
    QUALITY_COLORS,
    STABILITY_COLORS,
    format_number,
    format_percent,
    format_score,
    styled,
)

logger = logging.getLogger(__name__)

# Rows shown per table; the JSON output is never truncated
MAX_TABLE_ROWS = 20


class HealthReport:
    """Builds Rich renderables for the network health views."""

    def __init__(self, queries: NetworkHealthQueries, console: Optional[Console] = None):
        self.queries = queries
        self.console = console or Console()

    def summary_panel(self, summary: HealthSummary) -> Panel:
        data = summary.to_dict()
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Label", style="cyan")
        table.add_column("Value", style="white bold")

        active = data["active_nodes"]
        channel = data["channel_metrics"]
        table.add_row("Health score", format_score(summary.health_score))
        table.add_row("Active nodes", f"{active['last_1h']} (1h) / {active['last_24h']} (24h) / {active['total']} (7d)")
        table.add_row("Channel util", format_percent(channel["avg_utilization"]))
        table.add_row("Air util TX", format_percent(channel["avg_air_util_tx"]))
        table.add_row(
            "Signal mix",
            "  ".join(f"{styled(k, QUALITY_COLORS)} {v}" for k, v in data["signal_distribution"].items()),
        )
        return Panel(
            table,
            title="[bold]Network Health[/bold]",
            subtitle=f"[dim]{data['timestamp_iso']}[/dim]",
            border_style="blue",
        )

    def signal_table(self, records: List[SignalQualityRecord]) -> Table:
        table = Table(show_header=True, header_style="bold cyan", box=box.SIMPLE, expand=True, title="Signal Quality")
        table.add_column("Node", style="white", no_wrap=True)
        table.add_column("SNR", justify="right")
        table.add_column("RSSI", justify="right")
        table.add_column("ChUtil", justify="right")
        table.add_column("Quality")

        for record in records[:MAX_TABLE_ROWS]:
            node = record.node
            table.add_row(
                node.long_name or node.short_name or node.node_id,
                format_number(node.snr, unit="dB"),
                format_number(record.rssi, unit="dBm"),
                format_percent(record.telemetry.channel_utilization if record.telemetry else None),
                styled(record.quality.value, QUALITY_COLORS),
            )
        return table

    def congestion_table(self, history: CongestionHistory) -> Table:
        current = history.current.to_dict()
        table = Table(
            show_header=True,
            header_style="bold cyan",
            box=box.SIMPLE,
            expand=True,
            title=f"Congestion ({history.time_range}) - now "
            f"{format_percent(current['channel_utilization'])} "
            f"{styled(current['congestion_level'], CONGESTION_COLORS)}",
        )
        table.add_column("Bucket", style="dim")
        table.add_column("Samples", justify="right")
        table.add_column("Avg ChUtil", justify="right")
        table.add_column("Max ChUtil", justify="right")
        table.add_column("Avg AirTX", justify="right")

        # Most recent buckets are the interesting ones
        for bucket in history.buckets[-MAX_TABLE_ROWS:]:
            row = bucket.to_dict()
            table.add_row(
                row["timestamp_iso"],
                str(row["sample_count"]),
                format_percent(row["avg_channel_utilization"]),
                format_percent(row["max_channel_utilization"]),
                format_percent(row["avg_air_util_tx"]),
            )
        return table

    def reliability_table(self, records: List[ReliabilityRecord]) -> Table:
        table = Table(show_header=True, header_style="bold cyan", box=box.SIMPLE, expand=True, title="Reliability")
        table.add_column("#", style="dim", width=4)
        table.add_column("Node", style="white", no_wrap=True)
        table.add_column("Role", style="blue")
        table.add_column("Score", justify="right")
        table.add_column("Uptime", justify="right")
        table.add_column("Stability")

        for idx, record in enumerate(records[:MAX_TABLE_ROWS], 1):
            node = record.node
            table.add_row(
                str(idx),
                node.long_name or node.short_name or node.node_id,
                node.role,
                format_score(record.reliability_score),
                format_percent(record.metrics.uptime_percentage),
                styled(record.metrics.stability.value, STABILITY_COLORS),
            )
        return table

    def render(self, time_range: str = DEFAULT_TIME_RANGE, limit: int = 50, now: Optional[int] = None) -> Group:
        """Render every view for a single `now`."""
        now = int(time.time()) if now is None else now
        return Group(
            self.summary_panel(self.queries.network_health_summary(now=now)),
            self.signal_table(self.queries.signal_quality(now=now)),
            self.congestion_table(self.queries.congestion_history(time_range, now=now)),
            self.reliability_table(self.queries.node_reliability(limit, now=now)),
        )

    def as_json(self, time_range: str = DEFAULT_TIME_RANGE, limit: int = 50, now: Optional[int] = None) -> dict:
        """All four API payloads in one document."""
        now = int(time.time()) if now is None else now
        return {
            "network_health": self.queries.network_health_summary(now=now).to_dict(),
            "signal_quality": [r.to_dict() for r in self.queries.signal_quality(now=now)],
            "congestion": self.queries.congestion_history(time_range, now=now).to_dict(),
            "reliability": [r.to_dict() for r in self.queries.node_reliability(limit, now=now)],
        }

    def watch(self, time_range: str = DEFAULT_TIME_RANGE, limit: int = 50, refresh: float = 5.0) -> None:
        """Re-render the report until interrupted."""
        with Live(self.render(time_range, limit), console=self.console, refresh_per_second=1, screen=False) as live:
            try:
                while True:
                    time.sleep(refresh)
                    live.update(self.render(time_range, limit))
            except KeyboardInterrupt:
                pass


def main():
    """Main entry point for the terminal report."""
    import argparse

    parser = argparse.ArgumentParser(description="MeshForge Network Health report")
    parser.add_argument("--config", type=str, help="Path to config file")
    parser.add_argument("--db", type=str, help="Path to telemetry database")
    parser.add_argument("--demo", action="store_true", help="Report on generated demo data")
    parser.add_argument("--time-range", choices=sorted(TIME_RANGES), default=DEFAULT_TIME_RANGE)
    parser.add_argument("--limit", type=int, help="Reliability rows to fetch (max 100)")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of tables")
    parser.add_argument("--watch", type=float, metavar="SECONDS", help="Refresh continuously")
    args = parser.parse_args()

    config = Config(args.config) if args.config else Config()
    if args.db:
        config.database.path = args.db
    logging.basicConfig(level=config.logging.numeric_level, format="%(levelname)s %(name)s: %(message)s")

    if args.demo:
        store = SQLiteTelemetryStore(":memory:")
        seed_demo_data(store, now=int(time.time()))
    else:
        store = SQLiteTelemetryStore(config.get_database_path())

    metrics = config.metrics
    queries = NetworkHealthQueries(
        store,
        week_seconds=metrics.week_seconds,
        signal_quality_limit=metrics.signal_quality_limit,
        max_buckets=metrics.max_buckets,
        max_reliability_limit=metrics.max_limit,
    )
    limit = args.limit if args.limit is not None else metrics.default_limit
    report = HealthReport(queries)

    with store:
        if args.json:
            print(json.dumps(report.as_json(args.time_range, limit), indent=2))
        elif args.watch:
            report.watch(args.time_range, limit, refresh=args.watch)
        else:
            report.console.print(f"[bold cyan]MeshForge Network Health v{VERSION}[/bold cyan]  "
                                 f"[dim]{datetime.now().strftime('%H:%M:%S')}[/dim]")
            report.console.print(report.render(args.time_range, limit))


if __name__ == "__main__":
    main()
