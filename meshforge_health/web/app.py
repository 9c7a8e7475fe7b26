#!/usr/bin/env python3
"""
MeshForge Network Health Web Application
A FastAPI-based JSON API serving derived mesh health metrics.

Endpoints:
- /api/network-health                 aggregate health summary
- /api/network-health/signal-quality  per-node signal quality for the map
- /api/network-health/congestion      bucketed channel congestion history
- /api/network-health/reliability     node reliability ranking
"""

import logging
import sqlite3
import sys
import time
from collections import defaultdict
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, List, Optional, Tuple

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import uvicorn  # noqa: E402
from fastapi import FastAPI, Query, Request  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from meshforge_health import __version__ as VERSION  # noqa: E402
from meshforge_health.core import (  # noqa: E402
    Config,
    NetworkHealthQueries,
    SQLiteTelemetryStore,
    TelemetrySource,
    seed_demo_data,
)
from meshforge_health.core.windowing import DEFAULT_TIME_RANGE  # noqa: E402

logger = logging.getLogger(__name__)


# ==================== Rate Limiting ====================


class RateLimiter:
    """Sliding-window rate limiter for API endpoints.

    Tracks request timestamps per client IP over a one-minute window.
    """

    def __init__(self, default_rpm: int = 120):
        self.default_rpm = default_rpm
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._window = 60.0  # 1-minute window
        self._last_sweep = time.monotonic()

    def _cleanup(self, ip: str) -> None:
        """Remove expired entries and forget clients with none left."""
        now = time.monotonic()
        cutoff = now - self._window

        # Once per window, drop every client idle for a whole window
        if now - self._last_sweep >= self._window:
            for stale in [k for k, times in self._requests.items() if not times or times[-1] <= cutoff]:
                del self._requests[stale]
            self._last_sweep = now

        recent = [t for t in self._requests.get(ip, ()) if t > cutoff]
        if recent:
            self._requests[ip] = recent
        else:
            self._requests.pop(ip, None)

    def check(self, ip: str) -> Tuple[bool, dict]:
        """Check if request is allowed.

        Returns (allowed, headers) where headers contain rate limit info.
        """
        self._cleanup(ip)

        limit = self.default_rpm
        current = len(self._requests.get(ip, ()))
        remaining = max(0, limit - current)

        headers = {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(int(time.monotonic() + self._window)),
        }

        if current >= limit:
            return False, headers

        self._requests[ip].append(time.monotonic())
        return True, headers


class WebApplication:
    """
    Main web application for MeshForge Network Health.
    Wraps a telemetry store and the health queries behind a REST API.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        store: Optional[TelemetrySource] = None,
        demo_mode: bool = False,
    ):
        self.config = config or Config()
        self.demo_mode = demo_mode
        self._owns_store = store is None

        if store is not None:
            self.store = store
        elif demo_mode:
            self.store = SQLiteTelemetryStore(":memory:")
            seed_demo_data(self.store, now=int(time.time()))
        else:
            self.store = SQLiteTelemetryStore(self.config.get_database_path())

        metrics = self.config.metrics
        self.queries = NetworkHealthQueries(
            self.store,
            week_seconds=metrics.week_seconds,
            signal_quality_limit=metrics.signal_quality_limit,
            max_buckets=metrics.max_buckets,
            max_reliability_limit=metrics.max_limit,
        )

        self.rate_limiter = RateLimiter()
        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            yield
            # Shutdown
            if self._owns_store and hasattr(self.store, "close"):
                self.store.close()

        app = FastAPI(
            title="MeshForge Network Health",
            description="Derived health metrics for Meshtastic mesh networks",
            version=VERSION,
            lifespan=lifespan,
        )

        # ---- Middleware: Security Headers ----
        @app.middleware("http")
        async def security_headers_middleware(request: Request, call_next):
            response = await call_next(request)
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            return response

        # ---- Middleware: Rate Limiting ----
        @app.middleware("http")
        async def rate_limit_middleware(request: Request, call_next):
            client_ip = request.client.host if request.client else "unknown"
            allowed, headers = self.rate_limiter.check(client_ip)
            if not allowed:
                resp = JSONResponse(
                    status_code=429,
                    content={"detail": "Rate limit exceeded. Try again later."},
                )
                for k, v in headers.items():
                    resp.headers[k] = v
                resp.headers["Retry-After"] = "60"
                return resp

            response = await call_next(request)
            for k, v in headers.items():
                response.headers[k] = v
            return response

        # ---- Store failures ----
        @app.exception_handler(sqlite3.Error)
        async def storage_error_handler(request: Request, exc: sqlite3.Error):
            logger.error("Telemetry store error on %s: %s", request.url.path, exc)
            return JSONResponse(
                status_code=503,
                content={"detail": "Telemetry data is temporarily unavailable"},
            )

        app.state.web_app = self
        self._register_routes(app)
        return app

    def _register_routes(self, app: FastAPI):
        """Register all routes."""

        @app.get("/api/status")
        def api_status():
            """Get service status."""
            return {
                "version": VERSION,
                "demo_mode": self.demo_mode,
                "database": getattr(self.store, "path", None),
            }

        @app.get("/api/network-health")
        def api_network_health():
            """Get the aggregated network health summary."""
            return self.queries.network_health_summary().to_dict()

        @app.get("/api/network-health/signal-quality")
        def api_signal_quality():
            """Get signal quality for positioned nodes."""
            return [record.to_dict() for record in self.queries.signal_quality()]

        @app.get("/api/network-health/congestion")
        def api_congestion(time_range: str = Query(DEFAULT_TIME_RANGE, alias="timeRange")):
            """Get channel congestion history for 1h, 24h or 7d."""
            return self.queries.congestion_history(time_range).to_dict()

        @app.get("/api/network-health/reliability")
        def api_reliability(limit: Optional[str] = None):
            """Get node reliability ranking (default 50, at most 100 nodes)."""
            if limit is None:
                limit = self.config.metrics.default_limit
            return [record.to_dict() for record in self.queries.node_reliability(limit)]

    def run(self, host: str = "127.0.0.1", port: int = 8080):
        """Run the web application."""
        uvicorn.run(self.app, host=host, port=port)


def create_app(config: Optional[Config] = None, demo_mode: bool = False) -> FastAPI:
    """Factory function to create the FastAPI app."""
    web_app = WebApplication(config=config, demo_mode=demo_mode)
    return web_app.app


def main():
    """Main entry point for the web application."""
    import argparse

    parser = argparse.ArgumentParser(description="MeshForge Network Health Web API")
    parser.add_argument("--host", type=str, help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to listen on")
    parser.add_argument("--demo", action="store_true", help="Serve generated demo data")
    parser.add_argument("--config", type=str, help="Path to config file")
    parser.add_argument("--db", type=str, help="Path to telemetry database")
    args = parser.parse_args()

    config = Config(args.config) if args.config else Config()
    if args.host:
        config.web.host = args.host
    if args.port:
        config.web.port = args.port
    if args.db:
        config.database.path = args.db

    logging.basicConfig(
        level=logging.DEBUG if config.web.debug else config.logging.numeric_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(
        "Starting MeshForge Network Health v%s on http://%s:%d (demo=%s)",
        VERSION,
        config.web.host,
        config.web.port,
        args.demo,
    )

    web_app = WebApplication(config=config, demo_mode=args.demo)
    web_app.run(host=config.web.host, port=config.web.port)


if __name__ == "__main__":
    main()
