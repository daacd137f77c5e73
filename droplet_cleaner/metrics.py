"""
Prometheus metrics for the cleaner and the HTTP server exposing them.
"""

import logging
import threading
import time
from typing import Iterator, Optional

import uvicorn
from fastapi import FastAPI, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    GCCollector,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from prometheus_client.core import CounterMetricFamily, Metric
from prometheus_client.registry import Collector

from .cleaner import HangingDropletsCleaner
from .version import APP_VERSION, AppVersionInfo, version_collector

logger = logging.getLogger(__name__)

REMOVED_DROPLETS = "hanging_droplets_cleaner_remove_droplets_total"
STOP_DROPLET_ERRORS = "hanging_droplets_cleaner_stop_droplet_errors_total"
REMOVE_DROPLET_ERRORS = "hanging_droplets_cleaner_remove_droplet_errors_total"


class CleanerCollector(Collector):
    """Exposes the cleaner counters, read from a snapshot on every scrape."""

    def __init__(self, cleaner: HangingDropletsCleaner):
        self.cleaner = cleaner

    def describe(self) -> Iterator[Metric]:
        yield CounterMetricFamily(REMOVED_DROPLETS, "Total number of removed droplets")
        yield CounterMetricFamily(STOP_DROPLET_ERRORS, "Total number of droplets stopping errors")
        yield CounterMetricFamily(REMOVE_DROPLET_ERRORS, "Total number of droplets removing errors")

    def collect(self) -> Iterator[Metric]:
        snapshot = self.cleaner.snapshot()
        yield CounterMetricFamily(
            REMOVED_DROPLETS, "Total number of removed droplets", value=snapshot.removed
        )
        yield CounterMetricFamily(
            STOP_DROPLET_ERRORS, "Total number of droplets stopping errors", value=snapshot.stop_errors
        )
        yield CounterMetricFamily(
            REMOVE_DROPLET_ERRORS, "Total number of droplets removing errors", value=snapshot.delete_errors
        )


def build_registry(
    cleaner: HangingDropletsCleaner,
    info: AppVersionInfo = APP_VERSION,
    process_metrics: bool = True,
) -> CollectorRegistry:
    """
    Create a registry with the cleaner, version and runtime collectors.

    Args:
        cleaner: Cleaner whose counters are exported
        info: Version info for the build info gauge
        process_metrics: Also register process, platform and gc collectors

    Returns:
        Populated CollectorRegistry
    """
    registry = CollectorRegistry()
    registry.register(CleanerCollector(cleaner))
    version_collector(info, registry)

    if process_metrics:
        ProcessCollector(registry=registry)
        PlatformCollector(registry=registry)
        GCCollector(registry=registry)

    return registry


def create_metrics_app(registry: CollectorRegistry) -> FastAPI:
    app = FastAPI(
        title="Hanging droplets cleaner",
        version=APP_VERSION.version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {"status": "ok", "version": APP_VERSION.short_line()}

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    return app


class MetricsServer:
    """Serves the metrics app from a daemon thread."""

    def __init__(self, registry: CollectorRegistry, host: str, port: int):
        self.host = host
        self.port = port
        config = uvicorn.Config(
            create_metrics_app(registry),
            host=host,
            port=port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, startup_timeout: float = 5.0) -> None:
        """
        Start serving and wait until uvicorn reports it is listening.

        Raises:
            RuntimeError: If the server thread exits before it started
        """
        if self.running:
            return
        self._thread = threading.Thread(target=self._server.run, name="metrics-server", daemon=True)
        self._thread.start()

        deadline = time.monotonic() + startup_timeout
        while not self._server.started:
            if not self._thread.is_alive():
                raise RuntimeError(f"metrics server on {self.host}:{self.port} exited during startup")
            if time.monotonic() > deadline:
                logger.warning("Metrics server is taking long to start")
                break
            time.sleep(0.05)

        logger.info(f"Metrics server listening at: {self.host}:{self.port}")

    def stop(self, timeout: float = 5.0) -> None:
        if not self.running:
            return
        self._server.should_exit = True
        self._thread.join(timeout)


__all__ = [
    "CleanerCollector",
    "MetricsServer",
    "build_registry",
    "create_metrics_app",
    "REMOVED_DROPLETS",
    "STOP_DROPLET_ERRORS",
    "REMOVE_DROPLET_ERRORS",
]
