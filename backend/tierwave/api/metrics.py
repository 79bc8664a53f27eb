"""Prometheus scrape endpoint on an internal port.

The public FastAPI app never serves /metrics; the lifespan starts this
aiohttp server beside it when ``METRICS_ENABLED`` is set.
"""

from typing import Optional

from aiohttp import web

from tierwave.core.logging import logger
from tierwave.core.protocols.metrics import MetricsRenderer


class MetricsServer:
    """Serves ``GET /metrics`` from a MetricsRenderer."""

    def __init__(self, renderer: MetricsRenderer, port: int, host: str = "0.0.0.0") -> None:
        self._renderer = renderer
        self._host = host
        self._port = port
        self._runner: Optional[web.AppRunner] = None

    @property
    def bound_port(self) -> Optional[int]:
        """The port actually listened on (resolves ``port=0``), or None if stopped."""
        if self._runner is None or not self._runner.addresses:
            return None
        return self._runner.addresses[0][1]

    async def start(self) -> None:
        app = web.Application()
        app.router.add_get("/metrics", self._handle_metrics)
        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self._host, self._port)
        await site.start()
        self._runner = runner
        logger.info(f"Serving /metrics on {self._host}:{self.bound_port}")

    async def stop(self) -> None:
        """Shut the server down; a no-op when it was never started."""
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        logger.info("Metrics server stopped")

    async def _handle_metrics(self, request: web.Request) -> web.Response:
        body = self._renderer.generate()
        return web.Response(body=body, content_type=self._renderer.content_type)
