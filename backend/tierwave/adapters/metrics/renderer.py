"""Exposition of a CollectorRegistry for the metrics server."""

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from tierwave.core.protocols.metrics import MetricsRenderer


class PrometheusMetricsRenderer(MetricsRenderer):
    """Text exposition of every collector registered on *registry*.

    aiohttp appends its own charset to ``content_type``, so the parameter is
    dropped from prometheus_client's header value here.
    """

    def __init__(self, registry: CollectorRegistry) -> None:
        self._registry = registry
        self._content_type = "; ".join(
            part.strip()
            for part in CONTENT_TYPE_LATEST.split(";")
            if not part.strip().lower().startswith("charset=")
        )

    @property
    def content_type(self) -> str:
        return self._content_type

    def generate(self) -> bytes:
        return generate_latest(self._registry)


class FakeMetricsRenderer(MetricsRenderer):
    """Returns a fixed *body* and counts renders."""

    def __init__(self, body: bytes = b"# fake metrics\n") -> None:
        self.body = body
        self.generate_calls = 0

    @property
    def content_type(self) -> str:
        return "text/plain"

    def generate(self) -> bytes:
        self.generate_calls += 1
        return self.body
