"""Tests for the internal /metrics server."""

import aiohttp
import pytest
from aiohttp.test_utils import make_mocked_request
from prometheus_client import CollectorRegistry

from tierwave.adapters.metrics import (
    FakeMetricsRenderer,
    PrometheusBillingMetrics,
    PrometheusMetricsRenderer,
)
from tierwave.api.metrics import MetricsServer


async def _scrape(port: int) -> tuple[int, str, str]:
    async with aiohttp.ClientSession() as session:
        async with session.get(f"http://127.0.0.1:{port}/metrics") as resp:
            return resp.status, resp.headers["Content-Type"], await resp.text()


@pytest.mark.asyncio
async def test_handler_renders_on_every_request():
    renderer = FakeMetricsRenderer(body=b"# two\n")
    server = MetricsServer(renderer, port=0)

    for _ in range(2):
        response = await server._handle_metrics(make_mocked_request("GET", "/metrics"))

    assert response.body == b"# two\n"
    assert response.content_type == "text/plain"
    assert renderer.generate_calls == 2


@pytest.mark.asyncio
async def test_serves_billing_counters_from_shared_registry():
    registry = CollectorRegistry()
    PrometheusBillingMetrics(registry=registry).inc_cas_conflict()
    server = MetricsServer(PrometheusMetricsRenderer(registry), port=0, host="127.0.0.1")

    await server.start()
    try:
        status, content_type, body = await _scrape(server.bound_port)
    finally:
        await server.stop()

    assert status == 200
    assert content_type.count("charset") == 1
    assert "tierwave_subscription_cas_conflicts_total 1.0" in body
    assert server.bound_port is None


@pytest.mark.asyncio
async def test_stop_before_start_is_a_no_op():
    await MetricsServer(FakeMetricsRenderer(), port=0).stop()


@pytest.mark.asyncio
async def test_bound_port_resolves_ephemeral_port():
    server = MetricsServer(FakeMetricsRenderer(), port=0, host="127.0.0.1")
    assert server.bound_port is None

    await server.start()
    try:
        port = server.bound_port
        assert isinstance(port, int) and port > 0
        status, _, body = await _scrape(port)
    finally:
        await server.stop()

    assert status == 200
    assert body == "# fake metrics\n"
