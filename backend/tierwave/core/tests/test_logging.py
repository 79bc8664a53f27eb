"""Tests for contextual logging rendered through structlog."""

import io
import json
import logging

import pytest

from tierwave.core.logging import ContextualLogger, build_formatter


@pytest.fixture
def captured():
    """A private logger whose single handler writes into a buffer."""
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    base = logging.getLogger("tierwave.tests.logging")
    base.handlers = [handler]
    base.propagate = False
    base.setLevel(logging.INFO)
    yield base, handler, stream
    base.handlers = []


def test_json_line_carries_dimensions(captured):
    base, handler, stream = captured
    handler.setFormatter(build_formatter(json_output=True))
    log = ContextualLogger(base, {"environment": "test"}).with_context(user_id="u-1")

    log.info("Trial started")

    line = json.loads(stream.getvalue().strip())
    assert line["event"] == "Trial started"
    assert line["level"] == "info"
    assert line["logger"] == "tierwave.tests.logging"
    assert line["environment"] == "test"
    assert line["user_id"] == "u-1"
    assert "timestamp" in line


def test_with_context_does_not_leak_into_parent(captured):
    base, handler, stream = captured
    handler.setFormatter(build_formatter(json_output=True))
    parent = ContextualLogger(base, {"environment": "test"})
    parent.with_context(stripe_event_id="evt_1")

    parent.warning("Unhandled event")

    line = json.loads(stream.getvalue().strip())
    assert "stripe_event_id" not in line
    assert line["level"] == "warning"


def test_console_output_is_not_json(captured):
    base, handler, stream = captured
    handler.setFormatter(build_formatter(json_output=False))

    ContextualLogger(base).with_context(user_id="u-2").info("Cancel requested")

    out = stream.getvalue()
    assert "Cancel requested" in out
    assert "user_id" in out and "u-2" in out
    assert not out.lstrip().startswith("{")
