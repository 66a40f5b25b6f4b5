"""
Pytest configuration and fixtures for Slack handler tests.
"""

import http.server
import logging
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

import pytest

from sensu_slack_handler.core import Event
from sensu_slack_handler.logging_config import ROOT_LOGGER_NAME


def _make_event(
    entity: str = "entity1",
    check: str = "check1",
    status: int = 0,
    output: str = "",
    occurrences: int = 1,
    check_annotations: dict[str, str] | None = None,
    entity_annotations: dict[str, str] | None = None,
    namespace: str = "default",
    timestamp: int = 0,
) -> Event:
    """Build a minimal event the way Sensu serializes one."""
    return Event.model_validate({
        "timestamp": timestamp,
        "entity": {
            "entity_class": "host",
            "metadata": {
                "name": entity,
                "namespace": namespace,
                "annotations": entity_annotations,
            },
        },
        "check": {
            "metadata": {
                "name": check,
                "namespace": namespace,
                "annotations": check_annotations,
            },
            "status": status,
            "output": output,
            "occurrences": occurrences,
            "interval": 60,
        },
    })


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Provide the event builder to tests."""
    return _make_event


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Undo setup_logging() so handlers never outlive a captured stream."""
    yield
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.handlers.clear()
    root_logger.propagate = True


@dataclass
class WebhookStub:
    """A local HTTP server standing in for Slack."""
    url: str
    requests: list[dict[str, Any]] = field(default_factory=list)
    status: int = 200
    response_body: bytes = b"ok"


@pytest.fixture
def webhook_stub() -> Iterator[WebhookStub]:
    """Run a webhook endpoint on localhost that records what it receives."""
    stub = WebhookStub(url="")

    class Handler(http.server.BaseHTTPRequestHandler):
        def do_POST(self) -> None:  # noqa: N802
            length = int(self.headers.get("Content-Length", 0))
            stub.requests.append({
                "path": self.path,
                "headers": dict(self.headers),
                "body": self.rfile.read(length),
            })
            self.send_response(stub.status)
            self.send_header("Content-Length", str(len(stub.response_body)))
            self.end_headers()
            self.wfile.write(stub.response_body)

        def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
            pass

    server = http.server.HTTPServer(("127.0.0.1", 0), Handler)
    stub.url = f"http://127.0.0.1:{server.server_port}/services/T000/B000/XXXX"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield stub

    server.shutdown()
    server.server_close()
    thread.join(timeout=5)
