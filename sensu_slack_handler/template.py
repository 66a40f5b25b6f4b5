"""
Description template rendering.

Templates are Jinja2 source evaluated against a fixed context:

- ``event``: the whole Event
- ``entity``: shortcut for ``event.entity``
- ``check``: shortcut for ``event.check``
- ``timestamp``: ``event.timestamp`` (Unix seconds)

Filters: ``unix_time``, ``status_label`` and ``uuid_from_bytes``.
Globals: ``hostname()``.

Undefined names are errors rather than blanks. A failed render is logged
and yields an empty description so the notification still goes out.
"""

import socket
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any

from jinja2 import Environment, StrictUndefined, Template

from sensu_slack_handler.core import Event
from sensu_slack_handler.formatter import status_label
from sensu_slack_handler.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TEMPLATE = (
    '{% if check.status == 0 %}:white_check_mark:'
    '{% elif check.occurrences == 1 %}:warning:'
    '{% else %}:repeat:{% endif %}'
    ' *{{ check.status | status_label }}*'
    ' *<{{ check.annotations.get("runbook_url") or "https://sensu.io" }}|{{ check.name }}>*'
    ' on {{ entity.name }}'
    r'\n_{{ timestamp | unix_time }}_'
    r'\n{{ check.output }}'
)

ESCAPED_NEWLINE = "\\n"


@dataclass(frozen=True)
class RenderResult:
    """Outcome of rendering a description template."""
    text: str
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def unix_time(timestamp: int) -> str:
    """Format Unix seconds as ``YYYY-MM-DD HH:MM:SS +0000 UTC``."""
    moment = datetime.fromtimestamp(int(timestamp), tz=UTC)
    return moment.strftime("%Y-%m-%d %H:%M:%S +0000 UTC")


def uuid_from_bytes(value: Any) -> str:
    """Render a 16-byte identifier (bytes, list of ints or UUID text) as a UUID."""
    if isinstance(value, str):
        return str(uuid.UUID(value))
    return str(uuid.UUID(bytes=bytes(value)))


def hostname() -> str:
    """Name of the host the handler runs on."""
    return socket.gethostname()


def _create_environment() -> Environment:
    env = Environment(autoescape=False, undefined=StrictUndefined)
    env.filters["unix_time"] = unix_time
    env.filters["status_label"] = status_label
    env.filters["uuid_from_bytes"] = uuid_from_bytes
    env.globals["hostname"] = hostname
    return env


_environment = _create_environment()


@lru_cache(maxsize=16)
def compile_template(source: str) -> Template:
    """
    Compile template source once per process.

    Raises:
        jinja2.TemplateSyntaxError: If the source is malformed
    """
    return _environment.from_string(source)


def template_context(event: Event) -> dict[str, Any]:
    """Names a description template can refer to."""
    return {
        "event": event,
        "entity": event.entity,
        "check": event.check,
        "timestamp": event.timestamp,
    }


def render_description(source: str, event: Event) -> RenderResult:
    """
    Render a description template for an event.

    Literal ``\\n`` sequences in the output are turned into real newlines
    so templates supplied through flags or environment variables can
    span several lines.

    Args:
        source: Jinja2 template source
        event: Event to render

    Returns:
        RenderResult with the rendered text, or empty text and the error
    """
    try:
        text = compile_template(source).render(template_context(event))
    except Exception as e:  # user templates can fail in arbitrary ways
        logger.error("Error processing description template: %s", e)
        return RenderResult(text="", error=e)

    return RenderResult(text=text.replace(ESCAPED_NEWLINE, "\n"))
