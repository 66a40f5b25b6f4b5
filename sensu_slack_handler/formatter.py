"""
Event formatting helpers.

Pure functions that derive the pieces of a Slack attachment from a
single event: action label, summary, color and a link back to the
Sensu web UI.
"""

from enum import IntEnum

from sensu_slack_handler.core import Event

FALLBACK_SUMMARY_LENGTH = 100
ELLIPSIS = "..."

COLOR_UNKNOWN = "#6600cc"  # Purple


class Status(IntEnum):
    """Sensu check status codes."""
    OK = 0
    WARNING = 1
    CRITICAL = 2

    @classmethod
    def from_code(cls, code: int) -> "Status | None":
        """Map a raw exit code to a Status, or None for anything unrecognized."""
        try:
            return cls(code)
        except ValueError:
            return None


STATUS_COLORS: dict[Status, str] = {
    Status.OK: "#36a64f",        # Green
    Status.WARNING: "#ffcc00",   # Amber
    Status.CRITICAL: "#ff0000",  # Red
}


def status_label(code: int) -> str:
    """Human-readable label for a status code (OK, WARNING, CRITICAL, UNKNOWN)."""
    status = Status.from_code(code)
    if status is None:
        return "UNKNOWN"
    return status.name


def action(event: Event) -> str:
    """Return RESOLVED for a passing check, ALERT for everything else."""
    if Status.from_code(event.check.status) is Status.OK:
        return "RESOLVED"
    return "ALERT"


def trim_line_endings(text: str) -> str:
    """Strip trailing newline and carriage return characters."""
    return text.rstrip("\r\n")


def event_key(event: Event) -> str:
    """Identify an event as ``entity/check``."""
    return f"{event.entity.name}/{event.check.name}"


def summary(event: Event, max_length: int) -> str:
    """
    One-line summary of the check output, prefixed with the event key.

    The length test is made against the raw output while the slice is
    taken from the trimmed output, so output padded with trailing line
    endings may be marked as truncated even when the visible text fits.

    Args:
        event: Event to summarize
        max_length: Number of output characters to keep before truncating

    Returns:
        ``entity/check:output``, with ``...`` appended when truncated
    """
    raw = event.check.output
    output = trim_line_endings(raw)
    if len(raw) > max_length:
        output = output[:max_length] + ELLIPSIS
    return f"{event_key(event)}:{output}"


def color(event: Event) -> str:
    """Attachment color for the event's status."""
    status = Status.from_code(event.check.status)
    if status is None:
        return COLOR_UNKNOWN
    return STATUS_COLORS[status]


def deep_link(event: Event, ui_url: str) -> str:
    """URL of the event's page in the Sensu web UI."""
    return (
        f"{ui_url}/n/{event.entity.namespace}"
        f"/events/{event.entity.name}/{event.check.name}"
    )


def fallback_message(event: Event) -> str:
    """Plain-text message for clients that cannot render attachments."""
    return f"{action(event)} - {summary(event, FALLBACK_SUMMARY_LENGTH)}"
