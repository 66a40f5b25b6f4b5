"""
Slack message assembly and webhook delivery.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any

import requests

from sensu_slack_handler.config import HandlerConfig
from sensu_slack_handler.core import Event, HandlerError
from sensu_slack_handler.formatter import color, deep_link, event_key, fallback_message
from sensu_slack_handler.logging_config import get_logger
from sensu_slack_handler.template import render_description

logger = get_logger(__name__)

VIEW_BUTTON_TEXT = "View in Sensu"

# Characters Slack's reference encoder escapes inside JSON strings
_JSON_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}

# Unpaired surrogates survive JSON decoding but cannot be encoded as UTF-8
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")
REPLACEMENT_CHARACTER = "\ufffd"


class DeliveryError(HandlerError):
    """Raised when the webhook POST fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass
class AttachmentAction:
    """A button attached to a message."""
    text: str
    url: str
    type: str = "button"
    name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "text": self.text,
            "type": self.type,
            "url": self.url,
        }


@dataclass
class Attachment:
    """Rich content block of a Slack message."""
    text: str
    fallback: str
    color: str
    actions: list[AttachmentAction] = field(default_factory=list)
    mrkdwn_in: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "color": self.color,
            "fallback": self.fallback,
            "text": self.text,
        }
        if self.actions:
            payload["actions"] = [a.to_dict() for a in self.actions]
        if self.mrkdwn_in:
            payload["mrkdwn_in"] = list(self.mrkdwn_in)
        payload["blocks"] = None
        return payload


@dataclass
class WebhookMessage:
    """Body of an incoming-webhook request."""
    channel: str
    username: str
    icon_url: str
    attachments: list[Attachment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        # Empty strings are omitted, matching Slack's own client
        if self.username:
            payload["username"] = self.username
        if self.icon_url:
            payload["icon_url"] = self.icon_url
        if self.channel:
            payload["channel"] = self.channel
        if self.attachments:
            payload["attachments"] = [a.to_dict() for a in self.attachments]
        payload["replace_original"] = False
        payload["delete_original"] = False
        return payload


def message_attachment(event: Event, config: HandlerConfig) -> Attachment:
    """Build the single attachment describing an event."""
    description = render_description(config.description_template, event)
    if not description.ok:
        logger.warning("Sending %s without a description", event_key(event))

    return Attachment(
        text=description.text,
        fallback=fallback_message(event),
        color=color(event),
        mrkdwn_in=["text"],
        actions=[
            AttachmentAction(
                text=VIEW_BUTTON_TEXT,
                url=deep_link(event, config.ui_url),
            ),
        ],
    )


def webhook_message(event: Event, config: HandlerConfig) -> WebhookMessage:
    """Build the complete webhook message for an event."""
    return WebhookMessage(
        channel=config.channel,
        username=config.username,
        icon_url=config.icon_url,
        attachments=[message_attachment(event, config)],
    )


def encode_payload(message: WebhookMessage) -> bytes:
    """
    Serialize a message to compact JSON.

    HTML-significant characters are written as unicode escapes so the
    body is byte-compatible with payloads produced by Slack's Go client.
    Invalid text (unpaired surrogates) is replaced with U+FFFD.
    """
    encoded = json.dumps(message.to_dict(), separators=(",", ":"), ensure_ascii=False)
    encoded = _LONE_SURROGATE.sub(REPLACEMENT_CHARACTER, encoded)
    for char, escape in _JSON_HTML_ESCAPES.items():
        encoded = encoded.replace(char, escape)
    return encoded.encode("utf-8")


def post_webhook(url: str, message: WebhookMessage) -> None:
    """
    POST a message to a Slack incoming webhook.

    A single attempt is made with no retry.

    Args:
        url: Incoming webhook URL
        message: Message to deliver

    Raises:
        DeliveryError: If the request fails or Slack does not answer 200 OK
    """
    try:
        response = requests.post(
            url,
            data=encode_payload(message),
            headers={"Content-Type": "application/json"},
        )
    except requests.RequestException as e:
        raise DeliveryError(f"Failed to send Slack message: {e}") from e

    if response.status_code != requests.codes.ok:
        raise DeliveryError(
            f"Failed to send Slack message: slack server error: {response.status_code}"
            f" {response.reason}",
            status_code=response.status_code,
            body=response.text,
        )

    logger.info("Notification sent to Slack channel %s", message.channel)
