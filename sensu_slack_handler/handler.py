"""
Sensu handler entry points.
"""

import os
from collections.abc import Mapping

from sensu_slack_handler.config import (
    HandlerConfig,
    apply_annotation_overrides,
    apply_deprecated_env,
    check_required,
)
from sensu_slack_handler.core import Event
from sensu_slack_handler.logging_config import get_logger
from sensu_slack_handler.slack import WebhookMessage, post_webhook, webhook_message

logger = get_logger(__name__)


class SlackHandler:
    """
    Posts Sensu events to a Slack channel.

    The harness calls ``validate`` once and, if it succeeds, ``execute``
    for the event. Neither call mutates the configuration it was given;
    each step produces a new HandlerConfig.
    """

    def __init__(
        self,
        config: HandlerConfig,
        environ: Mapping[str, str] | None = None
    ) -> None:
        """
        Initialize the handler.

        Args:
            config: Configuration built from arguments, environment and defaults
            environ: Environment consulted for deprecated variables
                (defaults to os.environ)
        """
        self.config = config
        self.environ = os.environ if environ is None else environ

    def validate(self, event: Event) -> None:
        """
        Check that the handler is configured well enough to run.

        Annotation overrides are applied first, so an event may supply
        a required option such as the UI URL itself.

        Raises:
            ConfigError: If the webhook URL or UI URL is missing, or an
                annotation override holds an invalid value
        """
        config = apply_annotation_overrides(self.config, event)
        config = apply_deprecated_env(config, self.environ)
        check_required(config)
        self.config = config

    def build_message(self, event: Event) -> WebhookMessage:
        """Assemble the message for an event, applying annotation overrides."""
        config = apply_annotation_overrides(self.config, event)
        return webhook_message(event, config)

    def execute(self, event: Event) -> None:
        """
        Deliver the event to Slack.

        Raises:
            ConfigError: If an annotation override holds an invalid value
            DeliveryError: If the webhook POST fails
        """
        message = self.build_message(event)
        logger.debug(
            "Sending event %s/%s to %s",
            event.entity.name,
            event.check.name,
            message.channel
        )
        post_webhook(self.config.webhook_url, message)
