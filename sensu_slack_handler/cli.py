"""
Sensu Slack Handler CLI.

Reads a Sensu event as JSON from stdin and posts it to Slack. Options
may also be given through environment variables, a YAML configuration
file or per-event annotations (see ``sensu_slack_handler.config``).
"""

import argparse
import os
import sys
from collections.abc import Mapping, Sequence
from typing import BinaryIO

from sensu_slack_handler.config import (
    CONFIG_OPTIONS,
    DEFAULT_CHANNEL,
    DEFAULT_ICON_URL,
    DEFAULT_USERNAME,
    load_config,
)
from sensu_slack_handler.core import HandlerError, parse_event
from sensu_slack_handler.handler import SlackHandler
from sensu_slack_handler.logging_config import get_logger, setup_logging
from sensu_slack_handler.slack import encode_payload

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="sensu-slack-handler",
        description="The Sensu Go Slack handler for notifying a channel"
    )
    parser.add_argument(
        "-s", "--ui-url",
        help="The Sensu UI URL (env: SENSU_UI_URL)"
    )
    parser.add_argument(
        "-w", "--webhook-url",
        help="The webhook url to send messages to (env: SLACK_WEBHOOK_URL)"
    )
    parser.add_argument(
        "-c", "--channel",
        help=f"The channel to post messages to (default: {DEFAULT_CHANNEL})"
    )
    parser.add_argument(
        "-u", "--username",
        help=f"The username that messages will be sent as (default: {DEFAULT_USERNAME})"
    )
    parser.add_argument(
        "-i", "--icon-url",
        help=f"A URL to an image to use as the user avatar (default: {DEFAULT_ICON_URL})"
    )
    parser.add_argument(
        "-t", "--description-template",
        help="The Slack notification output template, in Jinja2 format"
    )
    parser.add_argument(
        "-a", "--alert-on-critical",
        action="store_const",
        const=True,
        default=None,
        help="The Slack notification will alert the channel with @channel"
    )
    parser.add_argument(
        "--config",
        help="Optional YAML file with option values"
    )
    parser.add_argument(
        "--log-file",
        help="Also write logs to this file, rotated at 10MB"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: INFO)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the webhook payload instead of sending it"
    )
    return parser


def main(
    argv: Sequence[str] | None = None,
    stdin: BinaryIO | None = None,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, log_file=args.log_file)

    stdin = sys.stdin.buffer if stdin is None else stdin
    environ = os.environ if environ is None else environ

    options = vars(args)
    arguments = {opt.name: options[opt.field] for opt in CONFIG_OPTIONS}

    try:
        event = parse_event(stdin.read())
        config = load_config(arguments, environ, args.config)

        handler = SlackHandler(config, environ)
        handler.validate(event)

        if args.dry_run:
            print(encode_payload(handler.build_message(event)).decode("utf-8"))
            return 0

        handler.execute(event)
        return 0
    except HandlerError as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.debug("Handler failed", exc_info=True)
        return 1


if __name__ == '__main__':
    sys.exit(main())
