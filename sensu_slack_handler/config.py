"""
Configuration loading and validation for the Slack handler.

Values are layered, highest precedence first:

1. explicit command line argument
2. primary environment variable (``SLACK_WEBHOOK_URL``, ...)
3. optional YAML configuration file
4. compiled default

Per-event overrides may then be supplied through annotations on the
check or entity, and deprecated ``SENSU_SLACK_*`` environment variables
are honoured during validation.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any, NamedTuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from sensu_slack_handler.core import Event, HandlerError
from sensu_slack_handler.logging_config import get_logger
from sensu_slack_handler.template import DEFAULT_TEMPLATE

logger = get_logger(__name__)

DEFAULT_CHANNEL = "#general"
DEFAULT_USERNAME = "sensu"
DEFAULT_ICON_URL = "https://www.sensu.io/img/sensu-logo.png"

ANNOTATION_KEYSPACE = "sensu.io/plugins/slack/config"


class ConfigError(HandlerError):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str, option: str | None = None) -> None:
        super().__init__(message)
        self.option = option


class ConfigOption(NamedTuple):
    """A configurable value and the names it is known by."""
    name: str  # CLI flag, config file key and annotation suffix
    field: str  # HandlerConfig attribute
    env: str
    secret: bool = False


CONFIG_OPTIONS: tuple[ConfigOption, ...] = (
    ConfigOption("ui-url", "ui_url", "SENSU_UI_URL"),
    ConfigOption("webhook-url", "webhook_url", "SLACK_WEBHOOK_URL", secret=True),
    ConfigOption("channel", "channel", "SLACK_CHANNEL"),
    ConfigOption("username", "username", "SLACK_USERNAME"),
    ConfigOption("icon-url", "icon_url", "SLACK_ICON_URL"),
    ConfigOption("description-template", "description_template", "SLACK_DESCRIPTION_TEMPLATE"),
    ConfigOption("alert-on-critical", "alert_on_critical", "SLACK_ALERT_ON_CRITICAL"),
)

# Deprecated variable -> (field, only applied while the field holds this default)
DEPRECATED_ENV: dict[str, tuple[str, str | None]] = {
    "SENSU_SLACK_WEBHOOK_URL": ("webhook_url", None),
    "SENSU_SLACK_CHANNEL": ("channel", DEFAULT_CHANNEL),
    "SENSU_SLACK_USERNAME": ("username", DEFAULT_USERNAME),
    "SENSU_SLACK_ICON_URL": ("icon_url", DEFAULT_ICON_URL),
}


class HandlerConfig(BaseModel):
    """Slack handler configuration. Immutable once built."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    ui_url: str = ""
    webhook_url: str = Field(default="", repr=False)
    channel: str = DEFAULT_CHANNEL
    username: str = DEFAULT_USERNAME
    icon_url: str = DEFAULT_ICON_URL
    description_template: str = DEFAULT_TEMPLATE
    alert_on_critical: bool = False


def _build(values: Mapping[str, Any]) -> HandlerConfig:
    try:
        return HandlerConfig.model_validate(dict(values))
    except ValidationError as e:
        raise ConfigError(f"Configuration validation error: {e}") from e


def _with_updates(config: HandlerConfig, updates: Mapping[str, Any]) -> HandlerConfig:
    # model_copy skips validation, so round-trip through the model instead
    if not updates:
        return config
    return _build({**config.model_dump(), **updates})


def load_config_file(config_path: str | Path) -> dict[str, Any]:
    """
    Load option values from a YAML file.

    Keys are option names as used on the command line, for example::

        webhook-url: https://hooks.slack.com/services/...
        channel: "#ops"

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Mapping of HandlerConfig field name to value

    Raises:
        ConfigError: If the file is missing, unreadable or has unknown keys
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with path.open('r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse configuration file {config_path}: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Configuration file {config_path} must contain a mapping")

    fields = {opt.name: opt.field for opt in CONFIG_OPTIONS}
    unknown = sorted(set(raw_config) - set(fields))
    if unknown:
        raise ConfigError(f"Unknown configuration option(s): {', '.join(unknown)}")

    return {fields[name]: value for name, value in raw_config.items()}


def load_config(
    arguments: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    config_file: str | Path | None = None,
) -> HandlerConfig:
    """
    Build the handler configuration from layered sources.

    Args:
        arguments: Explicit values keyed by option name (``webhook-url``);
            None values are treated as not given
        environ: Environment to read variables from
        config_file: Optional YAML file with option values

    Returns:
        Validated HandlerConfig

    Raises:
        ConfigError: If the file or any value is invalid
    """
    arguments = arguments or {}
    environ = environ or {}
    file_values = load_config_file(config_file) if config_file else {}

    values: dict[str, Any] = {}
    for opt in CONFIG_OPTIONS:
        if arguments.get(opt.name) is not None:
            values[opt.field] = arguments[opt.name]
        elif environ.get(opt.env):
            values[opt.field] = environ[opt.env]
        elif opt.field in file_values:
            values[opt.field] = file_values[opt.field]

    return _build(values)


def apply_deprecated_env(config: HandlerConfig, environ: Mapping[str, str]) -> HandlerConfig:
    """
    Overlay the deprecated ``SENSU_SLACK_*`` environment variables.

    The webhook URL is always replaced when its deprecated variable is
    set; the other fields only while they still hold their default.
    """
    updates: dict[str, Any] = {}
    for env, (field, default) in DEPRECATED_ENV.items():
        value = environ.get(env)
        if not value:
            continue
        if default is not None and getattr(config, field) != default:
            continue
        logger.warning("%s is deprecated, use the replacement option instead", env)
        updates[field] = value

    return _with_updates(config, updates)


def check_required(config: HandlerConfig) -> None:
    """
    Ensure the options without a usable default are set.

    Raises:
        ConfigError: Naming the first missing option
    """
    if not config.webhook_url:
        raise ConfigError(
            "--webhook-url or SLACK_WEBHOOK_URL environment variable is required",
            option="webhook-url",
        )

    if not config.ui_url:
        raise ConfigError(
            "--ui-url or SENSU_UI_URL environment variable is required",
            option="ui-url",
        )


def apply_annotation_overrides(config: HandlerConfig, event: Event) -> HandlerConfig:
    """
    Apply per-event overrides from check and entity annotations.

    An annotation named ``sensu.io/plugins/slack/config/<option>`` replaces
    that option for this event. Check annotations take precedence over
    entity annotations. Secret options cannot be overridden.
    """
    updates: dict[str, Any] = {}
    for opt in CONFIG_OPTIONS:
        if opt.secret:
            continue

        key = f"{ANNOTATION_KEYSPACE}/{opt.name}"
        if event.check.annotations.get(key):
            source, value = "check", event.check.annotations[key]
        elif event.entity.annotations.get(key):
            source, value = "entity", event.entity.annotations[key]
        else:
            continue

        logger.info(
            "Overriding %s with value of %s annotation %s (%r)",
            opt.name,
            source,
            key,
            value
        )
        updates[opt.field] = value

    return _with_updates(config, updates)
