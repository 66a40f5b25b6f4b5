"""
Tests for configuration loading and validation.
"""

from collections.abc import Callable
from pathlib import Path

import pytest
from pydantic import ValidationError

from sensu_slack_handler.config import (
    DEFAULT_CHANNEL,
    DEFAULT_ICON_URL,
    DEFAULT_USERNAME,
    ConfigError,
    HandlerConfig,
    apply_annotation_overrides,
    apply_deprecated_env,
    check_required,
    load_config,
    load_config_file,
)
from sensu_slack_handler.core import Event
from sensu_slack_handler.template import DEFAULT_TEMPLATE

KEYSPACE = "sensu.io/plugins/slack/config"


class TestLoadConfig:
    """Tests for load_config layering."""

    def test_defaults(self) -> None:
        """Test the compiled defaults."""
        config = load_config()

        assert config.channel == DEFAULT_CHANNEL
        assert config.username == DEFAULT_USERNAME
        assert config.icon_url == DEFAULT_ICON_URL
        assert config.description_template == DEFAULT_TEMPLATE
        assert config.alert_on_critical is False
        assert config.webhook_url == ""
        assert config.ui_url == ""

    def test_environment(self) -> None:
        config = load_config(environ={
            "SLACK_WEBHOOK_URL": "https://hooks.slack.com/services/env",
            "SENSU_UI_URL": "https://sensu.example.com",
            "SLACK_CHANNEL": "#ops",
            "SLACK_ALERT_ON_CRITICAL": "true",
        })

        assert config.webhook_url == "https://hooks.slack.com/services/env"
        assert config.ui_url == "https://sensu.example.com"
        assert config.channel == "#ops"
        assert config.alert_on_critical is True

    def test_argument_beats_environment(self) -> None:
        """Test that explicit arguments take precedence."""
        config = load_config(
            arguments={"channel": "#from-args", "username": None},
            environ={"SLACK_CHANNEL": "#from-env", "SLACK_USERNAME": "env-bot"},
        )

        assert config.channel == "#from-args"
        assert config.username == "env-bot"

    def test_environment_beats_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "slack.yaml"
        config_file.write_text("""
channel: "#from-file"
username: file-bot
""")

        config = load_config(
            environ={"SLACK_CHANNEL": "#from-env"},
            config_file=config_file,
        )

        assert config.channel == "#from-env"
        assert config.username == "file-bot"

    def test_empty_environment_value_ignored(self) -> None:
        config = load_config(environ={"SLACK_CHANNEL": ""})

        assert config.channel == DEFAULT_CHANNEL

    def test_invalid_boolean(self) -> None:
        with pytest.raises(ConfigError, match="validation error"):
            load_config(environ={"SLACK_ALERT_ON_CRITICAL": "sometimes"})

    def test_config_is_frozen(self) -> None:
        config = load_config()

        with pytest.raises(ValidationError):
            config.channel = "#other"  # type: ignore[misc]

    def test_webhook_url_hidden_from_repr(self) -> None:
        config = HandlerConfig(webhook_url="https://hooks.slack.com/services/secret")

        assert "secret" not in repr(config)


class TestLoadConfigFile:
    """Tests for load_config_file."""

    def test_load_valid_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "slack.yaml"
        config_file.write_text("""
webhook-url: https://hooks.slack.com/services/file
ui-url: https://sensu.example.com
alert-on-critical: true
""")

        values = load_config_file(config_file)

        assert values == {
            "webhook_url": "https://hooks.slack.com/services/file",
            "ui_url": "https://sensu.example.com",
            "alert_on_critical": True,
        }

    def test_load_missing_file(self) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_config_file("/nonexistent/slack.yaml")

    def test_load_invalid_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "slack.yaml"
        config_file.write_text("invalid: yaml: content: [")

        with pytest.raises(ConfigError, match="Failed to parse"):
            load_config_file(config_file)

    def test_load_unknown_option(self, tmp_path: Path) -> None:
        config_file = tmp_path / "slack.yaml"
        config_file.write_text("chanel: '#typo'\n")

        with pytest.raises(ConfigError, match="chanel"):
            load_config_file(config_file)

    def test_load_empty_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "slack.yaml"
        config_file.write_text("")

        assert load_config_file(config_file) == {}

    def test_load_non_mapping(self, tmp_path: Path) -> None:
        config_file = tmp_path / "slack.yaml"
        config_file.write_text("- channel\n")

        with pytest.raises(ConfigError, match="mapping"):
            load_config_file(config_file)


class TestDeprecatedEnvironment:
    """Tests for apply_deprecated_env."""

    def test_webhook_always_replaced(self) -> None:
        config = HandlerConfig(webhook_url="https://hooks.slack.com/services/new")

        updated = apply_deprecated_env(
            config,
            {"SENSU_SLACK_WEBHOOK_URL": "https://hooks.slack.com/services/old"}
        )

        assert updated.webhook_url == "https://hooks.slack.com/services/old"
        assert config.webhook_url == "https://hooks.slack.com/services/new"

    def test_applied_while_default(self) -> None:
        updated = apply_deprecated_env(HandlerConfig(), {
            "SENSU_SLACK_CHANNEL": "#legacy",
            "SENSU_SLACK_USERNAME": "legacy-bot",
            "SENSU_SLACK_ICON_URL": "https://example.com/legacy.png",
        })

        assert updated.channel == "#legacy"
        assert updated.username == "legacy-bot"
        assert updated.icon_url == "https://example.com/legacy.png"

    def test_ignored_when_configured(self) -> None:
        """Test that an explicitly set value wins over a deprecated variable."""
        config = HandlerConfig(channel="#explicit", username="bot")

        updated = apply_deprecated_env(config, {
            "SENSU_SLACK_CHANNEL": "#legacy",
            "SENSU_SLACK_USERNAME": "legacy-bot",
        })

        assert updated.channel == "#explicit"
        assert updated.username == "bot"

    def test_no_variables_returns_same_config(self) -> None:
        config = HandlerConfig()

        assert apply_deprecated_env(config, {}) is config


class TestCheckRequired:
    """Tests for check_required."""

    def test_complete(self) -> None:
        check_required(HandlerConfig(
            webhook_url="http://example.com/webhook",
            ui_url="http://example.com/ui",
        ))

    def test_missing_webhook_url(self) -> None:
        with pytest.raises(ConfigError, match="--webhook-url or SLACK_WEBHOOK_URL") as exc_info:
            check_required(HandlerConfig(ui_url="http://example.com/ui"))

        assert exc_info.value.option == "webhook-url"

    def test_missing_ui_url(self) -> None:
        with pytest.raises(ConfigError, match="--ui-url or SENSU_UI_URL") as exc_info:
            check_required(HandlerConfig(webhook_url="http://example.com/webhook"))

        assert exc_info.value.option == "ui-url"


class TestAnnotationOverrides:
    """Tests for apply_annotation_overrides."""

    def test_check_annotation(self, make_event: Callable[..., Event]) -> None:
        event = make_event(check_annotations={f"{KEYSPACE}/channel": "#check"})

        config = apply_annotation_overrides(HandlerConfig(), event)

        assert config.channel == "#check"

    def test_entity_annotation(self, make_event: Callable[..., Event]) -> None:
        event = make_event(entity_annotations={f"{KEYSPACE}/username": "entity-bot"})

        config = apply_annotation_overrides(HandlerConfig(), event)

        assert config.username == "entity-bot"

    def test_check_wins_over_entity(self, make_event: Callable[..., Event]) -> None:
        """Test that check annotations take precedence."""
        event = make_event(
            check_annotations={f"{KEYSPACE}/channel": "#check"},
            entity_annotations={f"{KEYSPACE}/channel": "#entity"},
        )

        config = apply_annotation_overrides(HandlerConfig(), event)

        assert config.channel == "#check"

    def test_webhook_url_not_overridable(self, make_event: Callable[..., Event]) -> None:
        """Test that secrets cannot be changed from annotations."""
        event = make_event(
            check_annotations={f"{KEYSPACE}/webhook-url": "https://attacker.example.com"}
        )

        config = apply_annotation_overrides(
            HandlerConfig(webhook_url="https://hooks.slack.com/services/real"),
            event
        )

        assert config.webhook_url == "https://hooks.slack.com/services/real"

    def test_boolean_annotation(self, make_event: Callable[..., Event]) -> None:
        event = make_event(check_annotations={f"{KEYSPACE}/alert-on-critical": "true"})

        config = apply_annotation_overrides(HandlerConfig(), event)

        assert config.alert_on_critical is True

    def test_invalid_annotation_value(self, make_event: Callable[..., Event]) -> None:
        event = make_event(check_annotations={f"{KEYSPACE}/alert-on-critical": "maybe"})

        with pytest.raises(ConfigError):
            apply_annotation_overrides(HandlerConfig(), event)

    def test_unrelated_annotations_ignored(self, make_event: Callable[..., Event]) -> None:
        config = HandlerConfig()
        event = make_event(check_annotations={"runbook_url": "https://wiki.example.com"})

        assert apply_annotation_overrides(config, event) is config
