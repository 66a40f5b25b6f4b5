"""
Core data structures for the Slack handler.

Sensu events arrive as JSON with object names, namespaces and
annotations nested under ``metadata``. The models here accept that wire
shape and expose flat, read-only accessors to the formatter and the
templates.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class HandlerError(Exception):
    """Base class for all errors raised by the handler."""


class EventError(HandlerError):
    """Raised when the incoming event is malformed or incomplete."""


class ObjectMeta(BaseModel):
    """Sensu object metadata."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., min_length=1)
    namespace: str = "default"
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)

    @field_validator("labels", "annotations", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        # Sensu serializes empty maps as null
        return {} if value is None else value


class Entity(BaseModel):
    """The entity (agent or proxy) an event was produced for."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    metadata: ObjectMeta
    entity_class: str = ""

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def annotations(self) -> dict[str, str]:
        return self.metadata.annotations


class Check(BaseModel):
    """The check result carried by an event."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    metadata: ObjectMeta
    status: int = 0
    output: str = ""
    occurrences: int = 0
    command: str = ""
    interval: int = 0

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def annotations(self) -> dict[str, str]:
        return self.metadata.annotations


class Event(BaseModel):
    """A single Sensu event: one check observation for one entity."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    entity: Entity
    check: Check
    timestamp: int = 0
    id: str | None = None


def parse_event(raw: str | bytes) -> Event:
    """
    Parse and validate a Sensu event from its JSON representation.

    Args:
        raw: JSON document, as read from the handler's stdin

    Returns:
        Validated Event

    Raises:
        EventError: If the document is not valid JSON, lacks an entity or
            a check, or fails validation
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise EventError(f"Failed to parse event JSON: {e}") from e

    if not isinstance(data, dict):
        raise EventError("Event must be a JSON object")
    if not data.get("entity"):
        raise EventError("Event must contain an entity")
    if not data.get("check"):
        raise EventError("Event must contain a check")

    try:
        return Event.model_validate(data)
    except ValidationError as e:
        raise EventError(f"Event validation error: {e}") from e
