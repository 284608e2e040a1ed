"""Build event dataclasses: a closed tagged union.

WHY: Build engines and log decoders produce a stream of heterogeneous
events. The correlation state machine needs each variant to carry a typed
payload and a tag it can dispatch on, rather than inspecting arbitrary
objects at runtime.

HOW: One frozen dataclass per variant, each with a ``kind`` class
attribute from EventKind and a BuildEventContext. ``event_from_dict``
decodes the plain-dict form that an external log decoder produces; the
dict is validated with jsonschema against the variant's schema first.

RULES:
- Events are immutable once created
- ``properties`` / ``items`` on ProjectStarted may be None (newer logs
  attach them to ProjectEvaluationFinished instead)
- Context ids default to -1, MSBuild's "invalid" id
- Item metadata values are always strings
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar, Mapping, Union

import jsonschema

from buildtrace import config

INVALID_ID = -1


class EventKind(str, enum.Enum):
    """Tags of the BuildEvent union; values are the ``type`` field of the dict form."""

    BUILD_STARTED = "build_started"
    BUILD_FINISHED = "build_finished"
    PROJECT_EVALUATION_FINISHED = "project_evaluation_finished"
    PROJECT_STARTED = "project_started"
    PROJECT_FINISHED = "project_finished"
    TARGET_STARTED = "target_started"
    TARGET_FINISHED = "target_finished"
    TASK_COMMAND_LINE = "task_command_line"
    MESSAGE = "message"
    ERROR = "error"


@dataclass(frozen=True)
class BuildEventContext:
    """Nested ids correlating an event with its node, project, target and task."""

    node_id: int = INVALID_ID
    evaluation_id: int = INVALID_ID
    project_instance_id: int = INVALID_ID
    project_context_id: int = INVALID_ID
    target_id: int = INVALID_ID
    task_id: int = INVALID_ID

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> BuildEventContext:
        data = data or {}
        return cls(
            node_id=data.get("node_id", INVALID_ID),
            evaluation_id=data.get("evaluation_id", INVALID_ID),
            project_instance_id=data.get("project_instance_id", INVALID_ID),
            project_context_id=data.get("project_context_id", INVALID_ID),
            target_id=data.get("target_id", INVALID_ID),
            task_id=data.get("task_id", INVALID_ID),
        )


@dataclass(frozen=True)
class TaskItem:
    """An MSBuild item: an item spec plus string metadata."""

    item_spec: str
    metadata: Mapping[str, str] = field(default_factory=dict)

    def get_metadata(self, name: str) -> str | None:
        """Case-insensitive metadata lookup, None when absent."""
        if name in self.metadata:
            return self.metadata[name]
        lowered = name.lower()
        for key, value in self.metadata.items():
            if key.lower() == lowered:
                return value
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TaskItem:
        return cls(
            item_spec=data["item_spec"],
            metadata={str(k): str(v) for k, v in data.get("metadata", {}).items()},
        )


Properties = Mapping[str, str]
Items = Mapping[str, "list[TaskItem]"]


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BuildStarted:
    kind: ClassVar[EventKind] = EventKind.BUILD_STARTED

    message: str = ""
    context: BuildEventContext = field(default_factory=BuildEventContext)


@dataclass(frozen=True)
class BuildFinished:
    kind: ClassVar[EventKind] = EventKind.BUILD_FINISHED

    success: bool
    context: BuildEventContext = field(default_factory=BuildEventContext)


@dataclass(frozen=True)
class ProjectEvaluationFinished:
    """Properties and items of one evaluation, keyed by ``context.evaluation_id``."""

    kind: ClassVar[EventKind] = EventKind.PROJECT_EVALUATION_FINISHED

    project_path: str
    properties: Properties | None = None
    items: Items | None = None
    context: BuildEventContext = field(default_factory=BuildEventContext)


@dataclass(frozen=True)
class ProjectStarted:
    kind: ClassVar[EventKind] = EventKind.PROJECT_STARTED

    project_path: str
    properties: Properties | None = None
    items: Items | None = None
    context: BuildEventContext = field(default_factory=BuildEventContext)


@dataclass(frozen=True)
class ProjectFinished:
    kind: ClassVar[EventKind] = EventKind.PROJECT_FINISHED

    project_path: str
    success: bool
    context: BuildEventContext = field(default_factory=BuildEventContext)


@dataclass(frozen=True)
class TargetStarted:
    kind: ClassVar[EventKind] = EventKind.TARGET_STARTED

    project_path: str
    target_name: str
    context: BuildEventContext = field(default_factory=BuildEventContext)


@dataclass(frozen=True)
class TargetFinished:
    kind: ClassVar[EventKind] = EventKind.TARGET_FINISHED

    project_path: str
    target_name: str
    outputs: tuple[TaskItem, ...] = ()
    context: BuildEventContext = field(default_factory=BuildEventContext)


@dataclass(frozen=True)
class TaskCommandLine:
    kind: ClassVar[EventKind] = EventKind.TASK_COMMAND_LINE

    project_path: str
    task_name: str
    command_line: str
    context: BuildEventContext = field(default_factory=BuildEventContext)


@dataclass(frozen=True)
class Message:
    """Free-text message; ``sender_name`` is the task that logged it."""

    kind: ClassVar[EventKind] = EventKind.MESSAGE

    project_path: str
    sender_name: str
    text: str
    context: BuildEventContext = field(default_factory=BuildEventContext)


@dataclass(frozen=True)
class Error:
    kind: ClassVar[EventKind] = EventKind.ERROR

    message: str
    project_path: str = ""
    code: str = ""
    file: str = ""
    line: int = 0
    context: BuildEventContext = field(default_factory=BuildEventContext)


BuildEvent = Union[
    BuildStarted,
    BuildFinished,
    ProjectEvaluationFinished,
    ProjectStarted,
    ProjectFinished,
    TargetStarted,
    TargetFinished,
    TaskCommandLine,
    Message,
    Error,
]


# ---------------------------------------------------------------------------
# Dict decoding
# ---------------------------------------------------------------------------

_CONTEXT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        name: {"type": "integer"}
        for name in (
            "node_id",
            "evaluation_id",
            "project_instance_id",
            "project_context_id",
            "target_id",
            "task_id",
        )
    },
}

_ITEM_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["item_spec"],
    "properties": {
        "item_spec": {"type": "string"},
        "metadata": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}

_PROPERTIES_SCHEMA: dict[str, Any] = {
    "type": ["object", "null"],
    "additionalProperties": {"type": "string"},
}

_ITEMS_SCHEMA: dict[str, Any] = {
    "type": ["object", "null"],
    "additionalProperties": {"type": "array", "items": _ITEM_SCHEMA},
}


def _schema(required: list[str], **properties: Any) -> dict[str, Any]:
    return {
        "type": "object",
        "required": ["type"] + required,
        "properties": dict(properties, type={"type": "string"}, context=_CONTEXT_SCHEMA),
    }


_STRING = {"type": "string"}
_BOOLEAN = {"type": "boolean"}

EVENT_SCHEMAS: dict[EventKind, dict[str, Any]] = {
    EventKind.BUILD_STARTED: _schema([], message=_STRING),
    EventKind.BUILD_FINISHED: _schema(["success"], success=_BOOLEAN),
    EventKind.PROJECT_EVALUATION_FINISHED: _schema(
        ["project_path"],
        project_path=_STRING,
        properties=_PROPERTIES_SCHEMA,
        items=_ITEMS_SCHEMA,
    ),
    EventKind.PROJECT_STARTED: _schema(
        ["project_path"],
        project_path=_STRING,
        properties=_PROPERTIES_SCHEMA,
        items=_ITEMS_SCHEMA,
    ),
    EventKind.PROJECT_FINISHED: _schema(
        ["project_path", "success"], project_path=_STRING, success=_BOOLEAN
    ),
    EventKind.TARGET_STARTED: _schema(
        ["project_path", "target_name"], project_path=_STRING, target_name=_STRING
    ),
    EventKind.TARGET_FINISHED: _schema(
        ["project_path", "target_name"],
        project_path=_STRING,
        target_name=_STRING,
        outputs={"type": "array", "items": _ITEM_SCHEMA},
    ),
    EventKind.TASK_COMMAND_LINE: _schema(
        ["project_path", "task_name", "command_line"],
        project_path=_STRING,
        task_name=_STRING,
        command_line=_STRING,
    ),
    EventKind.MESSAGE: _schema(
        ["project_path", "sender_name", "text"],
        project_path=_STRING,
        sender_name=_STRING,
        text=_STRING,
    ),
    EventKind.ERROR: _schema(
        ["message"],
        message=_STRING,
        project_path=_STRING,
        code=_STRING,
        file=_STRING,
        line={"type": "integer"},
    ),
}


def _items(data: Mapping[str, Any] | None) -> dict[str, list[TaskItem]] | None:
    if data is None:
        return None
    return {
        item_type: [TaskItem.from_dict(entry) for entry in entries]
        for item_type, entries in data.items()
    }


def _properties(data: Mapping[str, Any] | None) -> Mapping[str, str] | None:
    if data is None:
        return None
    return MappingProxyType(dict(data))


def event_from_dict(data: Mapping[str, Any], validate: bool | None = None) -> BuildEvent:
    """Decode one event from its plain-dict form.

    WHY: Log decoders and tests describe events as JSON-compatible dicts;
    the processor only accepts the typed variants.

    HOW: Looks up the variant by the ``type`` field, validates the dict
    against the variant's schema (unless disabled), then builds the
    dataclass.

    RULES:
    - Unknown ``type`` values raise ValueError
    - Schema violations raise jsonschema.ValidationError
    - ``validate=None`` defers to config.VALIDATE_EVENTS

    Args:
        data: Event dict with a ``type`` field and the variant's fields.
        validate: Force validation on or off.

    Returns:
        The decoded BuildEvent.
    """
    kind = EventKind(data.get("type"))
    if validate is None:
        validate = config.VALIDATE_EVENTS
    if validate:
        jsonschema.validate(instance=dict(data), schema=EVENT_SCHEMAS[kind])

    context = BuildEventContext.from_dict(data.get("context"))

    if kind is EventKind.BUILD_STARTED:
        return BuildStarted(message=data.get("message", ""), context=context)
    if kind is EventKind.BUILD_FINISHED:
        return BuildFinished(success=data["success"], context=context)
    if kind is EventKind.PROJECT_EVALUATION_FINISHED:
        return ProjectEvaluationFinished(
            project_path=data["project_path"],
            properties=_properties(data.get("properties")),
            items=_items(data.get("items")),
            context=context,
        )
    if kind is EventKind.PROJECT_STARTED:
        return ProjectStarted(
            project_path=data["project_path"],
            properties=_properties(data.get("properties")),
            items=_items(data.get("items")),
            context=context,
        )
    if kind is EventKind.PROJECT_FINISHED:
        return ProjectFinished(
            project_path=data["project_path"], success=data["success"], context=context
        )
    if kind is EventKind.TARGET_STARTED:
        return TargetStarted(
            project_path=data["project_path"], target_name=data["target_name"], context=context
        )
    if kind is EventKind.TARGET_FINISHED:
        return TargetFinished(
            project_path=data["project_path"],
            target_name=data["target_name"],
            outputs=tuple(TaskItem.from_dict(o) for o in data.get("outputs", [])),
            context=context,
        )
    if kind is EventKind.TASK_COMMAND_LINE:
        return TaskCommandLine(
            project_path=data["project_path"],
            task_name=data["task_name"],
            command_line=data["command_line"],
            context=context,
        )
    if kind is EventKind.MESSAGE:
        return Message(
            project_path=data["project_path"],
            sender_name=data["sender_name"],
            text=data["text"],
            context=context,
        )
    return Error(
        message=data["message"],
        project_path=data.get("project_path", ""),
        code=data.get("code", ""),
        file=data.get("file", ""),
        line=data.get("line", 0),
        context=context,
    )
