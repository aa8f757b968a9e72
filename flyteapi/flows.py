"""Flow definitions, their API views and an in-memory flow store."""

import copy
import secrets
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from . import paths
from .uri import Link, uri_builder


class FlowNotFoundError(LookupError):
    """Raised when no flow with the requested name exists."""

    def __init__(self, message: str = "flow not found"):
        super().__init__(message)


def _kind(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _mapping(value: Any, what: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"cannot unmarshal {_kind(value)} into {what}")
    return value


def _string(data: dict, key: str, what: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(
            f"cannot unmarshal {_kind(value)} into field {what}.{key} of type string"
        )
    return value


def _string_map(data: dict, key: str, what: str) -> dict:
    value = _mapping(data.get(key), f"field {what}.{key} of type map[string]string")
    for item in value.values():
        if not isinstance(item, str):
            raise TypeError(
                f"cannot unmarshal {_kind(item)} into field {what}.{key} of type string"
            )
    return dict(value)


def _string_list(data: dict, key: str, what: str) -> list:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(
            f"cannot unmarshal {_kind(value)} into field {what}.{key} of type []string"
        )
    for item in value:
        if not isinstance(item, str):
            raise TypeError(
                f"cannot unmarshal {_kind(item)} into field {what}.{key} of type string"
            )
    return list(value)


@dataclass
class EventDef:
    """The event a step waits for."""

    name: str = ""
    pack_name: str = ""
    pack_labels: dict = field(default_factory=dict)


@dataclass
class Command:
    """The command a step issues once its event arrives."""

    name: str = ""
    pack_name: str = ""
    pack_labels: dict = field(default_factory=dict)
    input: Any = None


@dataclass
class Step:
    """One step of a flow: an event trigger and the command it produces."""

    id: str = ""
    depends_on: list = field(default_factory=list)
    event: EventDef = field(default_factory=EventDef)
    context: dict = field(default_factory=dict)
    criteria: str = ""
    command: Command = field(default_factory=Command)


def _event_from_dict(data: Any) -> EventDef:
    data = _mapping(data, "Step.event of type Event")
    return EventDef(
        name=_string(data, "name", "Event"),
        pack_name=_string(data, "packName", "Event"),
        pack_labels=_string_map(data, "packLabels", "Event"),
    )


def _event_to_dict(event: EventDef) -> dict:
    data: dict = {"name": event.name, "packName": event.pack_name}
    if event.pack_labels:
        data["packLabels"] = dict(event.pack_labels)
    return data


def _command_from_dict(data: Any) -> Command:
    data = _mapping(data, "Step.command of type Command")
    return Command(
        name=_string(data, "name", "Command"),
        pack_name=_string(data, "packName", "Command"),
        pack_labels=_string_map(data, "packLabels", "Command"),
        input=copy.deepcopy(data.get("input")),
    )


def _command_to_dict(command: Command) -> dict:
    data: dict = {"name": command.name, "packName": command.pack_name}
    if command.pack_labels:
        data["packLabels"] = dict(command.pack_labels)
    data["input"] = copy.deepcopy(command.input)
    return data


def _step_from_dict(data: Any) -> Step:
    data = _mapping(data, "Flow.steps of type Step")
    return Step(
        id=_string(data, "id", "Step"),
        depends_on=_string_list(data, "dependsOn", "Step"),
        event=_event_from_dict(data.get("event")),
        context=_string_map(data, "context", "Step"),
        criteria=_string(data, "criteria", "Step"),
        command=_command_from_dict(data.get("command")),
    )


def _step_to_dict(step: Step) -> dict:
    data: dict = {}
    if step.id:
        data["id"] = step.id
    if step.depends_on:
        data["dependsOn"] = list(step.depends_on)
    data["event"] = _event_to_dict(step.event)
    if step.context:
        data["context"] = dict(step.context)
    if step.criteria:
        data["criteria"] = step.criteria
    data["command"] = _command_to_dict(step.command)
    return data


@dataclass
class Flow:
    """A named set of steps. The uuid identifies one stored version of it."""

    name: str = ""
    description: str = ""
    steps: list = field(default_factory=list)
    uuid: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Flow":
        """Build a flow from its JSON form; the uuid is never read from it.

        Raises TypeError when a field holds a value of the wrong type.
        """
        data = _mapping(data, "Go value of type Flow")
        steps = data.get("steps")
        if steps is None:
            steps = []
        if not isinstance(steps, list):
            raise TypeError(
                f"cannot unmarshal {_kind(steps)} into field Flow.steps of type []Step"
            )
        return cls(
            name=_string(data, "name", "Flow"),
            description=_string(data, "description", "Flow"),
            steps=[_step_from_dict(step) for step in steps],
        )

    def to_dict(self) -> dict:
        """Return the JSON form of the flow, leaving out empty optional fields."""
        data: dict = {"name": self.name}
        if self.description:
            data["description"] = self.description
        if self.steps:
            data["steps"] = [_step_to_dict(step) for step in self.steps]
        return data


def flow_response(request: Any, flow: Flow) -> dict:
    """The API view of a single flow with its self, up and help links."""
    body = flow.to_dict()
    body["links"] = [
        Link(
            uri_builder(request).path(paths.FLOW_PATH).replace(":flowName", flow.name).build(),
            "self",
        ),
        Link(uri_builder(request).path(paths.FLOW_PATH).parent().build(), "up"),
        Link(uri_builder(request).path(paths.doc_path_for(paths.FLOW_DOC)).build(), "help"),
    ]
    return body


def flows_response(request: Any, flows: list) -> dict:
    """The API view of a list of flows, each with a self link."""
    items = []
    for flow in flows:
        item = flow.to_dict()
        item["links"] = [
            Link(uri_builder(request).path(paths.FLOWS_PATH, flow.name).build(), "self")
        ]
        items.append(item)
    return {
        "flows": items,
        "links": [
            Link(uri_builder(request).path(paths.FLOWS_PATH).build(), "self"),
            Link(uri_builder(request).path(paths.FLOWS_PATH).parent().build(), "up"),
            Link(uri_builder(request).path(paths.doc_path_for(paths.FLOW_DOC)).build(), "help"),
        ],
    }


def _new_id() -> str:
    return secrets.token_hex(12)


class FlowRepository:
    """Stores the latest flow per name plus the history of every flow added."""

    def __init__(self) -> None:
        self._latest: dict = {}
        self._history: list = []
        self._lock = threading.Lock()

    def add(self, flow: Flow) -> None:
        """Record the flow in the history and make it the latest of its name."""
        if not flow.uuid:
            flow = replace(flow, uuid=_new_id())
        with self._lock:
            self._history.append(copy.deepcopy(flow))
            self._latest[flow.name] = copy.deepcopy(flow)

    def remove(self, name: str) -> None:
        """Remove the latest flow of that name; its history stays."""
        with self._lock:
            if name not in self._latest:
                raise FlowNotFoundError()
            del self._latest[name]

    def get(self, name: str) -> Flow:
        with self._lock:
            flow: Optional[Flow] = self._latest.get(name)
            if flow is None:
                raise FlowNotFoundError()
            return copy.deepcopy(flow)

    def find_all(self) -> list:
        """Names and descriptions of all latest flows, sorted by name."""
        with self._lock:
            flows = sorted(self._latest.values(), key=lambda f: f.name)
            return [Flow(name=f.name, description=f.description) for f in flows]