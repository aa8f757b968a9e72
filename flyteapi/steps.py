"""Flow steps as executed: template resolution and action creation."""

import copy
import secrets
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

import jinja2

from .actions import Action, ActionState, Event, State, _now


class TemplateError(ValueError):
    """Raised when a template cannot be parsed or rendered."""


class _Environment(jinja2.Environment):
    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Mapping):
            try:
                return obj[attribute]
            except (KeyError, TypeError):
                pass
        return super().getattr(obj, attribute)


def _finalize(value: Any) -> Any:
    return "" if value is None else value


_ENV = _Environment(undefined=jinja2.ChainableUndefined, finalize=_finalize, autoescape=False)


def _render(text: str, context: dict) -> str:
    try:
        return _ENV.from_string(text).render(context)
    except (jinja2.TemplateError, TypeError, ValueError, ArithmeticError) as exc:
        raise TemplateError(str(exc)) from exc


def resolve_template(value: Any, context: dict) -> Any:
    """Render every string within value as a template, keeping its structure."""
    if isinstance(value, str):
        return _render(value, context)
    if isinstance(value, Mapping):
        return {key: resolve_template(item, context) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_template(item, context) for item in value]
    return value


_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f'cannot parse "{text}" as a boolean: invalid syntax')


def _event_view(event: Event) -> dict:
    return {
        "Name": event.name,
        "Pack": {"Id": event.pack.id, "Name": event.pack.name, "Labels": dict(event.pack.labels or {})},
        "Payload": event.payload,
    }


def _template_context(event: Event, ctx: Optional[dict]) -> dict:
    return {"Event": _event_view(event), "Context": dict(ctx or {})}


def _contains_all(labels: Optional[dict], required: Optional[dict]) -> bool:
    labels = labels or {}
    return all(key in labels and labels[key] == value for key, value in (required or {}).items())


def _resolve_labels(labels: Optional[dict], event: Event, ctx: dict) -> dict:
    try:
        return resolve_template(labels or {}, _template_context(event, ctx))
    except TemplateError as exc:
        raise TemplateError(
            f"error resolving pack labels with event={event} and ctx={ctx}: {exc}"
        ) from exc


@dataclass
class EventDef:
    """The event a step reacts to; labels may be templates."""

    name: str = ""
    pack_name: str = ""
    pack_labels: dict = field(default_factory=dict)


@dataclass
class Command:
    """The command a step turns into an action; labels and input may be templates."""

    name: str = ""
    pack_name: str = ""
    pack_labels: dict = field(default_factory=dict)
    input: Any = None


def _create_action(command: Command, event: Event, ctx: dict) -> Action:
    labels = _resolve_labels(command.pack_labels, event, ctx)
    try:
        command_input = resolve_template(command.input, _template_context(event, ctx))
    except TemplateError as exc:
        raise TemplateError(
            f"error resolving command input with event={event} and ctx={ctx}: {exc}"
        ) from exc
    return Action(
        id=secrets.token_hex(12),
        name=command.name,
        pack_name=command.pack_name,
        pack_labels=labels,
        input=command_input,
        state=State(ActionState.NEW, _now()),
        trigger=copy.deepcopy(event),
        context=ctx,
    )


@dataclass
class Step:
    """A step of a flow being executed."""

    id: str = ""
    depends_on: list = field(default_factory=list)
    event: EventDef = field(default_factory=EventDef)
    context: dict = field(default_factory=dict)
    criteria: str = ""
    command: Command = field(default_factory=Command)

    def execute(self, event: Event, parent_ctx: Optional[dict]) -> Optional[Action]:
        """Create the step's action for the event, or None when it does not apply.

        Raises TemplateError when a template fails and ValueError when the
        criteria do not resolve to a boolean.
        """
        ctx = self._resolve_context(event, parent_ctx or {})
        if not self._matches_event(event, ctx):
            return None
        if not self._is_criteria_met(event, ctx):
            return None
        action = _create_action(self.command, event, ctx)
        action.step_id = self.id
        return action

    def _resolve_context(self, event: Event, parent_ctx: dict) -> dict:
        try:
            resolved = resolve_template(self.context or {}, _template_context(event, parent_ctx))
        except TemplateError as exc:
            raise TemplateError(
                f"error resolving context with event={event} and ctx={parent_ctx}: {exc}"
            ) from exc
        return {**parent_ctx, **resolved}

    def _matches_event(self, event: Event, ctx: dict) -> bool:
        if self.event.name != event.name or self.event.pack_name != event.pack.name:
            return False
        labels = _resolve_labels(self.event.pack_labels, event, ctx)
        return _contains_all(event.pack.labels, labels)

    def _is_criteria_met(self, event: Event, ctx: dict) -> bool:
        if not self.criteria:
            return True
        try:
            criteria = resolve_template(self.criteria, _template_context(event, ctx))
        except TemplateError as exc:
            raise TemplateError(
                f"error resolving criteria with event={event} and ctx={ctx}: {exc}"
            ) from exc
        return _parse_bool(criteria)