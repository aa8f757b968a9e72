"""Packs, the events they raise and the actions they are asked to perform."""

import copy
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)

FATAL_EVENT_NAME = "FATAL"


class ActionState(str, Enum):
    """The life-cycle states of an action."""

    NEW = "NEW"
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FATAL = "FATAL"

    def __str__(self) -> str:
        return self.value


class ActionNotFoundError(LookupError):
    """Raised when no action with the requested id exists."""

    def __init__(self, message: str = "action not found"):
        super().__init__(message)


class PackNotFoundError(LookupError):
    """Raised when no pack with the requested id exists."""

    def __init__(self, message: str = "pack not found"):
        super().__init__(message)


class ActionStateError(ValueError):
    """Raised when an action is asked to move from a state it is not in."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _contains_all(labels: Optional[dict], required: Optional[dict]) -> bool:
    labels = labels or {}
    return all(key in labels and labels[key] == value for key, value in (required or {}).items())


@dataclass
class State:
    """A state value together with the moment it was entered."""

    value: ActionState = ActionState.NEW
    time: datetime = field(default_factory=_now)


@dataclass
class Pack:
    """A registered pack: its id, name and labels."""

    id: str = ""
    name: str = ""
    labels: dict = field(default_factory=dict)

    def complete_action(self, action_id: str, result: "Event", action_repo: "ActionRepository"):
        """Finish the pending action with the result event.

        Returns None when the action belongs to a pack this one cannot stand in for.
        """
        action = action_repo.get(action_id)
        if action is None:
            return None
        if action.pack_name != self.name or not _contains_all(self.labels, action.pack_labels):
            logger.error(
                "pack=%s trying to complete actionId=%s which it cannot handle", self, action.id
            )
            return None
        action.finish(result, action_repo)
        return action

    def take_action(self, action_name: str, action_repo: "ActionRepository"):
        """Take the oldest new action for this pack, or return None if there is none."""
        action = action_repo.find_new(self, action_name)
        if action is None:
            return None
        action.take(action_repo)
        return action

    def update_last_seen(self, pack_repo: "PackRepository") -> None:
        """Record that the pack was seen now; failures are only logged."""
        try:
            pack_repo.update_last_seen(self.id)
        except Exception as exc:
            logger.info("error recording last seen record for a pack id %s: %s", self.id, exc)


@dataclass
class Event:
    """An event raised by a pack, or the result an action finished with."""

    name: str = ""
    pack: Pack = field(default_factory=Pack)
    payload: Any = None

    def is_fatal(self) -> bool:
        return self.name == FATAL_EVENT_NAME


@dataclass
class Action:
    """A command for a pack, created by a flow step and tracked through its states."""

    id: str = ""
    name: str = ""
    pack_name: str = ""
    pack_labels: dict = field(default_factory=dict)
    input: Any = None
    state: State = field(default_factory=State)
    correlation_id: str = ""
    flow_name: str = ""
    flow_uuid: str = ""
    step_id: str = ""
    context: dict = field(default_factory=dict)
    trigger: Event = field(default_factory=Event)
    result: Event = field(default_factory=Event)
    prev_state: Optional[State] = field(default=None, compare=False, repr=False)

    def _set_state(self, value: ActionState) -> None:
        self.prev_state = self.state
        self.state = State(value, _now())

    def take(self, repo: "ActionRepository") -> None:
        """Move a new action to pending and store it."""
        if self.state.value != ActionState.NEW:
            raise ActionStateError(
                f"action is not in {ActionState.NEW.value} state, "
                f"cannot set to {ActionState.PENDING.value}"
            )
        self._set_state(ActionState.PENDING)
        repo.update(self)

    def finish(self, event: Event, repo: "ActionRepository") -> None:
        """Finish a pending action with a result and store it."""
        if self.state.value != ActionState.PENDING:
            raise ActionStateError(f"action is not in {ActionState.PENDING.value} state")
        self._set_state(ActionState.FATAL if event.is_fatal() else ActionState.SUCCESS)
        self.result = event
        repo.update(self)

    def has_finished(self) -> bool:
        return self.state.value in (ActionState.SUCCESS, ActionState.FATAL)


def _stored(action: Action) -> Action:
    stored = copy.deepcopy(action)
    stored.prev_state = None
    return stored


class ActionRepository:
    """In-memory store of actions."""

    def __init__(self) -> None:
        self._actions: dict = {}
        self._lock = threading.Lock()

    def add(self, action: Action) -> None:
        with self._lock:
            if action.id in self._actions:
                raise ValueError(f"duplicate action id {action.id}")
            self._actions[action.id] = _stored(action)

    def get(self, action_id: str) -> Action:
        with self._lock:
            action = self._actions.get(action_id)
            if action is None:
                raise ActionNotFoundError()
            return copy.deepcopy(action)

    def update(self, action: Action) -> None:
        """Replace the stored action, provided it is still in the action's previous state."""
        expected = action.prev_state.value if action.prev_state is not None else None
        with self._lock:
            stored = self._actions.get(action.id)
            if stored is None or stored.state.value != expected:
                raise LookupError("action not found in the expected state")
            self._actions[action.id] = _stored(action)

    def find_new(self, pack: Pack, name: str) -> Optional[Action]:
        """The oldest new action the pack can handle, optionally of one name."""
        with self._lock:
            candidates = sorted(
                (
                    a
                    for a in self._actions.values()
                    if a.pack_name == pack.name
                    and a.state.value == ActionState.NEW
                    and (not name or a.name == name)
                ),
                key=lambda a: a.state.time,
            )
            for action in candidates:
                if _contains_all(pack.labels, action.pack_labels):
                    return copy.deepcopy(action)
        return None

    def find_correlated(self, correlation_id: str) -> list:
        """Id, step id and state of every action sharing the correlation id."""
        with self._lock:
            return [
                Action(id=a.id, step_id=a.step_id, state=copy.deepcopy(a.state))
                for a in self._actions.values()
                if a.correlation_id == correlation_id
            ]


class PackRepository:
    """In-memory store of packs and of when each was last seen."""

    def __init__(self, packs: Iterable[Pack] = ()):
        self._packs = {pack.id: copy.deepcopy(pack) for pack in packs}
        self.last_seen: dict = {}
        self._lock = threading.Lock()

    def get(self, pack_id: str) -> Pack:
        with self._lock:
            pack = self._packs.get(pack_id)
            if pack is None:
                raise PackNotFoundError()
            return copy.deepcopy(pack)

    def update_last_seen(self, pack_id: str) -> None:
        with self._lock:
            if pack_id not in self._packs:
                raise LookupError("not found")
            self.last_seen[pack_id] = _now()