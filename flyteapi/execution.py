"""Running flows: matching events to steps and recording the actions they create."""

import copy
import logging
import secrets
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .actions import Action, ActionRepository, Event
from .steps import Step

logger = logging.getLogger(__name__)


@dataclass
class FlowExecution:
    """One run of a flow: its steps plus the context and actions of this run."""

    uuid: str = ""
    name: str = ""
    steps: list = field(default_factory=list)
    correlation_id: str = ""
    context: dict = field(default_factory=dict)
    actions: dict = field(default_factory=dict)

    def handle_event(self, event: Event, action_repo: ActionRepository) -> None:
        """Execute every candidate step for the event and store the actions created."""
        for step in self._candidate_steps(event):
            try:
                action = step.execute(event, self.context)
            except Exception as exc:
                logger.error("Error handling flow=%s step=%s: %s", self.uuid, step.id, exc)
                continue
            if action is None:
                continue
            try:
                self._add_action(step.id, action, action_repo)
            except Exception as exc:
                logger.error("Error saving action=%s: %s", action, exc)
            else:
                logger.info("Action has been created actionId=%s", action.id)
                logger.debug("action=%s", action)

    def _add_action(self, step_id: str, action: Action, action_repo: ActionRepository) -> None:
        action.correlation_id = self.correlation_id
        action.flow_uuid = self.uuid
        action.flow_name = self.name
        action.step_id = step_id
        action_repo.add(action)
        self.actions[step_id] = action

    def _candidate_steps(self, event: Event) -> list:
        return [step for step in self.steps if self._is_candidate(step, event)]

    def _is_candidate(self, step: Step, event: Event) -> bool:
        return (
            step.event.name == event.name
            and step.event.pack_name == event.pack.name
            and step.id not in self.actions
            and self._depends_on_satisfied(step)
        )

    def _depends_on_satisfied(self, step: Step) -> bool:
        # Any one finished dependency is enough.
        if not step.depends_on:
            return True
        return any(
            step_id in self.actions and self.actions[step_id].has_finished()
            for step_id in step.depends_on
        )


def _new_correlation_id() -> str:
    return secrets.token_hex(12)


class FlowExecutionRepository:
    """Finds flow runs, in memory: the latest flows and every stored flow version."""

    def __init__(
        self,
        action_repo: ActionRepository,
        flows: Iterable[FlowExecution] = (),
        history: Optional[Iterable[FlowExecution]] = None,
    ):
        self.action_repo = action_repo
        self._flows = [copy.deepcopy(f) for f in flows]
        source = self._flows if history is None else history
        self._history = {f.uuid: copy.deepcopy(f) for f in source}
        self._lock = threading.Lock()

    def get_by_action(self, action: Action) -> FlowExecution:
        """The run the action belongs to, with all of its correlated actions.

        Raises LookupError when the flow version is unknown.
        """
        with self._lock:
            stored = self._history.get(action.flow_uuid)
            if stored is None:
                raise LookupError(f"flow with uuid={action.flow_uuid} not found")
            flow = copy.deepcopy(stored)
        flow.correlation_id = action.correlation_id
        flow.context = dict(action.context or {})
        flow.actions = {a.step_id: a for a in self.action_repo.find_correlated(action.correlation_id)}
        return flow

    def find_by_event(self, event: Event) -> list:
        """New runs of every flow with a step the event starts on its own."""
        with self._lock:
            matching = [
                copy.deepcopy(f)
                for f in self._flows
                if any(
                    s.event.pack_name == event.pack.name
                    and s.event.name == event.name
                    and not s.depends_on
                    for s in f.steps
                )
            ]
        for flow in matching:
            flow.correlation_id = _new_correlation_id()
            flow.context = {}
            flow.actions = {}
        return matching


class FlowService:
    """Dispatches incoming events and completed actions to flow runs."""

    def __init__(
        self,
        flow_repo: FlowExecutionRepository,
        action_repo: ActionRepository,
        executor: Optional[Executor] = None,
    ):
        self.flow_repo = flow_repo
        self.action_repo = action_repo
        self._executor = executor or ThreadPoolExecutor(thread_name_prefix="flow-event")

    def handle_event(self, event: Event) -> list:
        """Start a run of every flow the event triggers; returns their futures."""
        try:
            flows = self.flow_repo.find_by_event(event)
        except Exception as exc:
            logger.error("Error handling event=%s: %s", event, exc)
            return []
        futures: list[Future] = [
            self._executor.submit(flow.handle_event, event, self.action_repo) for flow in flows
        ]
        return futures

    def handle_action(self, action: Action) -> None:
        """Continue the run the action belongs to with the action's result."""
        try:
            flow = self.flow_repo.get_by_action(action)
        except Exception as exc:
            logger.error("Error handling action=%s: %s", action, exc)
            return
        if flow is None:
            logger.error("Error handling action=%s: flow not found", action)
            return
        flow.handle_event(action.result, self.action_repo)