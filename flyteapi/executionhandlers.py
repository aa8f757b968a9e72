"""HTTP handlers through which packs post events, take actions and report results."""

import copy
import json
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Optional, Union

from werkzeug.wrappers import Response

from . import paths
from .actions import (
    Action,
    ActionNotFoundError,
    ActionRepository,
    Event,
    Pack,
    PackNotFoundError,
    PackRepository,
)
from .execution import FlowService
from .responses import write_response
from .uri import Link, uri_builder

logger = logging.getLogger(__name__)

_WHITESPACE = " \t\n\r"


def _kind(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, list):
        return "array"
    if value is None:
        return "null"
    return "object"


def _decode(body: Union[str, bytes]) -> Any:
    text = body.decode("utf-8") if isinstance(body, (bytes, bytearray)) else body
    text = text.lstrip(_WHITESPACE)
    if not text:
        raise ValueError("EOF")
    try:
        value, _ = json.JSONDecoder().raw_decode(text)
    except json.JSONDecodeError as exc:
        if exc.msg.startswith("Unterminated string") or exc.pos >= len(text):
            raise ValueError("unexpected EOF") from exc
        raise ValueError(str(exc)) from exc
    return value


def _apply_pack(pack: Pack, data: Any) -> Pack:
    if data is None:
        return pack
    if not isinstance(data, dict):
        raise ValueError(f"cannot unmarshal {_kind(data)} into field Event.pack of type Pack")
    for key, value in data.items():
        field_name = key.lower()
        if field_name in ("id", "name"):
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValueError(
                    f"cannot unmarshal {_kind(value)} into field Pack.{key} of type string"
                )
            setattr(pack, field_name, value)
        elif field_name == "labels":
            if value is None:
                continue
            if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
                raise ValueError(
                    f"cannot unmarshal {_kind(value)} into field Pack.{key} "
                    "of type map[string]string"
                )
            labels = dict(pack.labels or {})
            labels.update(value)
            pack.labels = labels
    return pack


def to_event(pack: Pack, body: Union[str, bytes]) -> Event:
    """Decode a request body into an event raised by the given pack.

    Raises ValueError when the body is not a valid event document.
    """
    data = _decode(body)
    if not isinstance(data, dict):
        raise ValueError(f"cannot unmarshal {_kind(data)} into Go value of type Event")
    event = Event(pack=copy.deepcopy(pack))
    if "event" in data and data["event"] is not None:
        name = data["event"]
        if not isinstance(name, str):
            raise ValueError(
                f"cannot unmarshal {_kind(name)} into field Event.event of type string"
            )
        event.name = name
    if "pack" in data:
        event.pack = _apply_pack(event.pack, data["pack"])
    if "payload" in data:
        event.payload = data["payload"]
    return event


def action_response(request: Any, pack_id: str, action: Action) -> dict:
    """The API view of a taken action with the link its result is posted to."""
    href = (
        uri_builder(request)
        .path(paths.TAKE_ACTION_RESULT_PATH)
        .replace(":packId", pack_id)
        .replace(":actionId", action.id)
        .build()
    )
    rel = uri_builder(request).path(paths.doc_path_for(paths.TAKE_ACTION_RESULT_DOC)).build()
    return {"command": action.name, "input": action.input, "links": [Link(href, rel)]}


class ExecutionHandlers:
    """Request handlers for pack events and actions."""

    def __init__(
        self,
        pack_repo: PackRepository,
        action_repo: ActionRepository,
        flow_service: FlowService,
        executor: Optional[Executor] = None,
    ):
        self.pack_repo = pack_repo
        self.action_repo = action_repo
        self.flow_service = flow_service
        self._executor = executor or ThreadPoolExecutor(thread_name_prefix="flow-dispatch")

    def _pack(self, pack_id: str) -> Union[Pack, Response]:
        try:
            pack = self.pack_repo.get(pack_id)
        except PackNotFoundError:
            logger.info("Pack packId=%s not found", pack_id)
            return Response(status=404)
        except Exception as exc:
            logger.error("%s", exc)
            return Response(status=500)
        pack.update_last_seen(self.pack_repo)
        return pack

    def _event(self, pack: Pack, request: Any) -> Union[Event, Response]:
        try:
            event = to_event(pack, request.get_data())
        except ValueError as exc:
            logger.error("%s", exc)
            return Response(status=400)
        logger.info("Received Event: EventName=%s Pack=%s", event.name, pack)
        logger.debug("Event Contents: Event=%s", event)
        return event

    def post_event(self, request: Any, pack_id: str) -> Response:
        pack = self._pack(pack_id)
        if isinstance(pack, Response):
            return pack
        event = self._event(pack, request)
        if isinstance(event, Response):
            return event
        self._executor.submit(self.flow_service.handle_event, event)
        return Response(status=202)

    def complete_action(self, request: Any, pack_id: str, action_id: str) -> Response:
        pack = self._pack(pack_id)
        if isinstance(pack, Response):
            return pack
        result = self._event(pack, request)
        if isinstance(result, Response):
            return result

        try:
            action = pack.complete_action(action_id, result, self.action_repo)
        except ActionNotFoundError:
            action = None
        except Exception as exc:
            logger.error(
                "Error completing actionId=%s with result=%s: %s", action_id, result, exc
            )
            return Response(status=500)
        if action is None:
            logger.info("Action actionId=%s packId=%s not found", action_id, pack.id)
            return Response(status=404)

        logger.info(
            "Action with actionId=%s has been completed, new state=%s",
            action.id,
            action.state.value,
        )
        self._executor.submit(self.flow_service.handle_event, result)
        self._executor.submit(self.flow_service.handle_action, action)
        return Response(status=202)

    def take_action(self, request: Any, pack_id: str) -> Response:
        pack = self._pack(pack_id)
        if isinstance(pack, Response):
            return pack

        action_name = request.values.get("actionName", "")
        try:
            action = pack.take_action(action_name, self.action_repo)
        except Exception as exc:
            logger.error(
                "Could not take action for packId=%s and actionName=%s: %s",
                pack.id,
                action_name,
                exc,
            )
            return Response(status=500)

        if action is None:
            return Response(status=204)

        logger.info("Action actionId=%s taken", action.id)
        return write_response(request, action_response(request, pack_id, action))