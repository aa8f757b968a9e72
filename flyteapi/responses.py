"""Serialising response bodies as JSON or YAML depending on the Accept header."""

import json
import logging
from typing import Any

import yaml
from werkzeug.wrappers import Response

HEADER_ACCEPT = "Accept"
HEADER_CONTENT_TYPE = "Content-Type"

MEDIA_TYPE_JSON = "application/json"
MEDIA_TYPE_YAML = "application/x-yaml"

CONTENT_TYPE_YAML = MEDIA_TYPE_YAML + "; charset=utf-8"
CONTENT_TYPE_JSON = MEDIA_TYPE_JSON + "; charset=utf-8"

logger = logging.getLogger(__name__)

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _default(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"unsupported type: {type(obj).__name__}")


def _to_json(value: Any) -> str:
    text = json.dumps(
        value, default=_default, allow_nan=False, ensure_ascii=False, separators=(",", ":")
    )
    for char, escape in _HTML_ESCAPES.items():
        text = text.replace(char, escape)
    return text


def _to_yaml(value: Any) -> str:
    plain = json.loads(json.dumps(value, default=_default, allow_nan=False))
    return yaml.safe_dump(plain, default_flow_style=False, allow_unicode=True)


def _accept(request: Any) -> str:
    headers = getattr(request, "headers", None)
    if headers is not None:
        return headers.get(HEADER_ACCEPT, "")
    environ = getattr(request, "environ", request)
    return environ.get("HTTP_ACCEPT", "")


def write_response(request: Any, value: Any) -> Response:
    """Serialise a value as YAML when the client asks for it, else as JSON."""
    if _accept(request) == MEDIA_TYPE_YAML:
        try:
            body = _to_yaml(value)
        except (TypeError, ValueError) as exc:
            logger.error("cannot convert to yaml: %s", exc)
            return Response(status=500)
        return Response(body, status=200, content_type=CONTENT_TYPE_YAML)

    try:
        body = _to_json(value)
    except (TypeError, ValueError) as exc:
        logger.error("cannot convert to JSON: %s", exc)
        return Response(status=500)
    return Response(body, status=200, content_type=CONTENT_TYPE_JSON)