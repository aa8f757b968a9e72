"""Index, version, API description and health handlers."""

import logging
from typing import Any, Callable

from werkzeug.wrappers import Response

from . import paths
from .responses import HEADER_CONTENT_TYPE, write_response
from .uri import Link, uri_builder

SWAGGER_FILE_LOCATION = "swagger/v1.yml"
SWAGGER_CONTENT_TYPE = "application/vnd.yaml; charset=utf-8"

logger = logging.getLogger(__name__)


def _doc_uri(request: Any, doc: str) -> str:
    return uri_builder(request).path(paths.doc_path_for(doc)).build()


def index(request: Any) -> Response:
    """The API root with links to itself, its help and the v1 API."""
    links = [
        Link(uri_builder(request).path("").build(), "self"),
        Link(_doc_uri(request, paths.INFO_DOC), "help"),
        Link(
            uri_builder(request).path(paths.VERSION_PATH).build(),
            _doc_uri(request, paths.VERSION_INFO_DOC),
        ),
    ]
    return write_response(request, {"links": links})


def v1(request: Any) -> Response:
    """The v1 API root with links to its resources."""

    def resource(path: str, doc: str) -> Link:
        return Link(uri_builder(request).path(path).build(), _doc_uri(request, doc))

    links = [
        Link(uri_builder(request).path(paths.VERSION_PATH).build(), "self"),
        Link(uri_builder(request).path(paths.VERSION_PATH).parent().build(), "up"),
        Link(_doc_uri(request, paths.INFO_VERSION_DOC), "help"),
        resource(paths.HEALTH_PATH, paths.HEALTH_DOC),
        resource(paths.PACKS_PATH, paths.LIST_PACKS_DOC),
        resource(paths.FLOWS_PATH, paths.LIST_FLOW_DOC),
        resource(paths.DATASTORE_PATH, paths.LIST_DATA_ITEMS_DOC),
        resource(paths.AUDIT_FLOW_PATH, paths.AUDIT_FLOWS_DOC),
        resource(paths.VERSION_DOC_PATH, paths.SWAGGER_ROOT_DOC),
    ]
    return write_response(request, {"links": links})


def v1_swagger(request: Any, swagger_path: str = SWAGGER_FILE_LOCATION) -> Response:
    """Serve the API description file as YAML."""
    try:
        with open(swagger_path, "rb") as handle:
            content = handle.read()
    except OSError as exc:
        logger.error("cannot read %s: %s", swagger_path, exc)
        return Response(status=500)
    return Response(content, status=200, headers={HEADER_CONTENT_TYPE: SWAGGER_CONTENT_TYPE})


def health(request: Any, check: Callable[[], Any]) -> Response:
    """Answer 200 when the check passes and 500 when it raises."""
    try:
        check()
    except Exception as exc:
        logger.error("failed health request: %s", exc)
        return Response(status=500)
    return Response(status=200)