"""HTTP handlers that create, list, fetch and delete flows."""

import json
import logging
import os
import re
from typing import Any, Union

import jsonschema
from werkzeug.wrappers import Response

from . import paths
from .flows import Flow, FlowNotFoundError, FlowRepository, flow_response, flows_response
from .responses import write_response
from .uri import uri_builder

SCHEMA_FILE = "flow-schema.json"

logger = logging.getLogger(__name__)

_REQUIRED = re.compile(r"^'(.*)' is a required property$")


class SchemaValidationError(ValueError):
    """Raised when a document cannot be checked or does not match the schema."""


def _describe(error: jsonschema.ValidationError) -> str:
    location = list(error.absolute_path)
    where = ".".join(str(p) for p in location) if location else "(root)"
    description = error.message
    if error.validator == "required":
        match = _REQUIRED.match(error.message)
        if match:
            description = f"{match.group(1)} is required"
    return f"{where}: {description}"


def validate_against_schema(data: Union[str, bytes], schema_path: str) -> None:
    """Check a JSON document against the JSON schema stored at schema_path.

    Raises SchemaValidationError describing the first problem found.
    """
    path = os.path.abspath(schema_path)
    source = "file://" + path
    try:
        with open(path, encoding="utf-8") as handle:
            schema_text = handle.read()
    except FileNotFoundError:
        raise SchemaValidationError(f"file not found {source}") from None
    except OSError as exc:
        raise SchemaValidationError(str(exc)) from exc

    try:
        schema = json.loads(schema_text)
    except ValueError as exc:
        raise SchemaValidationError(f"invalid schema {source}: {exc}") from exc

    try:
        document = json.loads(data)
    except ValueError as exc:
        raise SchemaValidationError(str(exc)) from exc

    validator_class = jsonschema.validators.validator_for(schema)
    try:
        validator_class.check_schema(schema)
    except jsonschema.SchemaError as exc:
        raise SchemaValidationError(exc.message) from exc

    for error in validator_class(schema).iter_errors(document):
        raise SchemaValidationError(_describe(error))


class FlowHandlers:
    """Request handlers for the flow resources, backed by a flow repository."""

    def __init__(self, repo: FlowRepository, schema_path: str = SCHEMA_FILE):
        self.repo = repo
        self.schema_path = schema_path

    def post_flow(self, request: Any) -> Response:
        body = request.get_data()
        try:
            validate_against_schema(body, self.schema_path)
        except SchemaValidationError as exc:
            logger.error("Cannot convert request to flow: %s", exc)
            return Response(status=500)

        try:
            flow = Flow.from_dict(json.loads(body))
        except (TypeError, ValueError) as exc:
            logger.error("Cannot convert request to flow: %s", exc)
            return Response(status=400)

        try:
            self.repo.add(flow)
        except Exception as exc:
            logger.error("Cannot add flow to repo flowName=%s: %s", flow.name, exc)
            return Response(status=500)

        location = uri_builder(request).path(paths.FLOWS_PATH, flow.name).build()
        return Response(status=201, headers={"Location": location})

    def get_flows(self, request: Any) -> Response:
        try:
            flows = self.repo.find_all()
        except Exception as exc:
            logger.error("Cannot find flows: %s", exc)
            return Response(status=500)
        return write_response(request, flows_response(request, flows))

    def get_flow(self, request: Any, flow_name: str) -> Response:
        try:
            flow = self.repo.get(flow_name)
        except FlowNotFoundError:
            logger.info("Flow flowName=%s not found", flow_name)
            return Response(status=404)
        except Exception as exc:
            logger.error("Cannot get flowName=%s: %s", flow_name, exc)
            return Response(status=500)
        return write_response(request, flow_response(request, flow))

    def delete_flow(self, request: Any, flow_name: str) -> Response:
        try:
            self.repo.remove(flow_name)
        except FlowNotFoundError:
            logger.info("Flow flowName=%s not found", flow_name)
            return Response(status=404)
        except Exception as exc:
            logger.error("Cannot delete flowName=%s: %s", flow_name, exc)
            return Response(status=500)
        logger.info("Flow flowName=%s deleted", flow_name)
        return Response(status=204)