import json

import pytest
from werkzeug.test import EnvironBuilder
from werkzeug.wrappers import Request

from flyteapi.flows import (
    Command,
    EventDef,
    Flow,
    FlowNotFoundError,
    FlowRepository,
    Step,
    flow_response,
    flows_response,
)
from flyteapi.forwarding import set_protocol_and_host
from flyteapi.uri import Link

REDEPLOY_FLOW = r"""{
    "name": "redeploy_flow",
    "description": "Redeploys app",
    "steps": [
        {
            "id" : "hipchat_start",
            "event": {
                "packName": "Hipchat",
                "packLabels": {
                    "env" : "staging"
                },
                "name": "MessageReceived"
            },
            "criteria": "{{ \"room1234\" == \"room1234\" }}",
            "context": {
                "roomId":"room1234"
            },
            "command": {
                "packName": "Argo",
                "name": "PutArtifact",
                "input": {
                    "id": "artifact5678",
                    "name": "foo-app",
                    "version": "1.0"
                }
            }
        },
        {
            "id" : "argo_to_hipchat",
            "dependsOn" : ["hipchat_start"],
            "event": {
                    "packName": "Argo",
                    "name": "ArtifactUpdated"
            },
            "command": {
                "packName": "Hipchat",
                "packLabels": {
                    "env" : "staging"
                },
                "name": "SendMessage",
                "input": {
                    "roomId" : "room1234",
                    "message": "Pipeline created"
                }
            }
        }
    ]
}"""


def make_request(path="/"):
    environ = EnvironBuilder(path=path, base_url="http://example.com").get_environ()
    set_protocol_and_host(environ)
    return Request(environ)


def test_from_dict_to_dict_round_trip():
    data = json.loads(REDEPLOY_FLOW)
    assert Flow.from_dict(data).to_dict() == data


def test_from_dict_reads_step_fields():
    flow = Flow.from_dict(json.loads(REDEPLOY_FLOW))
    assert flow.name == "redeploy_flow"
    assert flow.description == "Redeploys app"
    assert [s.id for s in flow.steps] == ["hipchat_start", "argo_to_hipchat"]
    assert flow.steps[1].depends_on == ["hipchat_start"]
    assert flow.steps[0].event == EventDef(
        name="MessageReceived", pack_name="Hipchat", pack_labels={"env": "staging"}
    )
    assert flow.steps[0].context == {"roomId": "room1234"}
    assert flow.steps[1].command.pack_labels == {"env": "staging"}
    assert flow.steps[1].command.input == {"roomId": "room1234", "message": "Pipeline created"}


def test_uuid_is_neither_read_nor_written():
    flow = Flow.from_dict({"name": "flowA", "uuid": "abc"})
    assert flow.uuid == ""
    assert "uuid" not in Flow(name="flowA", uuid="abc").to_dict()


def test_to_dict_omits_empty_optional_fields():
    assert Flow(name="flowA").to_dict() == {"name": "flowA"}


def test_command_input_is_always_written():
    flow = Flow(name="f", steps=[Step(command=Command(name="c", pack_name="p"))])
    command = flow.to_dict()["steps"][0]["command"]
    assert "input" in command
    assert command["input"] is None
    assert "packLabels" not in command


@pytest.mark.parametrize(
    "data",
    [
        {"name": 1},
        {"name": "f", "steps": "notAList"},
        {"name": "f", "steps": [{"dependsOn": "a"}]},
        {"name": "f", "steps": [{"event": {"packLabels": {"env": 1}}}]},
        ["not", "an", "object"],
    ],
)
def test_from_dict_rejects_wrong_types(data):
    with pytest.raises(TypeError):
        Flow.from_dict(data)


def test_flow_response_links():
    body = flow_response(make_request("/v1/flows/existingFlow"), Flow(name="existingFlow"))
    assert body["name"] == "existingFlow"
    assert body["links"] == [
        Link("http://example.com/v1/flows/existingFlow", "self"),
        Link("http://example.com/v1/flows", "up"),
        Link("http://example.com/swagger#/flow", "help"),
    ]


def test_flows_response_links():
    body = flows_response(make_request("/v1/flows"), [Flow(name="flowA"), Flow(name="flowB")])
    assert [f["name"] for f in body["flows"]] == ["flowA", "flowB"]
    assert body["flows"][0]["links"] == [Link("http://example.com/v1/flows/flowA", "self")]
    assert body["links"] == [
        Link("http://example.com/v1/flows", "self"),
        Link("http://example.com/v1", "up"),
        Link("http://example.com/swagger#/flow", "help"),
    ]


def test_flows_response_with_no_flows():
    body = flows_response(make_request("/v1/flows"), [])
    assert body["flows"] == []
    assert len(body["links"]) == 3


def test_repository_add_assigns_uuid_and_get_returns_it():
    repo = FlowRepository()
    flow = Flow.from_dict(json.loads(REDEPLOY_FLOW))
    repo.add(flow)
    stored = repo.get("redeploy_flow")
    assert stored.uuid
    assert stored.to_dict() == flow.to_dict()


def test_repository_add_keeps_given_uuid():
    repo = FlowRepository()
    repo.add(Flow(name="flowA", uuid="given"))
    assert repo.get("flowA").uuid == "given"


def test_repository_add_replaces_latest_flow():
    repo = FlowRepository()
    repo.add(Flow(name="flowA", description="v1"))
    repo.add(Flow(name="flowA", description="v2"))
    assert repo.get("flowA").description == "v2"
    assert len(repo.find_all()) == 1


def test_repository_get_missing_raises():
    with pytest.raises(FlowNotFoundError, match="flow not found"):
        FlowRepository().get("nonExistingFlowName")


def test_repository_remove():
    repo = FlowRepository()
    repo.add(Flow(name="flowA"))
    repo.remove("flowA")
    with pytest.raises(FlowNotFoundError):
        repo.get("flowA")


def test_repository_remove_missing_raises():
    with pytest.raises(FlowNotFoundError):
        FlowRepository().remove("onlyInHistory")


def test_repository_find_all_is_sorted_and_summarised():
    repo = FlowRepository()
    repo.add(Flow(name="flow2", steps=[Step(id="s")]))
    repo.add(Flow(name="flow1", description="Flow description"))
    assert repo.find_all() == [
        Flow(name="flow1", description="Flow description"),
        Flow(name="flow2"),
    ]


def test_repository_returns_copies():
    repo = FlowRepository()
    repo.add(Flow(name="flowA", description="original"))
    got = repo.get("flowA")
    got.description = "changed"
    assert repo.get("flowA").description == "original"