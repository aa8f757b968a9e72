# flyteapi

`flyteapi` holds the core of an event-driven workflow service. *Packs* —
small services that talk to chat systems, build tools, issue trackers and the
like — post **events** and ask for **actions** to carry out. A **flow** is a
named list of **steps**; each step says which event it reacts to, which
criteria must hold, and which command a pack should run in response.

## What is in the package

- `flyteapi.flows`: the `Flow`, `Step`, `EventDef` and `Command` model of a
  submitted flow (`Flow.from_dict`, `Flow.to_dict`), the API views
  `flow_response` and `flows_response`, `FlowNotFoundError`, and
  `FlowRepository`, an in-memory store keeping the latest flow per name plus
  every version added.
- `flyteapi.flowhandlers`: `validate_against_schema(data, schema_path)` and
  `FlowHandlers`, whose `post_flow`, `get_flows`, `get_flow` and
  `delete_flow` take a werkzeug `Request` and return a werkzeug `Response`.
- `flyteapi.actions`: `Pack`, `Event`, `Action`, `State` and `ActionState`
  (`NEW` → `PENDING` → `SUCCESS` or `FATAL`), the errors
  `ActionNotFoundError`, `PackNotFoundError` and `ActionStateError`, and the
  in-memory stores `ActionRepository` and `PackRepository`.
- `flyteapi.steps`: steps as they run — `Step`, `EventDef`, `Command`,
  `resolve_template` and `TemplateError`.
- `flyteapi.execution`: `FlowExecution` (one run of a flow),
  `FlowExecutionRepository` and `FlowService`, which dispatches events and
  completed actions to runs on a thread pool.
- `flyteapi.executionhandlers`: `to_event`, `action_response` and
  `ExecutionHandlers` with `post_event`, `complete_action` and `take_action`.
- `flyteapi.info`: `index`, `v1`, `v1_swagger` and `health`.
- HTTP helpers: `flyteapi.uri` (`Link`, `UriBuilder`, `uri_builder`),
  `flyteapi.forwarding` (`set_protocol_and_host`, `RequestInterceptor`),
  `flyteapi.page` (`Page`, `new_page`), `flyteapi.responses`
  (`write_response`) and `flyteapi.paths` (route templates and
  `doc_path_for`).
- `flyteapi.jsonvalue`: `parse_json(stream)` reads the first JSON value from
  a stream, string or bytes and raises `ValueError` when there is none.

## Building links

```python
from werkzeug.test import EnvironBuilder
from werkzeug.wrappers import Request

from flyteapi.uri import uri_builder

request = Request(EnvironBuilder(path="/", base_url="http://example.com").get_environ())

uri_builder(request).path("/packs", "/hipchat").build()
# 'http://example.com/packs/hipchat'

uri_builder(request).path("/packs/:pack").replace(":pack", "").build()
# 'http://example.com/packs'
```

Behind a proxy, call `set_protocol_and_host(environ)` first, or wrap your WSGI
application in `RequestInterceptor`. The protocol comes from
`X-Forwarded-Proto`, else `https` for TLS requests, else `http`; the host from
`X-Flyte-Host`, else `X-Forwarded-Host`, else the request's own host.

## Responses

`write_response(request, value)` returns YAML (`application/x-yaml;
charset=utf-8`) when the request's `Accept` header is exactly
`application/x-yaml`, and compact JSON (`application/json; charset=utf-8`)
otherwise. Values that cannot be serialised, such as NaN, give a 500 response.
Objects with a `to_dict` method, such as `Link`, are serialised through it.

## Pagination

`new_page(request, total_items)` reads `page` and `per_page` from the query
string. The page number defaults to 1 and is capped at the number of pages;
`per_page` defaults to 30 and is capped at 300. `Page.links_for(uri,
default_links)` returns the default links followed by `first`, `prev`, `next`
and `last` where they apply.

## Flows

```python
from flyteapi.flows import Flow, FlowRepository

flow = Flow.from_dict({
    "name": "redeploy_flow",
    "steps": [{
        "id": "hipchat_start",
        "event": {"packName": "Hipchat", "name": "MessageReceived"},
        "command": {"packName": "Argo", "name": "PutArtifact",
                    "input": {"name": "foo-app"}},
    }],
})
repo = FlowRepository()
repo.add(flow)
repo.get("redeploy_flow").name
# 'redeploy_flow'
```

`FlowHandlers(repo, schema_path="flow-schema.json")` validates each posted
body against the JSON schema at `schema_path` before storing it. A failed check
is logged (for example `(root): name is required`) and answered with 500; a
body that passes the schema but not `Flow.from_dict` is answered with 400; a
stored flow is answered with 201 and a `Location` header.

## Steps and templates

Step context values, pack labels, criteria and command input are Jinja
templates that see `Event` (with `Name`, `Pack` and `Payload`) and `Context`:

```python
from flyteapi.steps import resolve_template

resolve_template({"env": "{{ Event.Payload.eventEnv }}"},
                 {"Event": {"Payload": {"eventEnv": "dev"}}, "Context": {}})
# {'env': 'dev'}
```

`Step.execute(event, parent_ctx)` returns a new `Action` in the `NEW` state
when the event's name, pack name and labels match and the criteria resolve to
true; it returns `None` when they do not. It raises `TemplateError` when a
template cannot be resolved and `ValueError` when the criteria do not resolve
to a boolean such as `true` or `false`.

## Running flows

```python
from flyteapi.actions import ActionRepository, Event, Pack
from flyteapi.execution import FlowExecution, FlowExecutionRepository, FlowService
from flyteapi.steps import Command, EventDef, Step

actions = ActionRepository()
run = FlowExecution(uuid="flow-1", name="greet", steps=[
    Step(id="start",
         event=EventDef(name="MessageReceived", pack_name="Slack"),
         command=Command(name="SendMessage", pack_name="Slack", input="hello")),
])
service = FlowService(FlowExecutionRepository(actions, flows=[run]), actions)

for future in service.handle_event(Event(name="MessageReceived", pack=Pack(name="Slack"))):
    future.result()

actions.find_new(Pack(name="Slack"), "SendMessage").input
# 'hello'
```

`ExecutionHandlers(pack_repo, action_repo, flow_service)` serves packs:
`post_event` answers 202 and hands the event to the flow service,
`take_action` answers 200 with the action's command, input and result link or
204 when there is none, and `complete_action` answers 202 and passes both the
result event and the finished action on. Unknown packs get 404.

## What the package does not do

- It has no command to start it and no HTTP server or router: the handlers
  take path parameters as arguments, and mapping URLs onto them is up to the
  application that uses them.
- All stores are in memory and lost when the process ends; there is no
  database storage, and no scheduled removal of packs that have stopped
  reporting.
- Flows stored through `FlowRepository` are not turned into `FlowExecution`
  runs for you; the application builds the `FlowExecution` objects that
  `FlowExecutionRepository` serves.
- There is no authentication or TLS set-up, and no endpoints for packs,
  the datastore or flow auditing beyond the links that `v1` lists.

## Tests

The test suite uses pytest and is installed with the `test` extra:

```
pip install -e .[test]
pytest
```