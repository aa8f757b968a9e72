"""Route templates and documentation anchors of the HTTP API."""

VERSION_PATH = "/v1"

# audit
AUDIT_FLOW_PATH = VERSION_PATH + "/audit/flows"
AUDIT_GET_FLOW = VERSION_PATH + "/audit/flows/:correlationId"
AUDIT_DOC = "auditDoc"
AUDIT_FLOWS_DOC = "auditFlowsDoc"

# datastore
DATASTORE_PATH = VERSION_PATH + "/datastore"
DATASTORE_ITEM_PATH = VERSION_PATH + "/datastore/:key"
DATASTORE_DOC = "datastore"

# flow
FLOWS_PATH = VERSION_PATH + "/flows"
FLOW_PATH = VERSION_PATH + "/flows/:flowName"
FLOW_EXECUTION_DOC = "flowExecution"
TAKE_ACTION_RESULT_DOC = "takeActionResult"
FLOW_DOC = "FlowDoc"

# info
HEALTH_PATH = "/health"
INDEX_PATH = "/"
VERSION_DOC_PATH = VERSION_PATH + "/swagger"

HEALTH_DOC = "health"
INFO_DOC = "infoDoc"
INFO_VERSION_DOC = "infoVersionDoc"
LIST_DATA_ITEMS_DOC = "listDataItems"
LIST_FLOW_DOC = "listFlows"
LIST_FLOW_EXECUTIONS_DOC = "listFlowExecutions"
LIST_PACKS_DOC = "listPacks"
SWAGGER_ROOT_DOC = "swaggerRoot"
VERSION_INFO_DOC = "versionInfoDoc"

# packs
PACKS_PATH = VERSION_PATH + "/packs"
PACK_PATH = VERSION_PATH + "/packs/:packId"
POST_EVENT_PATH = PACK_PATH + "/events"
TAKE_ACTION_PATH = PACK_PATH + "/actions/take"
TAKE_ACTION_WITH_COMMAND_PATH = PACK_PATH + "/actions/take?commandName=:commandName"
TAKE_ACTION_RESULT_PATH = PACK_PATH + "/actions/:actionId/result"

GET_PACKS_DOC = "GetPacksDoc"
POST_EVENT_DOC = "PostEventDoc"
TAKE_ACTION_DOC = "TakeActionDoc"

DOC_PATHS: dict[str, str] = {
    AUDIT_DOC: "/swagger#/flowExecs",
    AUDIT_FLOWS_DOC: "/swagger#!/flowAudit/findFlows",
    DATASTORE_DOC: "/swagger#/datastore",
    FLOW_EXECUTION_DOC: "/swagger#!/flow-executions",
    FLOW_DOC: "/swagger#/flow",
    INFO_DOC: "/swagger#/info",
    INFO_VERSION_DOC: "/swagger#!/info" + VERSION_PATH,
    GET_PACKS_DOC: "/swagger#/pack",
    HEALTH_DOC: "/swagger#!/info/health",
    LIST_DATA_ITEMS_DOC: "/swagger#!/datastore/listDatastoreItems",
    LIST_FLOW_DOC: "/swagger#!/flow/listFlows",
    LIST_FLOW_EXECUTIONS_DOC: "/swagger#!/flowExecutions",
    LIST_PACKS_DOC: "/swagger#!/pack/listPacks",
    POST_EVENT_DOC: "/swagger#/event",
    VERSION_DOC_PATH: VERSION_PATH + "/swagger",
    SWAGGER_ROOT_DOC: "/swagger",
    TAKE_ACTION_DOC: "/swagger#!/action/takeAction",
    TAKE_ACTION_RESULT_DOC: "/swagger#/actionResult",
    VERSION_INFO_DOC: "/swagger#!/info" + VERSION_PATH,
}


def doc_path_for(name: str) -> str:
    """Return the documentation anchor for a doc name, or an empty string."""
    return DOC_PATHS.get(name, "")