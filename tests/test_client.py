import base64
import json
from typing import Dict, List
from urllib.parse import parse_qs

import httpx
import pytest

from rodsgrid.catalog.client import DATA_COLUMNS, GatewayClient
from rodsgrid.catalog.metadata import Metadatum
from rodsgrid.catalog.session import Session
from rodsgrid.core.constants import EntryType, GatewayStatus, NetworkConstants
from rodsgrid.core.exceptions import AuthFailed, GatewayError, InvalidPath, InvalidQuery, NotFound

from test_constants import ClientTestConstants as C, user_options


def _irods(status: int = 0, message: str = "", **extra) -> Dict:
    payload = {'irods_response': {'status_code': status, 'status_message': message}}
    payload.update(extra)
    return payload


class HTTPGateway:
    """Scripted iRODS HTTP API behind httpx.MockTransport"""

    def __init__(self):
        self.queries: Dict[str, List[List[str]]] = {}
        self.responses: Dict[str, httpx.Response] = {}
        self.requests: List[httpx.Request] = []
        self.forms: List[Dict[str, str]] = []
        self.resources: Dict[str, Dict] = {}
        self.users: Dict[str, Dict] = {}
        self.refuse_connections = False

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        if self.refuse_connections:
            raise httpx.ConnectError("connection refused", request=request)

        self.requests.append(request)
        endpoint = request.url.path[len(NetworkConstants.DEFAULT_BASE_PATH):]
        params = request.url.params

        if endpoint == "/authenticate":
            expected = base64.b64encode(f"{C.USERNAME}:{C.PASSWORD}".encode()).decode()
            if request.headers.get("Authorization") != f"Basic {expected}":
                return httpx.Response(401, text="Authentication failed")
            return httpx.Response(200, text=C.TOKEN)

        if endpoint == "/query":
            query = params["query"]
            if query in self.responses:
                return self.responses[query]
            rows = self.queries.get(query, [])
            offset, count = int(params["offset"]), int(params["count"])
            return httpx.Response(200, json=_irods(rows=rows[offset:offset + count]))

        if endpoint == "/resources" and request.method == "GET":
            name = params["name"]
            if name not in self.resources:
                return httpx.Response(200, json=_irods(exists=False))
            return httpx.Response(200, json=_irods(exists=True, info=self.resources[name]))

        if endpoint == "/users-groups" and request.method == "GET":
            name = params["name"]
            if name not in self.users:
                return httpx.Response(200, json=_irods(exists=False))
            return httpx.Response(200, json=_irods(exists=True, **self.users[name]))

        form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
        form['endpoint'] = endpoint
        self.forms.append(form)
        if form.get('lpath', "").endswith("/gone"):
            return httpx.Response(404, json=_irods(GatewayStatus.OBJ_PATH_DOES_NOT_EXIST, "OBJ_PATH_DOES_NOT_EXIST"))
        return httpx.Response(200, json=_irods())


def _data_row(coll: str, name: str, size: str = "10", checksum: str = "", modified: str = "1700000000"):
    return [coll, name, size, checksum, modified]


@pytest.fixture
def http_gateway():
    return HTTPGateway()


@pytest.fixture
def client(http_gateway):
    client = GatewayClient(transport=http_gateway.transport())
    client.connect(C.HOST, C.PORT, C.USERNAME, C.ZONE, C.PASSWORD)
    return client


# Authentication

def test_connect_authenticates_and_uses_bearer_token(client, http_gateway):
    http_gateway.queries[f"SELECT COLL_NAME WHERE COLL_NAME = '{C.HOME}'"] = [[C.HOME]]

    assert client.stat(C.HOME) == {'path': C.HOME, 'type': str(EntryType.COLLECTION)}

    auth_request, query_request = http_gateway.requests
    assert str(auth_request.url) == f"{C.BASE_URL}/authenticate"
    assert auth_request.method == "POST"
    assert query_request.headers["Authorization"] == f"Bearer {C.TOKEN}"
    assert query_request.headers["Accept"] == "application/json"
    assert query_request.url.params["op"] == "execute_genquery"


def test_connect_rejected_credentials(http_gateway):
    client = GatewayClient(transport=http_gateway.transport())

    with pytest.raises(AuthFailed) as excinfo:
        client.connect(C.HOST, C.PORT, C.USERNAME, C.ZONE, "wrong")

    assert "Authentication failed" in excinfo.value.message
    assert client.client is None


def test_connect_unreachable_gateway(http_gateway):
    http_gateway.refuse_connections = True
    client = GatewayClient(transport=http_gateway.transport())

    with pytest.raises(GatewayError) as excinfo:
        client.connect(C.HOST, C.PORT, C.USERNAME, C.ZONE, C.PASSWORD)

    assert excinfo.value.code == GatewayStatus.TRANSPORT_ERROR


def test_connect_from_environment_reads_ambient_file(tmp_path, http_gateway):
    env_path = tmp_path / "irods_environment.json"
    env_path.write_text(json.dumps({
        'irods_host': C.HOST, 'irods_port': C.PORT,
        'irods_user_name': C.USERNAME, 'irods_zone_name': C.ZONE,
    }))
    client = GatewayClient(transport=http_gateway.transport(), env_path=str(env_path))

    identity = client.connect_from_environment(C.PASSWORD)

    assert identity == {'host': C.HOST, 'port': C.PORT, 'username': C.USERNAME, 'zone': C.ZONE}
    assert str(http_gateway.requests[0].url) == f"{C.BASE_URL}/authenticate"


def test_disconnect_closes_client(client, http_gateway):
    http_gateway.queries[f"SELECT COLL_NAME WHERE COLL_NAME = '{C.HOME}'"] = [[C.HOME]]
    client.stat(C.HOME)

    stats = client.get_session_stats()
    assert stats['total_requests'] == 1
    assert stats['client_active']

    client.disconnect()
    assert not client.get_session_stats()['client_active']

    with pytest.raises(GatewayError):
        client.disconnect()
    with pytest.raises(GatewayError):
        client.stat(C.HOME)


# Catalog queries

def test_stat_data_object(client, http_gateway):
    http_gateway.queries[
        f"SELECT {DATA_COLUMNS} WHERE COLL_NAME = '{C.DOCS}' AND DATA_NAME = 'report.txt'"
    ] = [_data_row(C.DOCS, "report.txt", "2048", "sha2:abc")]

    assert client.stat(C.REPORT) == {
        'path': C.REPORT, 'type': str(EntryType.DATA_OBJECT),
        'size': 2048, 'checksum': "sha2:abc", 'modified_at': 1700000000,
    }


def test_stat_missing_entry_is_not_found(client):
    with pytest.raises(NotFound) as excinfo:
        client.stat("/tempZone/home/carol")

    assert excinfo.value.path == "/tempZone/home/carol"


def test_single_quote_in_literal_is_refused_before_sending(client, http_gateway):
    path = "/tempZone/home/o'brien"

    with pytest.raises(InvalidPath) as excinfo:
        client.stat(path)
    assert excinfo.value.path == path
    assert "\"'\"" in excinfo.value.message

    with pytest.raises(InvalidPath):
        client.list_collection(path, recursive=True)
    with pytest.raises(InvalidPath):
        client.list_metadata("d", path + "/notes.txt")
    with pytest.raises(InvalidQuery):
        client.search_data_objects("o'b%")
    with pytest.raises(InvalidQuery):
        client.query_data_objects([("owner", "=", "o'brien")])

    assert [r.url.path for r in http_gateway.requests] == [f"{NetworkConstants.DEFAULT_BASE_PATH}/authenticate"]


def test_list_collection_immediate_children(client, http_gateway):
    http_gateway.queries[f"SELECT COLL_NAME WHERE COLL_PARENT_NAME = '{C.ALICE}'"] = [[C.DOCS]]
    http_gateway.queries[f"SELECT {DATA_COLUMNS} WHERE COLL_NAME = '{C.ALICE}'"] = [
        _data_row(C.ALICE, "notes.txt"),
        _data_row(C.ALICE, "notes.txt"),
    ]

    entries = client.list_collection(C.ALICE, recursive=False)

    assert [(e['path'], e['type']) for e in entries] == [
        (C.DOCS, "collection"),
        (C.NOTES, "data_object"),
    ]


def test_list_collection_recursive(client, http_gateway):
    http_gateway.queries[f"SELECT COLL_NAME WHERE COLL_NAME like '{C.ALICE}/%'"] = [[C.DOCS], [C.DRAFTS]]
    http_gateway.queries[f"SELECT {DATA_COLUMNS} WHERE COLL_NAME = '{C.ALICE}'"] = [_data_row(C.ALICE, "notes.txt")]
    http_gateway.queries[f"SELECT {DATA_COLUMNS} WHERE COLL_NAME like '{C.ALICE}/%'"] = [
        _data_row(C.DOCS, "report.txt"),
        _data_row(C.DRAFTS, "v1.txt"),
    ]

    entries = client.list_collection(C.ALICE, recursive=True)

    assert [e['path'] for e in entries] == [C.DOCS, C.DRAFTS, C.NOTES, C.REPORT, C.DRAFT]


def test_query_follows_pages(client, http_gateway, monkeypatch):
    monkeypatch.setattr(NetworkConstants, "QUERY_PAGE_SIZE", 2)
    http_gateway.queries[f"SELECT COLL_NAME WHERE COLL_PARENT_NAME = '{C.HOME}'"] = [
        [C.ALICE], [C.BOB], ["/tempZone/home/carol"],
    ]

    entries = client.list_collection(C.HOME, recursive=False)

    assert [e['path'] for e in entries] == [C.ALICE, C.BOB, "/tempZone/home/carol"]
    offsets = [r.url.params["offset"] for r in http_gateway.requests
               if r.url.params.get("query", "").endswith(f"COLL_PARENT_NAME = '{C.HOME}'")]
    assert offsets == ["0", "2"]


def test_no_rows_status_is_an_empty_result(client, http_gateway):
    query = f"SELECT COLL_NAME WHERE COLL_PARENT_NAME = '{C.BOB}'"
    http_gateway.responses[query] = httpx.Response(
        200, json=_irods(GatewayStatus.CAT_NO_ROWS_FOUND, "CAT_NO_ROWS_FOUND"))

    assert client.list_collection(C.BOB, recursive=False) == []


def test_irods_status_codes_are_translated(client, http_gateway):
    query = f"SELECT COLL_NAME WHERE COLL_NAME = '{C.HOME}'"

    http_gateway.responses[query] = httpx.Response(200, json=_irods(-818000, "CAT_NO_ACCESS_PERMISSION"))
    with pytest.raises(GatewayError) as excinfo:
        client.stat(C.HOME)
    assert excinfo.value.code == -818000
    assert excinfo.value.message == "CAT_NO_ACCESS_PERMISSION"

    http_gateway.responses[query] = httpx.Response(200, json=_irods(GatewayStatus.CAT_INVALID_USER))
    with pytest.raises(AuthFailed):
        client.stat(C.HOME)


def test_http_errors_without_irods_body(client, http_gateway):
    query = f"SELECT COLL_NAME WHERE COLL_NAME = '{C.HOME}'"
    http_gateway.responses[query] = httpx.Response(503, text="Service Unavailable")

    with pytest.raises(GatewayError) as excinfo:
        client.stat(C.HOME)

    assert excinfo.value.code == 503


def test_non_json_reply_is_unexpected(client, http_gateway):
    query = f"SELECT COLL_NAME WHERE COLL_NAME = '{C.HOME}'"
    http_gateway.responses[query] = httpx.Response(200, text="<html>proxy</html>")

    with pytest.raises(GatewayError) as excinfo:
        client.stat(C.HOME)

    assert excinfo.value.code == GatewayStatus.UNEXPECTED_RESPONSE


# Resources and users

def test_stat_resource_distinguishes_groups(client, http_gateway):
    http_gateway.resources[C.RESOURCE] = {'type': "unixfilesystem"}
    http_gateway.resources[C.RESOURCE_GROUP] = {'type': "replication"}

    assert client.stat_resource(C.RESOURCE)['type'] == "resource"
    assert client.stat_resource(C.RESOURCE_GROUP)['type'] == "resource_group"
    with pytest.raises(NotFound):
        client.stat_resource("nowhere")


def test_stat_user(client, http_gateway):
    http_gateway.users[C.USERNAME] = {'type': "rodsuser", 'zone': C.ZONE}

    entry = client.stat_user(C.USERNAME)

    assert entry['type'] == "user"
    assert entry['zone'] == C.ZONE
    with pytest.raises(NotFound):
        client.stat_user("mallory")


# Metadata

def test_list_metadata_per_kind(client, http_gateway):
    http_gateway.queries[
        "SELECT META_DATA_ATTR_NAME, META_DATA_ATTR_VALUE, META_DATA_ATTR_UNITS "
        f"WHERE COLL_NAME = '{C.DOCS}' AND DATA_NAME = 'report.txt'"
    ] = [["project", "alpha", ""], ["size", "10", "MB"]]
    http_gateway.queries[
        "SELECT META_RESC_ATTR_NAME, META_RESC_ATTR_VALUE, META_RESC_ATTR_UNITS "
        f"WHERE RESC_NAME = '{C.RESOURCE}'"
    ] = [["tier", "fast", ""]]

    assert client.list_metadata("d", C.REPORT) == [Metadatum("project", "alpha"), Metadatum("size", "10", "MB")]
    assert client.list_metadata("R", C.RESOURCE) == [Metadatum("tier", "fast")]
    assert client.list_metadata("u", C.USERNAME) == []


def test_modify_metadata_posts_operations(client, http_gateway):
    client.add_metadata("d", C.REPORT, Metadatum("stage", "raw"))
    client.remove_metadata("u", C.USERNAME, Metadatum("team", "grid", "x"))
    client.add_metadata("R", C.RESOURCE, Metadatum("tier", "fast"))

    added, removed, tagged = http_gateway.forms
    assert [r.method for r in http_gateway.requests[1:]] == ["POST", "POST", "POST"]
    assert tagged['endpoint'] == "/resources"
    assert tagged['name'] == C.RESOURCE
    assert added['endpoint'] == "/data-objects"
    assert added['op'] == "modify_metadata"
    assert added['lpath'] == C.REPORT
    assert json.loads(added['operations']) == [
        {'operation': "add", 'attribute': "stage", 'value': "raw", 'units': ""}
    ]
    assert removed['endpoint'] == "/users-groups"
    assert removed['name'] == C.USERNAME
    assert json.loads(removed['operations'])[0]['operation'] == "remove"


def test_modify_metadata_on_missing_path(client):
    with pytest.raises(NotFound) as excinfo:
        client.add_metadata("C", "/tempZone/home/gone", Metadatum("a", "b"))

    assert excinfo.value.path == "/tempZone/home/gone"


# Searches

def test_search_data_objects_splits_collection_pattern(client, http_gateway):
    http_gateway.queries[
        f"SELECT {DATA_COLUMNS} WHERE COLL_NAME like '/tempZone/home/%' AND DATA_NAME like '%.txt'"
    ] = [_data_row(C.ALICE, "notes.txt"), _data_row(C.ALICE, "notes.txt"), _data_row(C.DOCS, "report.txt")]
    http_gateway.queries[f"SELECT {DATA_COLUMNS} WHERE DATA_NAME like 'v%'"] = [_data_row(C.DRAFTS, "v1.txt")]

    assert [e['path'] for e in client.search_data_objects("/tempZone/home/%/%.txt")] == [C.NOTES, C.REPORT]
    assert [e['path'] for e in client.search_data_objects("v%")] == [C.DRAFT]


def test_query_data_objects_intersects_conditions(client, http_gateway):
    prefix = f"SELECT {DATA_COLUMNS} WHERE META_DATA_ATTR_NAME = "
    http_gateway.queries[prefix + "'project' AND META_DATA_ATTR_VALUE = 'alpha'"] = [
        _data_row(C.DOCS, "report.txt"), _data_row(C.ALICE, "notes.txt"),
    ]
    http_gateway.queries[prefix + "'size' AND META_DATA_ATTR_VALUE >= '10'"] = [
        _data_row(C.DOCS, "report.txt"),
    ]

    matched = client.query_data_objects([("project", "=", "alpha"), ("size", ">=", "10")])

    assert [e['path'] for e in matched] == [C.REPORT]


# End to end

def test_session_over_http_gateway(http_gateway):
    http_gateway.queries[f"SELECT COLL_NAME WHERE COLL_NAME = '{C.ALICE}'"] = [[C.ALICE]]
    http_gateway.queries[f"SELECT COLL_NAME WHERE COLL_PARENT_NAME = '{C.ALICE}'"] = [[C.DOCS]]
    http_gateway.queries[f"SELECT {DATA_COLUMNS} WHERE COLL_NAME = '{C.ALICE}'"] = [_data_row(C.ALICE, "notes.txt")]

    session = Session.open(user_options(), GatewayClient(transport=http_gateway.transport()))
    alice = session.collection(C.ALICE)

    assert [child.display() for child in alice.get_children()] == [f"C:{C.DOCS}", f"d:{C.NOTES}"]

    session.disconnect()
    assert not session.is_connected()


def test_session_open_wraps_transport_failure(http_gateway):
    http_gateway.refuse_connections = True

    with pytest.raises(AuthFailed) as excinfo:
        Session.open(user_options(), GatewayClient(transport=http_gateway.transport()))

    assert "connection refused" in excinfo.value.message


def test_session_open_rejects_bad_password(http_gateway):
    options = user_options(password="wrong")

    with pytest.raises(AuthFailed):
        Session.open(options, GatewayClient(transport=http_gateway.transport()))


def test_session_keeps_cache_when_literal_is_refused(http_gateway):
    http_gateway.queries[f"SELECT COLL_NAME WHERE COLL_NAME = '{C.ALICE}'"] = [[C.ALICE]]

    session = Session.open(user_options(), GatewayClient(transport=http_gateway.transport()))
    session.collection(C.ALICE)

    with pytest.raises(InvalidPath):
        session.collection(f"{C.ALICE}/o'brien")

    assert session.opened.paths() == [C.ALICE]
