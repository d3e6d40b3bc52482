"""
Catalog Gateway Client

Speaks the iRODS HTTP API on behalf of a Session using httpx. Catalog
listings, metadata listings and searches go through general queries;
metadata changes go through the per-kind modify_metadata operations.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

try:
    import httpx
except ImportError:
    raise ImportError("httpx is required for GatewayClient. Install with: pip install httpx")

from ..core.config import load_irods_environment
from ..core.constants import EntryType, ErrorMessages, GatewayStatus, MetadataConstants, NetworkConstants
from ..core.exceptions import AuthFailed, Fatal, GatewayError, InvalidPath, InvalidQuery, NotFound
from ..core.paths import ROOT, join, split
from ..core.utils import format_bytes, handle_gateway_error
from .metadata import Metadatum

logger = logging.getLogger(__name__)

Endpoint = NetworkConstants.Endpoint

DATA_COLUMNS = "COLL_NAME, DATA_NAME, DATA_SIZE, DATA_CHECKSUM, DATA_MODIFY_TIME"

# kind code -> (AVU column prefix, modify endpoint, target parameter)
METADATA_TARGETS = {
    "d": ("META_DATA_ATTR", Endpoint.DATA_OBJECTS, "lpath"),
    "C": ("META_COLL_ATTR", Endpoint.COLLECTIONS, "lpath"),
    "R": ("META_RESC_ATTR", Endpoint.RESOURCES, "name"),
    "u": ("META_USER_ATTR", Endpoint.USERS_GROUPS, "name"),
}


def _to_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _literal(value: str, operation: str, path: Optional[str] = None, error=InvalidPath) -> str:
    """
    Quote a string for a general query

    General queries have no escape for a single quote, so a value holding one
    is refused instead of sending a query the catalog would misread.
    """
    if "'" in value:
        raise error(str(ErrorMessages.QueryError.UNQUOTABLE_LITERAL).format(char='"\'"', value=value),
                    path=path, operation=operation)
    return f"'{value}'"


def _data_entry(row: List[str]) -> Dict[str, Any]:
    coll_name, data_name, size, checksum, modified = row
    return {
        'path': join(coll_name, data_name),
        'type': str(EntryType.DATA_OBJECT),
        'size': _to_int(size),
        'checksum': checksum or None,
        'modified_at': _to_int(modified),
    }


class GatewayClient:
    """Transport to an iRODS HTTP API gateway"""

    def __init__(self, scheme: str = NetworkConstants.DEFAULT_SCHEME,
                 base_path: str = NetworkConstants.DEFAULT_BASE_PATH,
                 timeout: float = NetworkConstants.DEFAULT_TIMEOUT,
                 verify: bool = True, transport: Optional[httpx.BaseTransport] = None,
                 env_path: Optional[str] = None):
        """
        Initialize the gateway client

        Args:
            scheme: 'http' or 'https'
            base_path: API prefix on the gateway host
            timeout: Per-request timeout in seconds
            verify: Verify TLS certificates
            transport: httpx transport override (used by tests)
            env_path: Ambient environment file override
        """
        self.scheme = scheme
        self.base_path = base_path.rstrip('/')
        self.timeout = timeout
        self.verify = verify
        self.env_path = env_path
        self._transport = transport

        self.client: Optional[httpx.Client] = None
        self.zone: Optional[str] = None

        # Performance tracking
        self._connection_time = None
        self._request_count = 0
        self._total_request_time = 0.0
        self._total_bytes_received = 0

    def read_ambient_env(self) -> Dict[str, Any]:
        return load_irods_environment(self.env_path)

    def connect(self, host: str, port: int, username: str, zone: str, password: str = None) -> None:
        """
        Authenticate and keep a bearer token for subsequent requests

        Raises:
            AuthFailed: If the gateway rejects the credentials
            GatewayError: If the gateway cannot be reached
        """
        base_url = f"{self.scheme}://{host}:{port}{self.base_path}"
        client = httpx.Client(
            base_url=base_url,
            timeout=httpx.Timeout(self.timeout),
            verify=self.verify,
            transport=self._transport,
            headers={str(NetworkConstants.HTTPHeader.USER_AGENT): NetworkConstants.USER_AGENT}
        )

        try:
            response = client.post(str(Endpoint.AUTHENTICATE), auth=(username, password or ""))
        except httpx.HTTPError as e:
            client.close()
            handle_gateway_error(e, "authenticate")

        if response.status_code in (401, 403):
            client.close()
            detail = response.text.strip() or response.reason_phrase
            raise AuthFailed(f"HTTP {response.status_code}: {detail}", operation="connect")
        if response.is_error:
            client.close()
            raise GatewayError(response.status_code, f"HTTP {response.status_code}: {response.reason_phrase}",
                               operation="connect")

        token = response.text.strip()
        client.headers[str(NetworkConstants.HTTPHeader.AUTHORIZATION)] = f"Bearer {token}"

        self.client = client
        self.zone = zone
        self._connection_time = time.time()
        logger.debug(f"Authenticated as {username} with gateway {base_url}")

    def connect_from_environment(self, password: str = None) -> Dict[str, Any]:
        identity = self.read_ambient_env()
        self.connect(identity['host'], identity['port'], identity['username'], identity['zone'], password)
        return identity

    def disconnect(self) -> None:
        """
        Close the HTTP client and log session statistics

        Raises:
            GatewayError: If the client was never connected
        """
        if self.client is None:
            raise GatewayError(GatewayStatus.TRANSPORT_ERROR, "Gateway client is not connected",
                               operation="disconnect")

        try:
            self.client.close()
        except httpx.HTTPError as e:
            handle_gateway_error(e, "disconnect")
        finally:
            self.client = None

        if self._request_count > 0:
            stats = self.get_session_stats()
            logger.info(f"Gateway session closed: {self._request_count} requests, "
                        f"{stats['average_request_time']:.2f}s avg, "
                        f"{format_bytes(self._total_bytes_received)} transferred")

    def get_session_stats(self) -> Dict[str, Any]:
        """
        Get request statistics for this client

        Returns:
            Dict with session statistics
        """
        connection_age = time.time() - self._connection_time if self._connection_time else 0
        avg_request_time = self._total_request_time / self._request_count if self._request_count > 0 else 0

        return {
            'connection_age_seconds': connection_age,
            'total_requests': self._request_count,
            'total_request_time': self._total_request_time,
            'average_request_time': avg_request_time,
            'total_bytes_received': self._total_bytes_received,
            'client_active': self.client is not None,
        }

    def _request(self, method: str, endpoint: Endpoint, operation: str, path: Optional[str] = None,
                 params: Optional[Dict[str, Any]] = None, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send one request and decode the gateway's JSON reply

        Raises:
            NotFound: If the gateway reports a missing entry
            GatewayError: On transport failures or non-zero iRODS status
        """
        if self.client is None:
            raise GatewayError(GatewayStatus.TRANSPORT_ERROR, "Gateway client is not connected",
                               path=path, operation=operation)

        headers = {str(NetworkConstants.HTTPHeader.ACCEPT): NetworkConstants.JSON_MEDIA_TYPE}
        start_time = time.time()
        try:
            response = self.client.request(method, str(endpoint), params=params, data=data, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            # The gateway reports iRODS errors in the body of 4xx/5xx replies too
            payload = self._decode(e.response, operation, path, strict=False)
            if payload is not None:
                self._check_status(payload, operation, path)
            handle_gateway_error(e, operation, path)
        except httpx.HTTPError as e:
            handle_gateway_error(e, operation, path)

        self._request_count += 1
        self._total_request_time += time.time() - start_time
        self._total_bytes_received += len(response.content)

        payload = self._decode(response, operation, path)
        self._check_status(payload, operation, path)
        return payload

    @staticmethod
    def _decode(response: httpx.Response, operation: str, path: Optional[str], strict: bool = True):
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            return payload
        if strict:
            raise GatewayError(GatewayStatus.UNEXPECTED_RESPONSE, "Gateway returned a non-JSON reply",
                               path=path, operation=operation)
        return None

    @staticmethod
    def _check_status(payload: Dict[str, Any], operation: str, path: Optional[str]) -> None:
        status = payload.get('irods_response', {}).get('status_code', 0)
        if status == GatewayStatus.SUCCESS:
            return

        message = payload['irods_response'].get('status_message') or ""
        if status in GatewayStatus.get_not_found_codes():
            raise NotFound(message or str(ErrorMessages.CatalogError.NOT_FOUND).format(path=path),
                           path=path, operation=operation)
        if status in GatewayStatus.get_auth_codes():
            raise AuthFailed(message, path=path, operation=operation)
        raise GatewayError(status, message, path=path, operation=operation)

    def _query(self, query: str, operation: str, path: Optional[str] = None) -> List[List[str]]:
        """Run a general query, following pages until the gateway runs dry"""
        rows = []
        offset = 0
        page_size = NetworkConstants.QUERY_PAGE_SIZE

        while True:
            params = {'op': 'execute_genquery', 'query': query, 'offset': offset, 'count': page_size}
            try:
                payload = self._request("GET", Endpoint.QUERY, operation, path, params=params)
            except NotFound:
                break

            page = payload.get('rows') or []
            rows.extend(page)
            if len(page) < page_size:
                break
            offset += len(page)

        logger.debug(f"Query returned {len(rows)} rows: {query}")
        return rows

    def stat(self, path: str) -> Dict[str, Any]:
        """
        Describe a collection or data object

        Raises:
            NotFound: If nothing exists at path
        """
        if self._query(f"SELECT COLL_NAME WHERE COLL_NAME = {_literal(path, 'stat', path)}", "stat", path):
            return {'path': path, 'type': str(EntryType.COLLECTION)}

        if path != ROOT:
            parent, name = split(path)
            condition = f"COLL_NAME = {_literal(parent, 'stat', path)} AND DATA_NAME = {_literal(name, 'stat', path)}"
            rows = self._query(f"SELECT {DATA_COLUMNS} WHERE {condition}", "stat", path)
            if rows:
                return _data_entry(rows[0])

        raise NotFound(str(ErrorMessages.CatalogError.NOT_FOUND).format(path=path), path=path, operation="stat")

    def list_collection(self, path: str, recursive: bool) -> List[Dict[str, Any]]:
        """
        List entries below a collection: sub collections first, then data objects

        Args:
            path: Normalized collection path
            recursive: Include all transitive descendants

        Returns:
            List of entry dicts in catalog order
        """
        prefix = "" if path == ROOT else path
        exact = _literal(path, "list", path)

        if recursive:
            below = _literal(f"{prefix}/%", "list", path)
            coll_rows = self._query(f"SELECT COLL_NAME WHERE COLL_NAME like {below}", "list", path)
            data_rows = self._query(f"SELECT {DATA_COLUMNS} WHERE COLL_NAME = {exact}", "list", path)
            data_rows += self._query(f"SELECT {DATA_COLUMNS} WHERE COLL_NAME like {below}", "list", path)
        else:
            coll_rows = self._query(f"SELECT COLL_NAME WHERE COLL_PARENT_NAME = {exact}", "list", path)
            data_rows = self._query(f"SELECT {DATA_COLUMNS} WHERE COLL_NAME = {exact}", "list", path)

        entries = []
        for row in coll_rows:
            if row[0] != path:
                entries.append({'path': row[0], 'type': str(EntryType.COLLECTION)})

        # One row per replica; keep the first
        seen = set()
        for row in data_rows:
            entry = _data_entry(row)
            if entry['path'] not in seen:
                seen.add(entry['path'])
                entries.append(entry)

        return entries

    def stat_resource(self, name: str) -> Dict[str, Any]:
        payload = self._request("GET", Endpoint.RESOURCES, "resource", params={'op': 'stat', 'name': name})
        if not payload.get('exists', True):
            raise NotFound(f"No such resource: {name}", path=name, operation="resource")

        info = payload.get('info') or {}
        resource_type = info.get('type')
        if resource_type in MetadataConstants.COORDINATING_RESOURCE_TYPES:
            entry_type = EntryType.RESOURCE_GROUP
        else:
            entry_type = EntryType.RESOURCE
        return {'path': name, 'name': name, 'type': str(entry_type), 'resource_type': resource_type}

    def stat_user(self, name: str) -> Dict[str, Any]:
        payload = self._request("GET", Endpoint.USERS_GROUPS, "user", params={'op': 'stat', 'name': name})
        if not payload.get('exists', True):
            raise NotFound(f"No such user: {name}", path=name, operation="user")
        return {'path': name, 'name': name, 'type': str(EntryType.USER),
                'user_type': payload.get('type'), 'zone': payload.get('zone')}

    @staticmethod
    def _metadata_target(kind_code: str) -> Tuple[str, Any, str]:
        try:
            return METADATA_TARGETS[kind_code]
        except KeyError:
            raise Fatal(str(ErrorMessages.CatalogError.UNKNOWN_KIND).format(kind=kind_code))

    def list_metadata(self, kind_code: str, target: str) -> List[Metadatum]:
        prefix, _, _ = self._metadata_target(kind_code)
        columns = f"{prefix}_NAME, {prefix}_VALUE, {prefix}_UNITS"

        if kind_code == "d":
            parent, name = split(target)
            condition = (f"COLL_NAME = {_literal(parent, 'metadata', target)} "
                         f"AND DATA_NAME = {_literal(name, 'metadata', target)}")
        elif kind_code == "C":
            condition = f"COLL_NAME = {_literal(target, 'metadata', target)}"
        elif kind_code == "R":
            condition = f"RESC_NAME = {_literal(target, 'metadata', target)}"
        else:
            condition = f"USER_NAME = {_literal(target, 'metadata', target)}"

        rows = self._query(f"SELECT {columns} WHERE {condition}", "metadata", target)
        return [Metadatum(attr, value, units or "") for attr, value, units in rows]

    def _modify_metadata(self, kind_code: str, target: str, operation: str, metadatum: Metadatum) -> None:
        _, endpoint, target_param = self._metadata_target(kind_code)
        operations = [{
            'operation': operation,
            'attribute': metadatum.attribute,
            'value': metadatum.value,
            'units': metadatum.units,
        }]
        data = {'op': 'modify_metadata', target_param: target, 'operations': json.dumps(operations)}
        self._request("POST", endpoint, f"{operation}_metadata", target, data=data)

    def add_metadata(self, kind_code: str, target: str, metadatum: Metadatum) -> None:
        self._modify_metadata(kind_code, target, "add", metadatum)

    def remove_metadata(self, kind_code: str, target: str, metadatum: Metadatum) -> None:
        self._modify_metadata(kind_code, target, "remove", metadatum)

    def search_data_objects(self, pattern: str) -> List[Dict[str, Any]]:
        operation = "search_data_objects"
        if "/" in pattern:
            coll_pattern, name_pattern = pattern.rsplit("/", 1)
            condition = (f"COLL_NAME like {_literal(coll_pattern or '/', operation, error=InvalidQuery)} "
                         f"AND DATA_NAME like {_literal(name_pattern, operation, error=InvalidQuery)}")
        else:
            condition = f"DATA_NAME like {_literal(pattern, operation, error=InvalidQuery)}"

        entries = []
        seen = set()
        for row in self._query(f"SELECT {DATA_COLUMNS} WHERE {condition}", "search_data_objects"):
            entry = _data_entry(row)
            if entry['path'] not in seen:
                seen.add(entry['path'])
                entries.append(entry)
        return entries

    def query_data_objects(self, conditions: List[Tuple[str, str, str]]) -> List[Dict[str, Any]]:
        """
        Find data objects carrying an AVU for every condition.

        General queries match each row against a single AVU, so every
        condition runs as its own query and the results are intersected.
        """
        result: Optional[Dict[str, Dict[str, Any]]] = None

        for attribute, operator, value in conditions:
            query = (f"SELECT {DATA_COLUMNS} "
                     f"WHERE META_DATA_ATTR_NAME = {_literal(attribute, 'query_meta', error=InvalidQuery)} "
                     f"AND META_DATA_ATTR_VALUE {operator} {_literal(value, 'query_meta', error=InvalidQuery)}")
            matches = {}
            for row in self._query(query, "query_meta"):
                entry = _data_entry(row)
                matches.setdefault(entry['path'], entry)

            if result is None:
                result = matches
            else:
                result = {path: entry for path, entry in result.items() if path in matches}

        return list((result or {}).values())
