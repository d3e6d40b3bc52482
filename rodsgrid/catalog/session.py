"""
Catalog Session

A live, authenticated attachment to the catalog gateway. The session owns its
transport and the in-session cache of opened handles.
"""

import logging
from typing import Any, Dict, List, Optional

from ..core.config import ConfigManager, SessionOptions
from ..core.constants import ConnectionType, EntryType, ErrorMessages, ObjectKind, SessionState
from ..core.exceptions import AuthFailed, GatewayError, KindMismatch, NotFound, SessionClosed
from ..core.paths import lookup_key, normalize, split
from ..core.protocols import GatewayTransport
from ..core.utils import mask_sensitive_info, setup_logging
from . import loader
from .client import GatewayClient
from .objects import Collection, DataObject, Resource, ResourceGroup, User
from .query import parse_meta_query
from .resolver import CatalogObjects

logger = logging.getLogger(__name__)


class Session:
    """Session with an iRODS catalog gateway"""

    def __init__(self, options: SessionOptions, transport: Optional[GatewayTransport] = None):
        """
        Initialize an unconnected session; use Session.open() or connect()

        Args:
            options: Session options
            transport: GatewayTransport implementation (default: GatewayClient)
        """
        self.options = options
        self.transport = transport if transport is not None else GatewayClient()
        self.state = SessionState.NEW
        self.opened = CatalogObjects()
        self._identity: Dict[str, Any] = {}

    @classmethod
    def open(cls, options: SessionOptions, transport: Optional[GatewayTransport] = None) -> "Session":
        """
        Create a session and authenticate with the gateway

        When options.source is ENVIRONMENT_DEFINED, host, port, username and
        zone come from the ambient irods_environment.json. When it is
        USER_DEFINED they must all be set in options. Password should be set
        regardless.

        Handles hold only a weak reference to their session, so keep the
        session referenced (or use it as a context manager) while its handles
        are in use. A chained call such as ``connect(opts).collection(path)``
        drops the session at once: the handle raises SessionClosed on first
        use and disconnect() never runs, leaving the transport open.

        Args:
            options: Session options
            transport: GatewayTransport implementation (default: GatewayClient)

        Returns:
            Session: A connected session

        Raises:
            InvalidConfig: If USER_DEFINED options are incomplete
            AuthFailed: If the gateway rejects the connection
        """
        options.validate()
        session = cls(options, transport)
        session._connect()
        return session

    @classmethod
    def from_config(cls, config_manager: ConfigManager, transport: Optional[GatewayTransport] = None) -> "Session":
        """
        Open a session from a loaded ConfigManager

        The 'gateway' section configures the default GatewayClient; it is
        ignored when a transport is given. global.debug turns on console
        logging at DEBUG level for the package.
        """
        if config_manager.get_value('global.debug', False):
            setup_logging(debug=True)

        options = config_manager.get_session_options()
        if transport is None:
            transport = GatewayClient(**config_manager.get_gateway_settings())
        return cls.open(options, transport)

    def _connect(self) -> None:
        options = self.options
        try:
            if options.source == ConnectionType.USER_DEFINED:
                self.transport.connect(options.host, options.port, options.username,
                                       options.zone, options.password)
                identity = {'host': options.host, 'port': options.port,
                            'username': options.username, 'zone': options.zone}
            else:
                identity = self.transport.connect_from_environment(options.password)
        except AuthFailed:
            raise
        except GatewayError as e:
            message = mask_sensitive_info(e.message, password=options.password)
            raise AuthFailed(str(ErrorMessages.SessionError.CONNECT_FAILED).format(message=message),
                             operation="connect") from e

        self._identity = dict(identity)
        self.state = SessionState.CONNECTED
        logger.info(f"Connected to {self._describe_identity()}")

    def _describe_identity(self) -> str:
        identity = self._identity or {
            'username': self.options.username, 'host': self.options.host,
            'port': self.options.port, 'zone': self.options.zone,
        }
        return f"{identity.get('username')}@{identity.get('host')}:{identity.get('port')}/{identity.get('zone')}"

    @property
    def connected(self) -> bool:
        return self.state == SessionState.CONNECTED

    def is_connected(self) -> bool:
        return self.connected

    def get_options(self) -> SessionOptions:
        return self.options

    def _require_connected(self, operation: str, path: Optional[str] = None) -> None:
        if not self.connected:
            raise SessionClosed(str(ErrorMessages.SessionError.CLOSED), path=path, operation=operation)

    def _call(self, operation: str, path: Optional[str], method: str, *args):
        """Run a transport method, evicting ``path`` from the cache if the gateway reports it missing"""
        try:
            return getattr(self.transport, method)(*args)
        except NotFound as e:
            if path is not None:
                self.forget(path)
            if e.path is None:
                e.path = path
            if e.operation is None:
                e.operation = operation
            raise

    def collection(self, path: str, recursive: bool = False) -> Collection:
        """
        Get a collection by path, from the session cache when possible

        Args:
            path: Full collection path, or the name of an already cached collection
            recursive: Load all descendants instead of just the immediate children

        Returns:
            Collection: Cached or newly fetched collection

        Raises:
            InvalidPath: If the path is malformed
            NotFound: If the collection does not exist
            KindMismatch: If the path names a data object
        """
        self._require_connected("collection", path)

        cached = self.opened.find_recursive(lookup_key(path))
        if cached is not None and cached.kind == ObjectKind.COLLECTION:
            logger.debug(f"Cache hit for collection {cached.path}")
            return cached

        path = normalize(path)
        logger.debug(f"Cache miss for collection {path}, fetching (recursive={recursive})")

        entry = self._call("collection", path, "stat", path)
        if loader.entry_type(entry) != EntryType.COLLECTION:
            raise KindMismatch(str(ErrorMessages.CatalogError.NOT_A_COLLECTION).format(path=path),
                               path=path, operation="collection")

        _, name = split(path)
        collection = Collection(self, name, path, parent=loader.parent_for(self, path))
        self.populate(collection, recursive)

        self.opened.append(collection)
        return collection

    def populate(self, collection: Collection, recursive: bool = False) -> Collection:
        """
        (Re)load the children of a collection handle from the gateway

        Args:
            collection: Collection produced by this session
            recursive: Load all descendants instead of just the immediate children

        Returns:
            Collection: The populated collection
        """
        self._require_connected("populate", collection.path)
        entries = self._call("populate", collection.path, "list_collection", collection.path, recursive)
        return loader.populate(collection, entries, recursive)

    def data_object(self, path: str) -> DataObject:
        """
        Get a data object directly from the gateway, bypassing the cache.
        Must pass the full path; the result is not added to ``opened``.

        Raises:
            InvalidPath: If the path is malformed
            NotFound: If the data object does not exist
            KindMismatch: If the path names a collection
        """
        self._require_connected("data_object", path)
        path = normalize(path)

        entry = self._call("data_object", path, "stat", path)
        if loader.entry_type(entry) != EntryType.DATA_OBJECT:
            raise KindMismatch(str(ErrorMessages.CatalogError.NOT_A_DATA_OBJECT).format(path=path),
                               path=path, operation="data_object")

        return loader.make_handle(self, entry, loader.parent_for(self, path))

    def _data_objects(self, entries: List[Dict[str, Any]]) -> List[DataObject]:
        objects = []
        for entry in entries:
            path = normalize(entry['path'])
            objects.append(loader.make_handle(self, entry, loader.parent_for(self, path)))
        return objects

    def search_data_objects(self, pattern: str) -> List[DataObject]:
        """
        Search for data objects by name. Use '%' as a wildcard; a pattern
        containing '/' also constrains the collection path.

        Returns:
            List of DataObjects, not added to ``opened``
        """
        self._require_connected("search_data_objects")
        entries = self._call("search_data_objects", None, "search_data_objects", pattern)
        logger.debug(f"Search '{pattern}' matched {len(entries)} data objects")
        return self._data_objects(entries)

    def query_meta(self, query: str) -> List[DataObject]:
        """
        Find data objects by metadata, e.g. ``"project = alpha and size >= 10"``

        Returns:
            List of DataObjects matching every condition, not added to ``opened``

        Raises:
            InvalidQuery: If the query cannot be parsed
        """
        self._require_connected("query_meta")
        conditions = parse_meta_query(query)
        entries = self._call("query_meta", None, "query_data_objects", conditions)
        logger.debug(f"Metadata query '{query}' matched {len(entries)} data objects")
        return self._data_objects(entries)

    def resource(self, name: str):
        """Get a storage resource (or resource group) handle by name"""
        self._require_connected("resource")
        entry = self._call("resource", None, "stat_resource", name)
        if loader.entry_type(entry) == EntryType.RESOURCE_GROUP:
            return ResourceGroup(self, name, entry)
        return Resource(self, name, entry)

    def user(self, name: str) -> User:
        """Get a user handle by name"""
        self._require_connected("user")
        entry = self._call("user", None, "stat_user", name)
        return User(self, name, entry)

    def forget(self, path: str) -> int:
        """
        Evict the handle at ``path`` and everything below it from the cache

        Returns:
            int: Number of cached handles removed
        """
        removed = self.opened.discard_subtree(path)
        if removed:
            logger.debug(f"Evicted {removed} cached handles under {path}")
        return removed

    def disconnect(self) -> None:
        """
        Close the connection to the gateway. Every handle produced by this
        session becomes unusable.

        Raises:
            SessionClosed: If the session is not connected
            GatewayError: If the transport fails to release the endpoint
        """
        if not self.connected:
            raise SessionClosed(str(ErrorMessages.SessionError.ALREADY_CLOSED), operation="disconnect")

        self.transport.disconnect()

        self.state = SessionState.DISCONNECTED
        self.opened.clear()
        logger.info(f"Disconnected from {self._describe_identity()}")

    def __str__(self) -> str:
        identity = self._identity
        if not identity and self.options.source == ConnectionType.ENVIRONMENT_DEFINED:
            identity = self.transport.read_ambient_env()
        elif not identity:
            identity = {'username': self.options.username, 'host': self.options.host,
                        'port': self.options.port, 'zone': self.options.zone}
        return (f"Host: {identity.get('username')}@{identity.get('host')}:{identity.get('port')}"
                f"/{identity.get('zone')}, Connected: {self.connected}\n")

    def __repr__(self) -> str:
        return f"<Session {self._describe_identity()} state={self.state}>"

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        if not self.connected:
            return
        try:
            self.disconnect()
        except GatewayError as e:
            if exc_type is None:
                raise
            # Keep the exception that ended the block
            logger.warning(f"Failed to disconnect from {self._describe_identity()}: {e}")


def connect(options: SessionOptions, transport: Optional[GatewayTransport] = None) -> Session:
    """
    Open a session; see Session.open()

    Keep the returned session referenced for as long as its handles are used.
    """
    return Session.open(options, transport)
