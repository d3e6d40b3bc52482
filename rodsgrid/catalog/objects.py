"""
Catalog Objects

Handles for the entry kinds a session hands out: data objects, collections,
resources, resource groups and users. Every handle shares the same identity,
metadata and open/close operations, and keeps only a weak reference to the
session that produced it.
"""

import logging
import weakref
from typing import Any, Dict, Optional, Union

from ..core.constants import ErrorMessages, ObjectKind
from ..core.exceptions import Fatal, NotFound, SessionClosed
from .metadata import Metadatum, MetadataCollection
from .resolver import CatalogObjects

logger = logging.getLogger(__name__)

KIND_CODES = {
    ObjectKind.DATA_OBJECT: "d",
    ObjectKind.COLLECTION: "C",
    ObjectKind.RESOURCE: "R",
    ObjectKind.USER: "u",
}


def get_kind_code(kind) -> str:
    """
    Get the display code used by metadata operations for an object kind

    Raises:
        Fatal: If the kind is unknown or has no code (RESOURCE_GROUP)
    """
    try:
        kind = ObjectKind(kind)
    except ValueError:
        raise Fatal(str(ErrorMessages.CatalogError.UNKNOWN_KIND).format(kind=kind))

    code = KIND_CODES.get(kind)
    if code is None:
        raise Fatal(str(ErrorMessages.CatalogError.NO_KIND_CODE).format(kind=kind.name))
    return code


class CatalogObject:
    """Common shape of every catalog handle"""

    kind: ObjectKind = None

    def __init__(self, session, name: str, path: str, parent: Optional["Collection"] = None):
        """
        Initialize a handle

        Args:
            session: Session that produced the handle (held weakly)
            name: Final path segment, or the entry name outside the namespace
            path: Full absolute path
            parent: Owning collection, None for the root and non-namespace kinds
        """
        self._session_ref = weakref.ref(session)
        self.name = name
        self.path = path
        self.parent = parent
        self._metadata: Optional[MetadataCollection] = None

    def _require_session(self, operation: str):
        session = self._session_ref()
        if session is None or not session.is_connected():
            raise SessionClosed(str(ErrorMessages.SessionError.CLOSED), path=self.path, operation=operation)
        return session

    def _gateway_call(self, operation: str, method: str, *args):
        """Run a transport method, evicting this handle from the cache if the gateway lost it"""
        session = self._require_session(operation)
        try:
            return getattr(session.transport, method)(*args)
        except NotFound:
            if self.kind in ObjectKind.get_namespace_kinds():
                session.forget(self.path)
            raise

    @property
    def metadata_target(self) -> str:
        """Key used by the metadata primitives: path in the namespace, name outside it"""
        return self.path

    def get_kind(self) -> ObjectKind:
        self._require_session("get_kind")
        return self.kind

    def get_name(self) -> str:
        self._require_session("get_name")
        return self.name

    def get_path(self) -> str:
        self._require_session("get_path")
        return self.path

    def get_parent(self) -> Optional["Collection"]:
        self._require_session("get_parent")
        return self.parent

    def get_session(self):
        return self._require_session("get_session")

    def metadata(self) -> MetadataCollection:
        """
        Get the metadata attached to this object, loading it on first call

        Returns:
            MetadataCollection: Cached AVUs for this handle

        Raises:
            SessionClosed: If the owning session is disconnected
            GatewayError: If the gateway listing fails
        """
        self._require_session("metadata")
        if self._metadata is None:
            metas = self._gateway_call("metadata", "list_metadata", get_kind_code(self.kind), self.metadata_target)
            self._metadata = MetadataCollection(self.path, metas)
            logger.debug(f"Loaded {len(self._metadata)} metadata entries for {self.path}")
        return self._metadata

    def attribute(self, name: str) -> Metadatum:
        """Get the first AVU named ``name``; raises NotFound if absent"""
        return self.metadata().get(name)

    def add_meta(self, meta: Union[Metadatum, str], value: Optional[str] = None, units: str = "") -> Metadatum:
        """
        Attach an AVU to this object

        Args:
            meta: A Metadatum, or an attribute name combined with value/units
            value: Attribute value when meta is a name
            units: Attribute units when meta is a name

        Returns:
            Metadatum: The AVU that was added
        """
        if not isinstance(meta, Metadatum):
            meta = Metadatum(meta, value, units)

        self._gateway_call("add_meta", "add_metadata", get_kind_code(self.kind), self.metadata_target, meta)
        if self._metadata is not None:
            self._metadata.add(meta)
        return meta

    def delete_meta(self, name: str) -> MetadataCollection:
        """
        Remove every AVU named ``name`` from this object

        Returns:
            MetadataCollection: The updated metadata

        Raises:
            NotFound: If no AVU carries that attribute
        """
        metadata = self.metadata()
        matches = metadata.get_all(name)
        if not matches:
            # Raises NotFound with the attribute context
            metadata.get(name)

        code = get_kind_code(self.kind)
        for meta in matches:
            self._gateway_call("delete_meta", "remove_metadata", code, self.metadata_target, meta)
            metadata.remove(meta)
        return metadata

    def open(self) -> None:
        """Acquire per-handle server resources; nothing to acquire by default"""
        self._require_session("open")

    def close(self) -> None:
        """Release per-handle server resources; nothing to release by default"""
        self._require_session("close")

    def display(self) -> str:
        """Human form ``<kind-code>:<path>``"""
        self._require_session("display")
        return f"{get_kind_code(self.kind)}:{self.path}"

    def __eq__(self, other) -> bool:
        if not isinstance(other, CatalogObject):
            return NotImplemented
        return (self.kind == other.kind and self.path == other.path
                and self._session_ref() is other._session_ref())

    def __hash__(self) -> int:
        return hash((self.kind, self.path))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.path}>"


class DataObject(CatalogObject):
    """A named byte stream with attached metadata"""

    kind = ObjectKind.DATA_OBJECT

    def __init__(self, session, name: str, path: str, parent: Optional["Collection"] = None,
                 size: Optional[int] = None, checksum: Optional[str] = None,
                 modified_at: Optional[int] = None):
        super().__init__(session, name, path, parent)
        self.size = size
        self.checksum = checksum
        self.modified_at = modified_at
        self.is_open = False

    def update_from_entry(self, entry: Dict[str, Any]) -> None:
        """Refresh the payload fields from a gateway entry"""
        self.size = entry.get('size')
        self.checksum = entry.get('checksum')
        self.modified_at = entry.get('modified_at')

    def open(self) -> None:
        """Re-stat the data object and mark the handle open"""
        entry = self._gateway_call("open", "stat", self.path)
        self.update_from_entry(entry)
        self.is_open = True

    def close(self) -> None:
        self._require_session("close")
        self.is_open = False


class Collection(CatalogObject):
    """A named container of child catalog objects"""

    kind = ObjectKind.COLLECTION

    def __init__(self, session, name: str, path: str, parent: Optional["Collection"] = None,
                 recursive: bool = False, loaded: bool = False):
        """
        Initialize a collection handle

        Args:
            recursive: True iff every transitive descendant was loaded
            loaded: False for placeholders whose own children were never fetched
        """
        super().__init__(session, name, path, parent)
        self.children = CatalogObjects()
        self.recursive = recursive
        self.loaded = loaded

    def is_recursive(self) -> bool:
        return self.recursive

    def open(self) -> None:
        """Fetch the immediate children if this collection was never loaded"""
        session = self._require_session("open")
        if not self.loaded:
            session.populate(self, recursive=False)

    def close(self) -> None:
        """Drop loaded children so the next open() queries the gateway again"""
        self._require_session("close")
        self.children.clear()
        self.loaded = False
        self.recursive = False

        # Ancestors no longer hold every descendant
        ancestor = self.parent
        while ancestor is not None:
            ancestor.recursive = False
            ancestor = ancestor.parent

    def get_children(self) -> CatalogObjects:
        """Get the immediate children, loading them if needed"""
        self.open()
        return self.children

    def get_collections(self) -> CatalogObjects:
        return CatalogObjects(obj for obj in self.get_children() if obj.kind == ObjectKind.COLLECTION)

    def get_data_objects(self) -> CatalogObjects:
        return CatalogObjects(obj for obj in self.get_children() if obj.kind == ObjectKind.DATA_OBJECT)


class _NamedEntry(CatalogObject):
    """Entry outside the collection namespace, identified by name"""

    def __init__(self, session, name: str, info: Optional[Dict[str, Any]] = None):
        super().__init__(session, name, name, parent=None)
        self.info = dict(info or {})

    @property
    def metadata_target(self) -> str:
        return self.name


class Resource(_NamedEntry):
    """A storage resource"""
    kind = ObjectKind.RESOURCE


class ResourceGroup(_NamedEntry):
    """A coordinating resource grouping other resources"""
    kind = ObjectKind.RESOURCE_GROUP


class User(_NamedEntry):
    """An iRODS user"""
    kind = ObjectKind.USER
