"""
Collection Loader

Turns gateway listings into trees of catalog handles.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from ..core.constants import EntryType, ErrorMessages
from ..core.exceptions import Fatal
from ..core.paths import ROOT, is_prefix, normalize, split
from .objects import CatalogObject, Collection, DataObject

logger = logging.getLogger(__name__)


def entry_type(entry: Dict[str, Any]) -> EntryType:
    """
    Get the EntryType of a gateway entry

    Raises:
        Fatal: If the transport reported a type outside EntryType
    """
    try:
        return EntryType(entry['type'])
    except (KeyError, ValueError):
        raise Fatal(str(ErrorMessages.CatalogError.UNKNOWN_KIND).format(kind=entry.get('type')),
                    path=entry.get('path'))


def make_handle(session, entry: Dict[str, Any], parent: Optional[Collection]) -> CatalogObject:
    """Build a collection or data object handle for a namespace entry"""
    path = normalize(entry['path'])
    _, name = split(path)
    kind = entry_type(entry)

    if kind == EntryType.COLLECTION:
        return Collection(session, name, path, parent=parent)
    if kind == EntryType.DATA_OBJECT:
        return DataObject(session, name, path, parent=parent, size=entry.get('size'),
                          checksum=entry.get('checksum'), modified_at=entry.get('modified_at'))

    raise Fatal(str(ErrorMessages.CatalogError.UNKNOWN_KIND).format(kind=kind), path=path)


def placeholder(session, path: str) -> Collection:
    """
    Build an unloaded collection for ``path`` with unloaded ancestors up to the root

    Args:
        session: Owning session
        path: Normalized absolute path

    Returns:
        Collection: Non-recursive placeholder whose children are not loaded
    """
    if path == ROOT:
        return Collection(session, "", ROOT, parent=None)

    parent_path, name = split(path)
    return Collection(session, name, path, parent=placeholder(session, parent_path))


def parent_for(session, path: str) -> Optional[Collection]:
    """Placeholder parent for a handle fetched outside any cached collection"""
    if path == ROOT:
        return None
    parent_path, _ = split(path)
    return placeholder(session, parent_path)


def populate(collection: Collection, entries: Iterable[Dict[str, Any]], recursive: bool) -> Collection:
    """
    Attach listed entries beneath ``collection``, replacing any children it had

    Entries are placed in catalog order within each parent. For a recursive
    listing every sub collection is marked recursive and loaded; otherwise sub
    collections are left as unloaded placeholders.

    Args:
        collection: Collection handle to fill
        entries: Gateway entries below collection.path
        recursive: Whether entries cover all transitive descendants

    Returns:
        Collection: The populated collection
    """
    session = collection._session_ref()
    nodes = {collection.path: collection}
    seen = set()

    collection.children.clear()

    # Stable sort keeps catalog order among siblings while parents come first
    ordered = sorted(entries, key=lambda e: normalize(e['path']).count("/"))

    for entry in ordered:
        path = normalize(entry['path'])
        if path == collection.path or path in seen or not is_prefix(collection.path, path):
            continue

        parent_path, _ = split(path)
        parent = nodes.get(parent_path)
        if parent is None:
            if not recursive:
                logger.debug(f"Skipping {path}: not an immediate child of {collection.path}")
                continue
            parent = _intermediate(session, nodes, parent_path)

        handle = make_handle(session, entry, parent)
        if isinstance(handle, Collection):
            handle.recursive = recursive
            handle.loaded = recursive
            if recursive:
                nodes[path] = handle

        parent.children.append(handle)
        seen.add(path)

    collection.recursive = recursive
    collection.loaded = True
    logger.debug(f"Loaded {len(seen)} entries under {collection.path} (recursive={recursive})")
    return collection


def _intermediate(session, nodes: Dict[str, Collection], path: str) -> Collection:
    """Create a collection the listing implied but did not report"""
    parent_path, name = split(path)
    parent = nodes.get(parent_path)
    if parent is None:
        parent = _intermediate(session, nodes, parent_path)

    collection = Collection(session, name, path, parent=parent, recursive=True, loaded=True)
    parent.children.append(collection)
    nodes[path] = collection
    return collection
