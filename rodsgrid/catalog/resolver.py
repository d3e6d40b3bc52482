"""
Catalog Handle Resolver

Cache-side lookups over sequences of catalog handles. Lookups match by full
path or by final path segment and never perform gateway I/O: a miss returns
None and the caller decides whether to fetch.
"""

from typing import Iterable

from ..core.constants import ObjectKind
from ..core.paths import lookup_key, is_prefix, SEPARATOR


def _matches(obj, key: str) -> bool:
    return obj.path == key or obj.name == key


def find(path: str, objs: Iterable):
    """
    Get the first handle whose path or name equals ``path``

    Args:
        path: Full catalog path or bare final segment
        objs: Handles to search, in iteration order

    Returns:
        The first matching handle, or None

    Raises:
        InvalidPath: If path is empty or malformed
    """
    key = lookup_key(path)
    for obj in objs:
        if _matches(obj, key):
            return obj
    return None


def find_recursive(path: str, objs: Iterable):
    """
    Like find(), but also searches cached sub collections.

    A recursively loaded collection is searched through all of its children.
    A collection that was not loaded recursively is only descended through its
    child collections, so data objects below it are never matched and nothing
    is fetched.

    Args:
        path: Full catalog path or bare final segment
        objs: Handles to search, in iteration order

    Returns:
        The first matching handle, or None
    """
    return _find_recursive(lookup_key(path), objs)


def _find_recursive(key: str, objs: Iterable):
    for obj in objs:
        if _matches(obj, key):
            return obj

        if obj.kind != ObjectKind.COLLECTION:
            continue

        if obj.recursive:
            candidates = obj.children
        else:
            candidates = [child for child in obj.children if child.kind == ObjectKind.COLLECTION]

        found = _find_recursive(key, candidates)
        if found is not None:
            return found

    return None


def exists(path: str, objs: Iterable) -> bool:
    """Check whether find() would return a handle for ``path``"""
    return find(path, objs) is not None


class CatalogObjects(list):
    """Ordered sequence of catalog handles with path lookups"""

    def find(self, path: str):
        """Get a handle by full path or name, None if not present"""
        return find(path, self)

    def find_recursive(self, path: str):
        """Get a handle by full path or name, searching cached sub collections"""
        return find_recursive(path, self)

    def exists(self, path: str) -> bool:
        """Check whether a handle with that path or name is present"""
        return exists(path, self)

    def paths(self) -> list:
        return [obj.path for obj in self]

    def discard_subtree(self, path: str) -> int:
        """
        Drop every handle at or below ``path``, descending into loaded children

        Args:
            path: Normalized absolute path

        Returns:
            int: Number of handles removed
        """
        if not path.startswith(SEPARATOR):
            return 0

        removed = 0
        kept = []
        for obj in self:
            if is_prefix(path, obj.path):
                removed += 1
                continue
            if obj.kind == ObjectKind.COLLECTION:
                removed += obj.children.discard_subtree(path)
            kept.append(obj)

        if removed:
            self[:] = kept
        return removed
