"""
Catalog Path Utilities

Normalize, split and compare absolute catalog paths. Every cache lookup
normalizes its input first; path equality is the join key across the library.
"""

from typing import Tuple

from .constants import ErrorMessages
from .exceptions import InvalidPath

SEPARATOR = "/"
ROOT = "/"


def normalize(path: str) -> str:
    """
    Normalize an absolute catalog path

    Args:
        path: Path to normalize

    Returns:
        str: Path with a single trailing separator stripped (the root is kept)

    Raises:
        InvalidPath: If the path is empty, relative, or has an empty segment
    """
    if not path:
        raise InvalidPath(str(ErrorMessages.PathError.EMPTY), path=path)

    if not path.startswith(SEPARATOR):
        raise InvalidPath(str(ErrorMessages.PathError.NOT_ABSOLUTE).format(path=path), path=path)

    if path == ROOT:
        return ROOT

    if path.endswith(SEPARATOR):
        path = path[:-1]

    if "" in path[1:].split(SEPARATOR):
        raise InvalidPath(str(ErrorMessages.PathError.EMPTY_SEGMENT).format(path=path), path=path)

    return path


def lookup_key(key: str) -> str:
    """
    Normalize a cache lookup key, which is either a full path or a bare name

    Args:
        key: Absolute path or final path segment

    Returns:
        str: Normalized path, or the name with any trailing separator removed

    Raises:
        InvalidPath: If the key is empty or a malformed path
    """
    if not key:
        raise InvalidPath(str(ErrorMessages.PathError.EMPTY), path=key)

    if key.startswith(SEPARATOR):
        return normalize(key)

    name = key[:-1] if key.endswith(SEPARATOR) else key
    if not name or SEPARATOR in name:
        raise InvalidPath(str(ErrorMessages.PathError.NOT_ABSOLUTE).format(path=key), path=key)
    return name


def split(path: str) -> Tuple[str, str]:
    """
    Split a path into its parent path and final segment

    Args:
        path: Absolute catalog path

    Returns:
        Tuple of (parent, name); the root splits into ("/", "")
    """
    path = normalize(path)
    if path == ROOT:
        return ROOT, ""

    parent, _, name = path.rpartition(SEPARATOR)
    return parent or ROOT, name


def join(parent: str, name: str) -> str:
    """Build the path of ``name`` inside ``parent``"""
    parent = normalize(parent)
    if parent == ROOT:
        return f"{ROOT}{name}"
    return f"{parent}{SEPARATOR}{name}"


def is_prefix(prefix: str, path: str) -> bool:
    """
    Check whether ``prefix`` names ``path`` itself or one of its ancestors

    Args:
        prefix: Candidate ancestor path
        path: Path to test

    Returns:
        bool: True if path equals prefix or lies beneath it
    """
    if prefix == ROOT:
        return path.startswith(ROOT)
    return path == prefix or path.startswith(prefix + SEPARATOR)
