"""
Catalog Libraries

Session, catalog object handles, the session cache and the HTTP gateway client.
"""

from .client import GatewayClient
from .metadata import Metadatum, MetadataCollection
from .objects import CatalogObject, DataObject, Collection, Resource, ResourceGroup, User, get_kind_code
from .query import parse_meta_query
from .resolver import CatalogObjects, find, find_recursive, exists
from .session import Session, connect

__all__ = [
    # Session
    'Session',
    'connect',
    # Objects
    'CatalogObject',
    'DataObject',
    'Collection',
    'Resource',
    'ResourceGroup',
    'User',
    'get_kind_code',
    # Metadata
    'Metadatum',
    'MetadataCollection',
    'parse_meta_query',
    # Cache
    'CatalogObjects',
    'find',
    'find_recursive',
    'exists',
    # Transport
    'GatewayClient'
]
