"""
rodsgrid

A client library for iRODS data grids. Opens sessions against an iRODS HTTP
API gateway and hands out cached handles for collections, data objects,
resources and users, with metadata (AVU) reads and writes.
"""

__version__ = "1.0.0"
__author__ = "rodsgrid Project"

from .core import (
    # Configuration
    ConfigManager, SessionOptions, ConnectionType,
    # Constants
    ObjectKind, EntryType, GatewayStatus,
    # Exceptions
    GridError, SessionClosed, AuthFailed, NotFound, KindMismatch,
    InvalidPath, InvalidConfig, InvalidQuery, GatewayError, Fatal,
    # Utilities
    setup_logging
)
from .catalog import (
    Session, connect,
    CatalogObject, DataObject, Collection, Resource, ResourceGroup, User,
    Metadatum, MetadataCollection, CatalogObjects, GatewayClient
)

__all__ = [
    # Configuration
    'ConfigManager',
    'SessionOptions',
    'ConnectionType',
    # Constants
    'ObjectKind',
    'EntryType',
    'GatewayStatus',
    # Exceptions
    'GridError',
    'SessionClosed',
    'AuthFailed',
    'NotFound',
    'KindMismatch',
    'InvalidPath',
    'InvalidConfig',
    'InvalidQuery',
    'GatewayError',
    'Fatal',
    # Utilities
    'setup_logging',
    # Catalog
    'Session',
    'connect',
    'CatalogObject',
    'DataObject',
    'Collection',
    'Resource',
    'ResourceGroup',
    'User',
    'Metadatum',
    'MetadataCollection',
    'CatalogObjects',
    'GatewayClient'
]
