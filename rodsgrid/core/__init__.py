"""
Core Libraries

Shared functionality and utilities for the rodsgrid library.
"""

from .config import ConfigManager, SessionOptions, load_irods_environment
from .constants import (
    ConnectionType, ObjectKind, EntryType, GatewayStatus,
    NetworkConstants, MetadataConstants, FileConstants, ErrorMessages
)
from .exceptions import (
    GridError, SessionClosed, AuthFailed, NotFound, KindMismatch,
    InvalidPath, InvalidConfig, InvalidQuery, GatewayError, Fatal
)
from .paths import normalize, split, join, is_prefix, lookup_key
from .protocols import GatewayTransport
from .utils import setup_logging, mask_sensitive_info, format_bytes, handle_gateway_error

__all__ = [
    # Configuration
    'ConfigManager',
    'SessionOptions',
    'load_irods_environment',
    # Constants
    'ConnectionType',
    'ObjectKind',
    'EntryType',
    'GatewayStatus',
    'NetworkConstants',
    'MetadataConstants',
    'FileConstants',
    'ErrorMessages',
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
    # Paths
    'normalize',
    'split',
    'join',
    'is_prefix',
    'lookup_key',
    # Protocols
    'GatewayTransport',
    # Utilities
    'setup_logging',
    'mask_sensitive_info',
    'format_bytes',
    'handle_gateway_error'
]
