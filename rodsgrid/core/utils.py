"""
Core Utilities

Common utility functions used across the rodsgrid library.
"""

import logging
import re
import sys
from typing import Optional

import httpx

from .constants import ErrorMessages, GatewayStatus
from .exceptions import InvalidConfig, GatewayError


LOG_FORMAT = '%(asctime)s %(levelname)-8s %(name)s: %(message)s'

# Names of the handlers setup_logging() owns; a repeat call replaces only these
_HANDLER_NAMES = ('rodsgrid.stdout', 'rodsgrid.stderr')


def _below_error(record: logging.LogRecord) -> bool:
    return record.levelno < logging.ERROR


def setup_logging(debug: bool = False, logger_name: str = "rodsgrid") -> logging.Logger:
    """
    Route library log records to the console for applications embedding rodsgrid.
    Records below ERROR go to stdout, errors go to stderr.

    Args:
        debug: Log gateway requests and cache decisions at DEBUG level
        logger_name: Logger to configure; the package logger by default

    Returns:
        logging.Logger: The configured logger
    """
    level = logging.DEBUG if debug else logging.INFO
    target = logging.getLogger(logger_name)
    target.setLevel(level)

    for handler in [h for h in target.handlers if h.get_name() in _HANDLER_NAMES]:
        target.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S')
    for name, stream, handler_level in zip(_HANDLER_NAMES, (sys.stdout, sys.stderr), (level, logging.ERROR)):
        handler = logging.StreamHandler(stream)
        handler.set_name(name)
        handler.setLevel(handler_level)
        handler.setFormatter(formatter)
        if stream is sys.stdout:
            handler.addFilter(_below_error)
        target.addHandler(handler)

    target.debug("Debug logging enabled")
    return target


def mask_sensitive_info(text: str, password: Optional[str] = None, token: Optional[str] = None) -> str:
    """
    Mask sensitive information in text for logging and debug output.

    Args:
        text: Text to mask
        password: Password to mask (optional)
        token: Bearer token to mask (optional)

    Returns:
        Text with sensitive information masked
    """
    if not text:
        return text

    masked_text = text

    for secret in (password, token):
        if secret and secret in masked_text:
            masked_text = masked_text.replace(secret, "***MASKED***")

    # Generic patterns for credentials embedded in headers or option dumps
    masked_text = re.sub(r'Bearer [A-Za-z0-9+/=_.-]+', 'Bearer ***MASKED***', masked_text)
    masked_text = re.sub(r'Basic [A-Za-z0-9+/=]+', 'Basic ***MASKED***', masked_text)
    masked_text = re.sub(r"(password=)'[^']*'", r"\1'***MASKED***'", masked_text)

    return masked_text


class ValidationConfig:
    """
    Configuration-driven validation patterns for session identity fields.
    """

    HOST = {
        'pattern': r'^[a-zA-Z0-9]([a-zA-Z0-9.-]*[a-zA-Z0-9])?$',
        'error': ErrorMessages.ConfigError.INVALID_HOST,
        'name': 'Host',
        'max_length': 253,
    }

    ZONE = {
        'pattern': r'^[a-zA-Z0-9_.-]+$',
        'error': ErrorMessages.ConfigError.INVALID_ZONE,
        'name': 'Zone',
        'max_length': 250,
    }

    USERNAME = {
        'pattern': r'^[a-zA-Z0-9_.@-]+$',
        'error': ErrorMessages.ConfigError.INVALID_USERNAME,
        'name': 'Username',
        'max_length': 63,
    }


def _validate_with_config(value: str, config: dict) -> bool:
    """
    Generic validation using a configuration entry from ValidationConfig

    Args:
        value: The string to validate
        config: Validation configuration dictionary

    Returns:
        bool: True if validation passes

    Raises:
        InvalidConfig: If validation fails
    """
    name = config['name']
    if not value or not isinstance(value, str):
        raise InvalidConfig(f"{name} cannot be empty")

    if not re.match(config['pattern'], value):
        raise InvalidConfig(str(config['error']).format(**{name.lower(): value}))

    if 'max_length' in config and len(value) > config['max_length']:
        raise InvalidConfig(f"{name} too long (max {config['max_length']} chars): {value}")

    return True


def validate_host(host: str) -> bool:
    """Validate a gateway hostname, raising InvalidConfig on failure"""
    return _validate_with_config(host, ValidationConfig.HOST)


def validate_zone(zone: str) -> bool:
    """Validate a zone name, raising InvalidConfig on failure"""
    return _validate_with_config(zone, ValidationConfig.ZONE)


def validate_username(username: str) -> bool:
    """Validate a username, raising InvalidConfig on failure"""
    return _validate_with_config(username, ValidationConfig.USERNAME)


def validate_port(port) -> bool:
    """
    Validate a gateway TCP port

    Raises:
        InvalidConfig: If port is not an integer in 1..65535
    """
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise InvalidConfig(str(ErrorMessages.ConfigError.INVALID_PORT).format(port=port))
    return True


def format_bytes(bytes_count: int) -> str:
    """
    Format byte count into human-readable string.

    Args:
        bytes_count: Number of bytes

    Returns:
        str: Human-readable byte count (e.g., "1.5 MB")
    """
    if bytes_count == 0:
        return "0 B"

    units = ['B', 'KB', 'MB', 'GB', 'TB']
    unit_index = 0
    size = float(bytes_count)

    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1

    return f"{size:.1f} {units[unit_index]}"


def handle_gateway_error(error: Exception, context: str = "", path: Optional[str] = None) -> None:
    """
    Translate an httpx failure into a GatewayError with a dedicated code

    Args:
        error: The caught exception
        context: Name of the gateway operation that failed
        path: Catalog path the operation addressed, if any

    Raises:
        GatewayError: Always
    """
    context_msg = f"{context}: " if context else ""

    if isinstance(error, httpx.TimeoutException):
        raise GatewayError(GatewayStatus.TIMEOUT, f"{context_msg}request timed out: {error}",
                           path=path, operation=context or None) from error

    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        raise GatewayError(response.status_code,
                           f"{context_msg}HTTP {response.status_code}: {response.reason_phrase}",
                           path=path, operation=context or None) from error

    if isinstance(error, httpx.RequestError):
        raise GatewayError(GatewayStatus.TRANSPORT_ERROR, f"{context_msg}request failed: {error}",
                           path=path, operation=context or None) from error

    raise GatewayError(GatewayStatus.UNEXPECTED_RESPONSE, f"{context_msg}{error}",
                       path=path, operation=context or None) from error
