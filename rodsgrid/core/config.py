"""
Configuration Management

Defines the session configuration surface, reads the ambient iRODS
environment file and loads YAML configuration files for rodsgrid.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional

try:
    import yaml
except ImportError:
    raise ImportError("PyYAML is required. Install with: pip install PyYAML")

from .constants import ConnectionType, ErrorMessages, FileConstants, NetworkConstants
from .exceptions import InvalidConfig
from .utils import mask_sensitive_info, validate_host, validate_port, validate_username, validate_zone

logger = logging.getLogger(__name__)


class SessionOptions:
    """Options used when opening a session, see ``rodsgrid.connect``"""

    REQUIRED_USER_FIELDS = ('host', 'port', 'username', 'zone')

    def __init__(self, source: ConnectionType = ConnectionType.ENVIRONMENT_DEFINED,
                 host: Optional[str] = None, port: Optional[int] = None,
                 zone: Optional[str] = None, username: Optional[str] = None,
                 password: Optional[str] = None):
        """
        Initialize session options

        Args:
            source: ENVIRONMENT_DEFINED to read identity from irods_environment.json,
                USER_DEFINED to take it from the fields below
            host: Gateway hostname (required iff USER_DEFINED)
            port: Gateway TCP port (required iff USER_DEFINED)
            zone: Zone name (required iff USER_DEFINED)
            username: Authenticating principal (required iff USER_DEFINED)
            password: Credential material, should be set regardless of source
        """
        self.source = ConnectionType(source)
        self.host = host
        self.port = port
        self.zone = zone
        self.username = username
        self.password = password

    def validate(self) -> None:
        """
        Validate the options before any gateway I/O takes place

        Raises:
            InvalidConfig: If a USER_DEFINED field is missing or malformed
        """
        if self.source != ConnectionType.USER_DEFINED:
            return

        for field in self.REQUIRED_USER_FIELDS:
            value = getattr(self, field)
            if value is None or value == "" or value == 0:
                raise InvalidConfig(str(ErrorMessages.ConfigError.MISSING_FIELD).format(field=field))

        validate_host(self.host)
        validate_port(self.port)
        validate_username(self.username)
        validate_zone(self.zone)

    def __repr__(self) -> str:
        text = (f"SessionOptions(source={self.source.name}, host={self.host!r}, port={self.port!r}, "
                f"zone={self.zone!r}, username={self.username!r}, password={self.password!r})")
        return mask_sensitive_info(text, password=self.password)


def get_irods_environment_path() -> Path:
    """
    Locate the ambient iRODS environment file

    Returns:
        Path: $IRODS_ENVIRONMENT_FILE if set, otherwise ~/.irods/irods_environment.json
    """
    override = os.environ.get(FileConstants.IRODS_ENV_VARIABLE)
    if override:
        return Path(override)
    return Path.home() / FileConstants.IRODS_ENV_DIR / FileConstants.IRODS_ENV_FILE


def load_irods_environment(env_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Read host, port, username and zone from the ambient environment file

    Args:
        env_path: Explicit file location (defaults to get_irods_environment_path())

    Returns:
        Dict with 'host', 'port', 'username' and 'zone' keys

    Raises:
        InvalidConfig: If the file is missing, unreadable or incomplete
    """
    path = Path(env_path) if env_path else get_irods_environment_path()

    if not path.is_file():
        raise InvalidConfig(str(ErrorMessages.ConfigError.ENVIRONMENT_NOT_FOUND).format(env_path=path))

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise InvalidConfig(f"Failed to read iRODS environment from {path}: {e}")

    identity = {}
    for key, env_key in (('host', FileConstants.ENV_HOST_KEY), ('port', FileConstants.ENV_PORT_KEY),
                         ('username', FileConstants.ENV_USER_KEY), ('zone', FileConstants.ENV_ZONE_KEY)):
        if data.get(env_key) in (None, ""):
            raise InvalidConfig(str(ErrorMessages.ConfigError.ENVIRONMENT_INCOMPLETE).format(
                env_path=path, field=env_key))
        identity[key] = data[env_key]

    try:
        identity['port'] = int(identity['port'])
    except (TypeError, ValueError):
        raise InvalidConfig(str(ErrorMessages.ConfigError.INVALID_PORT).format(port=identity['port']))

    logger.debug(f"Loaded iRODS environment from {path}")
    return identity


class ConfigManager:
    """Manages YAML configuration loading and validation"""

    SOURCE_CHOICES = {
        'environment': ConnectionType.ENVIRONMENT_DEFINED,
        'user': ConnectionType.USER_DEFINED,
    }

    # Configuration schema - defines expected structure and types
    CONFIG_SCHEMA = {
        'session': {
            'type': dict,
            'required': True,
            'fields': {
                'source': {'type': str, 'required': False, 'choices': ['environment', 'user']},
                'host': {'type': str, 'required': False},
                'port': {'type': int, 'required': False},
                'zone': {'type': str, 'required': False},
                'username': {'type': str, 'required': False},
                'password': {'type': str, 'required': False}
            }
        },
        'gateway': {
            'type': dict,
            'required': False,
            'fields': {
                'scheme': {'type': str, 'required': False, 'choices': ['http', 'https']},
                'base_path': {'type': str, 'required': False},
                'timeout': {'type': int, 'required': False},
                'skip_tls': {'type': bool, 'required': False}
            }
        },
        'global': {
            'type': dict,
            'required': False,
            'fields': {
                'debug': {'type': bool, 'required': False}
            }
        },
    }

    def __init__(self):
        """Initialize configuration manager"""
        self.config_data = {}
        self.config_file_path = None

    def load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration from YAML file

        Args:
            config_path: Path to configuration file (default: ./rodsgrid-config.yaml)

        Returns:
            Dict containing configuration data

        Raises:
            InvalidConfig: If configuration file cannot be loaded or is invalid
        """
        config_path = config_path or FileConstants.DEFAULT_CONFIG_FILE
        config_file = Path(config_path)

        if not config_file.is_file():
            raise InvalidConfig(str(ErrorMessages.ConfigError.CONFIG_FILE_NOT_FOUND).format(
                config_path=config_path))

        try:
            with open(config_file, 'r') as f:
                self.config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise InvalidConfig(f"Invalid YAML in configuration file {config_path}: {e}")
        except OSError as e:
            raise InvalidConfig(f"Failed to load configuration from {config_path}: {e}")

        self.config_file_path = config_path
        self._validate_config()

        logger.info(f"Successfully loaded configuration from {config_path}")
        return self.config_data

    def _validate_config(self) -> None:
        """
        Validate configuration structure and values

        Raises:
            InvalidConfig: If configuration is invalid
        """
        if not isinstance(self.config_data, dict):
            raise InvalidConfig("Configuration must be a dictionary")

        self._validate_against_schema(self.config_data, self.CONFIG_SCHEMA, "config")

    def _validate_against_schema(self, data: Dict[str, Any], schema: Dict[str, Any], path: str = "") -> None:
        """
        Validate data against schema definition

        Args:
            data: Data to validate
            schema: Schema definition
            path: Current path for error reporting

        Raises:
            InvalidConfig: If data doesn't match schema
        """
        for key, field_schema in schema.items():
            current_path = f"{path}.{key}" if path else key

            if key in data:
                value = data[key]

                # Skip None values for optional fields
                if value is None and not field_schema.get('required', False):
                    continue

                expected_type = field_schema['type']
                # bool is an int subclass; a port of `true` is not a port
                if not isinstance(value, expected_type) or (expected_type is int and isinstance(value, bool)):
                    raise InvalidConfig(f"{current_path} must be a {expected_type.__name__}")

                if 'choices' in field_schema and value not in field_schema['choices']:
                    choices_str = ', '.join(f"'{c}'" for c in field_schema['choices'])
                    raise InvalidConfig(f"{current_path} must be one of: {choices_str}")

                if expected_type == dict and 'fields' in field_schema:
                    self._validate_against_schema(value, field_schema['fields'], current_path)

            elif field_schema.get('required', False):
                raise InvalidConfig(f"Required field {current_path} is missing")

    def get_section(self, section: str) -> Dict[str, Any]:
        """
        Get specific configuration section

        Args:
            section: Section name (e.g., 'session', 'gateway')

        Returns:
            Dict containing section data, empty dict if section doesn't exist
        """
        return self.config_data.get(section) or {}

    def get_value(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key

        Args:
            key: Configuration key (supports dot notation like 'gateway.timeout')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config_data

        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def get_session_options(self) -> SessionOptions:
        """
        Build SessionOptions from the loaded 'session' section

        Returns:
            SessionOptions: Validated session options

        Raises:
            InvalidConfig: If the section describes an incomplete USER_DEFINED session
        """
        section = self.get_section('session')
        options = SessionOptions(
            source=self.SOURCE_CHOICES[section.get('source') or 'environment'],
            host=section.get('host'),
            port=section.get('port'),
            zone=section.get('zone'),
            username=section.get('username'),
            password=section.get('password'),
        )
        options.validate()
        return options

    def get_gateway_settings(self) -> Dict[str, Any]:
        """
        Get keyword arguments for GatewayClient from the 'gateway' section

        Returns:
            Dict with scheme, base_path, timeout and verify keys
        """
        section = self.get_section('gateway')
        return {
            'scheme': section.get('scheme') or NetworkConstants.DEFAULT_SCHEME,
            'base_path': section.get('base_path') or NetworkConstants.DEFAULT_BASE_PATH,
            'timeout': section.get('timeout') or NetworkConstants.DEFAULT_TIMEOUT,
            'verify': not section.get('skip_tls', False),
        }

    def get_config_template_content(self) -> str:
        """
        Generate configuration template content as string without file I/O

        Returns:
            str: YAML configuration template content
        """
        template = {
            'session': {
                'source': 'user',
                'host': 'irods.example.org',
                'port': NetworkConstants.DEFAULT_PORT,
                'zone': 'tempZone',
                'username': 'rods',
                'password': None
            },
            'gateway': {
                'scheme': NetworkConstants.DEFAULT_SCHEME,
                'base_path': NetworkConstants.DEFAULT_BASE_PATH,
                'timeout': NetworkConstants.DEFAULT_TIMEOUT,
                'skip_tls': False
            },
            'global': {
                'debug': False
            }
        }

        header = (
            "# rodsgrid Configuration File\n"
            "# Set session.source to 'environment' to read host, port, zone and\n"
            "# username from ~/.irods/irods_environment.json instead.\n"
        )
        return header + yaml.safe_dump(template, default_flow_style=False, sort_keys=False)
