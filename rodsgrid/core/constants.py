"""
Constants Module

Centralized constants for the rodsgrid library to eliminate magic strings
and improve maintainability.
"""

from enum import Enum, IntEnum


class BaseStrEnum(str, Enum):
    """Base enum class that inherits from str"""

    def __str__(self) -> str:
        """Return the enum value as string"""
        return self.value

    def __repr__(self) -> str:
        """Return a detailed representation of the enum"""
        return f"{self.__class__.__name__}.{self.name}"


class ConnectionType(IntEnum):
    """
    Selects where a session takes its identity from.

    ENVIRONMENT_DEFINED reads host, port, user and zone from the ambient
    irods_environment.json; USER_DEFINED requires them in SessionOptions.
    """
    ENVIRONMENT_DEFINED = 0
    USER_DEFINED = 1


class SessionState(BaseStrEnum):
    """Session lifecycle: NEW -> CONNECTED -> DISCONNECTED, never back"""
    NEW = "new"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ObjectKind(IntEnum):
    """Kinds of catalog objects a session can hand out"""
    DATA_OBJECT = 0
    COLLECTION = 1
    RESOURCE = 2
    RESOURCE_GROUP = 3
    USER = 4

    @classmethod
    def get_namespace_kinds(cls) -> list:
        """Get the kinds that live in the collection namespace"""
        return [cls.DATA_OBJECT, cls.COLLECTION]


class EntryType(BaseStrEnum):
    """Entry types reported by the gateway for catalog entries"""
    DATA_OBJECT = "data_object"
    COLLECTION = "collection"
    RESOURCE = "resource"
    RESOURCE_GROUP = "resource_group"
    USER = "user"


class GatewayStatus(IntEnum):
    """
    Status codes the library interprets.

    Negative multiples of 1000 are iRODS error codes; the small negative
    values are client-side codes for transport failures.
    """
    SUCCESS = 0
    TRANSPORT_ERROR = -1
    TIMEOUT = -2
    UNEXPECTED_RESPONSE = -3
    USER_FILE_DOES_NOT_EXIST = -310000
    OBJ_PATH_DOES_NOT_EXIST = -358000
    CAT_NO_ROWS_FOUND = -808000
    CAT_INVALID_AUTHENTICATION = -826000
    CAT_INVALID_USER = -827000

    @classmethod
    def get_not_found_codes(cls) -> list:
        """Get the codes that mean the requested entry does not exist"""
        return [cls.USER_FILE_DOES_NOT_EXIST, cls.OBJ_PATH_DOES_NOT_EXIST, cls.CAT_NO_ROWS_FOUND]

    @classmethod
    def get_auth_codes(cls) -> list:
        """Get the codes that mean the credentials were rejected"""
        return [cls.CAT_INVALID_AUTHENTICATION, cls.CAT_INVALID_USER]


class NetworkConstants:
    """Network-related constants for the HTTP gateway transport"""

    # Timeout constants (seconds)
    DEFAULT_TIMEOUT = 30

    # Gateway endpoint defaults
    DEFAULT_SCHEME = "http"
    DEFAULT_BASE_PATH = "/irods-http-api/0.2.0"
    DEFAULT_PORT = 9000

    # Rows requested per general query page
    QUERY_PAGE_SIZE = 500

    USER_AGENT = "rodsgrid/1.0"
    JSON_MEDIA_TYPE = "application/json"

    class Endpoint(BaseStrEnum):
        """Gateway endpoint paths relative to the base path"""
        AUTHENTICATE = "/authenticate"
        COLLECTIONS = "/collections"
        DATA_OBJECTS = "/data-objects"
        RESOURCES = "/resources"
        USERS_GROUPS = "/users-groups"
        QUERY = "/query"

    class HTTPHeader(BaseStrEnum):
        """Standard HTTP header names"""
        AUTHORIZATION = "Authorization"
        USER_AGENT = "User-Agent"
        ACCEPT = "Accept"


class MetadataConstants:
    """Metadata-related constants"""

    # Coordinating resource types; a resource of one of these types is a group
    COORDINATING_RESOURCE_TYPES = (
        "compound", "deferred", "load_balanced", "passthru",
        "random", "replication", "roundrobin",
    )

    class QueryOperator(BaseStrEnum):
        """Comparison operators accepted by metadata queries"""
        EQUAL = "="
        NOT_EQUAL = "<>"
        LESS = "<"
        GREATER = ">"
        LESS_EQUAL = "<="
        GREATER_EQUAL = ">="
        LIKE = "like"

        @classmethod
        def get_symbols(cls) -> list:
            """Get operator symbols, longest first so prefixes do not shadow them"""
            return sorted((op.value for op in cls), key=len, reverse=True)


class ErrorMessages:
    """Centralized error message templates"""

    class SessionError(BaseStrEnum):
        """Session lifecycle error message templates"""
        CLOSED = "Session is not connected"
        ALREADY_CLOSED = "Session was already disconnected"
        CONNECT_FAILED = "iRODS connect failed: {message}"

    class PathError(BaseStrEnum):
        """Path validation error message templates"""
        EMPTY = "Path cannot be empty"
        NOT_ABSOLUTE = "Path must be absolute: {path}"
        EMPTY_SEGMENT = "Path contains an empty segment: {path}"

    class CatalogError(BaseStrEnum):
        """Catalog lookup error message templates"""
        NOT_FOUND = "No such catalog entry: {path}"
        NOT_A_COLLECTION = "Not a collection: {path}"
        NOT_A_DATA_OBJECT = "Not a data object: {path}"
        ATTRIBUTE_NOT_FOUND = "No metadata attribute '{name}' on {path}"
        NO_KIND_CODE = "No display code for object kind {kind}"
        UNKNOWN_KIND = "Unrecognized object kind: {kind}"

    class ConfigError(BaseStrEnum):
        """Configuration-related error message templates"""
        MISSING_FIELD = "UserDefined connections require {field}"
        INVALID_HOST = "Invalid gateway host format: {host}"
        INVALID_ZONE = "Invalid zone name format: {zone}"
        INVALID_USERNAME = "Invalid username format: {username}"
        INVALID_PORT = "Gateway port must be between 1 and 65535: {port}"
        CONFIG_FILE_NOT_FOUND = "Configuration file not found: {config_path}"
        ENVIRONMENT_NOT_FOUND = "iRODS environment file not found: {env_path}"
        ENVIRONMENT_INCOMPLETE = "iRODS environment file {env_path} is missing {field}"

    class QueryError(BaseStrEnum):
        """Metadata query error message templates"""
        INVALID_QUERY = "Invalid metadata query: {query}"
        UNQUOTABLE_LITERAL = "Catalog queries cannot carry {char} in a value: {value}"


class FileConstants:
    """File and directory related constants"""

    # Ambient iRODS configuration
    IRODS_ENV_DIR = ".irods"
    IRODS_ENV_FILE = "irods_environment.json"
    IRODS_ENV_VARIABLE = "IRODS_ENVIRONMENT_FILE"

    # Keys read from the ambient environment file
    ENV_HOST_KEY = "irods_host"
    ENV_PORT_KEY = "irods_port"
    ENV_USER_KEY = "irods_user_name"
    ENV_ZONE_KEY = "irods_zone_name"

    DEFAULT_CONFIG_FILE = "rodsgrid-config.yaml"
