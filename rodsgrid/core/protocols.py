"""
Protocols and Interfaces

Defines the transport collaborator a Session drives. Catalog entries cross
this boundary as plain dicts with at least 'path' and 'type' keys ('type' is
an EntryType value); data objects may also carry 'size', 'checksum' and
'modified_at'.
"""

from typing import Protocol, Dict, Any, List, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..catalog.metadata import Metadatum


class GatewayTransport(Protocol):
    """Protocol for catalog gateway transports"""

    def connect(self, host: str, port: int, username: str, zone: str, password: str = None) -> None:
        """Authenticate with an explicit identity; raises AuthFailed or GatewayError"""
        ...

    def connect_from_environment(self, password: str = None) -> Dict[str, Any]:
        """Authenticate with the ambient identity and return it (host, port, username, zone)"""
        ...

    def disconnect(self) -> None:
        """Release the endpoint; raises GatewayError on failure"""
        ...

    def read_ambient_env(self) -> Dict[str, Any]:
        """Read host, port, username and zone from ambient configuration"""
        ...

    def stat(self, path: str) -> Dict[str, Any]:
        """Describe a collection or data object; raises NotFound if missing"""
        ...

    def list_collection(self, path: str, recursive: bool) -> List[Dict[str, Any]]:
        """List the immediate (or, if recursive, all transitive) entries below path"""
        ...

    def stat_resource(self, name: str) -> Dict[str, Any]:
        """Describe a storage resource; 'type' is RESOURCE or RESOURCE_GROUP"""
        ...

    def stat_user(self, name: str) -> Dict[str, Any]:
        """Describe a user"""
        ...

    def list_metadata(self, kind_code: str, target: str) -> List["Metadatum"]:
        """List the AVUs attached to target"""
        ...

    def add_metadata(self, kind_code: str, target: str, metadatum: "Metadatum") -> None:
        """Attach one AVU to target"""
        ...

    def remove_metadata(self, kind_code: str, target: str, metadatum: "Metadatum") -> None:
        """Detach one AVU from target"""
        ...

    def search_data_objects(self, pattern: str) -> List[Dict[str, Any]]:
        """Find data objects whose name matches a '%' wildcard pattern"""
        ...

    def query_data_objects(self, conditions: List[Tuple[str, str, str]]) -> List[Dict[str, Any]]:
        """Find data objects whose metadata satisfies every (attribute, operator, value)"""
        ...
