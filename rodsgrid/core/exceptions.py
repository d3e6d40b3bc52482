"""
Custom Exceptions

Defines the error model shared by every rodsgrid operation.
"""

from typing import Optional


class GridError(Exception):
    """Base exception class for rodsgrid errors"""

    tag = "GridError"

    def __init__(self, message: str = "", path: Optional[str] = None, operation: Optional[str] = None):
        """
        Initialize the error

        Args:
            message: Human-readable description (may come from the gateway)
            path: Offending catalog path, when applicable
            operation: Name of the failing operation, when meaningful
        """
        super().__init__(message)
        self.message = message
        self.path = path
        self.operation = operation

    def __str__(self) -> str:
        parts = [f"[{self.tag}]"]
        if self.message:
            parts.append(self.message)
        context = []
        if self.path is not None:
            context.append(f"path={self.path}")
        if self.operation:
            context.append(f"operation={self.operation}")
        if context:
            parts.append(f"({', '.join(context)})")
        return " ".join(parts)


class SessionClosed(GridError):
    """Raised when an operation is issued on a disconnected session"""
    tag = "SessionClosed"


class AuthFailed(GridError):
    """Raised when credentials or the handshake are rejected at session open"""
    tag = "AuthFailed"


class NotFound(GridError):
    """Raised when a path or attribute does not exist"""
    tag = "NotFound"


class KindMismatch(GridError):
    """Raised when a path exists but is not the requested kind"""
    tag = "KindMismatch"


class InvalidPath(GridError):
    """Raised when a path fails normalization"""
    tag = "InvalidPath"


class InvalidConfig(GridError):
    """Raised when session options or configuration files are invalid"""
    tag = "InvalidConfig"


class GatewayError(GridError):
    """Raised when the transport collaborator signals a failure"""

    tag = "GatewayError"

    def __init__(self, code: int, message: str = "", path: Optional[str] = None,
                 operation: Optional[str] = None):
        super().__init__(message, path=path, operation=operation)
        self.code = code

    def __str__(self) -> str:
        return f"{super().__str__()} [code={self.code}]"


class Fatal(GridError):
    """Raised on internal invariant violations; never caught by library code"""
    tag = "Fatal"


class InvalidQuery(GridError):
    """Raised when a metadata query cannot be parsed"""
    tag = "InvalidQuery"
