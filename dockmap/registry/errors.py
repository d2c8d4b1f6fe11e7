"""Docker Hub client errors.

Each error maps onto the core taxonomy in :mod:`dockmap.errors`. Messages
carry status codes and field names only; response bodies are never included
so credentials echoed by the upstream cannot leak.
"""

from __future__ import annotations

from dockmap.errors import AuthError, NotFoundError, UpstreamError


class RegistryAPIError(UpstreamError):
    """Raised when Docker Hub is unreachable or returns a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, operation: str, status_code: int) -> RegistryAPIError:
        """Return an error for a non-2xx response to ``operation``."""
        return cls(
            f"Docker Hub {operation} returned HTTP {status_code}",
            status_code=status_code,
        )

    @classmethod
    def transport(cls, operation: str, exc: BaseException) -> RegistryAPIError:
        """Return an error for a network-level failure during ``operation``."""
        return cls(f"Docker Hub {operation} failed: {type(exc).__name__}")


class RegistryResponseShapeError(UpstreamError):
    """Raised when a Docker Hub payload cannot be decoded into typed models."""

    @classmethod
    def invalid(cls, operation: str, detail: str) -> RegistryResponseShapeError:
        """Return an error describing the malformed payload."""
        return cls(f"Docker Hub {operation} response malformed: {detail}")


class RegistryAuthError(AuthError):
    """Raised when Docker Hub rejects the username/token pair."""

    def __init__(self) -> None:
        """Use a fixed message; the token is never echoed."""
        super().__init__("Docker Hub rejected the access token")


class RegistryUserNotFoundError(NotFoundError):
    """Raised when the Docker Hub identity lookup returns 404."""

    def __init__(self, username: str) -> None:
        """Initialise with the unknown username."""
        self.username = username
        super().__init__(f"Docker Hub user not found: {username}")


class TimestampParseError(ValueError):
    """Raised when a registry timestamp matches none of the known formats."""

    def __init__(self, value: str) -> None:
        """Record the unparseable value for diagnostics."""
        self.value = value
        super().__init__(f"unable to parse registry timestamp: {value!r}")
