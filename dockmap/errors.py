"""Error taxonomy shared by the dockmap core.

Every error the core raises towards its callers derives from one of five
categories, which the HTTP layer maps onto status codes:

- :class:`ValidationError` - bad input, rejected before any side effect.
- :class:`NotFoundError` - unknown account or registry user.
- :class:`AuthError` - credential rejected or undecryptable.
- :class:`ConflictError` - sync already running or username already bound.
- :class:`UpstreamError` - registry unreachable or returned non-2xx.

Messages on these errors are safe to show to end users; upstream response
bodies and credentials never end up in them.
"""

from __future__ import annotations


class DockmapError(Exception):
    """Base class for all dockmap domain errors."""


class ValidationError(DockmapError):
    """Raised when caller input is outside the accepted domain.

    Attributes
    ----------
    reason
        Human-readable description of the failure.
    field
        Optional name of the offending input field.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Record the reason and the optional field name."""
        self.reason = reason
        self.field = field
        super().__init__(f"{field}: {reason}" if field is not None else reason)

    @classmethod
    def out_of_range(
        cls, field: str, value: object, low: int, high: int
    ) -> ValidationError:
        """Return an error for a numeric option outside ``[low, high]``."""
        return cls(f"must be between {low} and {high}, got {value!r}", field=field)

    @classmethod
    def required(cls, field: str) -> ValidationError:
        """Return an error for a missing mandatory value."""
        return cls("is required", field=field)


class TimezoneAwareRequiredError(ValidationError):
    """Raised when a datetime input lacks timezone information."""

    def __init__(self, context: str) -> None:
        """Attach a consistent message for the failing context."""
        super().__init__(f"{context} must be timezone aware")


class NotFoundError(DockmapError):
    """Raised when a referenced entity does not exist."""


class AccountNotFoundError(NotFoundError):
    """Raised when no registry account matches a lookup."""

    def __init__(self, key: str) -> None:
        """Initialise with the lookup key (user id, account id or username)."""
        self.key = key
        super().__init__(f"Registry account not found: {key}")


class AuthError(DockmapError):
    """Raised when a credential is rejected or cannot be recovered."""


class ConflictError(DockmapError):
    """Raised when an operation collides with existing state."""


class SyncAlreadyRunningError(ConflictError):
    """Raised when a sync is requested for an account that is mid-sync."""

    def __init__(self, account_id: str) -> None:
        """Initialise with the busy account id."""
        self.account_id = account_id
        super().__init__("Sync already in progress")


class UsernameTakenError(ConflictError):
    """Raised when a registry username is bound to a different local user."""

    def __init__(self, username: str) -> None:
        """Initialise with the contested username."""
        self.username = username
        super().__init__(
            f"Registry username {username!r} is connected to another account"
        )


class UpstreamError(DockmapError):
    """Raised when the external registry fails to answer usefully."""


__all__ = [
    "AccountNotFoundError",
    "AuthError",
    "ConflictError",
    "DockmapError",
    "NotFoundError",
    "SyncAlreadyRunningError",
    "TimezoneAwareRequiredError",
    "UpstreamError",
    "UsernameTakenError",
    "ValidationError",
]
