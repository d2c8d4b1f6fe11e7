"""Docker Hub client, typed payloads and timestamp parsing."""

from __future__ import annotations

from .client import DockerHubClient, RegistryClient, RegistryConfig
from .errors import (
    RegistryAPIError,
    RegistryAuthError,
    RegistryResponseShapeError,
    RegistryUserNotFoundError,
    TimestampParseError,
)
from .models import RegistryRepository, RegistryTag
from .timestamps import parse_registry_timestamp

__all__ = [
    "DockerHubClient",
    "RegistryAPIError",
    "RegistryAuthError",
    "RegistryClient",
    "RegistryConfig",
    "RegistryRepository",
    "RegistryResponseShapeError",
    "RegistryTag",
    "RegistryUserNotFoundError",
    "TimestampParseError",
    "parse_registry_timestamp",
]
