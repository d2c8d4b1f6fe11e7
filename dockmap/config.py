"""Process-level configuration read from ``DOCKMAP_*`` environment variables.

Usage
-----
>>> import os
>>> os.environ["DOCKMAP_ENVIRONMENT"] = "production"
>>> AppConfig.from_env().is_production
True

Component-specific settings live next to their components
(:class:`dockmap.registry.RegistryConfig`, :class:`dockmap.sync.SyncConfig`,
:class:`dockmap.sync.SchedulerConfig`) and share the parsing helpers below.
"""

from __future__ import annotations

import dataclasses as dc
import os

PRODUCTION = "production"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///dockmap.db"


def env_str(name: str, default: str) -> str:
    """Return a stripped environment value, or ``default`` when blank."""
    raw = os.environ.get(name, "")
    return raw.strip() or default


def env_positive_int(name: str, default: int) -> int:
    """Read a positive integer env var, falling back to a default.

    Raises
    ------
    ValueError
        If the variable is set but is not a positive integer.

    """
    raw = os.environ.get(name, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        msg = f"{name} must be an integer, got: {raw!r}"
        raise ValueError(msg) from exc
    if value < 1:
        msg = f"{name} must be positive, got: {value}"
        raise ValueError(msg)
    return value


def env_positive_float(name: str, default: float) -> float:
    """Read a positive float env var, falling back to a default."""
    raw = os.environ.get(name, "")
    if not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ValueError(msg) from exc
    if value <= 0:
        msg = f"{name} must be positive, got: {value}"
        raise ValueError(msg)
    return value


@dc.dataclass(frozen=True, slots=True)
class AppConfig:
    """Deployment settings for the dockmap service.

    Attributes
    ----------
    environment
        Deployment mode; ``production`` enables strict secret checks.
    database_url
        SQLAlchemy async URL for the account and event store.
    encryption_key
        Raw 32-byte key for the credential vault. Validated by the vault,
        not here, so that the failure names the vault.
    host
        Bind address for the HTTP server.
    port
        Listen port for the HTTP server.
    log_level
        Raw log level string; normalized by :mod:`dockmap.logging`.

    """

    environment: str = "development"
    database_url: str = DEFAULT_DATABASE_URL
    encryption_key: str = ""
    host: str = "0.0.0.0"  # noqa: S104 - bind all interfaces for container
    port: int = 8080
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        """Return True when running in production mode."""
        return self.environment.lower() == PRODUCTION

    @classmethod
    def from_env(cls) -> AppConfig:
        """Create configuration from environment variables.

        Reads ``DOCKMAP_ENVIRONMENT``, ``DOCKMAP_DATABASE_URL``,
        ``DOCKMAP_ENCRYPTION_KEY``, ``DOCKMAP_HOST``, ``DOCKMAP_PORT`` and
        ``DOCKMAP_LOG_LEVEL``.
        """
        return cls(
            environment=env_str("DOCKMAP_ENVIRONMENT", "development"),
            database_url=env_str("DOCKMAP_DATABASE_URL", DEFAULT_DATABASE_URL),
            encryption_key=os.environ.get("DOCKMAP_ENCRYPTION_KEY", ""),
            host=env_str("DOCKMAP_HOST", "0.0.0.0"),  # noqa: S104
            port=env_positive_int("DOCKMAP_PORT", 8080),
            log_level=env_str("DOCKMAP_LOG_LEVEL", "INFO"),
        )
