"""Typed Docker Hub payloads."""

from __future__ import annotations

import msgspec


class RegistryRepository(msgspec.Struct, kw_only=True):
    """Repository entry from ``/repositories/{namespace}``.

    Attributes
    ----------
    name : str
        Repository name within the namespace.
    namespace : str
        Owning Docker Hub user or organisation.
    last_updated : str
        Raw last-modified timestamp; empty when Docker Hub omits it.

    """

    name: str
    namespace: str = ""
    description: str | None = None
    last_updated: str | None = ""
    pull_count: int = 0
    star_count: int = 0
    is_private: bool = False


class RegistryTag(msgspec.Struct, kw_only=True):
    """Tag entry from ``/repositories/{namespace}/{name}/tags``."""

    name: str
    last_updated: str | None = ""
    tag_last_pushed: str | None = ""
    digest: str | None = None


class RepositoryPage(msgspec.Struct, kw_only=True):
    """One page of a repository listing."""

    results: list[RegistryRepository] = msgspec.field(default_factory=list)
    next: str | None = None
    count: int | None = None


class TagPage(msgspec.Struct, kw_only=True):
    """One page of a tag listing."""

    results: list[RegistryTag] = msgspec.field(default_factory=list)
    next: str | None = None
    count: int | None = None


class LoginResponse(msgspec.Struct, kw_only=True):
    """Body of a successful ``/users/login`` call."""

    token: str = ""
