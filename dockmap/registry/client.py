"""Docker Hub HTTP client used by the sync orchestrator and connect flow."""

from __future__ import annotations

import dataclasses
import typing as typ
from http import HTTPStatus

import httpx
import msgspec

from dockmap.config import env_positive_float, env_positive_int, env_str
from dockmap.logging import get_logger, log_warning

from .errors import (
    RegistryAPIError,
    RegistryAuthError,
    RegistryResponseShapeError,
    RegistryUserNotFoundError,
)
from .models import (
    LoginResponse,
    RegistryRepository,
    RegistryTag,
    RepositoryPage,
    TagPage,
)

logger = get_logger(__name__)

DEFAULT_API_URL = "https://hub.docker.com/v2"


class RegistryClient(typ.Protocol):
    """Interface the core needs from the external registry."""

    async def validate_username(self, username: str) -> None:
        """Raise unless ``username`` exists on the registry."""
        ...

    async def login(self, username: str, token: str) -> str:
        """Exchange a personal access token for a bearer credential."""
        ...

    async def fetch_repositories(
        self, username: str, bearer: str | None = None
    ) -> list[RegistryRepository]:
        """Return every repository in the user's namespace, in source order."""
        ...

    async def fetch_tags(
        self, username: str, repository: str, bearer: str | None = None
    ) -> list[RegistryTag]:
        """Return every tag of ``username/repository``, in source order."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class RegistryConfig:
    """Configuration for the Docker Hub client."""

    api_url: str = DEFAULT_API_URL
    timeout_s: float = 30.0
    user_agent: str = "dockmap/0.1"
    page_size: int = 100
    max_pages: int = 20

    @classmethod
    def from_env(cls) -> RegistryConfig:
        """Build configuration from ``DOCKMAP_REGISTRY_*`` env vars."""
        return cls(
            api_url=env_str("DOCKMAP_REGISTRY_API_URL", DEFAULT_API_URL).rstrip("/"),
            timeout_s=env_positive_float("DOCKMAP_REGISTRY_TIMEOUT_S", 30.0),
            max_pages=env_positive_int("DOCKMAP_REGISTRY_MAX_PAGES", 20),
        )


def _auth_headers(bearer: str | None) -> dict[str, str]:
    if not bearer:
        return {}
    return {"Authorization": f"Bearer {bearer}"}


class DockerHubClient:
    """httpx implementation of :class:`RegistryClient` for Docker Hub v2."""

    def __init__(
        self,
        config: RegistryConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client, creating an owned httpx client if needed."""
        self._config = config or RegistryConfig()
        self._base_url = self._config.api_url.rstrip("/")
        self._base_host = httpx.URL(self._base_url).host
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=self._config.timeout_s,
            headers={
                "User-Agent": self._config.user_agent,
                "Accept": "application/json",
            },
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def validate_username(self, username: str) -> None:
        """Check that ``username`` exists on Docker Hub.

        Raises
        ------
        RegistryUserNotFoundError
            If Docker Hub answers 404.
        RegistryAPIError
            For any other failure.

        """
        response = await self._send(
            "GET", f"/users/{username}", operation="user lookup"
        )
        if response.status_code == HTTPStatus.NOT_FOUND:
            raise RegistryUserNotFoundError(username)
        self._raise_for_status(response, "user lookup")

    async def login(self, username: str, token: str) -> str:
        """Exchange a personal access token for a Docker Hub JWT.

        Raises
        ------
        RegistryAuthError
            If the token is empty or Docker Hub answers 401.
        RegistryAPIError
            For any other failure.

        """
        if not token:
            raise RegistryAuthError
        response = await self._send(
            "POST",
            "/users/login",
            operation="login",
            json={"username": username, "password": token},
        )
        if response.status_code == HTTPStatus.UNAUTHORIZED:
            raise RegistryAuthError
        self._raise_for_status(response, "login")
        body = self._decode(response, LoginResponse, "login")
        if not body.token:
            raise RegistryResponseShapeError.invalid("login", "missing token")
        return body.token

    async def fetch_repositories(
        self, username: str, bearer: str | None = None
    ) -> list[RegistryRepository]:
        """Return all repositories for ``username``, following pagination."""
        repositories: list[RegistryRepository] = []
        async for page in self._pages(
            f"/repositories/{username}/",
            RepositoryPage,
            operation="repository listing",
            bearer=bearer,
        ):
            repositories.extend(page.results)
        return repositories

    async def fetch_tags(
        self, username: str, repository: str, bearer: str | None = None
    ) -> list[RegistryTag]:
        """Return all tags for ``username/repository``, following pagination."""
        tags: list[RegistryTag] = []
        async for page in self._pages(
            f"/repositories/{username}/{repository}/tags",
            TagPage,
            operation="tag listing",
            bearer=bearer,
        ):
            tags.extend(page.results)
        return tags

    async def _pages[PageT: (RepositoryPage, TagPage)](
        self,
        path: str,
        page_type: type[PageT],
        *,
        operation: str,
        bearer: str | None,
    ) -> typ.AsyncIterator[PageT]:
        """Yield decoded pages until ``next`` is exhausted or the cap is hit."""
        url: str | None = f"{self._base_url}{path}"
        params: dict[str, int] | None = {"page_size": self._config.page_size}
        fetched = 0
        while url is not None:
            if fetched >= self._config.max_pages:
                log_warning(
                    logger,
                    "Stopping %s after %d pages; further results ignored",
                    operation,
                    fetched,
                )
                return
            response = await self._send(
                "GET",
                url,
                operation=operation,
                params=params,
                headers=_auth_headers(bearer),
            )
            self._raise_for_status(response, operation)
            page = self._decode(response, page_type, operation)
            fetched += 1
            yield page
            # ``next`` already carries the query string.
            params = None
            url = self._follow(page.next, operation)

    def _follow(self, next_url: str | None, operation: str) -> str | None:
        """Return ``next_url`` if it stays on the API host, else stop paging."""
        if not next_url:
            return None
        if httpx.URL(next_url).host != self._base_host:
            log_warning(
                logger,
                "Ignoring off-host pagination link during %s",
                operation,
            )
            return None
        return next_url

    async def _send(
        self,
        method: str,
        url: str,
        *,
        operation: str,
        **kwargs: typ.Any,  # noqa: ANN401 - forwarded to httpx
    ) -> httpx.Response:
        target = url if url.startswith(("http://", "https://")) else self._base_url + url
        try:
            return await self._client.request(method, target, **kwargs)
        except httpx.HTTPError as exc:
            raise RegistryAPIError.transport(operation, exc) from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response, operation: str) -> None:
        if response.status_code != HTTPStatus.OK:
            raise RegistryAPIError.http_error(operation, response.status_code)

    @staticmethod
    def _decode[T](response: httpx.Response, model: type[T], operation: str) -> T:
        try:
            return msgspec.json.decode(response.content, type=model)
        except (msgspec.DecodeError, msgspec.ValidationError) as exc:
            raise RegistryResponseShapeError.invalid(operation, str(exc)) from exc
