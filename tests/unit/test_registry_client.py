"""Unit tests for the Docker Hub client and timestamp parsing."""

from __future__ import annotations

import datetime as dt
import json
import typing as typ

import httpx
import pytest

from dockmap.registry import (
    DockerHubClient,
    RegistryAPIError,
    RegistryAuthError,
    RegistryConfig,
    RegistryResponseShapeError,
    RegistryUserNotFoundError,
    TimestampParseError,
    parse_registry_timestamp,
)

BASE = "https://hub.test/v2"

type Handler = typ.Callable[[httpx.Request], httpx.Response]


def _client(handler: Handler, **config: typ.Any) -> DockerHubClient:  # noqa: ANN401
    transport = httpx.MockTransport(handler)
    return DockerHubClient(
        RegistryConfig(api_url=BASE, **config),
        http_client=httpx.AsyncClient(transport=transport),
    )


class TestParseRegistryTimestamp:
    """Tests for parse_registry_timestamp."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (
                "2026-01-17T08:19:30.340959Z",
                dt.datetime(2026, 1, 17, 8, 19, 30, 340959, tzinfo=dt.UTC),
            ),
            (
                "2024-05-01T23:30:00.5+02:00",
                dt.datetime(2024, 5, 1, 21, 30, 0, 500000, tzinfo=dt.UTC),
            ),
            (
                "2024-05-01T10:00:00.123456789Z",
                dt.datetime(2024, 5, 1, 10, 0, 0, 123456, tzinfo=dt.UTC),
            ),
            (
                "2024-05-01T23:30:00-02:00",
                dt.datetime(2024, 5, 2, 1, 30, tzinfo=dt.UTC),
            ),
            ("2024-05-01T10:00:00Z", dt.datetime(2024, 5, 1, 10, tzinfo=dt.UTC)),
        ],
    )
    def test_known_formats(self, raw: str, expected: dt.datetime) -> None:
        """Every supported layout parses to the same UTC instant."""
        parsed = parse_registry_timestamp(raw)
        assert parsed == expected
        assert parsed.tzinfo is dt.UTC

    @pytest.mark.parametrize("raw", ["yesterday", "2024-05-01", ""])
    def test_unknown_formats_raise(self, raw: str) -> None:
        """Unparseable values raise instead of defaulting to now."""
        with pytest.raises(TimestampParseError):
            parse_registry_timestamp(raw)


class TestValidateUsername:
    """Tests for DockerHubClient.validate_username."""

    @pytest.mark.asyncio
    async def test_existing_user(self) -> None:
        """A 200 from the user endpoint validates the name."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json={"username": "octo"})

        await _client(handler).validate_username("octo")
        assert seen == ["/v2/users/octo"]

    @pytest.mark.asyncio
    async def test_unknown_user(self) -> None:
        """A 404 becomes RegistryUserNotFoundError."""
        client = _client(lambda _req: httpx.Response(404))
        with pytest.raises(RegistryUserNotFoundError):
            await client.validate_username("ghost")

    @pytest.mark.asyncio
    async def test_transport_failure(self) -> None:
        """Network errors become RegistryAPIError without a status code."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(RegistryAPIError) as excinfo:
            await _client(handler).validate_username("octo")
        assert excinfo.value.status_code is None


class TestLogin:
    """Tests for DockerHubClient.login."""

    @pytest.mark.asyncio
    async def test_returns_token_and_sends_credentials(self) -> None:
        """The PAT is posted as the password and the JWT is returned."""
        bodies: list[dict[str, str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"token": "jwt"})

        assert await _client(handler).login("octo", "pat") == "jwt"
        assert bodies == [{"username": "octo", "password": "pat"}]

    @pytest.mark.asyncio
    async def test_unauthorized(self) -> None:
        """A 401 becomes RegistryAuthError whose message omits the token."""
        client = _client(lambda _req: httpx.Response(401, text="bad pat-123"))
        with pytest.raises(RegistryAuthError) as excinfo:
            await client.login("octo", "pat-123")
        assert "pat-123" not in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_empty_token_skips_the_request(self) -> None:
        """An empty token fails locally."""

        def handler(_req: httpx.Request) -> httpx.Response:
            pytest.fail("no request expected")

        with pytest.raises(RegistryAuthError):
            await _client(handler).login("octo", "")

    @pytest.mark.asyncio
    async def test_missing_token_in_body(self) -> None:
        """A 200 without a token is a response shape error."""
        client = _client(lambda _req: httpx.Response(200, json={}))
        with pytest.raises(RegistryResponseShapeError):
            await client.login("octo", "pat")

    @pytest.mark.asyncio
    async def test_server_error_status_is_kept(self) -> None:
        """Non-401 failures carry their HTTP status."""
        client = _client(lambda _req: httpx.Response(503, text="secret body"))
        with pytest.raises(RegistryAPIError) as excinfo:
            await client.login("octo", "pat")
        assert excinfo.value.status_code == 503
        assert "secret body" not in str(excinfo.value)


class TestListings:
    """Tests for repository and tag pagination."""

    @pytest.mark.asyncio
    async def test_follows_next_links_and_sends_bearer(self) -> None:
        """Pages are concatenated in order and carry the bearer header."""
        auth_headers: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            auth_headers.append(request.headers.get("Authorization"))
            if request.url.params.get("page") == "2":
                return httpx.Response(
                    200, json={"results": [{"name": "b"}], "next": None}
                )
            return httpx.Response(
                200,
                json={
                    "results": [{"name": "a", "last_updated": "2024-01-01T00:00:00Z"}],
                    "next": f"{BASE}/repositories/octo/?page=2",
                },
            )

        repos = await _client(handler).fetch_repositories("octo", "jwt")
        assert [r.name for r in repos] == ["a", "b"]
        assert repos[0].last_updated == "2024-01-01T00:00:00Z"
        assert auth_headers == ["Bearer jwt", "Bearer jwt"]

    @pytest.mark.asyncio
    async def test_public_access_sends_no_authorization(self) -> None:
        """Without a bearer the listing is requested anonymously."""
        headers: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            headers.append(request.headers.get("Authorization"))
            return httpx.Response(200, json={"results": [{"name": "v1"}]})

        tags = await _client(handler).fetch_tags("octo", "app")
        assert [t.name for t in tags] == ["v1"]
        assert headers == [None]

    @pytest.mark.asyncio
    async def test_off_host_next_link_is_not_followed(self) -> None:
        """Pagination stops at a link pointing to another host."""
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            return httpx.Response(
                200,
                json={
                    "results": [{"name": "a"}],
                    "next": "https://evil.test/v2/repositories/octo/?page=2",
                },
            )

        repos = await _client(handler).fetch_repositories("octo")
        assert [r.name for r in repos] == ["a"]
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_page_cap(self) -> None:
        """No more than max_pages pages are fetched."""
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            return httpx.Response(
                200,
                json={
                    "results": [{"name": f"r{len(calls)}"}],
                    "next": f"{BASE}/repositories/octo/?page={len(calls) + 1}",
                },
            )

        repos = await _client(handler, max_pages=2).fetch_repositories("octo")
        assert len(repos) == 2
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_malformed_payload(self) -> None:
        """A payload that does not match the model is a shape error."""
        client = _client(lambda _req: httpx.Response(200, json={"results": "nope"}))
        with pytest.raises(RegistryResponseShapeError):
            await client.fetch_tags("octo", "app")

    @pytest.mark.asyncio
    async def test_listing_http_error(self) -> None:
        """Non-200 listings raise RegistryAPIError."""
        client = _client(lambda _req: httpx.Response(500))
        with pytest.raises(RegistryAPIError) as excinfo:
            await client.fetch_repositories("octo")
        assert excinfo.value.status_code == 500
