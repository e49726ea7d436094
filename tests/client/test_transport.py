"""Tests for the transport adapters."""

from __future__ import annotations

import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from plansync.client.transport import DirectTransport, ProxyTransport
from plansync.core.config import ServerConfig
from plansync.core.types import USER_ID_SENTINEL, ErrorCode
from plansync.server.database import Database

QUERY_URL = "http://test/api/query"


def make_config(server_url: str = "http://test", token: str = "token123") -> ServerConfig:
    """Create a ServerConfig for testing."""
    return ServerConfig(server_url=server_url, token=token)


class TestProxyTransport:
    """Tests for the HTTP query proxy adapter."""

    @pytest.mark.asyncio
    async def test_execute_success(self, httpx_mock: HTTPXMock) -> None:
        """Should return rows from the response envelope."""
        httpx_mock.add_response(
            url=QUERY_URL, method="POST", json={"success": True, "data": [{"total": 2}]}
        )
        async with ProxyTransport(make_config()) as transport:
            result = await transport.execute("SELECT COUNT(*) AS total", ["x"])

        assert result.success
        assert result.rows == [{"total": 2}]

    @pytest.mark.asyncio
    async def test_request_shape(self, httpx_mock: HTTPXMock) -> None:
        """Should post query and params with the bearer token."""
        httpx_mock.add_response(url=QUERY_URL, method="POST", json={"success": True, "data": []})
        async with ProxyTransport(make_config()) as transport:
            await transport.execute("SELECT 1 WHERE user_id = $1", [transport.user_param("me")])

        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["Authorization"] == "Bearer token123"
        assert json.loads(request.content) == {
            "query": "SELECT 1 WHERE user_id = $1",
            "params": [USER_ID_SENTINEL],
        }

    def test_user_param_is_sentinel(self) -> None:
        """The client never sends its own user id."""
        transport = ProxyTransport(make_config())
        assert transport.user_param("user-42") == USER_ID_SENTINEL

    @pytest.mark.asyncio
    async def test_unauthorized_maps_to_auth(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=QUERY_URL,
            method="POST",
            status_code=401,
            json={
                "success": False,
                "error": {"code": "UNAUTHORIZED", "message": "Invalid or expired token"},
            },
        )
        async with ProxyTransport(make_config()) as transport:
            result = await transport.execute("SELECT 1", [])

        assert not result.success
        assert result.error is not None
        assert result.error.code is ErrorCode.AUTH
        assert result.error.message == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_database_error_maps_to_server(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=QUERY_URL,
            method="POST",
            status_code=500,
            json={
                "success": False,
                "error": {"code": "DATABASE_ERROR", "message": "Query execution failed"},
            },
        )
        async with ProxyTransport(make_config()) as transport:
            result = await transport.execute("SELECT 1", [])

        assert result.error is not None
        assert result.error.code is ErrorCode.SERVER

    @pytest.mark.asyncio
    async def test_unreadable_body(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url=QUERY_URL, method="POST", status_code=502, text="Bad gateway")
        async with ProxyTransport(make_config()) as transport:
            result = await transport.execute("SELECT 1", [])

        assert result.error is not None
        assert result.error.code is ErrorCode.SERVER
        assert "502" in result.error.message

    @pytest.mark.asyncio
    async def test_timeout_maps_to_network(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ReadTimeout("too slow"), url=QUERY_URL)
        async with ProxyTransport(make_config()) as transport:
            result = await transport.execute("SELECT 1", [])

        assert result.error is not None
        assert result.error.code is ErrorCode.NETWORK
        assert result.error.message == "Request timed out"

    @pytest.mark.asyncio
    async def test_connection_error_maps_to_network(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("refused"), url=QUERY_URL)
        async with ProxyTransport(make_config()) as transport:
            result = await transport.execute("SELECT 1", [])

        assert result.error is not None
        assert result.error.code is ErrorCode.NETWORK

    @pytest.mark.asyncio
    async def test_health_check(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url="http://test/health", json={"status": "ok"})
        async with ProxyTransport(make_config()) as transport:
            assert await transport.health_check()

    @pytest.mark.asyncio
    async def test_health_check_unreachable(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("refused"), url="http://test/health")
        async with ProxyTransport(make_config()) as transport:
            assert not await transport.health_check()


class TestDirectTransport:
    """Tests for the same-process adapter."""

    @pytest.mark.asyncio
    async def test_sentinel_replaced_with_user(self, server_db: Database) -> None:
        transport = DirectTransport(server_db, "user-1")
        result = await transport.execute("SELECT $1 AS who", [USER_ID_SENTINEL])
        assert result.success
        assert result.rows == [{"who": "user-1"}]

    def test_user_param_is_bound_user(self, server_db: Database) -> None:
        transport = DirectTransport(server_db, "user-1")
        assert transport.user_param("someone-else") == "user-1"

    @pytest.mark.asyncio
    async def test_store_error_maps_to_server(self, server_db: Database) -> None:
        transport = DirectTransport(server_db, "user-1")
        result = await transport.execute("SELEC nonsense", [])
        assert result.error is not None
        assert result.error.code is ErrorCode.SERVER

    @pytest.mark.asyncio
    async def test_missing_parameter_maps_to_unknown(self, server_db: Database) -> None:
        transport = DirectTransport(server_db, "user-1")
        result = await transport.execute("SELECT $2 AS x", ["only-one"])
        assert result.error is not None
        assert result.error.code is ErrorCode.UNKNOWN
