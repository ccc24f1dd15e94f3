"""Tests for Node.wait_for, polling a mocked node RPC endpoint."""

from __future__ import annotations

import asyncio
import time

import httpx
import pytest

from e2e_runner.client import RPCClient, StatusResponse
from e2e_runner.errors import EndpointError, WaitTimeoutError
from e2e_runner.key import NodeKey
from e2e_runner.testnet import Node


def _status(height: int) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "result": {"sync_info": {"latest_block_height": str(height)}},
    }


def _node(proxy_port: int = 5701) -> Node:
    return Node(name="validator01", key=NodeKey.create(), address="10.1.0.2", proxy_port=proxy_port)


def _mock_client(handler) -> RPCClient:
    client = RPCClient("http://127.0.0.1:5701")
    client._client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url="http://127.0.0.1:5701",
    )
    return client


class TestWaitFor:
    """Polling until a height is reached."""

    @pytest.mark.asyncio
    async def test_returns_once_height_reached(self) -> None:
        heights = iter([1, 2, 3, 4, 5])
        client = _mock_client(lambda request: httpx.Response(200, json=_status(next(heights))))

        status = await _node().wait_for(3, timeout=5, poll_interval=0.01, client=client)

        assert isinstance(status, StatusResponse)
        assert status.latest_block_height == 3
        assert next(heights) == 4
        await client.close()

    @pytest.mark.asyncio
    async def test_already_past_height(self) -> None:
        client = _mock_client(lambda request: httpx.Response(200, json=_status(100)))
        status = await _node().wait_for(10, timeout=5, client=client)
        assert status.latest_block_height == 100
        await client.close()

    @pytest.mark.asyncio
    async def test_query_failures_are_retried(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise httpx.ConnectError("connection refused")
            if calls == 2:
                return httpx.Response(503, text="starting")
            if calls == 3:
                return httpx.Response(
                    200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32603, "message": "x"}}
                )
            return httpx.Response(200, json=_status(7))

        client = _mock_client(handler)
        status = await _node().wait_for(7, timeout=5, poll_interval=0.01, client=client)
        assert status.latest_block_height == 7
        assert calls == 4
        await client.close()

    @pytest.mark.parametrize("first", [[], "starting", {"error": "boom"}, {"result": None}])
    @pytest.mark.asyncio
    async def test_malformed_responses_are_retried(self, first: object) -> None:
        responses = iter([first, _status(5)])
        client = _mock_client(lambda request: httpx.Response(200, json=next(responses)))

        status = await _node().wait_for(5, timeout=5, poll_interval=0.01, client=client)

        assert status.latest_block_height == 5
        await client.close()

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        client = _mock_client(lambda request: httpx.Response(200, json=_status(1)))
        started = time.monotonic()

        with pytest.raises(WaitTimeoutError) as exc_info:
            await _node().wait_for(10, timeout=0.3, poll_interval=0.05, client=client)

        elapsed = time.monotonic() - started
        assert 0.3 <= elapsed < 1.5
        assert exc_info.value.node == "validator01"
        assert exc_info.value.height == 10
        assert exc_info.value.timeout == 0.3
        await client.close()

    @pytest.mark.asyncio
    async def test_hanging_query_bounded_by_timeout(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(10)
            return httpx.Response(200, json=_status(10))

        client = _mock_client(handler)
        started = time.monotonic()
        with pytest.raises(WaitTimeoutError):
            await _node().wait_for(10, timeout=0.3, poll_interval=0.05, client=client)
        assert time.monotonic() - started < 1.5
        await client.close()

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self) -> None:
        client = _mock_client(lambda request: httpx.Response(200, json=_status(5)))
        await _node().wait_for(5, timeout=5, client=client)
        assert not client._client.is_closed
        await client.close()

    @pytest.mark.asyncio
    async def test_cancellation(self) -> None:
        client = _mock_client(lambda request: httpx.Response(200, json=_status(0)))
        task = asyncio.create_task(
            _node().wait_for(10, timeout=30, poll_interval=0.01, client=client)
        )
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await client.close()

    @pytest.mark.asyncio
    async def test_no_proxy_port(self) -> None:
        with pytest.raises(EndpointError, match="no proxy port"):
            await _node(proxy_port=0).wait_for(1, timeout=5)


class TestNodeClient:
    """Client construction from node settings."""

    def test_client_targets_loopback_port(self) -> None:
        assert _node(5701).client().base_url == "http://127.0.0.1:5701"

    def test_client_timeout(self) -> None:
        assert _node(5701).client(timeout=1.0)._timeout == 1.0

    def test_no_proxy_port(self) -> None:
        with pytest.raises(EndpointError):
            _node(proxy_port=0).client()
