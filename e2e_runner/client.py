"""Async client for a testnet node's JSON-RPC API.

:class:`RPCClient` covers the one query the runner needs from a live node:
``status``. All I/O uses :mod:`httpx` so the client is fully async and
compatible with ``asyncio``.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError

DEFAULT_RPC_TIMEOUT = 5.0


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class RPCClientError(Exception):
    """Base class for failures talking to a node."""


class RPCError(RPCClientError):
    """Raised when the node returns a JSON-RPC error response."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC error {code}: {message}")


class RPCConnectionError(RPCClientError):
    """Raised when the node cannot be reached."""


class RPCTimeoutError(RPCClientError):
    """Raised when a request exceeds the client timeout."""


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class NodeInfo(BaseModel):
    """Identity of the answering node."""

    id: str = ""
    network: str = ""
    version: str = ""
    moniker: str = ""


class SyncInfo(BaseModel):
    """Chain progress as seen by the node.

    Heights arrive as decimal strings on the wire and are coerced to ``int``.
    """

    latest_block_hash: str = ""
    latest_block_height: int = Field(ge=0)
    earliest_block_height: int = 0
    catching_up: bool = False


class StatusResponse(BaseModel):
    """Result of the ``status`` RPC method."""

    node_info: NodeInfo = Field(default_factory=NodeInfo)
    sync_info: SyncInfo

    @property
    def latest_block_height(self) -> int:
        return self.sync_info.latest_block_height


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class RPCClient:
    """Async JSON-RPC client for one node.

    Args:
        node_url: Base URL of the node RPC endpoint (e.g.
            ``"http://127.0.0.1:26657"``).
        timeout: Per-request timeout in seconds.

    Example::

        async with RPCClient("http://127.0.0.1:26657") as client:
            status = await client.status()
    """

    def __init__(self, node_url: str, *, timeout: float = DEFAULT_RPC_TIMEOUT) -> None:
        self._base_url = node_url.rstrip("/")
        self._timeout = timeout
        self._request_id = 0
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    # ----- lifecycle -------------------------------------------------------

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> "RPCClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ----- internal helpers ------------------------------------------------

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def _call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Send a JSON-RPC 2.0 request and return the ``result`` field."""
        client = await self._ensure_client()
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or {},
            "id": self._next_id(),
        }
        try:
            resp = await client.post("/", json=payload)
            resp.raise_for_status()
        except httpx.TimeoutException as exc:
            raise RPCTimeoutError(f"request to {self._base_url} timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise RPCClientError(
                f"{self._base_url} returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.TransportError as exc:
            raise RPCConnectionError(f"cannot reach {self._base_url}: {exc}") from exc

        try:
            body = resp.json()
        except ValueError as exc:
            raise RPCClientError(f"malformed response from {self._base_url}") from exc

        if not isinstance(body, dict):
            raise RPCClientError(f"malformed response from {self._base_url}")
        err = body.get("error")
        if err is not None:
            if not isinstance(err, dict):
                raise RPCClientError(f"malformed error from {self._base_url}: {err!r}")
            raise RPCError(
                code=err.get("code", -1),
                message=err.get("message", "unknown error"),
                data=err.get("data"),
            )
        return body.get("result")

    # ----- public API ------------------------------------------------------

    async def status(self) -> StatusResponse:
        """Return the node's identity and sync progress."""
        result = await self._call("status")
        try:
            return StatusResponse.model_validate(result)
        except ValidationError as exc:
            raise RPCClientError(f"unexpected status payload from {self._base_url}") from exc
