"""Testnet topology: construction from a manifest, validation, readiness.

A :class:`Testnet` is built once from a :class:`~e2e_runner.manifest.Manifest`
by :func:`build_testnet`, validated immediately, and treated as immutable
afterwards. Building either returns a fully consistent topology or raises;
there is no partially built testnet.

Once the nodes are running, :meth:`Node.wait_for` polls a node's RPC
endpoint until it reaches a given height.

Example::

    testnet = build_testnet(manifest)
    for node in testnet.nodes:
        await node.wait_for(testnet.initial_height + 1, timeout=60)
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress, IPvAnyNetwork

from e2e_runner.client import (
    DEFAULT_RPC_TIMEOUT,
    RPCClient,
    RPCClientError,
    StatusResponse,
)
from e2e_runner.errors import (
    AddressOutOfRangeError,
    EndpointError,
    InvalidAddressError,
    InvalidEnumValueError,
    InvalidHeightError,
    InvalidNetworkError,
    NodeStructuralError,
    PersistRetainMismatchError,
    PortConflictError,
    PortTooLowError,
    StructuralError,
    TestnetError,
    UnknownValidatorError,
    WaitTimeoutError,
)
from e2e_runner.key import NodeKey
from e2e_runner.manifest import Manifest, ManifestNode
from e2e_runner.types import (
    DEFAULT_ABCI_PROTOCOL,
    DEFAULT_DATABASE,
    DEFAULT_INITIAL_HEIGHT,
    DEFAULT_PERSIST_INTERVAL,
    DEFAULT_PRIVVAL_PROTOCOL,
    MIN_PROXY_PORT,
    ABCIProtocol,
    Database,
    FastSyncMode,
    PrivvalProtocol,
    enum_values,
)

logger = logging.getLogger(__name__)

RPC_HOST = "127.0.0.1"
DEFAULT_POLL_INTERVAL = 0.2


def _contains(
    network: ipaddress.IPv4Network | ipaddress.IPv6Network,
    address: ipaddress.IPv4Address | ipaddress.IPv6Address,
) -> bool:
    if address in network:
        return True
    # IPv4-mapped IPv6 addresses (::ffff:a.b.c.d) also belong to IPv4 networks.
    mapped = address.ipv4_mapped if address.version == 6 else None
    return mapped is not None and mapped in network


def _check_setting(node: str, setting: str, value: str, enum: type[Enum]) -> None:
    allowed = enum_values(enum)
    if value not in allowed:
        raise InvalidEnumValueError(node, setting, value, allowed)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class Node(BaseModel):
    """One node of a testnet, with every setting resolved."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    key: NodeKey
    address: IPvAnyAddress | None = None
    proxy_port: Annotated[int, Field(ge=0)] = 0
    start_at: Annotated[int, Field(ge=0)] = 0
    fast_sync: str = FastSyncMode.DISABLED.value
    database: str = DEFAULT_DATABASE
    abci_protocol: str = DEFAULT_ABCI_PROTOCOL
    privval_protocol: str = DEFAULT_PRIVVAL_PROTOCOL
    persist_interval: Annotated[int, Field(ge=0)] = DEFAULT_PERSIST_INTERVAL
    retain_blocks: Annotated[int, Field(ge=0)] = 0

    def validate(self, testnet: Testnet) -> None:  # type: ignore[override]
        """Check this node against its own settings and the rest of *testnet*.

        Checks run in a fixed order and stop at the first violation.

        Raises:
            NodeValidationError: A subclass naming this node and what is wrong.
        """
        if not self.name:
            raise NodeStructuralError(self.name, "node has no name")
        if self.address is None:
            raise NodeStructuralError(self.name, "node has no IP address")
        if testnet.network is None:
            raise StructuralError("network has no IP")
        if not _contains(testnet.network, self.address):
            raise AddressOutOfRangeError(self.name, self.address, testnet.network)

        if self.proxy_port > 0:
            if self.proxy_port <= MIN_PROXY_PORT:
                raise PortTooLowError(self.name, self.proxy_port, MIN_PROXY_PORT)
            for peer in testnet.nodes:
                if peer.name != self.name and peer.proxy_port == self.proxy_port:
                    raise PortConflictError(self.name, self.proxy_port, peer.name)

        _check_setting(self.name, "fast sync", self.fast_sync, FastSyncMode)
        _check_setting(self.name, "database", self.database, Database)
        _check_setting(self.name, "ABCI protocol", self.abci_protocol, ABCIProtocol)
        _check_setting(self.name, "privval protocol", self.privval_protocol, PrivvalProtocol)

        if self.persist_interval == 0 and self.retain_blocks > 0:
            raise PersistRetainMismatchError(
                self.name,
                self.persist_interval,
                self.retain_blocks,
                "persist_interval=0 requires retain_blocks=0",
            )
        if self.persist_interval > 1 and 0 < self.retain_blocks < self.persist_interval:
            raise PersistRetainMismatchError(
                self.name,
                self.persist_interval,
                self.retain_blocks,
                "persist_interval must be less than or equal to retain_blocks",
            )

    # ----- RPC -------------------------------------------------------------

    @property
    def rpc_url(self) -> str | None:
        """Loopback URL of the node's RPC endpoint, ``None`` without a proxy port."""
        if not self.proxy_port:
            return None
        return f"http://{RPC_HOST}:{self.proxy_port}"

    def client(self, *, timeout: float = DEFAULT_RPC_TIMEOUT) -> RPCClient:
        """Return an RPC client for this node.

        Raises:
            EndpointError: If the node exposes no proxy port.
        """
        url = self.rpc_url
        if url is None:
            raise EndpointError(f"node {self.name!r} has no proxy port")
        return RPCClient(url, timeout=timeout)

    async def wait_for(
        self,
        height: int,
        timeout: float,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        client: RPCClient | None = None,
    ) -> StatusResponse:
        """Poll the node until it reports *height* or the timeout expires.

        Query failures are not errors here: a node that is still starting or
        catching up is simply not ready yet. Cancelling the awaiting task
        stops the wait early.

        Args:
            height: Block height the node must reach.
            timeout: Maximum seconds to wait, measured from the call.
            poll_interval: Seconds between status queries.
            client: Client to poll with; by default one is created from
                :meth:`client` and closed on return.

        Returns:
            The first :class:`StatusResponse` at or past *height*.

        Raises:
            EndpointError: If no client can be built for the node.
            WaitTimeoutError: If *timeout* elapses first.
        """
        owned = client is None
        if client is None:
            client = self.client()

        started = time.monotonic()
        try:
            while True:
                remaining = timeout - (time.monotonic() - started)
                if remaining <= 0:
                    raise WaitTimeoutError(self.name, height, timeout)
                try:
                    status = await asyncio.wait_for(client.status(), remaining)
                except (RPCClientError, asyncio.TimeoutError) as exc:
                    logger.debug("Node %s not ready: %s", self.name, exc)
                else:
                    if status.latest_block_height >= height:
                        logger.info(
                            "Node %s reached height %d", self.name, status.latest_block_height
                        )
                        return status
                    logger.debug(
                        "Node %s at height %d, waiting for %d",
                        self.name,
                        status.latest_block_height,
                        height,
                    )
                await asyncio.sleep(poll_interval)
        finally:
            if owned:
                await client.close()


class Testnet(BaseModel):
    """A validated testnet topology.

    ``nodes`` is sorted by name. ``validator_updates`` maps a block height to
    the voting power each named node should have from that height on.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    network: IPvAnyNetwork | None = None
    initial_height: Annotated[int, Field(ge=1)] = DEFAULT_INITIAL_HEIGHT
    initial_state: dict[str, str] = Field(default_factory=dict)
    validator_updates: dict[int, dict[str, int]] = Field(default_factory=dict)
    nodes: list[Node] = Field(default_factory=list)

    def validate(self) -> None:  # type: ignore[override]
        """Check the whole topology, stopping at the first violation.

        Raises:
            TestnetError: A subclass describing the violation.
        """
        if not self.name:
            raise StructuralError("network has no name")
        if self.network is None:
            raise StructuralError("network has no IP")
        if not self.nodes:
            raise StructuralError("network has no nodes")
        for node in self.nodes:
            node.validate(self)
        for height, update in self.validator_updates.items():
            for name in update:
                if self.lookup_node(name) is None:
                    raise UnknownValidatorError(height, name)

    def lookup_node(self, name: str) -> Node | None:
        """Return the node called *name*, or ``None``."""
        for node in self.nodes:
            if node.name == name:
                return node
        return None

    @property
    def is_ipv6(self) -> bool:
        """Whether the network has no IPv4 form (IPv4-mapped blocks count as IPv4)."""
        if self.network is None:
            return False
        return (
            self.network.version == 6
            and self.network.network_address.ipv4_mapped is None
        )


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def build_node(
    name: str,
    manifest_node: ManifestNode,
    *,
    key_factory: Callable[[], NodeKey] = NodeKey.create,
) -> Node:
    """Resolve one manifest node into a :class:`Node`.

    Unset settings get their defaults. Checks that need the rest of the
    testnet (network membership, port uniqueness) happen in
    :meth:`Node.validate`.

    Raises:
        InvalidAddressError: If the node address is not an IP literal.
    """
    try:
        address = ipaddress.ip_address(manifest_node.address)
    except ValueError as exc:
        raise InvalidAddressError(name, manifest_node.address) from exc
    # Zoned literals such as fe80::1%eth0 are not plain IP addresses.
    if address.version == 6 and address.scope_id is not None:
        raise InvalidAddressError(name, manifest_node.address)

    persist_interval = manifest_node.persist_interval
    if persist_interval is None:
        persist_interval = DEFAULT_PERSIST_INTERVAL

    node = Node(
        name=name,
        key=key_factory(),
        address=address,
        proxy_port=manifest_node.proxy_port,
        start_at=manifest_node.start_at,
        fast_sync=manifest_node.fast_sync,
        database=manifest_node.database or DEFAULT_DATABASE,
        abci_protocol=manifest_node.abci_protocol or DEFAULT_ABCI_PROTOCOL,
        privval_protocol=manifest_node.privval_protocol or DEFAULT_PRIVVAL_PROTOCOL,
        persist_interval=persist_interval,
        retain_blocks=manifest_node.retain_blocks,
    )
    logger.debug("Built node %s at %s (key %s)", name, address, node.key.address)
    return node


def _parse_network(text: str) -> ipaddress.IPv4Network | ipaddress.IPv6Network:
    # Only address/prefix-length; ipaddress would also take a bare address
    # (as a single-host block) or a dotted netmask after the slash.
    _, sep, prefix = text.partition("/")
    if not sep or not (prefix.isascii() and prefix.isdigit()):
        raise InvalidNetworkError(text)
    try:
        return ipaddress.ip_network(text, strict=False)
    except ValueError as exc:
        raise InvalidNetworkError(text) from exc


def _parse_height(text: str) -> int:
    # int() alone would also take signs, underscores and surrounding spaces.
    if not (text.isascii() and text.isdigit()):
        raise InvalidHeightError(text)
    return int(text)


def build_testnet(
    manifest: Manifest | Mapping[str, Any],
    *,
    key_factory: Callable[[], NodeKey] = NodeKey.create,
) -> Testnet:
    """Build and validate a :class:`Testnet` from a manifest.

    Args:
        manifest: A :class:`Manifest`, or a mapping coerced into one.
        key_factory: Produces a fresh signing key for each node.

    Returns:
        The validated testnet.

    Raises:
        TestnetError: A subclass describing the first problem found.
    """
    if not isinstance(manifest, Manifest):
        manifest = Manifest.model_validate(manifest)

    network = _parse_network(manifest.network)
    nodes = [
        build_node(name, manifest_node, key_factory=key_factory)
        for name, manifest_node in manifest.nodes.items()
    ]
    nodes.sort(key=lambda node: node.name)

    validator_updates: dict[int, dict[str, int]] = {}
    for height_text, validators in manifest.validator_updates.items():
        validator_updates[_parse_height(height_text)] = dict(validators)

    testnet = Testnet(
        name=manifest.name,
        network=network,
        initial_height=manifest.initial_height or DEFAULT_INITIAL_HEIGHT,
        initial_state=manifest.initial_state,
        validator_updates=validator_updates,
        nodes=nodes,
    )
    try:
        testnet.validate()
    except TestnetError:
        logger.debug("Testnet %r failed validation", manifest.name, exc_info=True)
        raise

    logger.info(
        "Built testnet %s: %d nodes in %s, initial height %d",
        testnet.name,
        len(testnet.nodes),
        testnet.network,
        testnet.initial_height,
    )
    return testnet
