"""Exceptions raised while building, validating and observing a testnet.

Every error here means "do not start this testnet" (or, for
:class:`WaitTimeoutError`, "the node did not get there in time"). Errors
carry the values needed to act on them as attributes, so callers never have
to re-derive the topology to find out what went wrong.
"""

from __future__ import annotations

from typing import Any


class TestnetError(Exception):
    """Base class for all testnet construction and readiness errors."""


# ---------------------------------------------------------------------------
# Malformed manifest data
# ---------------------------------------------------------------------------


class InvalidNetworkError(TestnetError):
    """Raised when the manifest network is not a valid CIDR block."""

    def __init__(self, network: str) -> None:
        self.network = network
        super().__init__(f"invalid network IP {network!r}")


class InvalidHeightError(TestnetError):
    """Raised when a validator update height is not a non-negative integer."""

    def __init__(self, height: str) -> None:
        self.height = height
        super().__init__(f"invalid validator update height {height!r}")


class StructuralError(TestnetError):
    """Raised when the testnet is missing a name, a network or nodes."""


class UnknownValidatorError(TestnetError):
    """Raised when a validator update references a node that does not exist."""

    def __init__(self, height: int, name: str) -> None:
        self.height = height
        self.name = name
        super().__init__(
            f"unknown node {name!r} for validator update at height {height}"
        )


# ---------------------------------------------------------------------------
# Per-node errors
# ---------------------------------------------------------------------------


class NodeValidationError(TestnetError):
    """Base class for errors tied to a single node.

    Args:
        node: Name of the offending node.
        detail: What is wrong with it.
    """

    def __init__(self, node: str, detail: str) -> None:
        self.node = node
        self.detail = detail
        super().__init__(f"invalid node {node!r}: {detail}")


class NodeStructuralError(NodeValidationError, StructuralError):
    """Raised when a node has no name or no address."""


class InvalidAddressError(NodeValidationError):
    """Raised when a node address does not parse as an IP literal."""

    def __init__(self, node: str, address: str) -> None:
        self.address = address
        super().__init__(node, f"invalid IP {address!r}")


class AddressOutOfRangeError(NodeValidationError):
    """Raised when a node address lies outside the testnet network."""

    def __init__(self, node: str, address: Any, network: Any) -> None:
        self.address = address
        self.network = network
        super().__init__(node, f"node IP {address} is not in testnet network {network}")


class PortTooLowError(NodeValidationError):
    """Raised when a nonzero proxy port is in the reserved range."""

    def __init__(self, node: str, port: int, minimum: int) -> None:
        self.port = port
        super().__init__(node, f"local port {port} must be >{minimum}")


class PortConflictError(NodeValidationError):
    """Raised when two nodes expose the same proxy port."""

    def __init__(self, node: str, port: int, peer: str) -> None:
        self.port = port
        self.peer = peer
        super().__init__(node, f"peer {peer!r} also has local port {port}")


class InvalidEnumValueError(NodeValidationError):
    """Raised when an enumerated setting has a value outside its domain.

    Args:
        node: Name of the offending node.
        setting: Human-readable setting name, e.g. ``"fast sync"``.
        value: The rejected value.
        allowed: Accepted values.
    """

    def __init__(
        self, node: str, setting: str, value: str, allowed: tuple[str, ...]
    ) -> None:
        self.setting = setting
        self.value = value
        self.allowed = allowed
        super().__init__(node, f"invalid {setting} setting {value!r}")


class PersistRetainMismatchError(NodeValidationError):
    """Raised when ``retain_blocks`` is incompatible with ``persist_interval``."""

    def __init__(
        self, node: str, persist_interval: int, retain_blocks: int, detail: str
    ) -> None:
        self.persist_interval = persist_interval
        self.retain_blocks = retain_blocks
        super().__init__(node, detail)


# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------


class EndpointError(TestnetError):
    """Raised when a client cannot be built for a node's RPC endpoint."""


class WaitTimeoutError(TestnetError):
    """Raised when a node does not reach a height within the wait budget."""

    def __init__(self, node: str, height: int, timeout: float) -> None:
        self.node = node
        self.height = height
        self.timeout = timeout
        super().__init__(
            f"node {node!r} did not reach height {height}: timeout after {timeout}s"
        )
