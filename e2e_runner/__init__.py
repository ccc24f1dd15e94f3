"""End-to-end testnet runner core.

Turns a declarative manifest into a validated, in-memory testnet topology
and waits for running nodes to reach a block height. Starting and stopping
nodes is left to the orchestrator.

Quick start::

    from e2e_runner import build_testnet

    testnet = build_testnet({
        "name": "ci",
        "network": "10.186.73.0/24",
        "nodes": {"validator01": {"address": "10.186.73.2", "proxy_port": 5701}},
    })
    await testnet.lookup_node("validator01").wait_for(3, timeout=30)
"""

from e2e_runner.client import (
    NodeInfo,
    RPCClient,
    RPCClientError,
    RPCConnectionError,
    RPCError,
    RPCTimeoutError,
    StatusResponse,
    SyncInfo,
)
from e2e_runner.errors import (
    AddressOutOfRangeError,
    EndpointError,
    InvalidAddressError,
    InvalidEnumValueError,
    InvalidHeightError,
    InvalidNetworkError,
    NodeStructuralError,
    NodeValidationError,
    PersistRetainMismatchError,
    PortConflictError,
    PortTooLowError,
    StructuralError,
    TestnetError,
    UnknownValidatorError,
    WaitTimeoutError,
)
from e2e_runner.key import NodeKey, node_address
from e2e_runner.manifest import Manifest, ManifestNode
from e2e_runner.testnet import Node, Testnet, build_node, build_testnet
from e2e_runner.types import ABCIProtocol, Database, FastSyncMode, PrivvalProtocol

__all__ = [
    # Topology
    "Node",
    "Testnet",
    "build_node",
    "build_testnet",
    # Manifest
    "Manifest",
    "ManifestNode",
    # Settings
    "ABCIProtocol",
    "Database",
    "FastSyncMode",
    "PrivvalProtocol",
    # Errors
    "AddressOutOfRangeError",
    "EndpointError",
    "InvalidAddressError",
    "InvalidEnumValueError",
    "InvalidHeightError",
    "InvalidNetworkError",
    "NodeStructuralError",
    "NodeValidationError",
    "PersistRetainMismatchError",
    "PortConflictError",
    "PortTooLowError",
    "StructuralError",
    "TestnetError",
    "UnknownValidatorError",
    "WaitTimeoutError",
    # Identity
    "NodeKey",
    "node_address",
    # Client
    "NodeInfo",
    "RPCClient",
    "RPCClientError",
    "RPCConnectionError",
    "RPCError",
    "RPCTimeoutError",
    "StatusResponse",
    "SyncInfo",
]

__version__ = "0.1.0"
