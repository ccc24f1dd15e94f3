"""Enumerated node settings for e2e testnets.

Each setting is a ``str`` enum so manifest values compare directly against
members. Nodes keep the raw string they were configured with; membership is
checked during validation so that a bad value is reported together with the
node that carries it.
"""

from __future__ import annotations

from enum import Enum


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class FastSyncMode(str, Enum):
    """Block synchronisation strategy used to catch up to the chain head."""

    DISABLED = ""
    V0 = "v0"
    V1 = "v1"
    V2 = "v2"


class Database(str, Enum):
    """Storage backend for block and state data."""

    GOLEVELDB = "goleveldb"
    CLEVELDB = "cleveldb"
    BOLTDB = "boltdb"
    ROCKSDB = "rocksdb"
    BADGERDB = "badgerdb"


class ABCIProtocol(str, Enum):
    """Transport between the node and its application."""

    UNIX = "unix"
    TCP = "tcp"
    GRPC = "grpc"


class PrivvalProtocol(str, Enum):
    """How the node reaches its private validator."""

    FILE = "file"
    UNIX = "unix"
    TCP = "tcp"


def enum_values(enum: type[Enum]) -> tuple[str, ...]:
    """Return the accepted string values of *enum*, in declaration order."""
    return tuple(member.value for member in enum)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_DATABASE = Database.GOLEVELDB.value
DEFAULT_ABCI_PROTOCOL = ABCIProtocol.UNIX.value
DEFAULT_PRIVVAL_PROTOCOL = PrivvalProtocol.FILE.value
DEFAULT_PERSIST_INTERVAL = 1
DEFAULT_INITIAL_HEIGHT = 1

# Proxy ports at or below this value are reserved.
MIN_PROXY_PORT = 1024
