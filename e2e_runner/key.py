"""Per-node signing identity.

Every node in a testnet gets a fresh Ed25519 :class:`NodeKey` at
construction time; keys are never shared between nodes. The key itself is
opaque to the runner, which only needs its public half and the validator
address derived from it (the first 20 bytes of the SHA-256 digest of the
public key, upper-case hex).
"""

from __future__ import annotations

import hashlib

from nacl.signing import SigningKey

ADDRESS_SIZE = 20
SEED_SIZE = 32


def node_address(public_key: bytes) -> str:
    """Derive the validator address for a 32-byte Ed25519 public key.

    Raises:
        ValueError: If *public_key* is not 32 bytes.
    """
    if len(public_key) != 32:
        raise ValueError(f"public key must be 32 bytes, got {len(public_key)}")
    return hashlib.sha256(public_key).digest()[:ADDRESS_SIZE].hex().upper()


class NodeKey:
    """Ed25519 key for a single testnet node.

    Build one with :meth:`create` (random) or :meth:`from_seed`
    (deterministic, for reproducible topologies). The private half never
    appears in the ``repr``.
    """

    __slots__ = ("_signing_key", "_public_key", "_address")

    def __init__(self, signing_key: SigningKey) -> None:
        self._signing_key = signing_key
        self._public_key = bytes(signing_key.verify_key)
        self._address = node_address(self._public_key)

    @classmethod
    def create(cls) -> "NodeKey":
        return cls(SigningKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "NodeKey":
        """Derive a key from exactly 32 bytes of seed material."""
        if len(seed) != SEED_SIZE:
            raise ValueError(f"seed must be exactly {SEED_SIZE} bytes, got {len(seed)}")
        return cls(SigningKey(seed))

    @property
    def address(self) -> str:
        """The upper-case hex validator address."""
        return self._address

    @property
    def public_key(self) -> bytes:
        return self._public_key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NodeKey):
            return NotImplemented
        return self._public_key == other._public_key

    def __hash__(self) -> int:
        return hash(self._public_key)

    def __repr__(self) -> str:
        return f"NodeKey(address={self._address!r})"
