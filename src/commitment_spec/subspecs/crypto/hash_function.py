"""
Two-to-one hash functions over field elements.

Every trie combines its children with a single hash function. Which one is
used depends on the trie: contract-state and storage tries use Pedersen,
the class trie uses Poseidon. The choice is always made by the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Protocol

from poseidon_py.poseidon_hash import poseidon_hash
from starknet_crypto_py import pedersen_hash

from commitment_spec.types import Felt, Hash32


class HashFunction(Protocol):
    """
    Protocol for a hash of two field elements.

    Implementations must agree bit-for-bit with the verifier, so only the
    protocol-mandated functions below are provided.
    """

    name: str
    """Short identifier used in logs and CLI options."""

    def hash_felts(self, x: int, y: int) -> Felt:
        """Hash two field elements."""
        ...

    def hash(self, x: bytes, y: bytes) -> Hash32:
        """Hash two 32-byte big-endian digests."""
        ...


class _BaseHash(ABC):
    """Shared byte/felt plumbing for the concrete hash functions."""

    name: str = ""

    @abstractmethod
    def hash_felts(self, x: int, y: int) -> Felt:
        """Hash two field elements."""

    def hash(self, x: bytes, y: bytes) -> Hash32:
        digest = self.hash_felts(Felt.from_bytes_be(x), Felt.from_bytes_be(y))
        return Hash32.from_felt(digest)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PedersenHash(_BaseHash):
    """Pedersen hash on the STARK curve."""

    name = "pedersen"

    def hash_felts(self, x: int, y: int) -> Felt:
        return Felt(pedersen_hash(int(Felt(x)), int(Felt(y))))


class PoseidonHash(_BaseHash):
    """Poseidon hash with the Starknet parameters (width 3)."""

    name = "poseidon"

    def hash_felts(self, x: int, y: int) -> Felt:
        return Felt(poseidon_hash(int(Felt(x)), int(Felt(y))))


PEDERSEN = PedersenHash()
POSEIDON = PoseidonHash()

HASH_FUNCTIONS: dict[str, HashFunction] = {PEDERSEN.name: PEDERSEN, POSEIDON.name: POSEIDON}
"""Lookup table from `name` to hash function."""


class TrieKind(Enum):
    """The tries committed to by a Starknet block."""

    CONTRACT_STATE = "contract_state"
    CONTRACT_STORAGE = "contract_storage"
    CLASS = "class"


def hash_function_for(kind: TrieKind) -> HashFunction:
    """Return the protocol hash function of a trie kind."""
    if kind is TrieKind.CLASS:
        return POSEIDON
    return PEDERSEN


def hash_function_by_name(name: str) -> HashFunction:
    """
    Look up a hash function by its short name.

    Raises:
        ValueError: If no hash function has that name.
    """
    try:
        return HASH_FUNCTIONS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown hash function '{name}'. Supported values: {sorted(HASH_FUNCTIONS)}"
        ) from None
