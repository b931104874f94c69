"""Leaf facts stored at height 0 of a trie."""

from __future__ import annotations

from typing import Protocol

from typing_extensions import Self

from commitment_spec.subspecs.crypto import HashFunction
from commitment_spec.subspecs.storage import Fact, FactFetchingContext
from commitment_spec.types import Felt, Hash32
from commitment_spec.types.exceptions import DeserializeError


class LeafFact(Protocol):
    """Anything that can sit at the bottom of a trie."""

    @property
    def is_empty(self) -> bool:
        """True if the leaf is equivalent to an absent leaf."""
        ...

    def hash(self, hash_function: HashFunction) -> Hash32:
        """Value committed to by the parent node."""
        ...

    async def set_fact(self, ffc: FactFetchingContext) -> Hash32:
        """Store the leaf under its hash."""
        ...


class StorageLeaf(Fact):
    """
    A single storage slot of a contract.

    The leaf commits to its value directly, so its hash is the value itself.
    A value of zero is an unset slot.
    """

    value: Felt

    @classmethod
    def empty(cls) -> Self:
        return cls(value=Felt(0))

    @property
    def is_empty(self) -> bool:
        return self.value == 0

    def hash(self, hash_function: HashFunction) -> Hash32:
        return Hash32.from_felt(self.value)

    def serialize(self) -> bytes:
        return self.value.to_bytes_be()

    @classmethod
    def deserialize(cls, data: bytes) -> Self:
        if len(data) != 32:
            raise DeserializeError.length_mismatch(32, len(data))
        try:
            return cls(value=Felt.from_bytes_be(data))
        except OverflowError as e:
            raise DeserializeError(str(e)) from e
