"""
Typed objects on top of raw storage.

### Keys

Every object type owns a key prefix derived from its class name
(`BinaryNodeFact` -> `binary_node_fact`). An object is stored under
`{prefix}:{suffix}`, where the suffix is chosen by the caller.

### Facts

A fact is an object whose suffix is its own content hash. Writing a fact
therefore needs no bookkeeping: the hash is both the proof of what was
stored and the handle to look it up again. Writing the same fact twice
stores the same bytes under the same key.
"""

from __future__ import annotations

import asyncio
import re
from abc import abstractmethod

from pydantic import ValidationError
from typing_extensions import Self

from commitment_spec.subspecs.crypto import HashFunction
from commitment_spec.types import Hash32, StrictBaseModel
from commitment_spec.types.exceptions import (
    ContentNotFoundError,
    DeserializeError,
    SerializeError,
)

from .storage import Storage

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake_case(name: str) -> str:
    """Convert `CamelCase` to `snake_case`."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class DbObject(StrictBaseModel):
    """
    A model that can be written to and read from a `Storage`.

    The default encoding is the model's JSON form. Subclasses with a fixed
    binary layout override `serialize` and `deserialize`.
    """

    @classmethod
    def prefix(cls) -> bytes:
        """Key prefix shared by all objects of this type."""
        return to_snake_case(cls.__name__).encode()

    @classmethod
    def db_key(cls, suffix: bytes) -> bytes:
        """Full storage key for `suffix`."""
        return cls.prefix() + b":" + bytes(suffix)

    def serialize(self) -> bytes:
        """
        Encode the object for storage.

        Raises:
            SerializeError: If the model cannot be dumped.
        """
        try:
            return self.model_dump_json().encode()
        except (ValueError, TypeError) as e:
            raise SerializeError(f"Cannot serialize {type(self).__name__}: {e}") from e

    @classmethod
    def deserialize(cls, data: bytes) -> Self:
        """
        Decode an object previously produced by `serialize`.

        Raises:
            DeserializeError: If the bytes are not a valid encoding.
        """
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise DeserializeError(f"Cannot deserialize {cls.__name__}: {e}") from e

    @classmethod
    async def get(cls, storage: Storage, suffix: bytes) -> Self | None:
        """Read the object stored under `suffix`, or None if absent."""
        data = await storage.get_value(cls.db_key(suffix))
        if data is None:
            return None
        return cls.deserialize(data)

    @classmethod
    async def get_or_fail(cls, storage: Storage, suffix: bytes) -> Self:
        """
        Read the object stored under `suffix`.

        Raises:
            ContentNotFoundError: If nothing is stored there.
        """
        key = cls.db_key(suffix)
        data = await storage.get_value(key)
        if data is None:
            raise ContentNotFoundError(key)
        return cls.deserialize(data)

    async def set(self, storage: Storage, suffix: bytes) -> None:
        """Write the object under `suffix`."""
        await storage.set_value(self.db_key(suffix), self.serialize())


class Fact(DbObject):
    """A content-addressed `DbObject`."""

    @abstractmethod
    def hash(self, hash_function: HashFunction) -> Hash32:
        """Content hash of the object under `hash_function`."""

    async def set_fact(self, ffc: FactFetchingContext) -> Hash32:
        """
        Store the fact under its own hash.

        Returns:
            The content hash, which is also the key suffix.
        """
        hash_value = self.hash(ffc.hash_function)
        async with ffc.lock:
            await self.set(ffc.storage, hash_value)
        return hash_value


class FactFetchingContext:
    """
    Storage handle paired with the hash function of the trie being processed.

    The lock serializes writes when several commitments share one store.
    """

    def __init__(self, storage: Storage, hash_function: HashFunction) -> None:
        self.storage = storage
        self.hash_function = hash_function
        self.lock = asyncio.Lock()

    def __repr__(self) -> str:
        storage_name = type(self.storage).__name__
        return f"FactFetchingContext(storage={storage_name}, hash={self.hash_function!r})"
