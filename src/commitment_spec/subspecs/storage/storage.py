"""
Abstract key/value interface for the fact store.

Defines the Protocol that all storage backends must follow.
Uses structural subtyping for flexibility.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Protocol


class Storage(Protocol):
    """
    Protocol for raw byte storage.

    All methods are coroutines: backends may be remote or disk-backed.
    Keys and values are opaque bytes. Higher layers (`DbObject`, `Fact`)
    decide how keys are built and how values are encoded.

    Storage Organization
    --------------------
    - Keys: `{prefix}:{suffix}`, where the prefix names the object type
    - Facts: the suffix is the content hash of the stored object
    """

    async def get_value(self, key: bytes) -> bytes | None:
        """
        Retrieve the value stored under `key`.

        Args:
            key: Storage key.

        Returns:
            The stored bytes, or None if the key is absent.
        """
        ...

    async def set_value(self, key: bytes, value: bytes) -> None:
        """
        Store `value` under `key`, replacing any previous value.

        Args:
            key: Storage key.
            value: Bytes to store.
        """
        ...

    async def del_value(self, key: bytes) -> None:
        """
        Remove `key`. Removing an absent key is not an error.

        Args:
            key: Storage key.
        """
        ...

    async def mget(self, keys: Iterable[bytes]) -> list[bytes | None]:
        """
        Retrieve several values at once.

        Args:
            keys: Storage keys.

        Returns:
            One entry per key, in order, None for absent keys.
        """
        ...

    async def mset(self, updates: Mapping[bytes, bytes]) -> None:
        """
        Store several values at once.

        Args:
            updates: Mapping from key to value.
        """
        ...

    async def close(self) -> None:
        """Release any resources held by the backend."""
        ...
