"""In-memory storage backend."""

from __future__ import annotations

from typing import Iterable, Mapping


class DictStorage:
    """
    Storage backed by a plain dictionary.

    Used for tests and for one-shot commitment computations where facts
    never need to outlive the process.
    """

    def __init__(self, db: dict[bytes, bytes] | None = None) -> None:
        self.db: dict[bytes, bytes] = {} if db is None else db

    async def get_value(self, key: bytes) -> bytes | None:
        return self.db.get(bytes(key))

    async def set_value(self, key: bytes, value: bytes) -> None:
        self.db[bytes(key)] = bytes(value)

    async def del_value(self, key: bytes) -> None:
        self.db.pop(bytes(key), None)

    async def mget(self, keys: Iterable[bytes]) -> list[bytes | None]:
        return [self.db.get(bytes(key)) for key in keys]

    async def mset(self, updates: Mapping[bytes, bytes]) -> None:
        self.db.update({bytes(k): bytes(v) for k, v in updates.items()})

    async def close(self) -> None:
        pass

    def __len__(self) -> int:
        return len(self.db)
