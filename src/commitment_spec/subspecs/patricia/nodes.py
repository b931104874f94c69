"""
Inner nodes of a Patricia-Merkle trie.

A trie has two kinds of inner node:

- **Binary**: a fork with two non-empty children.
- **Edge**: a run of single-child nodes compressed into one hop. The edge
  records how many levels it spans (`length`) and which way it turns at each
  of them (`path`, most significant bit first).

### Hashing

    binary: H(left, right)
    edge:   H(bottom, path) + length        (mod P)

### Storage encoding

Both kinds share the `patricia_node` prefix and are told apart by size:

    binary: left (32) || right (32)                      = 64 bytes
    edge:   bottom (32) || path (32) || length (1)       = 65 bytes

### Preimage tuples

The OS receives nodes as tuples of field elements, keyed by node hash:

    binary: (left, right)
    edge:   (length, path, bottom)
"""

from __future__ import annotations

from abc import abstractmethod
from typing import ClassVar, Mapping, Sequence, Union

from pydantic import model_validator
from typing_extensions import Self

from commitment_spec.subspecs.crypto import HashFunction
from commitment_spec.subspecs.storage import Fact, Storage
from commitment_spec.types import EMPTY_NODE_HASH, Felt, Hash32, Length, NodePath
from commitment_spec.types.exceptions import (
    ContentNotFoundError,
    DeserializeError,
    EmptyChildError,
    InvalidEdgePathError,
    MalformedPreimageError,
    SerializeError,
)

HASH_BYTES = 32
"""Size of a node hash in bytes."""

Preimage = Mapping[int, Sequence[int]]
"""Node hash -> preimage tuple. Read-only view used by tree walks."""

PreimageDict = dict[Felt, tuple[Felt, ...]]
"""Node hash -> preimage tuple. Owned map produced by tree updates."""


def verify_path_value(path: int, length: int) -> None:
    """
    Check that an edge path fits in its length.

    Raises:
        InvalidEdgePathError: If `path >= 2**length`.
    """
    if path >= (1 << int(length)):
        raise InvalidEdgePathError(int(path), int(length))


def check_preimage_entry(node_hash: int, entry: Sequence[int]) -> Sequence[int]:
    """
    Return `entry` if it is a binary pair or an edge triple.

    Edge triples must have a positive length and a path that fits in it.

    Raises:
        MalformedPreimageError: For any other shape.
    """
    if len(entry) == 2:
        return entry
    if len(entry) == 3:
        length, path = int(entry[0]), int(entry[1])
        if length > 0 and 0 <= path and path.bit_length() <= length:
            return entry
    raise MalformedPreimageError(int(node_hash), entry)


class InnerNodeFact(Fact):
    """A non-leaf node of a Patricia trie."""

    PREIMAGE_LENGTH: ClassVar[int]
    """Size of the storage encoding in bytes."""

    @classmethod
    def prefix(cls) -> bytes:
        return b"patricia_node"

    @abstractmethod
    def to_tuple(self) -> tuple[Felt, ...]:
        """Preimage tuple handed to the OS."""


class BinaryNodeFact(InnerNodeFact):
    """A fork with two non-empty children."""

    PREIMAGE_LENGTH: ClassVar[int] = 2 * HASH_BYTES

    left_node: Hash32
    right_node: Hash32

    @model_validator(mode="after")
    def _check_children(self) -> Self:
        # An empty child means the fork does not exist: it must be an edge.
        if self.left_node == EMPTY_NODE_HASH:
            raise EmptyChildError("left")
        if self.right_node == EMPTY_NODE_HASH:
            raise EmptyChildError("right")
        return self

    def hash(self, hash_function: HashFunction) -> Hash32:
        return hash_function.hash(self.left_node, self.right_node)

    def to_tuple(self) -> tuple[Felt, ...]:
        return (self.left_node.to_felt(), self.right_node.to_felt())

    def serialize(self) -> bytes:
        return bytes(self.left_node) + bytes(self.right_node)

    @classmethod
    def deserialize(cls, data: bytes) -> Self:
        if len(data) != cls.PREIMAGE_LENGTH:
            raise DeserializeError.length_mismatch(cls.PREIMAGE_LENGTH, len(data))
        return cls(left_node=Hash32(data[:HASH_BYTES]), right_node=Hash32(data[HASH_BYTES:]))


class EdgeNodeFact(InnerNodeFact):
    """A compressed run of `edge_length` single-child nodes."""

    PREIMAGE_LENGTH: ClassVar[int] = 2 * HASH_BYTES + 1

    bottom_node: Hash32
    edge_path: NodePath
    edge_length: Length

    @model_validator(mode="after")
    def _check_path(self) -> Self:
        verify_path_value(self.edge_path, self.edge_length)
        return self

    @classmethod
    def new_unchecked(cls, bottom_node: Hash32, edge_path: int, edge_length: int) -> Self:
        """
        Build an edge without validation.

        Only for callers that already established `path < 2**length`.
        The invariant is still asserted when assertions are enabled.
        """
        assert edge_path < (1 << int(edge_length)), "edge path does not fit its length"
        return cls.model_construct(
            bottom_node=Hash32(bottom_node),
            edge_path=NodePath(edge_path),
            edge_length=Length(edge_length),
        )

    def hash(self, hash_function: HashFunction) -> Hash32:
        bottom_path_hash = hash_function.hash_felts(
            self.bottom_node.to_felt(), Felt(self.edge_path)
        )
        return Hash32.from_felt(bottom_path_hash + self.edge_length)

    def to_tuple(self) -> tuple[Felt, ...]:
        return (Felt(self.edge_length), Felt(self.edge_path), self.bottom_node.to_felt())

    def serialize(self) -> bytes:
        if self.edge_length > 0xFF:
            raise SerializeError(
                f"Expected edge length to be at most 1 byte once serialized, got {self.edge_length}"
            )
        return (
            bytes(self.bottom_node)
            + int(self.edge_path).to_bytes(HASH_BYTES, "big")
            + int(self.edge_length).to_bytes(1, "big")
        )

    @classmethod
    def deserialize(cls, data: bytes) -> Self:
        if len(data) != cls.PREIMAGE_LENGTH:
            raise DeserializeError.length_mismatch(cls.PREIMAGE_LENGTH, len(data))
        try:
            return cls(
                bottom_node=Hash32(data[:HASH_BYTES]),
                edge_path=NodePath(int.from_bytes(data[HASH_BYTES : 2 * HASH_BYTES], "big")),
                edge_length=Length(data[2 * HASH_BYTES]),
            )
        except InvalidEdgePathError as e:
            raise DeserializeError(e.message) from e


PatriciaNodeFact = Union[BinaryNodeFact, EdgeNodeFact]
"""Either kind of inner node."""


def deserialize_node_fact(data: bytes) -> PatriciaNodeFact:
    """
    Decode a stored inner node, choosing the kind from the encoding size.

    Raises:
        DeserializeError: If no node kind has that size.
    """
    if len(data) == BinaryNodeFact.PREIMAGE_LENGTH:
        return BinaryNodeFact.deserialize(data)
    if len(data) == EdgeNodeFact.PREIMAGE_LENGTH:
        return EdgeNodeFact.deserialize(data)
    raise DeserializeError.no_variant_with_length(len(data))


def node_fact_from_tuple(values: Sequence[int]) -> PatriciaNodeFact:
    """
    Rebuild a node fact from its preimage tuple.

    Raises:
        DeserializeError: If the tuple has neither 2 nor 3 elements.
    """
    if len(values) == 2:
        left, right = values
        return BinaryNodeFact(left_node=Hash32.from_felt(left), right_node=Hash32.from_felt(right))
    if len(values) == 3:
        length, path, bottom = values
        return EdgeNodeFact(
            bottom_node=Hash32.from_felt(bottom),
            edge_path=NodePath(path),
            edge_length=Length(length),
        )
    raise DeserializeError.no_variant_with_length(len(values))


async def read_node_fact(storage: Storage, node_hash: Hash32) -> PatriciaNodeFact:
    """
    Fetch an inner node from storage by its hash.

    Raises:
        ContentNotFoundError: If the node is not stored.
    """
    key = InnerNodeFact.db_key(node_hash)
    data = await storage.get_value(key)
    if data is None:
        raise ContentNotFoundError(key)
    return deserialize_node_fact(data)
