"""
Virtual Patricia nodes.

A virtual node stands for any node of the trie, including the implicit nodes
that live inside an edge. It is described by the node it eventually reaches
(`bottom_node`) and the part of an edge still to be walked to get there
(`path`, `length`). A node with `length == 0` is a real node: its hash is
`bottom_node` itself.

Walking down splits edges one bit at a time. Building up merges single
children back into edges and only materializes a binary fact where both
sides are non-empty. Edges are only hashed once their final length is
known, when `commit` is called.
"""

from __future__ import annotations

from dataclasses import dataclass

from commitment_spec.subspecs.crypto import HashFunction
from commitment_spec.types import Felt, Hash32
from commitment_spec.types.exceptions import IsLeafError, PreimageNotFoundError

from .nodes import BinaryNodeFact, EdgeNodeFact, Preimage, PreimageDict, check_preimage_entry


@dataclass(frozen=True, slots=True)
class VirtualPatriciaNode:
    """A node of the trie, possibly in the middle of an edge."""

    bottom_node: int
    """Hash of the first real node at or below this one."""

    path: int
    """Remaining edge bits between this node and `bottom_node`."""

    length: int
    """Number of remaining edge bits."""

    height: int
    """Height of this node. Leaves are at height 0."""

    @classmethod
    def empty(cls, height: int) -> VirtualPatriciaNode:
        return cls(bottom_node=0, path=0, length=0, height=height)

    @classmethod
    def from_hash(cls, node_hash: int, height: int) -> VirtualPatriciaNode:
        return cls(bottom_node=int(node_hash), path=0, length=0, height=height)

    @classmethod
    def from_preimage(cls, node_hash: int, height: int, preimage: Preimage) -> VirtualPatriciaNode:
        """
        Node with hash `node_hash`, unfolded into its edge when it is a known edge.

        Extending a child into a longer edge must absorb the child's own edge,
        otherwise the parent would be an edge pointing to an edge.
        """
        if height > 0:
            entry = preimage.get(node_hash)
            if entry is not None and len(check_preimage_entry(node_hash, entry)) == 3:
                length, path, bottom = entry
                return cls(
                    bottom_node=int(bottom), path=int(path), length=int(length), height=height
                )
        return cls.from_hash(node_hash, height)

    @property
    def is_empty(self) -> bool:
        return self.bottom_node == 0

    @property
    def is_leaf(self) -> bool:
        return self.height == 0

    def get_children(self, preimage: Preimage) -> tuple[VirtualPatriciaNode, VirtualPatriciaNode]:
        """
        Split this node into its two children.

        Raises:
            IsLeafError: If the node is a leaf.
            PreimageNotFoundError: If a real node is missing from `preimage` or its
                entry is malformed.
        """
        if self.is_leaf:
            raise IsLeafError()

        child_height = self.height - 1
        if self.is_empty:
            return VirtualPatriciaNode.empty(child_height), VirtualPatriciaNode.empty(child_height)

        if self.length == 0:
            entry = preimage.get(self.bottom_node)
            if entry is None:
                raise PreimageNotFoundError(self.bottom_node)
            if len(check_preimage_entry(self.bottom_node, entry)) == 2:
                left, right = entry
                return (
                    VirtualPatriciaNode.from_preimage(left, child_height, preimage),
                    VirtualPatriciaNode.from_preimage(right, child_height, preimage),
                )
            length, path, bottom = entry
            edge = VirtualPatriciaNode(
                bottom_node=int(bottom), path=int(path), length=int(length), height=self.height
            )
            return edge.get_children(preimage)

        # Inside an edge: the top bit picks the side, the other side is empty.
        remaining = self.length - 1
        child = VirtualPatriciaNode(
            bottom_node=self.bottom_node,
            path=self.path & ((1 << remaining) - 1),
            length=remaining,
            height=child_height,
        )
        if self.path >> remaining == 0:
            return child, VirtualPatriciaNode.empty(child_height)
        return VirtualPatriciaNode.empty(child_height), child

    def commit(self, hash_function: HashFunction, facts: PreimageDict) -> Felt:
        """
        Hash of this node, materializing the pending edge if there is one.

        Any edge fact created is recorded in `facts`.
        """
        if self.length == 0:
            return Felt(self.bottom_node)
        edge = EdgeNodeFact.new_unchecked(
            bottom_node=Hash32.from_felt(self.bottom_node),
            edge_path=self.path,
            edge_length=self.length,
        )
        edge_hash = edge.hash(hash_function).to_felt()
        facts[edge_hash] = edge.to_tuple()
        return edge_hash

    @classmethod
    def combine(
        cls,
        left: VirtualPatriciaNode,
        right: VirtualPatriciaNode,
        hash_function: HashFunction,
        facts: PreimageDict,
    ) -> VirtualPatriciaNode:
        """
        Build the parent of two sibling nodes.

        A single non-empty child is extended into a longer edge. Two
        non-empty children produce a binary fact, recorded in `facts`.
        """
        assert left.height == right.height, "siblings must have the same height"
        height = left.height + 1

        if left.is_empty and right.is_empty:
            return cls.empty(height)
        if left.is_empty:
            return cls(
                bottom_node=right.bottom_node,
                path=right.path + (1 << right.length),
                length=right.length + 1,
                height=height,
            )
        if right.is_empty:
            return cls(
                bottom_node=left.bottom_node,
                path=left.path,
                length=left.length + 1,
                height=height,
            )

        binary = BinaryNodeFact(
            left_node=Hash32.from_felt(left.commit(hash_function, facts)),
            right_node=Hash32.from_felt(right.commit(hash_function, facts)),
        )
        binary_hash = binary.hash(hash_function).to_felt()
        facts[binary_hash] = binary.to_tuple()
        return cls.from_hash(binary_hash, height)
