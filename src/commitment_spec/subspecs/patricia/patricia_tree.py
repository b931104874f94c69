"""
Patricia-Merkle trie snapshots.

A `PatriciaTree` is just a root hash and a height. The nodes behind it live
either in a preimage map (hash -> tuple) held in memory, or in a fact store
keyed by content hash. Tree updates run purely in memory; persistence is a
separate, asynchronous step.
"""

from __future__ import annotations

import logging
from typing import Iterable

from typing_extensions import Self

from commitment_spec.subspecs.crypto import HashFunction
from commitment_spec.subspecs.storage import FactFetchingContext
from commitment_spec.types import (
    EMPTY_NODE_HASH,
    Felt,
    Hash32,
    Height,
    StrictBaseModel,
    verify_index,
)

from .leaf import LeafFact
from .nodes import Preimage, PreimageDict, node_fact_from_tuple, read_node_fact
from .update_tree import UpdateLeaf, UpdateTree, build_update_tree, decode_node
from .virtual_node import VirtualPatriciaNode

logger = logging.getLogger(__name__)


def _apply_update(
    update: UpdateTree[LeafFact],
    node: VirtualPatriciaNode,
    preimage: Preimage,
    hash_function: HashFunction,
    facts: PreimageDict,
) -> VirtualPatriciaNode:
    """Rebuild `node` with the modifications of `update` applied."""
    if update is None:
        return node

    if isinstance(update, UpdateLeaf):
        # A zero leaf hash is the empty node: the leaf is deleted.
        leaf_hash = update.fact.hash(hash_function).to_felt()
        return VirtualPatriciaNode.from_hash(leaf_hash, node.height)

    decoded = decode_node(update)
    left, right = node.get_children(preimage)
    new_left = _apply_update(decoded.left_child, left, preimage, hash_function, facts)
    new_right = _apply_update(decoded.right_child, right, preimage, hash_function, facts)
    return VirtualPatriciaNode.combine(new_left, new_right, hash_function, facts)


class PatriciaTree(StrictBaseModel):
    """A trie snapshot, identified by its root hash."""

    root: Hash32
    height: Height

    @classmethod
    def empty_tree(cls, height: int) -> Self:
        """A tree with no leaves."""
        return cls(root=EMPTY_NODE_HASH, height=Height(height))

    def compute_update(
        self,
        modifications: Iterable[tuple[int, LeafFact]],
        preimage: Preimage,
        hash_function: HashFunction,
    ) -> tuple[PatriciaTree, PreimageDict]:
        """
        Apply leaf modifications in memory.

        Args:
            modifications: Pairs of (leaf index, new leaf). Last write wins.
            preimage: Nodes of this tree along every modified path.
            hash_function: Hash function of this trie.

        Returns:
            The updated tree and every inner node created on the way.

        Raises:
            PreimageNotFoundError: If a node on a modified path is missing.
        """
        facts: PreimageDict = {}
        update_tree = build_update_tree(self.height, modifications)
        if update_tree is None:
            return self, facts

        root = VirtualPatriciaNode.from_hash(self.root.to_felt(), self.height)
        new_root = _apply_update(update_tree, root, preimage, hash_function, facts)
        new_root_hash = new_root.commit(hash_function, facts)
        return PatriciaTree(root=Hash32.from_felt(new_root_hash), height=self.height), facts

    async def update(
        self,
        ffc: FactFetchingContext,
        modifications: Iterable[tuple[int, LeafFact]],
        preimage: Preimage,
    ) -> tuple[PatriciaTree, PreimageDict]:
        """
        Apply leaf modifications and persist every new node and leaf.

        Returns:
            The updated tree and the inner nodes it created.
        """
        modifications = list(modifications)
        new_tree, facts = self.compute_update(modifications, preimage, ffc.hash_function)

        for _, leaf in modifications:
            if not leaf.is_empty:
                await leaf.set_fact(ffc)
        for values in facts.values():
            await node_fact_from_tuple(values).set_fact(ffc)

        logger.debug(
            "Updated tree of height %d: %s -> %s (%d new nodes)",
            self.height,
            self.root.hex(),
            new_tree.root.hex(),
            len(facts),
        )
        return new_tree, facts

    async def fetch_preimage(
        self, ffc: FactFetchingContext, indices: Iterable[int]
    ) -> PreimageDict:
        """
        Read from storage every inner node on the paths to `indices`.

        The siblings of those paths are read too: when a deletion leaves a
        single child, an edge sibling must be unfolded into the new edge.
        The result is enough for `compute_update` and `get_leaf` on those
        indices.

        Raises:
            ContentNotFoundError: If a node on one of the paths is not stored.
        """
        preimage: PreimageDict = {}

        async def fetch(node: VirtualPatriciaNode) -> None:
            if node.is_leaf or node.is_empty or node.length > 0:
                return
            if node.bottom_node not in preimage:
                fact = await read_node_fact(ffc.storage, Hash32.from_felt(node.bottom_node))
                preimage[Felt(node.bottom_node)] = fact.to_tuple()

        for index in indices:
            verify_index(int(index), int(self.height))
            node = VirtualPatriciaNode.from_hash(self.root.to_felt(), self.height)
            while not node.is_leaf and not node.is_empty:
                await fetch(node)
                left, right = node.get_children(preimage)
                if (int(index) >> (node.height - 1)) & 1:
                    node, sibling = right, left
                else:
                    node, sibling = left, right
                await fetch(sibling)
        return preimage

    def get_leaf(self, preimage: Preimage, index: int) -> Felt:
        """
        Hash of the leaf at `index`, zero if the leaf is absent.

        Raises:
            PreimageNotFoundError: If a node on the path is missing.
        """
        verify_index(int(index), int(self.height))
        node = VirtualPatriciaNode.from_hash(self.root.to_felt(), self.height)
        while not node.is_leaf:
            if node.is_empty:
                return Felt(0)
            left, right = node.get_children(preimage)
            node = right if (int(index) >> (node.height - 1)) & 1 else left
        return Felt(node.bottom_node)

    def get_leaves(self, preimage: Preimage) -> dict[int, Felt]:
        """
        Every non-empty leaf of the tree.

        Only practical for sparse trees: the walk visits every stored node.
        """
        leaves: dict[int, Felt] = {}

        def collect(node: VirtualPatriciaNode, path: int) -> None:
            if node.is_empty:
                return
            if node.is_leaf:
                leaves[path] = Felt(node.bottom_node)
                return
            left, right = node.get_children(preimage)
            collect(left, 2 * path)
            collect(right, 2 * path + 1)

        collect(VirtualPatriciaNode.from_hash(self.root.to_felt(), self.height), 0)
        return leaves
