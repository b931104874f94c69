"""
Commitment info: one trie transition, packaged for the OS.

The OS needs, for every trie touched by a block, the root before and after
the block plus every node it may visit while recomputing the new root from
the old one. Nodes come as a preimage map (hash -> tuple), so the OS never
performs I/O.

### JSON form

    {
      "previous_root": <int>,
      "updated_root": <int>,
      "tree_height": <int>,
      "commitment_facts": {"0x..": ["0x..", "0x.."], "0x..": ["0x3", "0x5", "0x.."]}
    }

Binary nodes map to 2-element lists, edges to `[length, path, bottom]`.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Iterable, Mapping, Sequence, Union

from pydantic import Field, PlainSerializer
from typing_extensions import Self

from commitment_spec.config import DEFAULT_CONFIG, CommitmentConfig
from commitment_spec.subspecs.crypto import HashFunction, TrieKind
from commitment_spec.types import DescentMap, Felt, Hash32, Height, StrictBaseModel
from commitment_spec.types.exceptions import TreeHeightError, UpdatedRootMismatchError

from .guess_descents import patricia_guess_descents
from .leaf import LeafFact
from .nodes import Preimage
from .patricia_tree import PatriciaTree
from .proofs import BinaryProofNode, EdgeProofNode, format_commitment_facts
from .update_tree import build_update_tree

logger = logging.getLogger(__name__)

IntFelt = Annotated[Felt, PlainSerializer(int, return_type=int)]
"""A field element written to JSON as a plain integer."""


def expected_tree_height(kind: TrieKind, config: CommitmentConfig = DEFAULT_CONFIG) -> int:
    """Protocol height of the tries of `kind`."""
    return config.tree_height(kind)


class CommitmentInfo(StrictBaseModel):
    """Roots and preimage of one trie transition."""

    previous_root: IntFelt
    updated_root: IntFelt
    tree_height: int = Field(ge=0)
    commitment_facts: dict[Felt, tuple[Felt, ...]] = Field(default_factory=dict)

    def check_height(self, kind: TrieKind, config: CommitmentConfig = DEFAULT_CONFIG) -> None:
        """
        Raises:
            TreeHeightError: If the height is not the one mandated for `kind`.
        """
        expected = expected_tree_height(kind, config)
        if self.tree_height != expected:
            raise TreeHeightError(expected, self.tree_height)

    @classmethod
    def from_facts(
        cls,
        kind: TrieKind,
        previous_root: int,
        updated_root: int,
        fact_maps: Iterable[Preimage],
        tree_height: int | None = None,
        config: CommitmentConfig = DEFAULT_CONFIG,
    ) -> Self:
        """
        Assemble commitment info from already hashed preimage maps.

        Maps are merged in order. A hash present in several maps must have
        the same preimage in all of them, so the merge order does not matter.

        Raises:
            TreeHeightError: If `tree_height` differs from the height of `kind`.
        """
        height = expected_tree_height(kind, config) if tree_height is None else tree_height

        facts: dict[Felt, tuple[Felt, ...]] = {}
        for fact_map in fact_maps:
            for node_hash, values in fact_map.items():
                facts[Felt(node_hash)] = tuple(Felt(v) for v in values)

        info = cls(
            previous_root=Felt(previous_root),
            updated_root=Felt(updated_root),
            tree_height=height,
            commitment_facts=facts,
        )
        info.check_height(kind, config)
        logger.debug(
            "Assembled %s commitment %#x -> %#x with %d facts",
            kind.value,
            info.previous_root,
            info.updated_root,
            len(facts),
        )
        return info

    @classmethod
    def from_proofs(
        cls,
        kind: TrieKind,
        previous_root: int,
        updated_root: int,
        previous_proofs: Iterable[Sequence[Union[BinaryProofNode, EdgeProofNode]]],
        updated_proofs: Iterable[Sequence[Union[BinaryProofNode, EdgeProofNode]]],
        tree_height: int | None = None,
        config: CommitmentConfig = DEFAULT_CONFIG,
    ) -> Self:
        """
        Assemble commitment info from storage proofs against both roots.

        The facts are the union of the nodes of both sets of proofs, hashed
        with the hash function of `kind`.

        Raises:
            TreeHeightError: If `tree_height` differs from the height of `kind`.
            EmptyChildError: If a proof contains a binary node with an empty child.
            InvalidEdgePathError: If a proof contains an invalid edge.
        """
        hash_function = config.hash_function(kind)
        return cls.from_facts(
            kind,
            previous_root,
            updated_root,
            [
                format_commitment_facts(updated_proofs, hash_function),
                format_commitment_facts(previous_proofs, hash_function),
            ],
            tree_height=tree_height,
            config=config,
        )

    @classmethod
    def compute(
        cls,
        kind: TrieKind,
        previous_tree: PatriciaTree,
        modifications: Iterable[tuple[int, LeafFact]],
        preimage: Preimage,
        config: CommitmentConfig = DEFAULT_CONFIG,
    ) -> Self:
        """
        Apply modifications to `previous_tree` and package the transition.

        The facts are `preimage` plus every node created by the update.

        Raises:
            PreimageNotFoundError: If a node on a modified path is missing.
            TreeHeightError: If the tree height differs from the height of `kind`.
        """
        new_tree, new_facts = previous_tree.compute_update(
            modifications, preimage, config.hash_function(kind)
        )
        return cls.from_facts(
            kind,
            previous_tree.root.to_felt(),
            new_tree.root.to_felt(),
            [preimage, new_facts],
            tree_height=int(previous_tree.height),
            config=config,
        )

    @property
    def previous_tree(self) -> PatriciaTree:
        return PatriciaTree(
            root=Hash32.from_felt(self.previous_root), height=Height(self.tree_height)
        )

    @property
    def updated_tree(self) -> PatriciaTree:
        return PatriciaTree(
            root=Hash32.from_felt(self.updated_root), height=Height(self.tree_height)
        )

    def validate_updated_root(
        self,
        modifications: Iterable[tuple[int, LeafFact]],
        hash_function: HashFunction,
    ) -> PatriciaTree:
        """
        Recompute the updated root from the previous root and the facts.

        Returns:
            The recomputed tree.

        Raises:
            UpdatedRootMismatchError: If the recomputed root is not `updated_root`.
            PreimageNotFoundError: If the facts miss a node on a modified path.
        """
        new_tree, _ = self.previous_tree.compute_update(
            modifications, self.commitment_facts, hash_function
        )
        actual = new_tree.root.to_felt()
        if actual != self.updated_root:
            raise UpdatedRootMismatchError(int(self.updated_root), int(actual))
        return new_tree

    def guess_descents(self, modifications: Iterable[tuple[int, Any]]) -> DescentMap:
        """
        Descents of the walk from `previous_root` to `updated_root`.

        Raises:
            PreimageNotFoundError: If the facts miss a node on a visited path.
        """
        update_tree = build_update_tree(self.tree_height, modifications)
        return patricia_guess_descents(
            self.tree_height,
            update_tree,
            self.commitment_facts,
            self.previous_root,
            self.updated_root,
        )

    def merged(self, facts: Mapping[int, Sequence[int]]) -> CommitmentInfo:
        """A copy with extra facts, for instance from a second batch of proofs."""
        merged_facts = dict(self.commitment_facts)
        for node_hash, values in facts.items():
            merged_facts[Felt(node_hash)] = tuple(Felt(v) for v in values)
        return self.copy(commitment_facts=merged_facts)

