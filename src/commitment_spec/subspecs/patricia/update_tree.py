"""
Update trees: the skeleton of what changed in a trie.

An update tree mirrors the shape of the trie it modifies, but only along the
paths that lead to modified leaves. Everything else is absent. The OS walks
this skeleton top-down and only recomputes hashes where it has to.

### Construction

The modifications form the bottom layer of a conceptual merkle tree. Each
round groups the current layer by parent index (`index // 2`) and emits one
branch per parent, holding whichever children were present. After `height`
rounds a single branch remains at index 0: the root.

Only touched indices are ever visited, so a round costs O(m) for m
modifications rather than O(2**height).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Iterable, Optional, TypeVar, Union

from commitment_spec.types import verify_index
from commitment_spec.types.exceptions import IsEmptyError, IsLeafError

LF = TypeVar("LF")
"""Leaf fact type carried by the update tree."""


@dataclass(frozen=True, slots=True)
class UpdateLeaf(Generic[LF]):
    """A modified leaf and its new value."""

    fact: LF


@dataclass(frozen=True, slots=True)
class UpdateBranch(Generic[LF]):
    """An inner node with at least one modified descendant on some side."""

    left: Optional[Union[UpdateLeaf[LF], UpdateBranch[LF]]]
    right: Optional[Union[UpdateLeaf[LF], UpdateBranch[LF]]]


TreeUpdate = Union[UpdateLeaf[LF], UpdateBranch[LF]]
"""A present node of the update tree."""

UpdateTree = Optional[TreeUpdate[LF]]
"""An update tree, or None when nothing changed."""


class DecodeNodeCase(Enum):
    """Which children of a branch carry modifications."""

    LEFT = "left"
    RIGHT = "right"
    BOTH = "both"


@dataclass(frozen=True, slots=True)
class DecodedNode(Generic[LF]):
    """A branch split into its children and the case they form."""

    left_child: UpdateTree[LF]
    right_child: UpdateTree[LF]
    case: DecodeNodeCase


def decode_node(node: TreeUpdate[LF]) -> DecodedNode[LF]:
    """
    Classify a branch of the update tree.

    Args:
        node: A present node of the update tree.

    Returns:
        The children and whether one or both of them must be recomputed.

    Raises:
        IsLeafError: If `node` is a leaf.
        IsEmptyError: If neither child is present.
    """
    if isinstance(node, UpdateLeaf):
        raise IsLeafError()

    match (node.left is None, node.right is None):
        case (True, False):
            case = DecodeNodeCase.RIGHT
        case (False, True):
            case = DecodeNodeCase.LEFT
        case (False, False):
            case = DecodeNodeCase.BOTH
        case _:
            raise IsEmptyError()

    return DecodedNode(left_child=node.left, right_child=node.right, case=case)


def build_update_tree(height: int, modifications: Iterable[tuple[int, LF]]) -> UpdateTree[LF]:
    """
    Build the update tree for a set of leaf modifications.

    If an index appears more than once, the last occurrence wins.

    Args:
        height: Height of the trie being modified.
        modifications: Pairs of (leaf index, new leaf fact).

    Returns:
        The root of the update tree, or None if there are no modifications.

    Raises:
        ValueError: If an index does not fit in a tree of this height.
    """
    layer: dict[int, TreeUpdate[LF]] = {}
    for index, leaf_fact in modifications:
        verify_index(int(index), int(height))
        layer[int(index)] = UpdateLeaf(leaf_fact)

    if not layer:
        return None

    for _ in range(int(height)):
        parents = {index // 2 for index in layer}
        layer = {
            index: UpdateBranch(left=layer.get(2 * index), right=layer.get(2 * index + 1))
            for index in parents
        }

    assert len(layer) == 1, "update tree must reduce to a single root"
    return layer[0]


def iter_update_leaves(
    node: UpdateTree[LF], height: int, path: int = 0
) -> Iterable[tuple[int, LF]]:
    """Yield `(index, leaf fact)` for every leaf of an update tree, left to right."""
    if node is None:
        return
    if isinstance(node, UpdateLeaf):
        if height != 0:
            raise IsLeafError()
        yield path, node.fact
        return
    yield from iter_update_leaves(node.left, height - 1, 2 * path)
    yield from iter_update_leaves(node.right, height - 1, 2 * path + 1)
