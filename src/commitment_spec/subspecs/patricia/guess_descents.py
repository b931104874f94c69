"""
Guessing descents for the OS trie walk.

### Why descents exist

The OS recomputes the new root by walking the update tree top-down, next to
the previous and the new trie. At every level it needs the children of all
three. Along a run where all three trees only have a single child, always on
the same side, nothing interesting happens: no branch to merge, no sibling
to hash. A descent lets the OS jump over such a run in one step.

### Algorithm

Three cursors move in lockstep from the root: the update tree, the previous
trie and the new trie. While all three agree on a single child (all left, or
all right), the run grows by one bit. At the first disagreement, or at the
leaves, the run ends. Runs longer than one bit are recorded as

    (height, path) at the top of the run -> (length, bits of the run)

The walk then recurses into both sides of the divergence point.

### Preimage cursors

Historical tries are read from the preimage map. A cursor position is a
triplet `(length, word, hash)`:

- `length == 0`: a real node; its children are looked up by `hash`.
- `length > 0`: inside an edge ending at `hash`, with `word` holding the
  remaining bits.

The empty subtree is `(0, 0, 0)` and is never looked up.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from commitment_spec.types import (
    DescentMap,
    DescentPath,
    DescentStart,
    Height,
    Length,
    NodePath,
)
from commitment_spec.types.exceptions import (
    IsNotBranchError,
    MalformedPreimageError,
    PreimageNotFoundError,
    TreeHeightMismatchError,
)

from .nodes import Preimage, check_preimage_entry
from .update_tree import UpdateLeaf, UpdateTree

Triplet = tuple[int, int, int]
"""Cursor position: (edge length left, edge word, node hash)."""

EMPTY_TRIPLET: Triplet = (0, 0, 0)


def canonic(preimage: Preimage, node_hash: int) -> Triplet:
    """
    Cursor position for the node with hash `node_hash`.

    Edge nodes are unfolded immediately into their (length, path, bottom)
    triplet. Any other node starts with an empty edge.

    Raises:
        MalformedPreimageError: If the entry of `node_hash` is malformed.
    """
    back = preimage.get(node_hash)
    if back is not None and len(check_preimage_entry(node_hash, back)) == 3:
        return (int(back[0]), int(back[1]), int(back[2]))
    return (0, 0, int(node_hash))


def get_children(preimage: Preimage, node: Triplet) -> tuple[Triplet, Triplet]:
    """
    Cursor positions of both children of `node`.

    Raises:
        PreimageNotFoundError: If a real, non-empty node has no preimage.
        MalformedPreimageError: If its preimage is not a binary pair.
    """
    length, word, node_hash = node

    if length == 0:
        if node_hash == 0:
            left, right = 0, 0
        else:
            node_preimage = preimage.get(node_hash)
            if node_preimage is None:
                raise PreimageNotFoundError(node_hash)
            if len(check_preimage_entry(node_hash, node_preimage)) != 2:
                raise MalformedPreimageError(node_hash, node_preimage)
            left, right = int(node_preimage[0]), int(node_preimage[1])
        return canonic(preimage, left), canonic(preimage, right)

    remaining = length - 1
    if word >> remaining == 0:
        return (remaining, word, node_hash), EMPTY_TRIPLET
    return EMPTY_TRIPLET, (remaining, word - (1 << remaining), node_hash)


@dataclass(frozen=True, slots=True)
class PreimageCursor:
    """A position in a historical trie, read lazily from a preimage map."""

    height: int
    preimage: Preimage
    node: Triplet

    def children(self) -> tuple[Optional[PreimageCursor], Optional[PreimageCursor]]:
        """
        Decode one level. Absent children are None.

        Raises:
            IsNotBranchError: If the cursor is at a leaf.
        """
        if self.height == 0:
            raise IsNotBranchError()
        left, right = get_children(self.preimage, self.node)
        return self._child(left), self._child(right)

    def _child(self, node: Triplet) -> Optional[PreimageCursor]:
        if node == EMPTY_TRIPLET:
            return None
        return PreimageCursor(height=self.height - 1, preimage=self.preimage, node=node)


def preimage_tree(height: int, preimage: Preimage, root: int) -> PreimageCursor:
    """Cursor at the root of the trie with hash `root`."""
    return PreimageCursor(height=height, preimage=preimage, node=canonic(preimage, root))


def _update_children(update_tree: UpdateTree[Any]) -> tuple[UpdateTree[Any], UpdateTree[Any]]:
    if update_tree is None:
        raise TreeHeightMismatchError()
    if isinstance(update_tree, UpdateLeaf):
        raise IsNotBranchError()
    return update_tree.left, update_tree.right


def _cursor_children(
    cursor: Optional[PreimageCursor], height: int
) -> tuple[Optional[PreimageCursor], Optional[PreimageCursor]]:
    if cursor is None:
        return None, None
    if cursor.height != height:
        raise TreeHeightMismatchError()
    return cursor.children()


def get_descents(
    height: int,
    path: int,
    update_tree: UpdateTree[Any],
    previous_tree: Optional[PreimageCursor],
    new_tree: Optional[PreimageCursor],
) -> DescentMap:
    """
    Descents of the subtree at `(height, path)`.

    Args:
        height: Height of the subtree root.
        path: Path from the trie root to the subtree root.
        update_tree: Modifications below the subtree root.
        previous_tree: Cursor in the previous trie, None if that subtree is empty.
        new_tree: Cursor in the new trie, None if that subtree is empty.
    """
    descent_map: DescentMap = {}
    if update_tree is None or height == 0:
        return descent_map

    orig_height, orig_path = height, path

    # Walk all trees simultaneously while they agree on a single child.
    while True:
        update_left, update_right = _update_children(update_tree)
        previous_left, previous_right = _cursor_children(previous_tree, height)
        new_left, new_right = _cursor_children(new_tree, height)

        if update_left is None and previous_left is None and new_left is None:
            path, height = 2 * path + 1, height - 1
            if height == 0:
                break
            update_tree, previous_tree, new_tree = update_right, previous_right, new_right
        elif update_right is None and previous_right is None and new_right is None:
            path, height = 2 * path, height - 1
            if height == 0:
                break
            update_tree, previous_tree, new_tree = update_left, previous_left, new_left
        else:
            break

    # A run of a single bit is not worth a descent.
    length = orig_height - height
    if length > 1:
        descent_map[DescentStart(Height(orig_height), NodePath(orig_path))] = DescentPath(
            Length(length), NodePath(path % (1 << length))
        )

    if height > 0:
        next_height = height - 1
        descent_map.update(
            get_descents(next_height, 2 * path, update_left, previous_left, new_left)
        )
        descent_map.update(
            get_descents(next_height, 2 * path + 1, update_right, previous_right, new_right)
        )

    return descent_map


def patricia_guess_descents(
    height: int,
    node: UpdateTree[Any],
    preimage: Preimage,
    prev_root: int,
    new_root: int,
) -> DescentMap:
    """
    Compute every skippable run of the walk from `prev_root` to `new_root`.

    Args:
        height: Height of the trie.
        node: Update tree of the transition.
        preimage: Nodes of both tries, keyed by hash.
        prev_root: Root of the previous trie.
        new_root: Root of the new trie.

    Raises:
        PreimageNotFoundError: If a node on a visited path is missing.
        IsNotBranchError: If a leaf is reached where a branch was expected.
        TreeHeightMismatchError: If the trees disagree on their height.
    """
    node_prev = preimage_tree(height, preimage, int(prev_root))
    node_new = preimage_tree(height, preimage, int(new_root))
    return get_descents(int(height), 0, node, node_prev, node_new)
