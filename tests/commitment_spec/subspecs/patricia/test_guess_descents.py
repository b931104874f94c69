"""Tests for descent guessing over update trees and historical tries."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from commitment_spec.subspecs.crypto import PEDERSEN
from commitment_spec.subspecs.patricia import (
    UpdateBranch,
    UpdateLeaf,
    build_update_tree,
    patricia_guess_descents,
)
from commitment_spec.subspecs.patricia.guess_descents import (
    EMPTY_TRIPLET,
    canonic,
    get_children,
    get_descents,
    preimage_tree,
)
from commitment_spec.types import DescentPath, DescentStart
from commitment_spec.types.exceptions import (
    IsNotBranchError,
    MalformedPreimageError,
    PreimageNotFoundError,
    TreeHeightMismatchError,
)
from tests.commitment_spec.helpers import (
    bits_between,
    build_tree,
    replay_descent_path,
    storage_modifications,
)

HEIGHT = 8

indices = st.integers(min_value=0, max_value=2**HEIGHT - 1)
values = st.integers(min_value=1, max_value=2**32)


def descents_of(previous: dict[int, int], update: dict[int, int], height: int):
    """Descents of the transition applying `update` on top of `previous`."""
    previous_tree, preimage = build_tree(previous, height, PEDERSEN)
    new_tree, preimage = build_tree(update, height, PEDERSEN, preimage, previous_tree)
    update_tree = build_update_tree(height, storage_modifications(update))
    return patricia_guess_descents(
        height,
        update_tree,
        preimage,
        previous_tree.root.to_felt(),
        new_tree.root.to_felt(),
    )


class TestCursors:
    def test_canonic_unfolds_edges(self) -> None:
        assert canonic({0xE: (3, 0b101, 0x42)}, 0xE) == (3, 0b101, 0x42)

    def test_canonic_keeps_binary_and_unknown_nodes(self) -> None:
        assert canonic({0xB: (1, 2)}, 0xB) == (0, 0, 0xB)
        assert canonic({}, 0x99) == (0, 0, 0x99)

    def test_empty_node_has_empty_children(self) -> None:
        assert get_children({}, EMPTY_TRIPLET) == (EMPTY_TRIPLET, EMPTY_TRIPLET)

    def test_binary_children_are_canonicalized(self) -> None:
        preimage = {0xB: (0xE, 0x7), 0xE: (2, 0b01, 0x5)}
        assert get_children(preimage, (0, 0, 0xB)) == ((2, 0b01, 0x5), (0, 0, 0x7))

    def test_edge_bits_are_consumed_from_the_top(self) -> None:
        assert get_children({}, (3, 0b101, 0x42)) == (EMPTY_TRIPLET, (2, 0b01, 0x42))
        assert get_children({}, (2, 0b01, 0x42)) == ((1, 0b01, 0x42), EMPTY_TRIPLET)

    def test_missing_binary_preimage(self) -> None:
        with pytest.raises(PreimageNotFoundError):
            get_children({}, (0, 0, 0xB))

    def test_cursor_at_leaf_is_not_a_branch(self) -> None:
        with pytest.raises(IsNotBranchError):
            preimage_tree(0, {}, 0x42).children()

    def test_cursor_drops_empty_children(self) -> None:
        left, right = preimage_tree(3, {}, 0).children()
        assert left is None and right is None


class TestScenarios:
    def test_insert_into_empty_trie_is_one_descent(self) -> None:
        descents = descents_of({}, {5: 42}, 4)
        assert descents == {DescentStart(4, 0): DescentPath(4, 0b0101)}

    def test_insert_next_to_existing_leaf(self) -> None:
        """The walk stops one level above the new fork."""
        descents = descents_of({4: 7}, {5: 42}, 4)
        assert descents == {DescentStart(4, 0): DescentPath(3, 0b010)}

    def test_replaying_the_descent_reaches_the_leaf(self) -> None:
        descents = descents_of({}, {5: 42}, 4)
        assert list(replay_descent_path(descents, 4, 5)) == [(4, 0, 4)]

    def test_full_height_single_leaf(self) -> None:
        key = 0x49EE3EBA8C1600700EE1B87EB599F16716B0B1022947733551FDE4050CA6804
        descents = descents_of({}, {key: 1}, 251)
        assert descents == {DescentStart(251, 0): DescentPath(251, key)}

    def test_sibling_updates_have_no_descent_below_fork(self) -> None:
        descents = descents_of({}, {0: 1, 1: 2}, 4)
        assert descents == {DescentStart(4, 0): DescentPath(3, 0)}

    def test_no_modifications(self) -> None:
        assert patricia_guess_descents(HEIGHT, None, {}, 0, 0) == {}


class TestErrors:
    def test_missing_root_preimage(self) -> None:
        update_tree = build_update_tree(HEIGHT, [(1, "leaf")])
        with pytest.raises(PreimageNotFoundError) as exc_info:
            patricia_guess_descents(HEIGHT, update_tree, {}, 0xAB, 0)
        assert exc_info.value.node_hash == 0xAB

    def test_update_tree_shorter_than_trie(self) -> None:
        update_tree = build_update_tree(2, [(1, "leaf")])
        with pytest.raises(IsNotBranchError):
            patricia_guess_descents(4, update_tree, {}, 0, 0)

    def test_cursor_height_mismatch(self) -> None:
        update_tree = UpdateBranch(left=UpdateLeaf("a"), right=None)
        with pytest.raises(TreeHeightMismatchError):
            get_descents(1, 0, update_tree, preimage_tree(2, {}, 0), None)

    @pytest.mark.parametrize("entry", [(3,), (1, 2, 3, 4), (0, 0, 0x42), (1, 0b10, 0x42)])
    def test_malformed_root_preimage(self, entry: tuple[int, ...]) -> None:
        update_tree = build_update_tree(2, [(1, "leaf")])
        with pytest.raises(MalformedPreimageError) as exc_info:
            patricia_guess_descents(2, update_tree, {10: entry}, 10, 10)
        assert exc_info.value.node_hash == 10

    def test_edge_below_a_real_node_is_malformed(self) -> None:
        """Edges are unfolded before a cursor reaches them, so real nodes are binary."""
        with pytest.raises(MalformedPreimageError):
            get_children({0xB: (3, 0b101, 0x42)}, (0, 0, 0xB))


class TestProperties:
    @settings(max_examples=50)
    @given(
        previous=st.dictionaries(indices, values, max_size=12),
        update=st.dictionaries(indices, st.one_of(st.just(0), values), min_size=1, max_size=6),
    )
    def test_descents_follow_modified_keys(
        self, previous: dict[int, int], update: dict[int, int]
    ) -> None:
        """Every descent spans more than one bit and agrees with the keys below it."""
        descents = descents_of(previous, update, HEIGHT)

        for (height, path), (length, bits) in descents.items():
            assert 1 < length <= height
            assert bits < 2**length
            for key in update:
                if key >> height == path:
                    assert bits_between(key, height, height - length) == bits

    @settings(max_examples=50)
    @given(update=st.dictionaries(indices, values, min_size=1, max_size=6))
    def test_replayed_walk_reaches_every_key(self, update: dict[int, int]) -> None:
        descents = descents_of({}, update, HEIGHT)

        for key in update:
            for height, path, length in replay_descent_path(descents, HEIGHT, key):
                assert path == key >> height
                assert descents[(height, path)].path == bits_between(key, height, height - length)
