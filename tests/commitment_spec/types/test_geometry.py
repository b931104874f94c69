"""Tests for tree geometry types."""

from typing import Any

import pytest
from pydantic import create_model

from commitment_spec.types import (
    DescentPath,
    DescentStart,
    Height,
    Length,
    NodePath,
    TreeIndex,
    verify_index,
)


@pytest.mark.parametrize("cls", [Height, Length, TreeIndex, NodePath])
def test_rejects_negative_values(cls: type) -> None:
    with pytest.raises(OverflowError):
        cls(-1)


@pytest.mark.parametrize("cls", [Height, Length, TreeIndex, NodePath])
def test_rejects_bool(cls: type) -> None:
    with pytest.raises(TypeError):
        cls(True)


def test_tree_index_is_unbounded() -> None:
    """Indices of a height-251 tree do not fit in any fixed-width integer."""
    index = TreeIndex(2**251 - 1)
    assert index == 2**251 - 1


def test_height_arithmetic_keeps_type() -> None:
    assert isinstance(Height(3) - 1, Height)
    assert Height(3) - 1 == 2
    assert isinstance(Height(3) + 1, Height)


def test_height_cannot_go_below_zero() -> None:
    with pytest.raises(OverflowError):
        Height(0) - 1


def test_length_arithmetic_keeps_type() -> None:
    assert isinstance(Length(2) + 1, Length)
    assert Length(2) - 2 == 0


def test_node_path_child_appends_a_bit() -> None:
    path = NodePath(0b10)
    assert path.child(0) == 0b100
    assert path.child(1) == 0b101
    assert isinstance(path.child(1), NodePath)


@pytest.mark.parametrize("index, height", [(0, 0), (15, 4), (2**251 - 1, 251)])
def test_verify_index_accepts_in_range(index: int, height: int) -> None:
    verify_index(index, height)


@pytest.mark.parametrize("index, height", [(1, 0), (16, 4), (2**251, 251), (-1, 4)])
def test_verify_index_rejects_out_of_range(index: int, height: int) -> None:
    with pytest.raises(ValueError, match="out of range"):
        verify_index(index, height)


def test_descent_keys_behave_like_tuples() -> None:
    """Descent starts and paths are plain named tuples."""
    descents = {DescentStart(Height(4), NodePath(0)): DescentPath(Length(4), NodePath(5))}
    assert descents[DescentStart(Height(4), NodePath(0))] == (4, 5)
    assert (4, 0) in descents
    start, descent = next(iter(descents.items()))
    assert start.height == 4
    assert descent.length == 4
    assert descent.path == 5


def test_pydantic_serializes_plain_int() -> None:
    model = create_model("Model", height=(Height, ...))
    instance: Any = model(height=251)
    assert isinstance(instance.height, Height)
    assert instance.model_dump(mode="json") == {"height": 251}
