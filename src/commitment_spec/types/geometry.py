"""
Geometry of a binary commitment tree.

A tree of height `h` has `2**h` leaves. Nodes are addressed by the height
they sit at and the path of bits walked from the root to reach them. Edges
compress a run of single-child nodes into a `(length, path)` pair.
"""

from __future__ import annotations

from typing import Any, NamedTuple, SupportsInt

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema
from typing_extensions import Self


class _NonNegativeInt(int):
    """An `int` that can never be negative."""

    def __new__(cls, value: SupportsInt = 0) -> Self:
        if isinstance(value, bool):
            raise TypeError(f"{cls.__name__} cannot be built from bool")
        int_value = int(value)
        if int_value < 0:
            raise OverflowError(f"{int_value} is out of range for {cls.__name__}")
        return super().__new__(cls, int_value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({int(self)})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """Validate through the constructor and serialize as a plain integer."""

        def validate(value: Any) -> _NonNegativeInt:
            try:
                return cls(value)
            except (OverflowError, TypeError) as e:
                raise ValueError(str(e)) from e

        return core_schema.no_info_plain_validator_function(
            validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda instance: int(instance)
            ),
        )


class Height(_NonNegativeInt):
    """Bit depth of a tree or subtree. Leaves sit at height 0."""

    def __sub__(self, other: SupportsInt) -> Self:
        """Step down the tree. Going below zero raises `OverflowError`."""
        return type(self)(int(self) - int(other))

    def __add__(self, other: SupportsInt) -> Self:
        return type(self)(int(self) + int(other))


class Length(_NonNegativeInt):
    """Number of path bits consumed by an edge."""

    def __sub__(self, other: SupportsInt) -> Self:
        return type(self)(int(self) - int(other))

    def __add__(self, other: SupportsInt) -> Self:
        return type(self)(int(self) + int(other))


class TreeIndex(_NonNegativeInt):
    """Position of a leaf, counted from the left at height 0."""


class NodePath(_NonNegativeInt):
    """Bits accumulated from the root, most significant bit first."""

    def child(self, bit: int) -> NodePath:
        """Append one bit to the path."""
        return NodePath(int(self) * 2 + bit)


def verify_index(index: int, height: int) -> None:
    """
    Check that a leaf index addresses a tree of the given height.

    Raises:
        ValueError: If `index >= 2**height`.
    """
    if not (0 <= index < 2**height):
        raise ValueError(f"Index {index:#x} is out of range for a tree of height {height}")


class DescentStart(NamedTuple):
    """Where a descent begins: the height and path of its topmost node."""

    height: Height
    path: NodePath


class DescentPath(NamedTuple):
    """How far a descent goes and which bits it follows."""

    length: Length
    path: NodePath


DescentMap = dict[DescentStart, DescentPath]
"""All skippable runs of a tree walk, keyed by their starting point."""
