"""
Field element of the Starknet prime field.

Every node hash, leaf value and edge path stored in a commitment tree is a
field element. Hash digests travel as 32-byte big-endian strings; the same
value is exposed as an integer for arithmetic.
"""

from __future__ import annotations

from typing import Any, Final, SupportsInt

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema
from typing_extensions import Self

PRIME: Final = 2**251 + 17 * 2**192 + 1
"""The Starknet field prime: P = 2^251 + 17 * 2^192 + 1."""

FELT_BYTES: Final = 32
"""Size of a big-endian encoded field element."""


def _parse_int(value: Any) -> int:
    """Accept ints, `0x` hex strings and decimal strings."""
    if isinstance(value, bool):
        raise TypeError("bool is not a field element")
    if isinstance(value, str):
        text = value.strip().lower()
        return int(text, 16) if text.startswith("0x") else int(text, 10)
    return int(value)


class Felt(int):
    """An element of the Starknet prime field, stored as a plain integer in [0, P)."""

    def __new__(cls, value: SupportsInt | str = 0) -> Self:
        """
        Create and validate a field element.

        Raises:
            OverflowError: If the value is outside [0, P).
        """
        int_value = _parse_int(value)
        if not (0 <= int_value < PRIME):
            raise OverflowError(f"{int_value:#x} is out of range for {cls.__name__}")
        return super().__new__(cls, int_value)

    @classmethod
    def from_bytes_be(cls, data: bytes) -> Self:
        """Decode a big-endian byte string of at most 32 bytes."""
        if len(data) > FELT_BYTES:
            raise ValueError(f"{cls.__name__} expects at most {FELT_BYTES} bytes, got {len(data)}")
        return cls(int.from_bytes(data, "big"))

    def to_bytes_be(self) -> bytes:
        """Encode as exactly 32 big-endian bytes."""
        return int(self).to_bytes(FELT_BYTES, "big")

    def __add__(self, other: Any) -> Self:
        """Field addition."""
        return type(self)((int(self) + int(other)) % PRIME)

    def __sub__(self, other: Any) -> Self:
        """Field subtraction."""
        return type(self)((int(self) - int(other)) % PRIME)

    def __mul__(self, other: Any) -> Self:
        """Field multiplication."""
        return type(self)((int(self) * int(other)) % PRIME)

    __radd__ = __add__
    __rmul__ = __mul__

    def __repr__(self) -> str:
        return f"Felt({int(self):#x})"

    def __str__(self) -> str:
        return f"{int(self):#x}"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """
        Hook into Pydantic's validation system.

        Inputs may be integers or strings. Serialization produces `0x` hex strings.
        """

        def validate(value: Any) -> Felt:
            try:
                return cls(value)
            except (OverflowError, TypeError) as e:
                raise ValueError(str(e)) from e

        return core_schema.no_info_plain_validator_function(
            validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda instance: f"{int(instance):#x}"
            ),
        )
