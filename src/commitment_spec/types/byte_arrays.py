"""
Fixed-length digest type.

Node hashes are 32-byte big-endian strings. `Hash32` keeps the length
invariant at construction time and renders as hex in JSON.
"""

from __future__ import annotations

from typing import Any, ClassVar, Iterable, SupportsIndex

from pydantic.annotated_handlers import GetCoreSchemaHandler
from pydantic_core import core_schema
from typing_extensions import Self

from .felt import Felt


def _digest_bytes(value: Any) -> bytes:
    """Raw bytes of a digest given as bytes, hex text or a sequence of byte values."""
    if isinstance(value, str):
        return bytes.fromhex(value.removeprefix("0x"))
    if isinstance(value, int):
        # bytes(n) would silently build n zero bytes.
        raise TypeError("Use Hash32.from_felt to build a digest from an integer")
    if isinstance(value, Iterable) and not isinstance(value, (bytes, bytearray)):
        return bytes(bytearray(value))
    return bytes(value)


class Hash32(bytes):
    """A 32-byte node digest."""

    LENGTH: ClassVar[int] = 32

    def __new__(cls, value: Any = b"") -> Self:
        """
        Create and validate a new digest.

        Raises:
            ValueError: If the resulting byte length differs from `LENGTH`.
        """
        data = _digest_bytes(value)
        if len(data) != cls.LENGTH:
            raise ValueError(
                f"{cls.__name__} expects exactly {cls.LENGTH} bytes, got {len(data)}"
            )
        return super().__new__(cls, data)

    @classmethod
    def zero(cls) -> Self:
        """The all-zero digest."""
        return cls(b"\x00" * cls.LENGTH)

    @classmethod
    def from_felt(cls, value: int) -> Self:
        """Big-endian encoding of a field element."""
        return cls(Felt(value).to_bytes_be())

    def to_felt(self) -> Felt:
        """Interpret the digest as a big-endian field element."""
        return Felt.from_bytes_be(self)

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """Accept instances, raw bytes or hex strings; serialize to hex."""

        def validate(value: Any) -> Hash32:
            try:
                return cls(value)
            except TypeError as e:
                raise ValueError(str(e)) from e

        return core_schema.union_schema(
            [
                core_schema.is_instance_schema(cls),
                core_schema.no_info_plain_validator_function(validate),
            ],
            serialization=core_schema.plain_serializer_function_ser_schema(lambda x: x.hex()),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.hex()})"

    def hex(self, sep: str | bytes | None = None, bytes_per_sep: SupportsIndex = 1) -> str:
        """Return the hexadecimal string representation of the underlying bytes."""
        return bytes(self).hex() if sep is None else bytes(self).hex(sep, bytes_per_sep)


EMPTY_NODE_HASH: Hash32 = Hash32.zero()
"""Hash of the empty subtree. Never stored as a real node."""
