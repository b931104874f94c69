"""Base model shared by every commitment record."""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict


class StrictBaseModel(BaseModel):
    """
    An immutable pydantic model that rejects unknown fields.

    Node facts, proof nodes and commitment info all derive from it. Field
    names are the wire names: both the RPC proof format and the commitment
    info exchange format are snake_case.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        validate_default=True,
        arbitrary_types_allowed=True,
    )

    def copy(self: Self, **kwargs: Any) -> Self:
        """Create a copy of the model with the updated fields that are validated."""
        return self.__class__(**(self.model_dump(exclude_unset=True) | kwargs))
