"""Reusable type definitions for the commitment tree engine."""

from .base import StrictBaseModel
from .byte_arrays import EMPTY_NODE_HASH, Hash32
from .exceptions import (
    CommitmentError,
    CommitmentInfoError,
    DescentError,
    ProofVerificationError,
    StorageError,
    TreeError,
)
from .felt import PRIME, Felt
from .geometry import (
    DescentMap,
    DescentPath,
    DescentStart,
    Height,
    Length,
    NodePath,
    TreeIndex,
    verify_index,
)

__all__ = [
    # Core types
    "Felt",
    "PRIME",
    "Hash32",
    "EMPTY_NODE_HASH",
    "Height",
    "Length",
    "TreeIndex",
    "NodePath",
    "DescentStart",
    "DescentPath",
    "DescentMap",
    "verify_index",
    "StrictBaseModel",
    # Exceptions
    "CommitmentError",
    "TreeError",
    "DescentError",
    "StorageError",
    "CommitmentInfoError",
    "ProofVerificationError",
]
