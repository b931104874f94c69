"""
Global configuration for the commitment tree engine.

This module contains the protocol constants that fix the shape of every trie
the engine handles.
"""

from typing import Final

from pydantic import Field, field_validator

from commitment_spec.subspecs.crypto import HashFunction, TrieKind, hash_function_by_name
from commitment_spec.types import StrictBaseModel

CONTRACT_STATE_TREE_HEIGHT: Final = 251
"""Height of the global contract-state trie (one leaf per contract address)."""

CONTRACT_CLASS_TREE_HEIGHT: Final = 251
"""Height of the class trie (one leaf per class hash)."""

DEFAULT_STORAGE_TREE_HEIGHT: Final = 251
"""Height of a single contract's storage trie."""


class CommitmentConfig(StrictBaseModel):
    """
    Per-run trie geometry and hash selection.

    The defaults are the protocol values. Tests shrink the heights to keep
    tries small enough to reason about.
    """

    contract_state_tree_height: int = Field(default=CONTRACT_STATE_TREE_HEIGHT, gt=0)
    contract_class_tree_height: int = Field(default=CONTRACT_CLASS_TREE_HEIGHT, gt=0)
    storage_tree_height: int = Field(default=DEFAULT_STORAGE_TREE_HEIGHT, gt=0)

    state_trie_hash: str = "pedersen"
    """Hash of the contract-state and storage tries."""

    class_trie_hash: str = "poseidon"
    """Hash of the class trie."""

    @field_validator("state_trie_hash", "class_trie_hash")
    @classmethod
    def _known_hash(cls, name: str) -> str:
        hash_function_by_name(name)
        return name.lower()

    def tree_height(self, kind: TrieKind) -> int:
        """Height of the tries of `kind`."""
        if kind is TrieKind.CONTRACT_STATE:
            return self.contract_state_tree_height
        if kind is TrieKind.CLASS:
            return self.contract_class_tree_height
        return self.storage_tree_height

    def hash_function(self, kind: TrieKind) -> HashFunction:
        """Hash function of the tries of `kind`."""
        if kind is TrieKind.CLASS:
            return hash_function_by_name(self.class_trie_hash)
        return hash_function_by_name(self.state_trie_hash)


DEFAULT_CONFIG: Final = CommitmentConfig()
"""Protocol configuration."""
