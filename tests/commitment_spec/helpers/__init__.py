"""Test helpers for commitment tree unit tests."""

from .builders import build_tree, merged_leaves, storage_modifications
from .descents import bits_between, replay_descent_path
from .reference import reference_root

__all__ = [
    # Builders
    "storage_modifications",
    "build_tree",
    "merged_leaves",
    # Reference derivation
    "reference_root",
    # Descents
    "bits_between",
    "replay_descent_path",
]
