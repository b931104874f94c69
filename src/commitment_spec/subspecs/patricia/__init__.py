"""
Patricia-Merkle tries of height 251.

Update trees, node facts, in-memory and stored tree updates, descent
guessing, storage proofs and commitment info.
"""

from .commitment_info import CommitmentInfo, expected_tree_height
from .guess_descents import patricia_guess_descents
from .leaf import LeafFact, StorageLeaf
from .nodes import (
    BinaryNodeFact,
    EdgeNodeFact,
    InnerNodeFact,
    PatriciaNodeFact,
    Preimage,
    PreimageDict,
    check_preimage_entry,
    deserialize_node_fact,
    node_fact_from_tuple,
    read_node_fact,
    verify_path_value,
)
from .patricia_tree import PatriciaTree
from .proofs import (
    BinaryProofNode,
    ContractData,
    EdgePath,
    EdgeProofNode,
    PathfinderClassProof,
    PathfinderProof,
    build_proof,
    format_commitment_facts,
    key_following_edge,
    merge_storage_proofs,
    verify_proof,
)
from .update_tree import (
    DecodedNode,
    DecodeNodeCase,
    UpdateBranch,
    UpdateLeaf,
    UpdateTree,
    build_update_tree,
    decode_node,
    iter_update_leaves,
)
from .virtual_node import VirtualPatriciaNode

__all__ = [
    # Update trees
    "UpdateLeaf",
    "UpdateBranch",
    "UpdateTree",
    "DecodeNodeCase",
    "DecodedNode",
    "build_update_tree",
    "decode_node",
    "iter_update_leaves",
    # Node facts
    "LeafFact",
    "StorageLeaf",
    "InnerNodeFact",
    "BinaryNodeFact",
    "EdgeNodeFact",
    "PatriciaNodeFact",
    "Preimage",
    "PreimageDict",
    "check_preimage_entry",
    "verify_path_value",
    "deserialize_node_fact",
    "node_fact_from_tuple",
    "read_node_fact",
    # Trees
    "VirtualPatriciaNode",
    "PatriciaTree",
    "patricia_guess_descents",
    # Proofs
    "EdgePath",
    "BinaryProofNode",
    "EdgeProofNode",
    "ContractData",
    "PathfinderProof",
    "PathfinderClassProof",
    "build_proof",
    "format_commitment_facts",
    "merge_storage_proofs",
    "verify_proof",
    "key_following_edge",
    # Commitment info
    "CommitmentInfo",
    "expected_tree_height",
]
