"""
Storage proofs in the pathfinder RPC format.

A proof is the list of trie nodes on the path from a root to a key, top
first. Each node is one of:

    {"binary": {"left": "0x..", "right": "0x.."}}
    {"edge":   {"child": "0x..", "path": {"value": "0x..", "len": 3}}}

Proof nodes are turned into node facts, hashed with the hash function of
their trie, and collected into a preimage map for the OS.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Iterable, Optional, Sequence, Union

from pydantic import Field, PlainSerializer, PlainValidator

from commitment_spec.subspecs.crypto import HashFunction
from commitment_spec.types import Felt, Hash32, Length, NodePath, StrictBaseModel
from commitment_spec.types.exceptions import (
    InvalidProofError,
    NonExistenceProofError,
    PreimageNotFoundError,
)

from .nodes import (
    BinaryNodeFact,
    EdgeNodeFact,
    PatriciaNodeFact,
    Preimage,
    PreimageDict,
    check_preimage_entry,
)

logger = logging.getLogger(__name__)


class EdgePath(StrictBaseModel):
    """Bits of an edge, most significant first."""

    value: Felt
    len: int = Field(ge=0)


class BinaryProofNode(StrictBaseModel):
    """A fork in a proof."""

    left: Felt
    right: Felt

    def to_fact(self) -> BinaryNodeFact:
        """
        Raises:
            EmptyChildError: If a child is the empty hash.
        """
        return BinaryNodeFact(
            left_node=Hash32.from_felt(self.left), right_node=Hash32.from_felt(self.right)
        )


class EdgeProofNode(StrictBaseModel):
    """An edge in a proof."""

    child: Felt
    path: EdgePath

    def to_fact(self) -> EdgeNodeFact:
        """
        Raises:
            InvalidEdgePathError: If the path does not fit its length.
        """
        return EdgeNodeFact(
            bottom_node=Hash32.from_felt(self.child),
            edge_path=NodePath(self.path.value),
            edge_length=Length(self.path.len),
        )


def _parse_proof_node(value: Any) -> Union[BinaryProofNode, EdgeProofNode]:
    if isinstance(value, (BinaryProofNode, EdgeProofNode)):
        return value
    if not isinstance(value, dict) or len(value) != 1:
        raise ValueError(f"Expected a single-key 'binary' or 'edge' object, got {value!r}")
    if "binary" in value:
        return BinaryProofNode.model_validate(value["binary"])
    if "edge" in value:
        return EdgeProofNode.model_validate(value["edge"])
    raise ValueError(f"Unknown proof node kind: {next(iter(value))!r}")


def _dump_proof_node(node: Union[BinaryProofNode, EdgeProofNode]) -> dict[str, Any]:
    kind = "binary" if isinstance(node, BinaryProofNode) else "edge"
    return {kind: node.model_dump(mode="json")}


ProofNode = Annotated[
    Union[BinaryProofNode, EdgeProofNode],
    PlainValidator(_parse_proof_node),
    PlainSerializer(_dump_proof_node),
]
"""A proof node, read from and written to its tagged JSON form."""

Proof = list[ProofNode]
"""Nodes from a root down towards a key."""


class ContractData(StrictBaseModel):
    """Storage-trie data of one contract, as returned with a storage proof."""

    class_hash: Felt = Felt(0)
    nonce: Felt = Felt(0)
    root: Felt = Felt(0)
    contract_state_hash_version: Felt = Felt(0)
    storage_proofs: list[Proof] = Field(default_factory=list)


class PathfinderProof(StrictBaseModel):
    """Proof of a contract leaf in the state trie, and of its storage slots."""

    state_commitment: Optional[Felt] = None
    class_commitment: Optional[Felt] = None
    contract_proof: Proof = Field(default_factory=list)
    contract_data: Optional[ContractData] = None


class PathfinderClassProof(StrictBaseModel):
    """Proof of a class leaf in the class trie."""

    class_commitment: Felt
    class_proof: Proof


def to_fact(node: Union[BinaryProofNode, EdgeProofNode]) -> PatriciaNodeFact:
    """Node fact of a proof node."""
    return node.to_fact()


def format_commitment_facts(
    trie_nodes: Iterable[Sequence[Union[BinaryProofNode, EdgeProofNode]]],
    hash_function: HashFunction,
) -> PreimageDict:
    """
    Build a preimage map from several proofs of the same trie.

    Nodes shared between proofs collapse into a single entry.

    Raises:
        EmptyChildError: If a binary node has an empty child.
        InvalidEdgePathError: If an edge path does not fit its length.
    """
    facts: PreimageDict = {}
    for nodes in trie_nodes:
        for node in nodes:
            fact = to_fact(node)
            facts[fact.hash(hash_function).to_felt()] = fact.to_tuple()
    return facts


def merge_storage_proofs(proofs: Sequence[PathfinderProof]) -> PathfinderProof:
    """
    Combine proofs fetched in chunks for the same contract and block.

    Commitments and the contract proof come from the first proof; storage
    proofs of every chunk are concatenated.
    """
    if not proofs:
        raise ValueError("Cannot merge an empty list of proofs")

    first = proofs[0]
    contract_data: Optional[ContractData] = None
    for proof in proofs:
        if proof.contract_data is None:
            continue
        if contract_data is None:
            contract_data = proof.contract_data
        else:
            contract_data = contract_data.copy(
                storage_proofs=contract_data.storage_proofs + proof.contract_data.storage_proofs
            )

    return PathfinderProof(
        state_commitment=first.state_commitment,
        class_commitment=first.class_commitment,
        contract_proof=first.contract_proof,
        contract_data=contract_data,
    )


def build_proof(
    root: int, key: int, height: int, preimage: Preimage
) -> list[Union[BinaryProofNode, EdgeProofNode]]:
    """
    Collect the proof of `key` from a preimage map.

    The proof stops after the first edge that diverges from the key, so a
    proof of an absent key is a valid non-existence proof.

    Raises:
        PreimageNotFoundError: If a node on the path is missing or malformed.
    """
    proof: list[Union[BinaryProofNode, EdgeProofNode]] = []
    node_hash, remaining = int(root), int(height)

    while remaining > 0 and node_hash != 0:
        entry = preimage.get(node_hash)
        if entry is None:
            raise PreimageNotFoundError(node_hash)

        if len(check_preimage_entry(node_hash, entry)) == 2:
            left, right = (Felt(v) for v in entry)
            proof.append(BinaryProofNode(left=left, right=right))
            remaining -= 1
            node_hash = right if (int(key) >> remaining) & 1 else left
            continue

        length, path, bottom = (int(v) for v in entry)
        proof.append(
            EdgeProofNode(child=Felt(bottom), path=EdgePath(value=Felt(path), len=length))
        )
        remaining -= length
        if (int(key) >> remaining) & ((1 << length) - 1) != path:
            break
        node_hash = bottom

    return proof


def verify_proof(
    root: int,
    key: int,
    height: int,
    proof: Sequence[Union[BinaryProofNode, EdgeProofNode]],
    hash_function: HashFunction,
) -> Felt:
    """
    Walk a proof from `root` down to `key` and return the leaf value.

    Args:
        root: Root the proof must hash up to.
        key: Leaf index being proven.
        height: Height of the trie.
        proof: Nodes from the root down.
        hash_function: Hash function of the trie.

    Raises:
        NonExistenceProofError: If the proof shows the key is absent. The
            error height is the height of the node below the diverging edge.
        InvalidProofError: If a node does not hash to the expected value, or
            the proof is too long or too short.
    """
    expected = Felt(root)
    remaining = int(height)

    if expected == 0 and not proof:
        raise NonExistenceProofError(int(key), remaining, list(proof))

    for depth, node in enumerate(proof):
        if remaining == 0:
            raise InvalidProofError(f"Proof for key {int(key):#x} continues below the leaves")

        node_hash = to_fact(node).hash(hash_function).to_felt()
        if node_hash != expected:
            raise InvalidProofError(
                f"Proof node {depth} hashes to {node_hash:#x}, expected {int(expected):#x}"
            )

        if isinstance(node, BinaryProofNode):
            remaining -= 1
            expected = node.right if (int(key) >> remaining) & 1 else node.left
            continue

        length = node.path.len
        if length > remaining:
            raise InvalidProofError(
                f"Edge of length {length} at height {remaining} overshoots the leaves"
            )
        remaining -= length
        key_bits = (int(key) >> remaining) & ((1 << length) - 1)
        if key_bits != node.path.value:
            raise NonExistenceProofError(int(key), remaining, list(proof[: depth + 1]))
        expected = node.child

    if remaining != 0:
        raise InvalidProofError(
            f"Proof for key {int(key):#x} stops at height {remaining}, above the leaves"
        )
    return expected


def key_following_edge(key: int, height: int, edge: EdgePath) -> Felt:
    """
    The key that the diverging edge of a non-existence proof leads to.

    Bits `[height, height + edge.len)` of `key` are replaced by the edge
    path. Fetching a proof for that key yields the sibling nodes needed to
    insert `key`.
    """
    clear_mask = ((1 << edge.len) - 1) << height
    new_key = (int(key) & ~clear_mask) | (int(edge.value) << height)
    logger.debug("Key %#x follows edge to %#x", int(key), new_key)
    return Felt(new_key)
