"""Tests for storage proofs: parsing, preimage extraction and verification."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from pydantic import TypeAdapter, ValidationError

from commitment_spec.subspecs.crypto import PEDERSEN, POSEIDON
from commitment_spec.subspecs.patricia import (
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
from commitment_spec.subspecs.patricia.proofs import Proof
from commitment_spec.types import Felt
from commitment_spec.types.exceptions import (
    EmptyChildError,
    InvalidEdgePathError,
    InvalidProofError,
    MalformedPreimageError,
    NonExistenceProofError,
    PreimageNotFoundError,
)
from tests.commitment_spec.helpers import build_tree

HEIGHT = 8

proof_adapter = TypeAdapter(Proof)

SAMPLE_PROOF_JSON = """
[
  {"binary": {"left": "0x1", "right": "0x2"}},
  {"edge": {"child": "0x3", "path": {"value": "0x5", "len": 3}}}
]
"""


class TestProofJson:
    def test_parse_tagged_nodes(self) -> None:
        proof = proof_adapter.validate_json(SAMPLE_PROOF_JSON)
        assert proof == [
            BinaryProofNode(left=Felt(1), right=Felt(2)),
            EdgeProofNode(child=Felt(3), path=EdgePath(value=Felt(5), len=3)),
        ]

    def test_dump_uses_tagged_hex_form(self) -> None:
        proof = proof_adapter.validate_json(SAMPLE_PROOF_JSON)
        assert proof_adapter.dump_python(proof, mode="json") == [
            {"binary": {"left": "0x1", "right": "0x2"}},
            {"edge": {"child": "0x3", "path": {"value": "0x5", "len": 3}}},
        ]

    @pytest.mark.parametrize(
        "node",
        [
            {"leaf": {"value": "0x1"}},
            {"binary": {"left": "0x1", "right": "0x2"}, "edge": {}},
            ["binary"],
            {"edge": {"child": "0x3", "path": {"value": "0x5", "len": -1}}},
        ],
    )
    def test_reject_malformed_nodes(self, node: object) -> None:
        with pytest.raises(ValidationError):
            proof_adapter.validate_python([node])

    def test_pathfinder_proof(self) -> None:
        raw = {
            "state_commitment": "0xabc",
            "contract_proof": [{"binary": {"left": "0x1", "right": "0x2"}}],
            "contract_data": {
                "class_hash": "0x10",
                "nonce": "0x1",
                "root": "0x20",
                "storage_proofs": [[{"binary": {"left": "0x3", "right": "0x4"}}]],
            },
        }
        proof = PathfinderProof.model_validate(raw)

        assert proof.state_commitment == 0xABC
        assert proof.class_commitment is None
        assert proof.contract_data is not None
        assert proof.contract_data.contract_state_hash_version == 0
        assert proof.contract_data.storage_proofs[0][0] == BinaryProofNode(
            left=Felt(3), right=Felt(4)
        )

    def test_class_proof(self) -> None:
        proof = PathfinderClassProof.model_validate(
            {"class_commitment": "0x7", "class_proof": [{"binary": {"left": 1, "right": 2}}]}
        )
        assert proof.class_commitment == 7
        assert len(proof.class_proof) == 1


class TestFormatCommitmentFacts:
    def test_facts_are_keyed_by_node_hash(self) -> None:
        binary = BinaryProofNode(left=Felt(1), right=Felt(2))
        edge = EdgeProofNode(child=Felt(3), path=EdgePath(value=Felt(5), len=3))

        facts = format_commitment_facts([[binary, edge]], PEDERSEN)

        assert facts == {
            PEDERSEN.hash_felts(1, 2): (1, 2),
            (PEDERSEN.hash_felts(3, 5) + 3): (3, 5, 3),
        }

    def test_shared_nodes_collapse(self) -> None:
        node = BinaryProofNode(left=Felt(1), right=Felt(2))
        assert len(format_commitment_facts([[node], [node]], POSEIDON)) == 1

    def test_hash_function_selects_keys(self) -> None:
        node = BinaryProofNode(left=Felt(1), right=Felt(2))
        assert format_commitment_facts([[node]], POSEIDON) == {POSEIDON.hash_felts(1, 2): (1, 2)}

    def test_empty_binary_child_is_rejected(self) -> None:
        with pytest.raises(EmptyChildError):
            format_commitment_facts([[BinaryProofNode(left=Felt(0), right=Felt(2))]], PEDERSEN)

    def test_invalid_edge_is_rejected(self) -> None:
        edge = EdgeProofNode(child=Felt(3), path=EdgePath(value=Felt(8), len=3))
        with pytest.raises(InvalidEdgePathError):
            format_commitment_facts([[edge]], PEDERSEN)


class TestMergeStorageProofs:
    def test_storage_proofs_are_concatenated(self) -> None:
        first_node = [BinaryProofNode(left=Felt(1), right=Felt(2))]
        second_node = [BinaryProofNode(left=Felt(3), right=Felt(4))]
        contract_proof = [BinaryProofNode(left=Felt(5), right=Felt(6))]
        chunks = [
            PathfinderProof(
                state_commitment=Felt(9),
                contract_proof=contract_proof,
                contract_data=ContractData(root=Felt(1), storage_proofs=[first_node]),
            ),
            PathfinderProof(
                state_commitment=Felt(9),
                contract_proof=contract_proof,
                contract_data=ContractData(root=Felt(1), storage_proofs=[second_node]),
            ),
        ]

        merged = merge_storage_proofs(chunks)

        assert merged.state_commitment == 9
        assert merged.contract_proof == contract_proof
        assert merged.contract_data is not None
        assert merged.contract_data.storage_proofs == [first_node, second_node]

    def test_proofs_without_contract_data(self) -> None:
        merged = merge_storage_proofs([PathfinderProof(), PathfinderProof()])
        assert merged.contract_data is None

    def test_empty_list(self) -> None:
        with pytest.raises(ValueError):
            merge_storage_proofs([])


class TestBuildAndVerify:
    LEAVES = {3: 30, 4: 40, 5: 50, 200: 2000}

    def test_existing_keys(self) -> None:
        tree, preimage = build_tree(self.LEAVES, HEIGHT, PEDERSEN)
        root = tree.root.to_felt()

        for key, value in self.LEAVES.items():
            proof = build_proof(root, key, HEIGHT, preimage)
            assert verify_proof(root, key, HEIGHT, proof, PEDERSEN) == value

    def test_absent_key_ends_at_diverging_edge(self) -> None:
        tree, preimage = build_tree(self.LEAVES, HEIGHT, PEDERSEN)
        root = tree.root.to_felt()

        proof = build_proof(root, 201, HEIGHT, preimage)

        assert isinstance(proof[-1], EdgeProofNode)
        with pytest.raises(NonExistenceProofError) as exc_info:
            verify_proof(root, 201, HEIGHT, proof, PEDERSEN)
        assert exc_info.value.key == 201
        assert exc_info.value.proof == proof

    def test_empty_trie(self) -> None:
        assert build_proof(0, 7, HEIGHT, {}) == []
        with pytest.raises(NonExistenceProofError) as exc_info:
            verify_proof(0, 7, HEIGHT, [], PEDERSEN)
        assert exc_info.value.height == HEIGHT

    def test_full_height_trie(self) -> None:
        leaves = {2**250 + 1: 11, 2**250 + 2: 22, 12345: 33}
        tree, preimage = build_tree(leaves, 251, POSEIDON)
        root = tree.root.to_felt()

        for key, value in leaves.items():
            proof = build_proof(root, key, 251, preimage)
            assert verify_proof(root, key, 251, proof, POSEIDON) == value

    def test_missing_node(self) -> None:
        tree, _ = build_tree(self.LEAVES, HEIGHT, PEDERSEN)
        with pytest.raises(PreimageNotFoundError):
            build_proof(tree.root.to_felt(), 3, HEIGHT, {})

    def test_malformed_node(self) -> None:
        tree, preimage = build_tree(self.LEAVES, HEIGHT, PEDERSEN)
        root = tree.root.to_felt()
        with pytest.raises(MalformedPreimageError) as exc_info:
            build_proof(root, 3, HEIGHT, {**preimage, root: (root,)})
        assert exc_info.value.node_hash == root

    def test_wrong_root(self) -> None:
        tree, preimage = build_tree(self.LEAVES, HEIGHT, PEDERSEN)
        proof = build_proof(tree.root.to_felt(), 3, HEIGHT, preimage)
        with pytest.raises(InvalidProofError):
            verify_proof(tree.root.to_felt() + 1, 3, HEIGHT, proof, PEDERSEN)

    def test_wrong_hash_function(self) -> None:
        tree, preimage = build_tree(self.LEAVES, HEIGHT, PEDERSEN)
        proof = build_proof(tree.root.to_felt(), 3, HEIGHT, preimage)
        with pytest.raises(InvalidProofError):
            verify_proof(tree.root.to_felt(), 3, HEIGHT, proof, POSEIDON)

    def test_truncated_proof(self) -> None:
        tree, preimage = build_tree(self.LEAVES, HEIGHT, PEDERSEN)
        proof = build_proof(tree.root.to_felt(), 3, HEIGHT, preimage)
        with pytest.raises(InvalidProofError, match="above the leaves"):
            verify_proof(tree.root.to_felt(), 3, HEIGHT, proof[:-1], PEDERSEN)

    def test_proof_longer_than_the_trie(self) -> None:
        """A single-leaf trie is one edge; anything after it is rejected."""
        tree, preimage = build_tree({9: 90}, HEIGHT, PEDERSEN)
        proof = build_proof(tree.root.to_felt(), 9, HEIGHT, preimage)
        extra = BinaryProofNode(left=Felt(1), right=Felt(2))
        with pytest.raises(InvalidProofError, match="below the leaves"):
            verify_proof(tree.root.to_felt(), 9, HEIGHT, proof + [extra], PEDERSEN)

    def test_overshooting_edge(self) -> None:
        edge = EdgeProofNode(child=Felt(1), path=EdgePath(value=Felt(0), len=HEIGHT + 1))
        root = edge.to_fact().hash(PEDERSEN).to_felt()
        with pytest.raises(InvalidProofError, match="overshoots"):
            verify_proof(root, 0, HEIGHT, [edge], PEDERSEN)

    @settings(max_examples=30)
    @given(
        leaves=st.dictionaries(
            st.integers(min_value=0, max_value=2**HEIGHT - 1),
            st.integers(min_value=1, max_value=2**64),
            min_size=1,
            max_size=12,
        ),
        key=st.integers(min_value=0, max_value=2**HEIGHT - 1),
    )
    def test_every_key_is_proven_or_disproven(self, leaves: dict[int, int], key: int) -> None:
        tree, preimage = build_tree(leaves, HEIGHT, PEDERSEN)
        root = tree.root.to_felt()
        proof = build_proof(root, key, HEIGHT, preimage)

        if key in leaves:
            assert verify_proof(root, key, HEIGHT, proof, PEDERSEN) == leaves[key]
        else:
            with pytest.raises(NonExistenceProofError):
                verify_proof(root, key, HEIGHT, proof, PEDERSEN)


class TestKeyFollowingEdge:
    def test_replaces_bits_under_the_edge(self) -> None:
        edge = EdgePath(value=Felt(0b101), len=3)
        assert key_following_edge(0b11_010_11, 2, edge) == 0b11_101_11

    def test_bits_outside_the_edge_are_kept(self) -> None:
        edge = EdgePath(value=Felt(0), len=2)
        assert key_following_edge(0b1111, 1, edge) == 0b1001

    def test_sibling_key_is_in_the_trie(self) -> None:
        """The key built from a diverging edge has an inclusion proof."""
        tree, preimage = build_tree({0b10110000: 7}, HEIGHT, PEDERSEN)
        root = tree.root.to_felt()
        absent = 0b00000001
        proof = build_proof(root, absent, HEIGHT, preimage)

        with pytest.raises(NonExistenceProofError) as exc_info:
            verify_proof(root, absent, HEIGHT, proof, PEDERSEN)

        edge = proof[-1]
        assert isinstance(edge, EdgeProofNode)
        sibling = key_following_edge(absent, exc_info.value.height, edge.path)
        assert sibling == 0b10110000
        sibling_proof = build_proof(root, sibling, HEIGHT, preimage)
        assert verify_proof(root, sibling, HEIGHT, sibling_proof, PEDERSEN) == 7
