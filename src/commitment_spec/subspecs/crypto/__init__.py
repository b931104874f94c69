"""Hash functions used to commit to tries."""

from .hash_function import (
    PEDERSEN,
    POSEIDON,
    HashFunction,
    PedersenHash,
    PoseidonHash,
    TrieKind,
    hash_function_by_name,
    hash_function_for,
)

__all__ = [
    "HashFunction",
    "PedersenHash",
    "PoseidonHash",
    "PEDERSEN",
    "POSEIDON",
    "TrieKind",
    "hash_function_for",
    "hash_function_by_name",
]
