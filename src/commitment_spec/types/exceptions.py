"""Exception hierarchy for the commitment tree engine."""

from __future__ import annotations

from typing import Any, Optional


class CommitmentError(Exception):
    """
    Base exception for all commitment-tree errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# =============================================================================
# Structural errors
# =============================================================================


class TreeError(CommitmentError):
    """Base class for malformed update trees and invalid node facts."""


class IsEmptyError(TreeError):
    """Raised when an update-tree branch has neither a left nor a right child."""

    def __init__(self) -> None:
        super().__init__("Update tree branch has no children")


class IsLeafError(TreeError):
    """Raised when a leaf is decoded as if it were a branch."""

    def __init__(self) -> None:
        super().__init__("Cannot decode a leaf as a branch")


class InvalidEdgePathError(TreeError):
    """
    Raised when an edge path does not fit in its declared length.

    Attributes:
        path: The offending path.
        length: The declared edge length in bits.
    """

    def __init__(self, path: int, length: int) -> None:
        self.path = path
        self.length = length
        super().__init__(f"Edge path {path:#x} does not fit in {length} bits")


class EmptyChildError(TreeError):
    """
    Raised when a binary node is built over the empty-subtree hash.

    Attributes:
        side: Either "left" or "right".
    """

    def __init__(self, side: str) -> None:
        self.side = side
        super().__init__(f"{side.capitalize()} node hash is the empty hash")


# =============================================================================
# Descent errors
# =============================================================================


class DescentError(CommitmentError):
    """Base class for failures while guessing descents."""


class PreimageNotFoundError(DescentError):
    """
    Raised when a node hash referenced during a walk has no usable preimage.

    Attributes:
        node_hash: The hash missing from the preimage map.
    """

    def __init__(self, node_hash: int, message: Optional[str] = None) -> None:
        self.node_hash = node_hash
        super().__init__(message or f"Key not found in preimage: {node_hash:#x}")


class MalformedPreimageError(PreimageNotFoundError):
    """
    Raised when a preimage entry is neither a binary pair nor a valid edge triple.

    Attributes:
        node_hash: The hash whose entry is malformed.
        entry: The entry found in the preimage map.
    """

    def __init__(self, node_hash: int, entry: Any) -> None:
        self.entry = entry
        super().__init__(node_hash, f"Malformed preimage of {node_hash:#x}: {entry!r}")


class IsNotBranchError(DescentError):
    """Raised when a branch was expected but a leaf was reached."""

    def __init__(self) -> None:
        super().__init__("Expected a branch")


class TreeHeightMismatchError(DescentError):
    """Raised when the parallel cursors disagree on the height of the tree."""

    def __init__(self) -> None:
        super().__init__("The heights of the trees do not match")


# =============================================================================
# Storage errors
# =============================================================================


class StorageError(CommitmentError):
    """Base class for fact-store failures."""


class ContentNotFoundError(StorageError):
    """
    Raised when a key is absent from storage.

    Attributes:
        key: The missing storage key.
    """

    def __init__(self, key: bytes) -> None:
        self.key = key
        super().__init__(f"Content not found in storage: {key!r}")


class SerializeError(StorageError):
    """Raised when an object cannot be encoded for storage."""


class DeserializeError(StorageError):
    """Raised when stored bytes cannot be decoded."""

    @classmethod
    def no_variant_with_length(cls, length: int) -> DeserializeError:
        return cls(
            f"Could not find a deserialization method that takes this number of bytes: {length}"
        )

    @classmethod
    def length_mismatch(cls, expected: int, actual: int) -> DeserializeError:
        return cls(f"Expected {expected} bytes but got {actual}")


# =============================================================================
# Commitment-info errors
# =============================================================================


class CommitmentInfoError(CommitmentError):
    """Base class for commitment-info assembly failures."""


class TreeHeightError(CommitmentInfoError):
    """
    Raised when a commitment declares a height other than the protocol height.

    Attributes:
        expected: The height mandated for the trie kind.
        actual: The height carried by the commitment.
    """

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Inconsistent tree height: expected {expected}, got {actual}")


class UpdatedRootMismatchError(CommitmentInfoError):
    """
    Raised when a recomputed root disagrees with the declared updated root.

    Attributes:
        expected: The declared root.
        actual: The recomputed root.
    """

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Inconsistent commitment tree roots: expected {expected:#x}, got {actual:#x}"
        )


# =============================================================================
# Proof errors
# =============================================================================


class ProofVerificationError(CommitmentError):
    """Base class for storage-proof verification failures."""


class NonExistenceProofError(ProofVerificationError):
    """
    Raised when a proof shows that the key is not present in the trie.

    This is a valid outcome for keys that were never written.

    Attributes:
        key: The key that was looked up.
        height: The height at which the proof diverged from the key.
        proof: The proof nodes that were walked.
    """

    def __init__(self, key: int, height: int, proof: Any = None) -> None:
        self.key = key
        self.height = height
        self.proof = proof
        super().__init__(f"Key {key:#x} is not in the trie (diverged at height {height})")


class InvalidProofError(ProofVerificationError):
    """Raised when a proof does not hash up to the expected root."""
