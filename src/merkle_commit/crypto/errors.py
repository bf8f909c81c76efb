"""
Merkle Commitment Service - Merkle Errors

Raised synchronously by the tree, proof and verification functions.
A proof that does not check out is not an error: verify() returns False.
"""


class MerkleError(Exception):
    """Base exception for Merkle commitment errors."""

    pass


class EmptyInputError(MerkleError):
    """A root or proof was requested over zero leaves."""

    pass


class IndexOutOfRangeError(MerkleError, IndexError):
    """A proof was requested for a leaf index outside [0, leaf_count)."""

    def __init__(self, index: int, leaf_count: int) -> None:
        self.index = index
        self.leaf_count = leaf_count
        super().__init__(f"Leaf index {index} out of range for {leaf_count} leaves")


class InvalidInputError(MerkleError, ValueError):
    """A value is not an unsigned integer of the expected width."""

    pass
