"""
Merkle Commitment Service - Cryptographic Utilities

Provides the symmetric hash combinator, Merkle root construction,
proof generation, and verification.
"""

from merkle_commit.crypto.errors import (
    EmptyInputError,
    IndexOutOfRangeError,
    InvalidInputError,
    MerkleError,
)
from merkle_commit.crypto.hashing import (
    DEFAULT_COMBINATOR,
    HASH_PRIMITIVES,
    HashCombinator,
    value_from_hex,
    value_to_hex,
)
from merkle_commit.crypto.merkle import (
    EMPTY_VALUE,
    MerkleProof,
    MerkleTree,
    build_layers,
    build_proof,
    build_root,
    compute_root_from_proof,
    next_layer,
    validate_leaves,
    verify,
    verify_proof,
)

__all__ = [
    "DEFAULT_COMBINATOR",
    "EMPTY_VALUE",
    "HASH_PRIMITIVES",
    "EmptyInputError",
    "HashCombinator",
    "IndexOutOfRangeError",
    "InvalidInputError",
    "MerkleError",
    "MerkleProof",
    "MerkleTree",
    "build_layers",
    "build_proof",
    "build_root",
    "compute_root_from_proof",
    "next_layer",
    "validate_leaves",
    "value_from_hex",
    "value_to_hex",
    "verify",
    "verify_proof",
]
