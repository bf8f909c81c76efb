"""
Merkle Commitment Service - Merkle Tree Implementation

Provides deterministic Merkle tree construction over fixed-width values,
inclusion proof generation, and verification.

Construction rules:
- Parents are combined with the symmetric H(a XOR b) combinator, so a
  proof is a plain ordered list of siblings with no direction bits
- An odd-length layer is padded with EMPTY_VALUE (zero) before pairing
- A single leaf is its own root

Every function works on a local copy of the leaf sequence and never
mutates caller data.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from merkle_commit.crypto.errors import (
    EmptyInputError,
    IndexOutOfRangeError,
    InvalidInputError,
)
from merkle_commit.crypto.hashing import DEFAULT_COMBINATOR, HashCombinator

# Padding placeholder for incomplete pairs. Indistinguishable from a real
# zero leaf; see validate_leaves(allow_empty=False).
EMPTY_VALUE = 0


def validate_leaves(
    leaves: Sequence[int],
    combinator: HashCombinator = DEFAULT_COMBINATOR,
    allow_empty: bool = True,
) -> list[int]:
    """
    Validate and snapshot a leaf sequence.

    Args:
        leaves: Ordered leaf values
        combinator: Combinator whose width the leaves must fit
        allow_empty: Accept leaves equal to EMPTY_VALUE

    Returns:
        A new list holding the leaves

    Raises:
        EmptyInputError: If leaves is empty
        InvalidInputError: If a leaf is malformed, or is EMPTY_VALUE
            while allow_empty is False
    """
    if isinstance(leaves, (str, bytes)):
        raise InvalidInputError("Leaves must be a sequence of integer values")

    snapshot = list(leaves)
    if not snapshot:
        raise EmptyInputError("Cannot build Merkle tree from empty leaves")

    for i, leaf in enumerate(snapshot):
        combinator.check(leaf, f"leaf {i}")
        if not allow_empty and leaf == EMPTY_VALUE:
            raise InvalidInputError(
                f"leaf {i} equals the padding value and strict leaf mode is enabled"
            )
    return snapshot


def next_layer(
    layer: Sequence[int],
    combinator: HashCombinator = DEFAULT_COMBINATOR,
) -> list[int]:
    """
    Derive the parent layer.

    Pads an odd-length layer with EMPTY_VALUE, then combines
    (layer[0], layer[1]), (layer[2], layer[3]), ... in order.
    """
    padded = list(layer)
    if len(padded) % 2:
        padded.append(EMPTY_VALUE)

    return [
        combinator.combine(padded[i], padded[i + 1])
        for i in range(0, len(padded), 2)
    ]


def build_layers(
    leaves: Sequence[int],
    combinator: HashCombinator = DEFAULT_COMBINATOR,
) -> list[list[int]]:
    """
    Compute every layer from the leaves (layer 0) up to the root layer.

    Layers are stored unpadded; layer k + 1 has ceil(len(layer k) / 2)
    entries and the last layer holds exactly the root.

    Raises:
        EmptyInputError: If leaves is empty
        InvalidInputError: If a leaf is malformed
    """
    layers = [validate_leaves(leaves, combinator)]

    while len(layers[-1]) > 1:
        layers.append(next_layer(layers[-1], combinator))

    return layers


def build_root(
    leaves: Sequence[int],
    combinator: HashCombinator = DEFAULT_COMBINATOR,
) -> int:
    """
    Compute the Merkle root of an ordered leaf sequence.

    Args:
        leaves: Ordered leaf values
        combinator: Pair combinator to hash with

    Returns:
        Root value

    Raises:
        EmptyInputError: If leaves is empty
        InvalidInputError: If a leaf is malformed
    """
    layer = validate_leaves(leaves, combinator)

    while len(layer) > 1:
        layer = next_layer(layer, combinator)

    return layer[0]


def _sibling(layer: Sequence[int], index: int) -> int:
    """Sibling of layer[index], reading the padding slot past the end."""
    sibling_index = index - 1 if index % 2 else index + 1
    if sibling_index == len(layer):
        return EMPTY_VALUE
    return layer[sibling_index]


def _proof_from_layers(layers: Sequence[Sequence[int]], index: int) -> list[int]:
    """Collect siblings from leaves to just below the root."""
    proof = []
    for layer in layers[:-1]:
        proof.append(_sibling(layer, index))
        index //= 2
    return proof


def build_proof(
    leaves: Sequence[int],
    index: int,
    combinator: HashCombinator = DEFAULT_COMBINATOR,
) -> list[int]:
    """
    Generate the inclusion proof for leaves[index].

    The proof has one sibling per layer below the root, in leaf-to-root
    order: ceil(log2(len(leaves))) entries, or none for a single leaf.

    Raises:
        EmptyInputError: If leaves is empty
        IndexOutOfRangeError: If index is outside [0, len(leaves))
        InvalidInputError: If a leaf is malformed
    """
    layers = build_layers(leaves, combinator)
    leaf_count = len(layers[0])

    if isinstance(index, bool) or not isinstance(index, int):
        raise InvalidInputError(
            f"Leaf index must be an integer, got {type(index).__name__}"
        )
    if index < 0 or index >= leaf_count:
        raise IndexOutOfRangeError(index, leaf_count)

    return _proof_from_layers(layers, index)


def compute_root_from_proof(
    value: int,
    proof: Sequence[int],
    combinator: HashCombinator = DEFAULT_COMBINATOR,
) -> int:
    """
    Fold a proof into the root it implies for a leaf value.

    Args:
        value: Claimed leaf value
        proof: Siblings in leaf-to-root order
        combinator: Pair combinator to hash with

    Returns:
        Computed root value

    Raises:
        InvalidInputError: If the value or any sibling is malformed
    """
    current = combinator.check(value)
    if isinstance(proof, (str, bytes)) or not isinstance(proof, Sequence):
        raise InvalidInputError("Proof must be a sequence of integer values")

    for position, sibling in enumerate(proof):
        combinator.check(sibling, f"proof entry {position}")
        current = combinator.combine(current, sibling)

    return current


def verify(
    value: int,
    proof: Sequence[int],
    trusted_root: int,
    combinator: HashCombinator = DEFAULT_COMBINATOR,
) -> bool:
    """
    Verify that a value is committed to by a trusted root.

    Needs only the value, its proof, and the root; never the leaf set.

    Returns:
        True if the proof reconstructs trusted_root, otherwise False

    Raises:
        InvalidInputError: If any input is malformed
    """
    combinator.check(trusted_root, "trusted root")
    return compute_root_from_proof(value, proof, combinator) == trusted_root


@dataclass
class MerkleProof:
    """
    Merkle inclusion proof for a leaf.

    Attributes:
        value: The leaf value being proven
        leaf_index: Original index of the leaf
        siblings: Sibling values in leaf-to-root order
        root: Root the proof was generated against
        tree_size: Total number of leaves in the tree
        algorithm: Hash primitive the tree was built with
    """

    value: int
    leaf_index: int
    siblings: list[int]
    root: int
    tree_size: int
    algorithm: str = DEFAULT_COMBINATOR.algorithm

    @property
    def combinator(self) -> HashCombinator:
        """Combinator matching the proof's hash primitive."""
        return HashCombinator(self.algorithm)

    def to_dict(self) -> dict[str, Any]:
        """Serialize proof to dictionary with hex-encoded values."""
        combinator = self.combinator
        return {
            "value": combinator.to_hex(self.value),
            "leaf_index": self.leaf_index,
            "siblings": [combinator.to_hex(s) for s in self.siblings],
            "root": combinator.to_hex(self.root),
            "tree_size": self.tree_size,
            "algorithm": self.algorithm,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MerkleProof":
        """
        Deserialize proof from dictionary.

        Raises:
            InvalidInputError: If a field is missing or a value is malformed
        """
        try:
            algorithm = data.get("algorithm", DEFAULT_COMBINATOR.algorithm)
            combinator = HashCombinator(algorithm)
            return cls(
                value=combinator.from_hex(data["value"]),
                leaf_index=int(data["leaf_index"]),
                siblings=[combinator.from_hex(s) for s in data["siblings"]],
                root=combinator.from_hex(data["root"]),
                tree_size=int(data["tree_size"]),
                algorithm=algorithm,
            )
        except InvalidInputError:
            raise
        except KeyError as e:
            raise InvalidInputError(f"Proof is missing field {e}") from e
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Malformed proof: {e}") from e

    def to_compact(self) -> list[str]:
        """
        Serialize to compact format: just the hex siblings.

        Format: ["0x<sibling0>", "0x<sibling1>", ...]
        """
        combinator = self.combinator
        return [combinator.to_hex(s) for s in self.siblings]


class MerkleTree:
    """
    Materialized Merkle tree over fixed-width values.

    Features:
    - Deterministic construction from ordered leaves
    - Symmetric XOR-then-hash pair combination
    - Zero padding of odd-length layers
    - Proof generation from the stored layers
    - Immutable after construction

    Example:
        >>> tree = MerkleTree.from_leaves([1, 2, 3, 4])
        >>> proof = tree.get_proof(0)
        >>> verify(proof.value, proof.siblings, tree.root)
        True
    """

    def __init__(self, layers: list[list[int]], combinator: HashCombinator) -> None:
        """
        Initialize Merkle tree (internal use).

        Use from_leaves() to construct trees.
        """
        self._layers = layers
        self._combinator = combinator

    @classmethod
    def from_leaves(
        cls,
        leaves: Sequence[int],
        combinator: HashCombinator = DEFAULT_COMBINATOR,
    ) -> "MerkleTree":
        """
        Construct a Merkle tree from leaf values.

        Raises:
            EmptyInputError: If leaves is empty
            InvalidInputError: If a leaf is malformed
        """
        return cls(build_layers(leaves, combinator), combinator)

    @property
    def combinator(self) -> HashCombinator:
        """Get the pair combinator."""
        return self._combinator

    @property
    def root(self) -> int:
        """Get the Merkle root."""
        return self._layers[-1][0]

    @property
    def root_hex(self) -> str:
        """Get the Merkle root, hex-encoded."""
        return self._combinator.to_hex(self.root)

    @property
    def layers(self) -> list[list[int]]:
        """Get copies of all layers, leaves first."""
        return [list(layer) for layer in self._layers]

    @property
    def leaves(self) -> list[int]:
        """Get a copy of the leaf layer."""
        return list(self._layers[0])

    @property
    def leaf_count(self) -> int:
        """Get the number of leaves."""
        return len(self._layers[0])

    @property
    def depth(self) -> int:
        """Number of layers below the root, equal to every proof's length."""
        return len(self._layers) - 1

    def get_leaf(self, index: int) -> int:
        """
        Get a leaf by index.

        Raises:
            IndexOutOfRangeError: If index out of bounds
        """
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidInputError(
                f"Leaf index must be an integer, got {type(index).__name__}"
            )
        if index < 0 or index >= self.leaf_count:
            raise IndexOutOfRangeError(index, self.leaf_count)
        return self._layers[0][index]

    def get_proof(self, leaf_index: int) -> MerkleProof:
        """
        Generate inclusion proof for a leaf.

        Raises:
            IndexOutOfRangeError: If leaf_index out of bounds
        """
        value = self.get_leaf(leaf_index)

        return MerkleProof(
            value=value,
            leaf_index=leaf_index,
            siblings=_proof_from_layers(self._layers, leaf_index),
            root=self.root,
            tree_size=self.leaf_count,
            algorithm=self._combinator.algorithm,
        )

    def get_all_proofs(self) -> list[MerkleProof]:
        """Generate proofs for all leaves."""
        return [self.get_proof(i) for i in range(self.leaf_count)]


def verify_proof(proof: MerkleProof) -> bool:
    """
    Verify a proof against the root embedded in it.

    Only meaningful when proof.root comes from a trusted source; use
    verify() with an independently held root otherwise.
    """
    return verify(proof.value, proof.siblings, proof.root, proof.combinator)
