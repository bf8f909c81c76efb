"""
Merkle Commitment Service - Hash Combinator

Wraps a hashlib primitive and exposes the symmetric pair combine:

    combine(a, b) = H(a XOR b)

Values are fixed-width unsigned integers whose width equals the digest
width of the primitive. The XOR result is hashed as a big-endian byte
string of exactly width / 8 bytes and the digest is read back big-endian,
so every party using the same primitive derives bit-identical roots.
"""

import hashlib
from collections.abc import Callable
from typing import Any

from merkle_commit.crypto.errors import InvalidInputError

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def _blake2b_256(data: bytes) -> Any:
    return hashlib.blake2b(data, digest_size=32)


HASH_PRIMITIVES: dict[str, Callable[[bytes], Any]] = {
    "sha256": hashlib.sha256,
    "sha3_256": hashlib.sha3_256,
    "blake2b": _blake2b_256,
    "sha512": hashlib.sha512,
}

DEFAULT_ALGORITHM = "sha256"


def ensure_value(value: Any, width_bits: int, name: str = "value") -> int:
    """
    Check that a value is an unsigned integer of the given width.

    Args:
        value: Candidate value
        width_bits: Value width in bits
        name: Argument name used in the error message

    Returns:
        The value, unchanged

    Raises:
        InvalidInputError: If value is not an int in [0, 2**width_bits)
    """
    # bool subclasses int, but True is not a 256-bit value
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(
            f"{name} must be an integer, got {type(value).__name__}"
        )
    if value < 0 or value >> width_bits:
        raise InvalidInputError(f"{name} does not fit in {width_bits} bits")
    return value


def value_to_hex(value: int, width_bits: int) -> str:
    """Encode a value as 0x-prefixed, zero-padded lowercase hex."""
    ensure_value(value, width_bits)
    return "0x" + format(value, f"0{width_bits // 4}x")


def value_from_hex(encoded: str, width_bits: int) -> int:
    """
    Decode a hex-encoded value, with or without the 0x prefix.

    Raises:
        InvalidInputError: If the string is empty, not hex, or too wide
    """
    if not isinstance(encoded, str):
        raise InvalidInputError(
            f"Encoded value must be a string, got {type(encoded).__name__}"
        )
    digits = encoded[2:] if encoded[:2] in ("0x", "0X") else encoded
    if not digits or not all(c in HEX_DIGITS for c in digits):
        raise InvalidInputError(f"Not a hex value: {encoded!r}")
    if len(digits) > width_bits // 4:
        raise InvalidInputError(
            f"Hex value has {len(digits)} digits, expected at most {width_bits // 4}"
        )
    return int(digits, 16)


class HashCombinator:
    """
    Symmetric pair hash over fixed-width values.

    Example:
        >>> combinator = HashCombinator("sha256")
        >>> combinator.combine(1, 2) == combinator.combine(2, 1)
        True
    """

    def __init__(self, algorithm: str = DEFAULT_ALGORITHM) -> None:
        """
        Initialize combinator for a hash primitive.

        Args:
            algorithm: One of HASH_PRIMITIVES

        Raises:
            ValueError: If the algorithm is not supported
        """
        try:
            self._hash = HASH_PRIMITIVES[algorithm]
        except KeyError:
            raise ValueError(
                f"Unsupported hash algorithm {algorithm!r}, "
                f"expected one of {sorted(HASH_PRIMITIVES)}"
            ) from None
        self._algorithm = algorithm
        self._width_bytes = self._hash(b"").digest_size

    @property
    def algorithm(self) -> str:
        """Name of the hash primitive."""
        return self._algorithm

    @property
    def width_bits(self) -> int:
        """Width of every value, in bits."""
        return self._width_bytes * 8

    @property
    def width_bytes(self) -> int:
        """Width of every value, in bytes."""
        return self._width_bytes

    def check(self, value: Any, name: str = "value") -> int:
        """Validate a value against this combinator's width."""
        return ensure_value(value, self.width_bits, name)

    def hash_value(self, value: int) -> int:
        """Hash a single value, big-endian in and out."""
        self.check(value)
        digest = self._hash(value.to_bytes(self._width_bytes, "big")).digest()
        return int.from_bytes(digest, "big")

    def combine(self, a: int, b: int) -> int:
        """Combine two values into their parent: H(a XOR b)."""
        self.check(a, "left value")
        self.check(b, "right value")
        return self.hash_value(a ^ b)

    def to_hex(self, value: int) -> str:
        """Encode a value at this combinator's width."""
        return value_to_hex(value, self.width_bits)

    def from_hex(self, encoded: str) -> int:
        """Decode a value at this combinator's width."""
        return value_from_hex(encoded, self.width_bits)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HashCombinator):
            return NotImplemented
        return self._algorithm == other._algorithm

    def __hash__(self) -> int:
        return hash(self._algorithm)

    def __repr__(self) -> str:
        return f"HashCombinator({self._algorithm!r})"


DEFAULT_COMBINATOR = HashCombinator(DEFAULT_ALGORITHM)
