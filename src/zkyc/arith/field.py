"""Arithmetic in the Goldilocks field F_p, p = 2^64 - 2^32 + 1."""

from collections.abc import Iterable, Sequence

from zkyc.arith.backend import P
from zkyc.errors import InvalidEncoding, ZeroInversion

# p - 1 = 2^32 * (2^32 - 1)
TWO_ADICITY = 32
ODD_FACTOR = (P - 1) >> TWO_ADICITY
# 7 generates the multiplicative group of F_p
MULTIPLICATIVE_GENERATOR = 7
ENCODED_LENGTH = 8


class FieldElement:
    """An element of F_p held as its canonical residue in [0, p).

    Supports `+`, `-`, `*`, `/`, `**`, unary `-` and mixing with Python integers.
    """

    __slots__ = ("value",)

    def __init__(self, value: int):
        self.value = value % P

    @classmethod
    def zero(cls) -> "FieldElement":
        return cls(0)

    @classmethod
    def one(cls) -> "FieldElement":
        return cls(1)

    def __eq__(self, other) -> bool:
        if isinstance(other, FieldElement):
            return self.value == other.value
        if isinstance(other, int):
            return self.value == other % P
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"FieldElement({self.value})"

    def __int__(self) -> int:
        return self.value

    def __bool__(self) -> bool:
        return self.value != 0

    @staticmethod
    def _coerce(other) -> int:
        if isinstance(other, FieldElement):
            return other.value
        if isinstance(other, int):
            return other
        msg = f"Cannot combine a FieldElement with {type(other).__name__}"
        raise TypeError(msg)

    def __add__(self, other) -> "FieldElement":
        return FieldElement(self.value + self._coerce(other))

    __radd__ = __add__

    def __sub__(self, other) -> "FieldElement":
        return FieldElement(self.value - self._coerce(other))

    def __rsub__(self, other) -> "FieldElement":
        return FieldElement(self._coerce(other) - self.value)

    def __neg__(self) -> "FieldElement":
        return FieldElement(-self.value)

    def __mul__(self, other) -> "FieldElement":
        return FieldElement(self.value * self._coerce(other))

    __rmul__ = __mul__

    def __truediv__(self, other) -> "FieldElement":
        return self * FieldElement(self._coerce(other)).inverse()

    def __rtruediv__(self, other) -> "FieldElement":
        return FieldElement(self._coerce(other)) * self.inverse()

    def __pow__(self, exponent: int) -> "FieldElement":
        if exponent < 0:
            return self.inverse() ** (-exponent)
        return FieldElement(pow(self.value, exponent, P))

    def inverse(self) -> "FieldElement":
        """Return the multiplicative inverse.

        Raises:
            ZeroInversion: If `self` is zero.
        """
        if self.value == 0:
            msg = "Cannot invert the zero element of F_p"
            raise ZeroInversion(msg)
        return FieldElement(pow(self.value, P - 2, P))

    def legendre(self) -> int:
        """Return the Legendre symbol: 0 for zero, 1 for a non-zero square, -1 otherwise."""
        if self.value == 0:
            return 0
        return 1 if pow(self.value, (P - 1) // 2, P) == 1 else -1

    def is_square(self) -> bool:
        return self.legendre() >= 0

    def sqrt(self) -> "FieldElement | None":
        """Return a square root of `self`, or `None` if `self` is not a square.

        Tonelli-Shanks with the 2-adic decomposition p - 1 = 2^32 * q. The returned root is the one with the
        smaller canonical representative.
        """
        if self.value == 0:
            return FieldElement(0)
        if self.legendre() != 1:
            return None
        z = pow(MULTIPLICATIVE_GENERATOR, ODD_FACTOR, P)
        m = TWO_ADICITY
        c = z
        t = pow(self.value, ODD_FACTOR, P)
        r = pow(self.value, (ODD_FACTOR + 1) // 2, P)
        while t != 1:
            i = 0
            t2 = t
            while t2 != 1:
                t2 = t2 * t2 % P
                i += 1
            b = pow(c, 1 << (m - i - 1), P)
            m = i
            c = b * b % P
            t = t * c % P
            r = r * b % P
        return FieldElement(min(r, P - r))

    def to_bytes(self) -> bytes:
        """Canonical 8-byte little-endian encoding."""
        return self.value.to_bytes(ENCODED_LENGTH, "little")

    @classmethod
    def from_bytes(cls, data: bytes) -> "FieldElement":
        """Decode a canonical 8-byte little-endian encoding.

        Raises:
            InvalidEncoding: If `data` has the wrong length or encodes an integer `>= p`.
        """
        return cls(decode_limb(data))


def decode_limb(data: bytes) -> int:
    """Decode 8 little-endian bytes into a canonical residue, rejecting values `>= p`."""
    if len(data) != ENCODED_LENGTH:
        msg = f"A field element is encoded on {ENCODED_LENGTH} bytes, got {len(data)}"
        raise InvalidEncoding(msg)
    value = int.from_bytes(data, "little")
    if value >= P:
        msg = f"{value} is not a canonical residue modulo p"
        raise InvalidEncoding(msg)
    return value


def encode_limbs(limbs: Iterable[int]) -> bytes:
    """Concatenate the 8-byte encodings of canonical residues."""
    return b"".join(limb.to_bytes(ENCODED_LENGTH, "little") for limb in limbs)


def decode_limbs(data: bytes, count: int) -> list[int]:
    """Decode `count` consecutive canonical limbs.

    Raises:
        InvalidEncoding: If the length is not `8 * count` or a limb is not canonical.
    """
    if len(data) != ENCODED_LENGTH * count:
        msg = f"Expected {ENCODED_LENGTH * count} bytes for {count} limbs, got {len(data)}"
        raise InvalidEncoding(msg)
    return [decode_limb(data[i : i + ENCODED_LENGTH]) for i in range(0, len(data), ENCODED_LENGTH)]


def batch_inverse(values: Sequence[int]) -> list[int]:
    """Invert many residues with a single modular exponentiation (Montgomery's trick).

    Args:
        values (Sequence[int]): Non-zero canonical residues.

    Returns:
        The list of inverses, in the same order.

    Raises:
        ZeroInversion: If one of the values is zero.
    """
    if not values:
        return []
    prefix = [0] * len(values)
    acc = 1
    for i, v in enumerate(values):
        if v % P == 0:
            msg = f"Cannot invert the zero element at position {i}"
            raise ZeroInversion(msg)
        prefix[i] = acc
        acc = acc * v % P
    inv = pow(acc, P - 2, P)
    out = [0] * len(values)
    for i in range(len(values) - 1, -1, -1):
        out[i] = inv * prefix[i] % P
        inv = inv * values[i] % P
    return out
