"""Scalars: integers modulo the prime order n of the EcGFp5 group."""

import secrets
from collections.abc import Sequence

from zkyc.arith.backend import P
from zkyc.arith.gfp5 import ExtensionElement
from zkyc.errors import InvalidEncoding, ZeroInversion

ORDER = 1067993516717146951041484916571792702745057740581727230159139685185762082554198619328292418486241
BIT_LENGTH = 319
ENCODED_LENGTH = 40


class Scalar:
    """An integer modulo the group order, held in canonical form in [0, n)."""

    __slots__ = ("value",)

    def __init__(self, value: int):
        self.value = value % ORDER

    @classmethod
    def random(cls) -> "Scalar":
        """Sample a uniformly random non-zero scalar with the `secrets` CSPRNG."""
        return cls(secrets.randbelow(ORDER - 1) + 1)

    @classmethod
    def from_bits_le(cls, bits: Sequence[int]) -> "Scalar":
        """Build a scalar from little-endian bits, reducing modulo n."""
        return cls(sum(bit << i for i, bit in enumerate(bits)))

    @classmethod
    def from_extension(cls, element: ExtensionElement) -> "Scalar":
        """Map an extension element to a scalar: sum(limb_i * p^i) mod n.

        Used to fold Poseidon outputs into scalars (signature nonces).
        """
        value = 0
        for limb in reversed(element.limbs):
            value = value * P + limb
        return cls(value)

    def to_bits_le(self, n_bits: int = BIT_LENGTH) -> list[int]:
        return [(self.value >> i) & 1 for i in range(n_bits)]

    def __eq__(self, other) -> bool:
        if isinstance(other, Scalar):
            return self.value == other.value
        if isinstance(other, int):
            return self.value == other % ORDER
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("scalar", self.value))

    def __repr__(self) -> str:
        return f"Scalar({self.value})"

    def __int__(self) -> int:
        return self.value

    def __bool__(self) -> bool:
        return self.value != 0

    @staticmethod
    def _coerce(other) -> int:
        if isinstance(other, Scalar):
            return other.value
        if isinstance(other, int):
            return other
        return NotImplemented

    def __add__(self, other) -> "Scalar":
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return Scalar(self.value + other)

    __radd__ = __add__

    def __sub__(self, other) -> "Scalar":
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return Scalar(self.value - other)

    def __rsub__(self, other) -> "Scalar":
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return Scalar(other - self.value)

    def __neg__(self) -> "Scalar":
        return Scalar(-self.value)

    def __mul__(self, other) -> "Scalar":
        other = self._coerce(other)
        if other is NotImplemented:
            return other
        return Scalar(self.value * other)

    __rmul__ = __mul__

    def inverse(self) -> "Scalar":
        """Return the inverse modulo n.

        Raises:
            ZeroInversion: If `self` is zero.
        """
        if self.value == 0:
            msg = "Cannot invert the zero scalar"
            raise ZeroInversion(msg)
        return Scalar(pow(self.value, ORDER - 2, ORDER))

    def to_bytes(self) -> bytes:
        """Canonical 40-byte little-endian encoding."""
        return self.value.to_bytes(ENCODED_LENGTH, "little")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Scalar":
        """Decode a canonical 40-byte little-endian encoding.

        Raises:
            InvalidEncoding: If the length is wrong or the integer is not smaller than n.
        """
        if len(data) != ENCODED_LENGTH:
            msg = f"A scalar is encoded on {ENCODED_LENGTH} bytes, got {len(data)}"
            raise InvalidEncoding(msg)
        value = int.from_bytes(data, "little")
        if value >= ORDER:
            msg = "Scalar encoding is not reduced modulo the group order"
            raise InvalidEncoding(msg)
        return cls(value)
