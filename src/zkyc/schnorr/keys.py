"""Schnorr key pairs over EcGFp5."""

from dataclasses import dataclass

from zkyc.arith.curve import GENERATOR, Point
from zkyc.arith.field import encode_limbs
from zkyc.arith.gfp5 import ExtensionElement
from zkyc.arith.scalar import Scalar
from zkyc.errors import InvalidEncoding

SECRET_KEY_LIMBS = 10


class SecretKey:
    """A non-zero scalar known only to its holder."""

    __slots__ = ("scalar",)

    def __init__(self, scalar: Scalar):
        if not scalar:
            msg = "A secret key cannot be zero"
            raise ValueError(msg)
        self.scalar = scalar

    @classmethod
    def random(cls) -> "SecretKey":
        return cls(Scalar.random())

    def public_key(self) -> "PublicKey":
        return PublicKey(GENERATOR * self.scalar)

    def to_elements(self) -> list[int]:
        """The secret as ten 32-bit limbs, little-endian, for hashing."""
        value = self.scalar.value
        return [(value >> (32 * i)) & 0xFFFFFFFF for i in range(SECRET_KEY_LIMBS)]

    def to_bytes(self) -> bytes:
        return self.scalar.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "SecretKey":
        scalar = Scalar.from_bytes(data)
        if not scalar:
            msg = "A secret key cannot be zero"
            raise InvalidEncoding(msg)
        return cls(scalar)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SecretKey):
            return NotImplemented
        return self.scalar == other.scalar

    def __hash__(self) -> int:
        return hash(self.scalar)

    def __repr__(self) -> str:
        return "SecretKey(...)"


class PublicKey:
    """A non-neutral group element, `secret * G`."""

    __slots__ = ("point",)

    def __init__(self, point: Point):
        if point.is_neutral():
            msg = "A public key cannot be the neutral element"
            raise ValueError(msg)
        self.point = point

    def encode(self) -> ExtensionElement:
        return self.point.encode()

    def to_elements(self) -> list[int]:
        """The five limbs of the point encoding."""
        return list(self.encode().limbs)

    def to_bytes(self) -> bytes:
        return self.point.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "PublicKey":
        """Decode a 40-byte public key.

        Raises:
            InvalidEncoding: If the bytes are malformed or encode the neutral element.
            PointNotOnCurve: If the bytes do not encode a group element.
        """
        point = Point.decode(data)
        if point.is_neutral():
            msg = "The neutral element is not a valid public key"
            raise InvalidEncoding(msg)
        return cls(point)

    @classmethod
    def from_elements(cls, elements: list[int]) -> "PublicKey":
        return cls.from_bytes(encode_limbs(elements))

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.point == other.point

    def __hash__(self) -> int:
        return hash(self.point)

    def __repr__(self) -> str:
        return f"PublicKey({self.to_bytes().hex()})"


@dataclass(frozen=True)
class KeyPair:
    secret: SecretKey
    public: PublicKey

    @classmethod
    def generate(cls) -> "KeyPair":
        """Sample a secret key and derive its public key."""
        secret = SecretKey.random()
        return cls(secret=secret, public=secret.public_key())


def keygen() -> KeyPair:
    return KeyPair.generate()
