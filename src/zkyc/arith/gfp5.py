"""Arithmetic in the quintic extension F_p^5 = F_p[z] / (z^5 - 3).

:class:`Gfp5Ops` holds the formulas shared by native and in-circuit execution: extension elements are tuples of
five backend values (coefficients of 1, z, ..., z^4). :class:`ExtensionElement` is the native value type built on
top of `Gfp5Ops(NATIVE)`, extended with the operations that only make sense outside a circuit (Frobenius maps,
inversion through the norm, square roots).
"""

from collections.abc import Iterable, Sequence
from typing import TypeAlias

from zkyc.arith.backend import NATIVE, P, ArithmeticBackend, Value
from zkyc.arith.field import FieldElement, decode_limbs, encode_limbs
from zkyc.errors import ZeroInversion

DEGREE = 5
# z^5 = NON_RESIDUE
NON_RESIDUE = 3
ENCODED_LENGTH = 8 * DEGREE

# omega = 3^((p - 1) / 5) is a primitive fifth root of unity: (z^i)^(p^k) = omega^(i k) z^i
OMEGA = pow(NON_RESIDUE, (P - 1) // DEGREE, P)
FROBENIUS_COEFFICIENTS = [[pow(OMEGA, (i * k) % DEGREE, P) for i in range(DEGREE)] for k in range(DEGREE)]

Gfp5: TypeAlias = tuple[Value, Value, Value, Value, Value]


class Gfp5Ops:
    """Extension-field formulas over an arithmetic backend.

    Args:
        backend (ArithmeticBackend): The backend executing base-field operations.
    """

    def __init__(self, backend: ArithmeticBackend):
        self.backend = backend

    def constant(self, limbs: Iterable[int]) -> Gfp5:
        return tuple(self.backend.constant(limb) for limb in limbs)

    def zero(self) -> Gfp5:
        return self.constant([0] * DEGREE)

    def one(self) -> Gfp5:
        return self.constant([1, 0, 0, 0, 0])

    def witness(self, limbs: Iterable[int]) -> Gfp5:
        return tuple(self.backend.witness(limb) for limb in limbs)

    def value_of(self, a: Gfp5) -> tuple[int, ...]:
        return tuple(self.backend.value_of(limb) for limb in a)

    def add(self, a: Gfp5, b: Gfp5) -> Gfp5:
        return tuple(self.backend.add(x, y) for x, y in zip(a, b))

    def sub(self, a: Gfp5, b: Gfp5) -> Gfp5:
        return tuple(self.backend.sub(x, y) for x, y in zip(a, b))

    def neg(self, a: Gfp5) -> Gfp5:
        return tuple(self.backend.neg(x) for x in a)

    def double(self, a: Gfp5) -> Gfp5:
        return self.mul_small(a, 2)

    def mul_small(self, a: Gfp5, k: int) -> Gfp5:
        """Multiply by the integer constant `k`."""
        return tuple(self.backend.mul_const(x, k) for x in a)

    def mul_small_k1(self, a: Gfp5, k: int) -> Gfp5:
        """Multiply by the constant `k * z`."""
        be = self.backend
        return (be.mul_const(a[4], NON_RESIDUE * k), be.mul_const(a[0], k), be.mul_const(a[1], k),
                be.mul_const(a[2], k), be.mul_const(a[3], k))

    def mul(self, a: Gfp5, b: Gfp5) -> Gfp5:
        """Schoolbook product reduced with z^5 = 3."""
        be = self.backend
        products = [[be.mul(a[i], b[j]) for j in range(DEGREE)] for i in range(DEGREE)]
        out = []
        for k in range(DEGREE):
            low = be.sum([products[i][k - i] for i in range(k + 1)])
            high = be.sum([products[i][k + DEGREE - i] for i in range(k + 1, DEGREE)])
            out.append(be.add(low, be.mul_const(high, NON_RESIDUE)))
        return tuple(out)

    def square(self, a: Gfp5) -> Gfp5:
        """Squaring with the 15 distinct products a_i * a_j, i <= j."""
        be = self.backend
        products = {}
        for i in range(DEGREE):
            for j in range(i, DEGREE):
                prod = be.mul(a[i], a[j])
                products[i, j] = prod if i == j else be.mul_const(prod, 2)
        out = []
        for k in range(DEGREE):
            low = be.sum([products[i, k - i] for i in range(k + 1) if i <= k - i])
            high = be.sum([products[i, k + DEGREE - i] for i in range(k + 1, DEGREE) if i <= k + DEGREE - i])
            out.append(be.add(low, be.mul_const(high, NON_RESIDUE)))
        return tuple(out)

    def select(self, bit: Value, a: Gfp5, b: Gfp5) -> Gfp5:
        return tuple(self.backend.select(bit, x, y) for x, y in zip(a, b))

    def is_zero(self, a: Gfp5) -> Value:
        return self.backend.all_of([self.backend.is_zero(x) for x in a])

    def is_equal(self, a: Gfp5, b: Gfp5) -> Value:
        return self.is_zero(self.sub(a, b))

    def assert_equal(self, a: Gfp5, b: Gfp5) -> None:
        for x, y in zip(a, b):
            self.backend.assert_equal(x, y)


_OPS = Gfp5Ops(NATIVE)


class ExtensionElement:
    """A native element of F_p^5.

    Args:
        limbs (Iterable[int]): The five coefficients of 1, z, z^2, z^3, z^4. Integers are reduced modulo p.
    """

    __slots__ = ("limbs",)

    def __init__(self, limbs: Iterable[int]):
        limbs = tuple(int(limb) % P for limb in limbs)
        if len(limbs) != DEGREE:
            msg = f"An extension element has {DEGREE} limbs, got {len(limbs)}"
            raise ValueError(msg)
        self.limbs = limbs

    @classmethod
    def zero(cls) -> "ExtensionElement":
        return cls([0] * DEGREE)

    @classmethod
    def one(cls) -> "ExtensionElement":
        return cls([1, 0, 0, 0, 0])

    @classmethod
    def from_base(cls, value: int | FieldElement) -> "ExtensionElement":
        return cls([int(value), 0, 0, 0, 0])

    def __eq__(self, other) -> bool:
        if isinstance(other, ExtensionElement):
            return self.limbs == other.limbs
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.limbs)

    def __repr__(self) -> str:
        return f"ExtensionElement({list(self.limbs)})"

    def __bool__(self) -> bool:
        return any(self.limbs)

    @staticmethod
    def _coerce(other) -> tuple[int, ...]:
        if isinstance(other, ExtensionElement):
            return other.limbs
        if isinstance(other, (int, FieldElement)):
            return (int(other) % P, 0, 0, 0, 0)
        msg = f"Cannot combine an ExtensionElement with {type(other).__name__}"
        raise TypeError(msg)

    def __add__(self, other) -> "ExtensionElement":
        return ExtensionElement(_OPS.add(self.limbs, self._coerce(other)))

    __radd__ = __add__

    def __sub__(self, other) -> "ExtensionElement":
        return ExtensionElement(_OPS.sub(self.limbs, self._coerce(other)))

    def __rsub__(self, other) -> "ExtensionElement":
        return ExtensionElement(_OPS.sub(self._coerce(other), self.limbs))

    def __neg__(self) -> "ExtensionElement":
        return ExtensionElement(_OPS.neg(self.limbs))

    def __mul__(self, other) -> "ExtensionElement":
        if isinstance(other, (int, FieldElement)):
            return ExtensionElement(_OPS.mul_small(self.limbs, int(other)))
        return ExtensionElement(_OPS.mul(self.limbs, self._coerce(other)))

    __rmul__ = __mul__

    def __truediv__(self, other) -> "ExtensionElement":
        return self * ExtensionElement(self._coerce(other)).inverse()

    def __pow__(self, exponent: int) -> "ExtensionElement":
        if exponent < 0:
            return self.inverse() ** (-exponent)
        out = ExtensionElement.one()
        base = self
        while exponent:
            if exponent & 1:
                out = out * base
            base = base.square()
            exponent >>= 1
        return out

    def square(self) -> "ExtensionElement":
        return ExtensionElement(_OPS.square(self.limbs))

    def frobenius(self, k: int = 1) -> "ExtensionElement":
        """Return self^(p^k)."""
        coefficients = FROBENIUS_COEFFICIENTS[k % DEGREE]
        return ExtensionElement([limb * c for limb, c in zip(self.limbs, coefficients)])

    def _norm_cofactor(self) -> "ExtensionElement":
        """Return self^(p + p^2 + p^3 + p^4)."""
        t0 = self.frobenius(1)
        t1 = t0 * t0.frobenius(1)
        return t1 * t1.frobenius(2)

    def norm(self) -> FieldElement:
        """Return the norm self^(1 + p + p^2 + p^3 + p^4), an element of F_p."""
        return FieldElement(self._constant_of_product(self._norm_cofactor()))

    def _constant_of_product(self, other: "ExtensionElement") -> int:
        a, b = self.limbs, other.limbs
        return (a[0] * b[0] + NON_RESIDUE * (a[1] * b[4] + a[2] * b[3] + a[3] * b[2] + a[4] * b[1])) % P

    def inverse(self) -> "ExtensionElement":
        """Return the inverse through the norm map: x^-1 = x^(r - 1) / N(x).

        Raises:
            ZeroInversion: If `self` is zero.
        """
        if not self:
            msg = "Cannot invert the zero element of F_p^5"
            raise ZeroInversion(msg)
        cofactor = self._norm_cofactor()
        norm = FieldElement(self._constant_of_product(cofactor))
        return cofactor * norm.inverse()

    def legendre(self) -> int:
        """Return the quadratic character: 0 for zero, 1 for a non-zero square, -1 otherwise."""
        return self.norm().legendre()

    def is_square(self) -> bool:
        return self.legendre() >= 0

    def sqrt(self) -> "ExtensionElement | None":
        """Return a square root of `self`, or `None` if `self` is not a square.

        With e = (r - 1) / 2 we have self * (self^e)^2 = N(self) in F_p, so sqrt(self) = s * self * self^e / N
        where s is a square root of N in F_p.
        """
        if not self:
            return ExtensionElement.zero()
        # (r - 1) / 2 = p * (p + 1) / 2 * (1 + p^2)
        d = (self ** ((P + 1) // 2)).frobenius(1)
        e = d * d.frobenius(2)
        norm = FieldElement(self._constant_of_product(e * e))
        root = norm.sqrt()
        if root is None:
            return None
        return self * e * (root / norm)

    def to_bytes(self) -> bytes:
        """Canonical 40-byte encoding: the five limbs, 8 bytes little-endian each."""
        return encode_limbs(self.limbs)

    @classmethod
    def from_bytes(cls, data: bytes) -> "ExtensionElement":
        """Decode a canonical 40-byte encoding.

        Raises:
            InvalidEncoding: If the length is wrong or a limb is not a canonical residue.
        """
        return cls(decode_limbs(data, DEGREE))


def batch_inverse_extension(values: Sequence[ExtensionElement]) -> list[ExtensionElement]:
    """Invert many extension elements with a single inversion in F_p^5 (Montgomery's trick).

    Raises:
        ZeroInversion: If one of the values is zero.
    """
    if not values:
        return []
    prefix = []
    acc = ExtensionElement.one()
    for i, v in enumerate(values):
        if not v:
            msg = f"Cannot invert the zero element at position {i}"
            raise ZeroInversion(msg)
        prefix.append(acc)
        acc = acc * v
    inv = acc.inverse()
    out = [None] * len(values)
    for i in range(len(values) - 1, -1, -1):
        out[i] = inv * prefix[i]
        inv = inv * values[i]
    return out
