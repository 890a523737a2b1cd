"""The EcGFp5 prime-order group over F_p^5.

The curve is y^2 = x (x^2 + a x + b) with a = 2 and b = 263 z. Its order is 2n with n prime; the group used here
is the coset N + E[n], where N = (0, 0) is the point of order two, which plays the role of the neutral element.
Points are handled in fractional (x, u) coordinates, u = x / y, stored as (X : Z : U : T) with x = X/Z and
u = U/T. In these coordinates the addition and doubling formulas are complete, so the same code path runs
unmodified in native execution and inside a circuit.

Encoding: a point is encoded as w = 1/u (the neutral element as w = 0), 40 bytes.
"""

import functools
from collections.abc import Sequence
from typing import TypeAlias

from zkyc.arith.backend import NATIVE, ArithmeticBackend, Value
from zkyc.arith.gfp5 import ExtensionElement, Gfp5, Gfp5Ops, batch_inverse_extension
from zkyc.arith.scalar import BIT_LENGTH, ORDER, Scalar
from zkyc.errors import PointNotOnCurve

A = 2
B1 = 263
CURVE_A = ExtensionElement.from_base(A)
CURVE_B = ExtensionElement([0, B1, 0, 0, 0])
ENCODED_LENGTH = 40
WINDOW = 4

CurvePoint: TypeAlias = tuple[Gfp5, Gfp5, Gfp5, Gfp5]


class CurveOps:
    """Group law over an arithmetic backend.

    Args:
        backend (ArithmeticBackend): The backend executing base-field operations.
    """

    def __init__(self, backend: ArithmeticBackend):
        self.backend = backend
        self.field = Gfp5Ops(backend)

    def neutral(self) -> CurvePoint:
        f = self.field
        return (f.zero(), f.one(), f.zero(), f.one())

    def constant(self, point: "Point") -> CurvePoint:
        return tuple(self.field.constant(coordinate) for coordinate in point.coordinates)

    def witness(self, point: "Point") -> CurvePoint:
        return tuple(self.field.witness(coordinate) for coordinate in point.coordinates)

    def add(self, p: CurvePoint, q: CurvePoint) -> CurvePoint:
        """Complete addition in fractional (x, u) coordinates (10 multiplications in F_p^5)."""
        f = self.field
        x1, z1, u1, t1_ = p
        x2, z2, u2, t2_ = q
        t1 = f.mul(x1, x2)
        t2 = f.mul(z1, z2)
        t3 = f.mul(u1, u2)
        t4 = f.mul(t1_, t2_)
        t5 = f.sub(f.sub(f.mul(f.add(x1, z1), f.add(x2, z2)), t1), t2)
        t6 = f.sub(f.sub(f.mul(f.add(u1, t1_), f.add(u2, t2_)), t3), t4)
        t7 = f.add(t1, f.mul_small_k1(t2, B1))
        t8 = f.mul(t4, t7)
        t9 = f.mul(t3, f.add(f.mul_small_k1(t5, 2 * B1), f.double(t7)))
        t10 = f.mul(f.add(t4, f.double(t3)), f.add(t5, t7))
        x3 = f.mul_small_k1(f.sub(t10, t8), B1)
        z3 = f.sub(t8, t9)
        u3 = f.mul(t6, f.sub(f.mul_small_k1(t2, B1), t1))
        t3_ = f.add(t8, t9)
        return (x3, z3, u3, t3_)

    def double(self, p: CurvePoint) -> CurvePoint:
        """Doubling in fractional (x, u) coordinates."""
        f = self.field
        x, z, u, t = p
        t1 = f.mul(z, t)
        t2 = f.mul(t1, t)
        x1 = f.square(t2)
        z1 = f.mul(t1, u)
        t3 = f.square(u)
        w1 = f.sub(t2, f.mul(f.double(f.add(x, z)), t3))
        t4 = f.square(z1)
        x_out = f.mul_small_k1(t4, 4 * B1)
        z_out = f.square(w1)
        u_out = f.sub(f.sub(f.square(f.add(w1, z1)), t4), z_out)
        t_out = f.sub(f.sub(f.double(x1), f.mul_small(t4, 4)), z_out)
        return (x_out, z_out, u_out, t_out)

    def neg(self, p: CurvePoint) -> CurvePoint:
        x, z, u, t = p
        return (x, z, self.field.neg(u), t)

    def select(self, bit: Value, p: CurvePoint, q: CurvePoint) -> CurvePoint:
        return tuple(self.field.select(bit, a, b) for a, b in zip(p, q))

    def is_neutral(self, p: CurvePoint) -> Value:
        return self.field.is_zero(p[2])

    def is_equal(self, p: CurvePoint, q: CurvePoint) -> Value:
        """Return the bit `p == q`; group elements are determined by u alone."""
        f = self.field
        return f.is_equal(f.mul(p[2], q[3]), f.mul(q[2], p[3]))

    def encodes_to(self, p: CurvePoint, w: Gfp5) -> Value:
        """Return the bit `encode(p) == w`, without inversion: T == w U, or p neutral when w == 0."""
        f = self.field
        matches = f.is_equal(p[3], f.mul(w, p[2]))
        return self.backend.select(f.is_zero(w), self.is_neutral(p), matches)

    def fixed_base_mul(self, bits: Sequence[Value], table: Sequence["Point"]) -> CurvePoint:
        """Multiply a known base by the scalar with little-endian `bits`.

        Args:
            bits: Little-endian bits of the scalar.
            table (Sequence[Point]): `table[i] = 2^i * base`, at least `len(bits)` entries.

        Returns:
            The point sum(bits[i] * table[i]).
        """
        if len(table) < len(bits):
            msg = f"Fixed-base table has {len(table)} entries, {len(bits)} are needed"
            raise ValueError(msg)
        acc = self.neutral()
        for bit, entry in zip(bits, table):
            acc = self.select(bit, self.add(acc, self.constant(entry)), acc)
        return acc


_CURVE = CurveOps(NATIVE)


class Point:
    """A native element of the EcGFp5 group.

    Instances are created through :meth:`neutral`, :meth:`generator`, :meth:`from_affine` or :meth:`decode`,
    which all guarantee group membership. `*` accepts a :class:`Scalar` or a non-negative integer.
    """

    __slots__ = ("coordinates",)

    def __init__(self, coordinates: Sequence[Sequence[int]]):
        self.coordinates = tuple(tuple(c) for c in coordinates)

    @classmethod
    def neutral(cls) -> "Point":
        return cls(_CURVE.neutral())

    @classmethod
    def generator(cls) -> "Point":
        return GENERATOR

    @classmethod
    def from_affine(cls, x: ExtensionElement, u: ExtensionElement) -> "Point":
        """Build a point from its affine (x, u) coordinates.

        Raises:
            PointNotOnCurve: If (x, u) does not satisfy x = u^2 (x^2 + a x + b), or lies outside the prime-order
                coset (x must be a non-square unless the point is neutral).
        """
        if not x and not u:
            return cls.neutral()
        if x != u.square() * (x.square() + CURVE_A * x + CURVE_B):
            msg = "The coordinates do not satisfy the curve equation"
            raise PointNotOnCurve(msg)
        if x.legendre() != -1:
            msg = "The point is on the curve but not in the prime-order group"
            raise PointNotOnCurve(msg)
        return cls((x.limbs, (1, 0, 0, 0, 0), u.limbs, (1, 0, 0, 0, 0)))

    @classmethod
    def from_w(cls, w: ExtensionElement) -> "Point":
        """Decode the point whose encoding is `w`.

        Solving for x gives x^2 - (w^2 - a) x + b = 0; of its two roots, exactly one is a non-square and that is
        the one belonging to the group.

        Raises:
            PointNotOnCurve: If no point of the group is encoded by `w`.
        """
        if not w:
            return cls.neutral()
        e = w.square() - CURVE_A
        delta = e.square() - CURVE_B * 4
        root = delta.sqrt()
        if root is None:
            msg = "No curve point has this encoding"
            raise PointNotOnCurve(msg)
        half = ExtensionElement.from_base(2).inverse()
        x1 = (e + root) * half
        x = x1 if x1.legendre() == -1 else (e - root) * half
        return cls((x.limbs, (1, 0, 0, 0, 0), (1, 0, 0, 0, 0), w.limbs))

    @classmethod
    def decode(cls, data: bytes) -> "Point":
        """Decode a 40-byte point encoding.

        Raises:
            InvalidEncoding: If the bytes are not a canonical extension element.
            PointNotOnCurve: If the element is not the encoding of a group element.
        """
        return cls.from_w(ExtensionElement.from_bytes(data))

    def encode(self) -> ExtensionElement:
        """Return w = 1/u, or zero for the neutral element."""
        if self.is_neutral():
            return ExtensionElement.zero()
        _, _, u, t = self.coordinates
        return ExtensionElement(t) / ExtensionElement(u)

    def to_bytes(self) -> bytes:
        return self.encode().to_bytes()

    def to_affine(self) -> tuple[ExtensionElement, ExtensionElement]:
        """Return the affine (x, u) coordinates; the neutral element maps to (0, 0)."""
        x, z, u, t = (ExtensionElement(c) for c in self.coordinates)
        return x / z, u / t

    def normalize(self) -> "Point":
        """Return the same point with Z = T = 1."""
        x, u = self.to_affine()
        return Point((x.limbs, (1, 0, 0, 0, 0), u.limbs, (1, 0, 0, 0, 0)))

    def is_neutral(self) -> bool:
        return not any(self.coordinates[2])

    def is_on_curve(self) -> bool:
        """Check X Z T^2 = U^2 (X^2 + a X Z + b Z^2)."""
        x, z, u, t = (ExtensionElement(c) for c in self.coordinates)
        if not z or not t:
            return False
        return x * z * t.square() == u.square() * (x.square() + CURVE_A * x * z + CURVE_B * z.square())

    def __add__(self, other: "Point") -> "Point":
        if not isinstance(other, Point):
            return NotImplemented
        return Point(_CURVE.add(self.coordinates, other.coordinates))

    def __neg__(self) -> "Point":
        return Point(_CURVE.neg(self.coordinates))

    def __sub__(self, other: "Point") -> "Point":
        if not isinstance(other, Point):
            return NotImplemented
        return self + (-other)

    def double(self) -> "Point":
        return Point(_CURVE.double(self.coordinates))

    def __mul__(self, k: "Scalar | int") -> "Point":
        """Scalar multiplication with a fixed window of 4 bits, most significant window first."""
        if isinstance(k, Scalar):
            k = k.value
        elif isinstance(k, int):
            if k < 0:
                k %= ORDER
        else:
            return NotImplemented
        table = [_CURVE.neutral(), self.coordinates]
        for _ in range(2, 1 << WINDOW):
            table.append(_CURVE.add(table[-1], self.coordinates))
        acc = _CURVE.neutral()
        n_windows = max(1, -(-k.bit_length() // WINDOW))
        for i in range(n_windows - 1, -1, -1):
            for _ in range(WINDOW):
                acc = _CURVE.double(acc)
            acc = _CURVE.add(acc, table[(k >> (WINDOW * i)) & ((1 << WINDOW) - 1)])
        return Point(acc)

    __rmul__ = __mul__

    def __eq__(self, other) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        (_, _, u1, t1), (_, _, u2, t2) = self.coordinates, other.coordinates
        return _CURVE.field.mul(u1, t2) == _CURVE.field.mul(u2, t1)

    def __hash__(self) -> int:
        return hash(self.encode())

    def __repr__(self) -> str:
        return f"Point(w={list(self.encode().limbs)})"


def batch_to_affine(points: Sequence[Point]) -> list[tuple[ExtensionElement, ExtensionElement]]:
    """Convert many points to affine (x, u) with a single inversion in F_p^5."""
    denominators = []
    for point in points:
        _, z, _, t = point.coordinates
        denominators.extend([ExtensionElement(z), ExtensionElement(t)])
    inverses = batch_inverse_extension(denominators)
    out = []
    for i, point in enumerate(points):
        x, _, u, _ = point.coordinates
        out.append((ExtensionElement(x) * inverses[2 * i], ExtensionElement(u) * inverses[2 * i + 1]))
    return out


def batch_encode(points: Sequence[Point]) -> list[ExtensionElement]:
    """Encode many points with a single inversion in F_p^5."""
    non_neutral = [i for i, point in enumerate(points) if not point.is_neutral()]
    inverses = batch_inverse_extension([ExtensionElement(points[i].coordinates[2]) for i in non_neutral])
    out = [ExtensionElement.zero()] * len(points)
    for i, inverse in zip(non_neutral, inverses):
        out[i] = ExtensionElement(points[i].coordinates[3]) * inverse
    return out


@functools.lru_cache(maxsize=64)
def _fixed_base_table(encoding: bytes, n_bits: int) -> tuple[Point, ...]:
    point = Point.decode(encoding)
    table = [point.normalize()]
    for _ in range(n_bits - 1):
        table.append(table[-1].double())
    return tuple(Point(coordinates=(x.limbs, (1, 0, 0, 0, 0), u.limbs, (1, 0, 0, 0, 0)))
                 for x, u in batch_to_affine(table))


def fixed_base_table(point: Point, n_bits: int = BIT_LENGTH) -> tuple[Point, ...]:
    """Return the normalized multiples 2^i * point for i < n_bits (cached per point)."""
    return _fixed_base_table(point.to_bytes(), n_bits)


GENERATOR = Point.from_w(ExtensionElement.from_base(4))
