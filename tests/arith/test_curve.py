from dataclasses import dataclass

import pytest

from zkyc.arith.backend import NativeBackend
from zkyc.arith.curve import (
    GENERATOR,
    CurveOps,
    Point,
    batch_encode,
    batch_to_affine,
    fixed_base_table,
)
from zkyc.arith.gfp5 import ExtensionElement
from zkyc.arith.scalar import ORDER, Scalar
from zkyc.errors import InvalidEncoding, PointNotOnCurve


def decodable(w: int) -> bool:
    try:
        Point.from_w(ExtensionElement.from_base(w))
    except PointNotOnCurve:
        return False
    return True


@dataclass
class EcGFp5:
    test_data = {
        "test_scalar_distributivity": [
            {"k": 1, "l": 1},
            {"k": 5, "l": ORDER - 5},
            {"k": 2**200 + 3, "l": 2**318 - 1},
            {"k": 0xDEADBEEFCAFEBABE, "l": ORDER // 7},
        ],
        "test_multiplication_edge_cases": [
            {"k": 0, "expected": "neutral"},
            {"k": ORDER, "expected": "neutral"},
            {"k": 1, "expected": "generator"},
            {"k": ORDER + 1, "expected": "generator"},
            {"k": ORDER - 1, "expected": "minus generator"},
            {"k": -1, "expected": "minus generator"},
        ],
    }


def test_generator():
    assert GENERATOR.encode() == ExtensionElement.from_base(4)
    assert GENERATOR.is_on_curve()
    assert not GENERATOR.is_neutral()
    x, u = GENERATOR.to_affine()
    assert Point.from_affine(x, u) == GENERATOR


@pytest.mark.parametrize(
    ("k", "expected"),
    [(case["k"], case["expected"]) for case in EcGFp5.test_data["test_multiplication_edge_cases"]],
)
def test_multiplication_edge_cases(k, expected):
    points = {"neutral": Point.neutral(), "generator": GENERATOR, "minus generator": -GENERATOR}
    assert GENERATOR * k == points[expected]


@pytest.mark.parametrize(
    ("k", "l"), [(case["k"], case["l"]) for case in EcGFp5.test_data["test_scalar_distributivity"]]
)
def test_scalar_distributivity(k, l):
    assert GENERATOR * (Scalar(k) + Scalar(l)) == GENERATOR * k + GENERATOR * l
    p = GENERATOR * 12345
    assert p * Scalar(k) * Scalar(l) == p * (Scalar(k) * Scalar(l))


def test_group_law():
    p = GENERATOR * 7
    q = GENERATOR * 11
    neutral = Point.neutral()
    assert p + q == q + p == GENERATOR * 18
    assert p + p == p.double() == GENERATOR * 14
    assert p - p == neutral
    assert p + neutral == p
    assert neutral + neutral == neutral
    assert neutral.double() == neutral
    assert (p + q).is_on_curve()
    assert p * ORDER == neutral


@pytest.mark.parametrize("k", [1, 2, 3, 1000, ORDER - 1])
def test_encoding(k):
    p = GENERATOR * k
    data = p.to_bytes()
    assert len(data) == 40
    assert Point.decode(data) == p
    assert Point.from_w(p.encode()) == p


def test_neutral_encoding():
    assert Point.neutral().encode() == ExtensionElement.zero()
    assert Point.decode(bytes(40)).is_neutral()


def test_undecodable_elements():
    undecodable = [w for w in range(1, 64) if not decodable(w)]
    assert undecodable
    with pytest.raises(PointNotOnCurve):
        Point.decode(ExtensionElement.from_base(undecodable[0]).to_bytes())
    with pytest.raises(InvalidEncoding):
        Point.decode(b"\xff" * 40)


def test_from_affine_rejects_points_off_the_curve():
    x, u = (GENERATOR * 3).to_affine()
    with pytest.raises(PointNotOnCurve):
        Point.from_affine(x + 1, u)
    with pytest.raises(PointNotOnCurve):
        Point.from_affine(x, u + 1)


def test_batch_conversions():
    points = [GENERATOR * k for k in (1, 2, 3, 99)]
    assert batch_to_affine(points) == [p.to_affine() for p in points]
    with_neutral = [*points, Point.neutral()]
    assert batch_encode(with_neutral) == [p.encode() for p in with_neutral]


def test_fixed_base_mul_matches_windowed_multiplication():
    curve = CurveOps(NativeBackend())
    base = GENERATOR * 31337
    k = Scalar(2**318 + 2**100 + 77)
    out = Point(curve.fixed_base_mul(k.to_bits_le(), fixed_base_table(base)))
    assert out == base * k
    assert curve.encodes_to(curve.constant(base * k), (base * k).encode().limbs) == 1
    assert curve.encodes_to(curve.constant(base * k), base.encode().limbs) == 0


def test_fixed_base_table_too_short():
    curve = CurveOps(NativeBackend())
    with pytest.raises(ValueError, match="Fixed-base table"):
        curve.fixed_base_mul([1] * 10, fixed_base_table(GENERATOR, 8))
