from dataclasses import dataclass

import galois
import pytest

from zkyc.arith.backend import P
from zkyc.arith.field import FieldElement, batch_inverse, decode_limbs, encode_limbs
from zkyc.errors import InvalidEncoding, ZeroInversion

GF = galois.GF(P)


@dataclass
class Goldilocks:
    test_data = {
        "test_arithmetic": [
            {"x": 0, "y": 0},
            {"x": 1, "y": P - 1},
            {"x": 2**32, "y": 2**32 - 1},
            {"x": 0xDEADBEEFCAFEBABE, "y": 0x0123456789ABCDEF},
            {"x": P - 2, "y": P - 3},
        ],
        "test_inverse": [1, 2, 7, 2**32, P - 1, 0x1234567890ABCDEF],
        "test_sqrt": [0, 1, 4, 7, 2**32, 0xDEADBEEF, P - 1],
        "test_invalid_encoding": [
            {"data": P.to_bytes(8, "little")},
            {"data": (2**64 - 1).to_bytes(8, "little")},
            {"data": b"\x00" * 7},
            {"data": b"\x00" * 9},
        ],
    }


@pytest.mark.parametrize(("x", "y"), [(case["x"], case["y"]) for case in Goldilocks.test_data["test_arithmetic"]])
def test_arithmetic(x, y):
    a, b = FieldElement(x), FieldElement(y)
    assert int(a + b) == int(GF(x) + GF(y))
    assert int(a - b) == int(GF(x) - GF(y))
    assert int(a * b) == int(GF(x) * GF(y))
    assert int(-a) == int(-GF(x))
    assert (a + b) - b == a


@pytest.mark.parametrize("x", Goldilocks.test_data["test_inverse"])
def test_inverse(x):
    a = FieldElement(x)
    assert a * a.inverse() == 1
    assert int(a.inverse()) == int(GF(x) ** -1)
    assert FieldElement(1) / a == a.inverse()


def test_zero_inversion():
    with pytest.raises(ZeroInversion):
        FieldElement(0).inverse()
    with pytest.raises(ZeroDivisionError):
        FieldElement(5) / 0


@pytest.mark.parametrize("x", Goldilocks.test_data["test_sqrt"])
def test_sqrt(x):
    a = FieldElement(x)
    assert a.is_square() == bool(GF(x).is_square())
    root = a.sqrt()
    if a.is_square():
        assert root * root == a
        assert int(root) <= P - int(root) or int(root) == 0
    else:
        assert root is None


def test_multiplicative_generator_is_not_a_square():
    assert FieldElement(7).legendre() == -1
    assert int(GF.primitive_element) == 7


@pytest.mark.parametrize("x", [0, 1, P - 1, 0xDEADBEEF])
def test_encoding(x):
    a = FieldElement(x)
    assert len(a.to_bytes()) == 8
    assert FieldElement.from_bytes(a.to_bytes()) == a


@pytest.mark.parametrize("data", [case["data"] for case in Goldilocks.test_data["test_invalid_encoding"]])
def test_invalid_encoding(data):
    with pytest.raises(InvalidEncoding):
        FieldElement.from_bytes(data)


def test_limbs_encoding():
    limbs = [0, 1, P - 1, 12345]
    assert decode_limbs(encode_limbs(limbs), 4) == limbs
    with pytest.raises(InvalidEncoding):
        decode_limbs(encode_limbs(limbs), 3)


def test_batch_inverse():
    values = [1, 2, 3, P - 1, 0xDEADBEEF, 2**40]
    assert batch_inverse(values) == [pow(v, P - 2, P) for v in values]
    assert batch_inverse([]) == []
    with pytest.raises(ZeroInversion):
        batch_inverse([1, 0, 2])
