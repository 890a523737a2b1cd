from dataclasses import dataclass

import galois
import pytest

from zkyc.arith.backend import P
from zkyc.arith.gfp5 import ExtensionElement
from zkyc.arith.scalar import BIT_LENGTH, ORDER, Scalar
from zkyc.errors import InvalidEncoding, ZeroInversion


@dataclass
class Scalars:
    test_data = {
        "test_arithmetic": [
            {"x": 0, "y": 1},
            {"x": ORDER - 1, "y": 2},
            {"x": 2**318 + 12345, "y": 2**300 - 1},
            {"x": 0xDEADBEEF_CAFEBABE_0123456789, "y": ORDER // 3},
        ],
        "test_inverse": [1, 2, ORDER - 1, 2**200 + 7],
    }


def test_order_is_a_319_bit_prime():
    assert ORDER.bit_length() == BIT_LENGTH
    assert galois.is_prime(ORDER)


@pytest.mark.parametrize(("x", "y"), [(case["x"], case["y"]) for case in Scalars.test_data["test_arithmetic"]])
def test_arithmetic(x, y):
    a, b = Scalar(x), Scalar(y)
    assert int(a + b) == (x + y) % ORDER
    assert int(a - b) == (x - y) % ORDER
    assert int(a * b) == x * y % ORDER
    assert -a + a == 0
    assert a + y == a + b
    assert y - a == b - a


@pytest.mark.parametrize("x", Scalars.test_data["test_inverse"])
def test_inverse(x):
    a = Scalar(x)
    assert a * a.inverse() == 1


def test_zero_inversion():
    with pytest.raises(ZeroInversion):
        Scalar(0).inverse()
    with pytest.raises(ZeroInversion):
        Scalar(ORDER).inverse()


def test_random_is_non_zero_and_reduced():
    for _ in range(16):
        k = Scalar.random()
        assert 0 < k.value < ORDER


def test_bits():
    k = Scalar(2**318 + 2**64 + 5)
    bits = k.to_bits_le()
    assert len(bits) == BIT_LENGTH
    assert bits[0] == 1 and bits[1] == 0 and bits[2] == 1 and bits[64] == 1 and bits[318] == 1
    assert Scalar.from_bits_le(bits) == k


def test_from_extension():
    limbs = [1, 2, 3, 4, 5]
    expected = sum(limb * P**i for i, limb in enumerate(limbs)) % ORDER
    assert Scalar.from_extension(ExtensionElement(limbs)) == Scalar(expected)
    assert Scalar.from_extension(ExtensionElement([P - 1] * 5)) == Scalar(P**5 - 1)


def test_encoding():
    k = Scalar(ORDER - 1)
    assert len(k.to_bytes()) == 40
    assert Scalar.from_bytes(k.to_bytes()) == k
    with pytest.raises(InvalidEncoding):
        Scalar.from_bytes(ORDER.to_bytes(40, "little"))
    with pytest.raises(InvalidEncoding):
        Scalar.from_bytes(b"\x01" * 39)


def test_mixing_with_other_types():
    with pytest.raises(TypeError):
        Scalar(1) + 1.5
