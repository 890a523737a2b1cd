from dataclasses import dataclass

import pytest

from zkyc.arith.backend import P
from zkyc.arith.curve import GENERATOR, Point
from zkyc.arith.scalar import ORDER, Scalar
from zkyc.errors import InvalidEncoding, PointNotOnCurve
from zkyc.hash.poseidon import hash_to_scalar
from zkyc.schnorr.keys import KeyPair, PublicKey, SecretKey, keygen
from zkyc.schnorr.signature import Signature, challenge_transcript, sign, verify, verify_batch

SECRET = SecretKey(Scalar(0x1234567890ABCDEF1234567890ABCDEF))
AUX = [1, 2, 3, 4]


@dataclass
class Schnorr:
    test_data = {
        "test_sign_and_verify": [
            {"message": []},
            {"message": [0]},
            {"message": list(range(8))},
            {"message": [P - 1] * 32},
        ],
        "test_message_tampering": [
            {"message": [1, 2, 3], "tampered": [1, 2, 4]},
            {"message": [1, 2, 3], "tampered": [1, 2]},
            {"message": [1, 2, 3], "tampered": [1, 2, 3, 0]},
        ],
    }


@pytest.mark.parametrize("message", [case["message"] for case in Schnorr.test_data["test_sign_and_verify"]])
def test_sign_and_verify(message):
    keys = KeyPair.generate()
    signature = sign(keys.secret, message)
    assert verify(keys.public, message, signature)
    assert not verify(keygen().public, message, signature)


def test_deterministic_nonce_with_fixed_aux():
    first = sign(SECRET, [7, 8, 9], aux=AUX)
    second = sign(SECRET, [7, 8, 9], aux=AUX)
    assert first == second
    assert sign(SECRET, [7, 8, 9], aux=[0, 0, 0, 0]).r != first.r
    assert sign(SECRET, [7, 8, 10], aux=AUX).r != first.r


def test_signature_equation():
    signature = sign(SECRET, [5], aux=AUX)
    public_key = SECRET.public_key()
    e = hash_to_scalar(challenge_transcript(signature.r.encode().limbs, public_key.to_elements(), [5]))
    assert GENERATOR * signature.s == signature.r + public_key.point * e


@pytest.mark.parametrize(
    ("message", "tampered"),
    [(case["message"], case["tampered"]) for case in Schnorr.test_data["test_message_tampering"]],
)
def test_message_tampering(message, tampered):
    signature = sign(SECRET, message, aux=AUX)
    assert not verify(SECRET.public_key(), tampered, signature)


@pytest.mark.parametrize("position", [0, 17, 39, 40, 60, 79])
def test_signature_byte_tampering(position):
    message = [11, 22, 33]
    signature = sign(SECRET, message, aux=AUX)
    data = bytearray(signature.to_bytes())
    data[position] ^= 0x01
    try:
        tampered = Signature.from_bytes(bytes(data))
    except (InvalidEncoding, PointNotOnCurve):
        return
    assert not verify(SECRET.public_key(), message, tampered)


def test_signature_encoding():
    signature = sign(SECRET, [1], aux=AUX)
    data = signature.to_bytes()
    assert len(data) == 80
    assert Signature.from_bytes(data) == signature
    with pytest.raises(InvalidEncoding):
        Signature.from_bytes(data[:79])
    with pytest.raises(InvalidEncoding):
        Signature.from_bytes(data[:40] + ORDER.to_bytes(40, "little"))


def test_non_canonical_message_is_rejected():
    with pytest.raises(ValueError, match="canonical"):
        sign(SECRET, [P])
    with pytest.raises(ValueError, match="canonical"):
        verify(SECRET.public_key(), [-1], sign(SECRET, [1]))


def test_forged_signature_with_neutral_r():
    forged = Signature(r=Point.neutral(), s=Scalar(0))
    assert not verify(SECRET.public_key(), [1], forged)


def test_verify_batch():
    keys = [KeyPair.generate() for _ in range(3)]
    items = [(k.public, [i], sign(k.secret, [i])) for i, k in enumerate(keys)]
    items.append((keys[0].public, [99], items[0][2]))
    assert verify_batch(items, max_workers=2) == [True, True, True, False]


def test_keys():
    public_key = SECRET.public_key()
    assert public_key.point == GENERATOR * SECRET.scalar
    assert PublicKey.from_bytes(public_key.to_bytes()) == public_key
    assert PublicKey.from_elements(public_key.to_elements()) == public_key
    assert SecretKey.from_bytes(SECRET.to_bytes()) == SECRET
    assert len(SECRET.to_elements()) == 10
    assert all(limb < 2**32 for limb in SECRET.to_elements())
    with pytest.raises(ValueError, match="zero"):
        SecretKey(Scalar(ORDER))
    with pytest.raises(InvalidEncoding):
        SecretKey.from_bytes(bytes(40))
    with pytest.raises(InvalidEncoding):
        PublicKey.from_bytes(bytes(40))
    with pytest.raises(ValueError, match="neutral"):
        PublicKey(Point.neutral())
