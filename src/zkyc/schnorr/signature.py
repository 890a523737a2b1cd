"""Schnorr signatures over EcGFp5 with Poseidon challenges.

Signing: k = nonce(sk, m, aux), R = k G, e = H(R, pk, m), s = k + e sk mod n.
Verification: encode(s G - e pk) == encode(R).

The verification equation is written once, in :class:`SchnorrGadget`, over an arithmetic backend. Native
verification runs the gadget on the native backend; the proof statement runs the very same gadget on the circuit
builder. Both scalar multiplications use fixed bases (the generator and the signer's public key), so neither
needs a doubling chain.
"""

import logging
import secrets
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from zkyc.arith.backend import P, ArithmeticBackend, NativeBackend, Value
from zkyc.arith.curve import GENERATOR, CurveOps, Point, fixed_base_table
from zkyc.arith.gfp5 import ExtensionElement, Gfp5
from zkyc.arith.scalar import BIT_LENGTH, ORDER, Scalar
from zkyc.errors import InvalidEncoding
from zkyc.hash.poseidon import Poseidon, hash_n_to_m_no_pad, hash_to_scalar
from zkyc.schnorr.keys import PublicKey, SecretKey

logger = logging.getLogger(__name__)

ENCODED_LENGTH = 80
NONCE_AUX_LIMBS = 4


def _message_elements(message: Sequence[int]) -> list[int]:
    elements = [int(m) for m in message]
    if any(not 0 <= m < P for m in elements):
        msg = "Message elements must be canonical residues modulo p"
        raise ValueError(msg)
    return elements


def challenge_transcript(r_w: Sequence[Value], public_key_w: Sequence[Value], message: Sequence[Value]) -> list:
    """The Fiat-Shamir transcript: encode(R) || encode(pk) || message."""
    return [*r_w, *public_key_w, *message]


@dataclass(frozen=True)
class Signature:
    """A Schnorr signature (R, s)."""

    r: Point
    s: Scalar

    def to_bytes(self) -> bytes:
        """encode(R) || encode(s), 80 bytes."""
        return self.r.to_bytes() + self.s.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "Signature":
        """Decode an 80-byte signature.

        Raises:
            InvalidEncoding: If the length is wrong or a component is not canonical.
            PointNotOnCurve: If the first half does not encode a group element.
        """
        if len(data) != ENCODED_LENGTH:
            msg = f"A signature is encoded on {ENCODED_LENGTH} bytes, got {len(data)}"
            raise InvalidEncoding(msg)
        return cls(r=Point.decode(data[:40]), s=Scalar.from_bytes(data[40:]))


class SchnorrGadget:
    """Signature verification over an arithmetic backend.

    Args:
        backend (ArithmeticBackend): The backend executing base-field operations.
    """

    def __init__(self, backend: ArithmeticBackend):
        self.backend = backend
        self.curve = CurveOps(backend)
        self.poseidon = Poseidon(backend)

    def scalar_bits(self, scalar: Scalar) -> list[Value]:
        """Introduce the bits of `scalar` as hints, constrained to a canonical value smaller than n."""
        bits = [self.backend.bit(b) for b in scalar.to_bits_le(BIT_LENGTH)]
        self.backend.assert_bits_lt(bits, ORDER)
        return bits

    def verify(
        self, public_key: PublicKey, message: Sequence[Value], r_w: Gfp5, s_bits: Sequence[Value]
    ) -> Value:
        """Return the bit `encode(s G - e pk) == r_w`.

        Args:
            public_key (PublicKey): The signer's key, a constant of the computation.
            message (Sequence[Value]): The signed field elements.
            r_w (Gfp5): The encoding of R.
            s_bits (Sequence[Value]): Little-endian bits of s.

        Returns:
            A bit, 1 if the signature is valid.
        """
        be = self.backend
        public_key_w = [be.constant(limb) for limb in public_key.to_elements()]
        e_bits = self.poseidon.challenge_bits(challenge_transcript(r_w, public_key_w, message))
        s_g = self.curve.fixed_base_mul(s_bits, fixed_base_table(GENERATOR))
        minus_e_pk = self.curve.fixed_base_mul(e_bits, fixed_base_table(-public_key.point))
        return self.curve.encodes_to(self.curve.add(s_g, minus_e_pk), r_w)


def _nonce(secret_key: SecretKey, message: list[int], aux: Sequence[int]) -> Scalar:
    counter = 0
    while True:
        limbs = hash_n_to_m_no_pad([*secret_key.to_elements(), *message, *aux, counter], 5)
        k = Scalar.from_extension(ExtensionElement(limbs))
        if k:
            return k
        counter += 1


def sign(secret_key: SecretKey, message: Sequence[int], aux: Sequence[int] | None = None) -> Signature:
    """Sign a message made of base-field elements.

    Args:
        secret_key (SecretKey): The signer's secret key.
        message (Sequence[int]): Canonical base-field elements.
        aux (Sequence[int] | None): Extra randomness mixed into the nonce. Defaults to fresh randomness; pass a
            fixed value for deterministic signatures.

    Returns:
        The signature (R, s).
    """
    message = _message_elements(message)
    if aux is None:
        aux = [secrets.randbelow(P) for _ in range(NONCE_AUX_LIMBS)]
    k = _nonce(secret_key, message, [int(a) % P for a in aux])
    r = GENERATOR * k
    public_key = secret_key.public_key()
    e = hash_to_scalar(challenge_transcript(r.encode().limbs, public_key.to_elements(), message))
    return Signature(r=r, s=k + e * secret_key.scalar)


def verify(public_key: PublicKey, message: Sequence[int], signature: Signature) -> bool:
    """Return `True` if `signature` is a valid signature of `message` under `public_key`."""
    message = _message_elements(message)
    gadget = SchnorrGadget(NativeBackend())
    valid = gadget.verify(public_key, message, signature.r.encode().limbs, signature.s.to_bits_le(BIT_LENGTH))
    return bool(valid)


def verify_batch(
    items: Sequence[tuple[PublicKey, Sequence[int], Signature]], max_workers: int | None = None
) -> list[bool]:
    """Verify independent signatures on a thread pool.

    Args:
        items: `(public_key, message, signature)` triples.
        max_workers (int | None): Size of the worker pool. Defaults to the executor default.

    Returns:
        One verification result per item, in order.
    """
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        results = list(executor.map(lambda item: verify(*item), items))
    logger.debug(f"Verified {len(results)} signatures, {sum(results)} valid")
    return results
