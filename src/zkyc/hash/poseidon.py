"""Poseidon permutation and sponge over the Goldilocks field.

Parameters: width 12 (rate 8, capacity 4), S-box x^7, 8 full rounds split 4 + 4 around 22 partial rounds. The
linear layer is the circulant matrix with first row `MDS_MATRIX_CIRC` plus the diagonal `MDS_MATRIX_DIAG`. The
360 round constants are produced by the Grain LFSR of the Poseidon reference generator, so they can be
regenerated from the parameters alone.

The permutation is written against :class:`zkyc.arith.backend.ArithmeticBackend`, so a digest computed natively
is reproduced step by step when the same call is made on a circuit builder.
"""

import functools
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass

from zkyc.arith.backend import NATIVE, P, ArithmeticBackend, Value
from zkyc.arith.field import decode_limbs, encode_limbs
from zkyc.arith.scalar import BIT_LENGTH, Scalar

WIDTH = 12
RATE = 8
CAPACITY = WIDTH - RATE
DIGEST_LENGTH = 4
ALPHA = 7
HALF_FULL_ROUNDS = 4
FULL_ROUNDS = 2 * HALF_FULL_ROUNDS
PARTIAL_ROUNDS = 22
MDS_MATRIX_CIRC = (17, 15, 41, 16, 2, 28, 13, 13, 39, 18, 34, 20)
MDS_MATRIX_DIAG = (8, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0)


class _Grain:
    """The self-shrinking Grain LFSR used to derive Poseidon round constants."""

    def __init__(self, field: int, sbox: int, field_bits: int, width: int, full_rounds: int, partial_rounds: int):
        init = []
        for value, length in [(field, 2), (sbox, 4), (field_bits, 12), (width, 12), (full_rounds, 10),
                              (partial_rounds, 10)]:
            init.extend(int(b) for b in format(value, f"0{length}b"))
        init.extend([1] * 30)
        self.state = deque(init, maxlen=80)
        for _ in range(160):
            self._step()

    def _step(self) -> int:
        s = self.state
        bit = s[62] ^ s[51] ^ s[38] ^ s[23] ^ s[13] ^ s[0]
        s.append(bit)
        return bit

    def next_bit(self) -> int:
        # Bits come in pairs (b0, b1): b1 is output only when b0 is set.
        b0 = self._step()
        while b0 == 0:
            self._step()
            b0 = self._step()
        return self._step()

    def next_field_element(self, n_bits: int, modulus: int) -> int:
        while True:
            value = 0
            for _ in range(n_bits):
                value = (value << 1) | self.next_bit()
            if value < modulus:
                return value


@functools.cache
def round_constants() -> tuple[int, ...]:
    """Return the (FULL_ROUNDS + PARTIAL_ROUNDS) * WIDTH round constants, round by round."""
    grain = _Grain(1, 0, 64, WIDTH, FULL_ROUNDS, PARTIAL_ROUNDS)
    return tuple(grain.next_field_element(64, P) for _ in range((FULL_ROUNDS + PARTIAL_ROUNDS) * WIDTH))


@dataclass(frozen=True)
class HashOut:
    """A native Poseidon digest: four base-field elements."""

    elements: tuple[int, int, int, int]

    @classmethod
    def zero(cls) -> "HashOut":
        return cls((0, 0, 0, 0))

    def to_bytes(self) -> bytes:
        """32 bytes: the four elements, 8 bytes little-endian each."""
        return encode_limbs(self.elements)

    @classmethod
    def from_bytes(cls, data: bytes) -> "HashOut":
        """Decode a 32-byte digest.

        Raises:
            InvalidEncoding: If the length is wrong or an element is not canonical.
        """
        return cls(tuple(decode_limbs(data, DIGEST_LENGTH)))

    def to_list(self) -> list[int]:
        return list(self.elements)


class Poseidon:
    """The Poseidon permutation and sponge constructions over a backend.

    Args:
        backend (ArithmeticBackend): The backend executing base-field operations.
    """

    def __init__(self, backend: ArithmeticBackend):
        self.backend = backend
        self.constants = round_constants()

    def _constant_layer(self, state: list[Value], round_index: int) -> list[Value]:
        offset = round_index * WIDTH
        return [self.backend.add_const(x, self.constants[offset + i]) for i, x in enumerate(state)]

    def _sbox(self, x: Value) -> Value:
        return self.backend.exp_const(x, ALPHA)

    def _mds_layer(self, state: list[Value]) -> list[Value]:
        out = []
        for r in range(WIDTH):
            terms = [(MDS_MATRIX_CIRC[i], state[(i + r) % WIDTH]) for i in range(WIDTH)]
            if MDS_MATRIX_DIAG[r]:
                terms.append((MDS_MATRIX_DIAG[r], state[r]))
            out.append(self.backend.linear_combination(terms))
        return out

    def permute(self, state: Sequence[Value]) -> list[Value]:
        """Apply the permutation to a state of `WIDTH` values."""
        if len(state) != WIDTH:
            msg = f"The Poseidon state has {WIDTH} elements, got {len(state)}"
            raise ValueError(msg)
        state = list(state)
        round_index = 0
        for _ in range(HALF_FULL_ROUNDS):
            state = self._constant_layer(state, round_index)
            state = [self._sbox(x) for x in state]
            state = self._mds_layer(state)
            round_index += 1
        for _ in range(PARTIAL_ROUNDS):
            state = self._constant_layer(state, round_index)
            state[0] = self._sbox(state[0])
            state = self._mds_layer(state)
            round_index += 1
        for _ in range(HALF_FULL_ROUNDS):
            state = self._constant_layer(state, round_index)
            state = [self._sbox(x) for x in state]
            state = self._mds_layer(state)
            round_index += 1
        return state

    def hash_n_to_m_no_pad(self, inputs: Sequence[Value], m: int) -> list[Value]:
        """Overwrite-mode sponge: absorb `inputs` by chunks of `RATE`, squeeze `m` elements.

        An empty input is never permuted and hashes to zeros.
        """
        state = [self.backend.zero()] * WIDTH
        for start in range(0, len(inputs), RATE):
            chunk = inputs[start : start + RATE]
            state[: len(chunk)] = chunk
            state = self.permute(state)
        out = []
        while True:
            out.extend(state[:RATE])
            if len(out) >= m:
                return out[:m]
            state = self.permute(state)

    def hash_no_pad(self, inputs: Sequence[Value]) -> list[Value]:
        """Hash a fixed-length input to a digest of `DIGEST_LENGTH` elements."""
        return self.hash_n_to_m_no_pad(inputs, DIGEST_LENGTH)

    def hash_pad(self, inputs: Sequence[Value]) -> list[Value]:
        """Hash a variable-length input: append 1, then zeros up to a multiple of `RATE`."""
        padded = [*inputs, self.backend.one()]
        padded.extend([self.backend.zero()] * (-len(padded) % RATE))
        return self.hash_no_pad(padded)

    def two_to_one(self, left: Sequence[Value], right: Sequence[Value]) -> list[Value]:
        """Compress two digests into one (Merkle node)."""
        return self.hash_no_pad([*left, *right])

    def challenge_bits(self, transcript: Sequence[Value], n_bits: int = BIT_LENGTH) -> list[Value]:
        """Derive `n_bits` little-endian challenge bits from a transcript.

        h_0 = hash_no_pad(transcript), then h_i = hash_no_pad([i] || h_0) for i = 1, 2, ... Each digest element
        contributes its canonical 64-bit decomposition until `n_bits` bits are available.
        """
        seed = self.hash_no_pad(transcript)
        digest = seed
        counter = 0
        bits = []
        while True:
            for element in digest:
                bits.extend(self.backend.split_u64(element))
                if len(bits) >= n_bits:
                    return bits[:n_bits]
            counter += 1
            digest = self.hash_no_pad([self.backend.constant(counter), *seed])


_NATIVE = Poseidon(NATIVE)


def permute(state: Sequence[int]) -> list[int]:
    return _NATIVE.permute(state)


def hash_no_pad(inputs: Sequence[int]) -> HashOut:
    return HashOut(tuple(_NATIVE.hash_no_pad(list(inputs))))


def hash_pad(inputs: Sequence[int]) -> HashOut:
    return HashOut(tuple(_NATIVE.hash_pad(list(inputs))))


def hash_n_to_m_no_pad(inputs: Sequence[int], m: int) -> list[int]:
    return _NATIVE.hash_n_to_m_no_pad(list(inputs), m)


def two_to_one(left: HashOut, right: HashOut) -> HashOut:
    return HashOut(tuple(_NATIVE.two_to_one(left.elements, right.elements)))


def hash_to_scalar(transcript: Sequence[int]) -> Scalar:
    """Native challenge derivation: the challenge bits read as an integer, reduced modulo the group order."""
    return Scalar.from_bits_le(_NATIVE.challenge_bits(list(transcript)))
