"""Merkle membership proofs for the revocation tree."""

import struct
from collections.abc import Sequence
from dataclasses import dataclass

from zkyc.arith.backend import NATIVE, ArithmeticBackend, Value
from zkyc.errors import InvalidEncoding
from zkyc.hash.poseidon import DIGEST_LENGTH, HashOut, Poseidon, hash_no_pad

DIGEST_BYTES = 8 * DIGEST_LENGTH
_HEADER = struct.Struct("<IQ")


def revocation_leaf(commitment: HashOut) -> HashOut:
    """The tree leaf of a credential: the hash of its commitment."""
    return hash_no_pad(commitment.elements)


@dataclass(frozen=True)
class MerkleProof:
    """A sibling path from a leaf to the root of one tree version.

    Attributes:
        leaf (HashOut): The leaf value.
        siblings (tuple[HashOut, ...]): Sibling digests, from the leaf level up.
        path_bits (tuple[int, ...]): Bits of the leaf index, least significant first; bit `i` is 1 when the node
            at level `i` is a right child.
        root_version (int): The tree version the path was computed against.
    """

    leaf: HashOut
    siblings: tuple[HashOut, ...]
    path_bits: tuple[int, ...]
    root_version: int

    def __post_init__(self):
        if len(self.siblings) != len(self.path_bits):
            msg = f"{len(self.siblings)} siblings but {len(self.path_bits)} path bits"
            raise ValueError(msg)
        if any(bit not in (0, 1) for bit in self.path_bits):
            msg = f"{self.path_bits} is not a list of bits"
            raise ValueError(msg)

    @property
    def depth(self) -> int:
        return len(self.siblings)

    @property
    def index(self) -> int:
        return sum(bit << i for i, bit in enumerate(self.path_bits))

    def compute_root(self) -> HashOut:
        root = MerkleGadget(NATIVE).compute_root(
            self.leaf.elements, [s.elements for s in self.siblings], list(self.path_bits)
        )
        return HashOut(tuple(root))

    def to_bytes(self) -> bytes:
        """u32 depth || u64 version || leaf || siblings || path bits packed little-endian."""
        packed_bits = self.index.to_bytes((self.depth + 7) // 8, "little")
        return b"".join(
            [
                _HEADER.pack(self.depth, self.root_version),
                self.leaf.to_bytes(),
                *(s.to_bytes() for s in self.siblings),
                packed_bits,
            ]
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "MerkleProof":
        """Decode a proof produced by :meth:`to_bytes`.

        Raises:
            InvalidEncoding: If the length does not match the declared depth, a digest is not canonical, or
                padding bits of the path are set.
        """
        if len(data) < _HEADER.size:
            msg = "Truncated Merkle proof header"
            raise InvalidEncoding(msg)
        depth, version = _HEADER.unpack_from(data)
        bit_bytes = (depth + 7) // 8
        expected = _HEADER.size + DIGEST_BYTES * (depth + 1) + bit_bytes
        if len(data) != expected:
            msg = f"A Merkle proof of depth {depth} is encoded on {expected} bytes, got {len(data)}"
            raise InvalidEncoding(msg)
        offset = _HEADER.size
        digests = [
            HashOut.from_bytes(data[offset + i * DIGEST_BYTES : offset + (i + 1) * DIGEST_BYTES])
            for i in range(depth + 1)
        ]
        index = int.from_bytes(data[expected - bit_bytes :], "little")
        if index >> depth:
            msg = "Padding bits of the Merkle path are set"
            raise InvalidEncoding(msg)
        return cls(
            leaf=digests[0],
            siblings=tuple(digests[1:]),
            path_bits=tuple((index >> i) & 1 for i in range(depth)),
            root_version=version,
        )


class MerkleGadget:
    """Merkle path recomputation over an arithmetic backend."""

    def __init__(self, backend: ArithmeticBackend):
        self.backend = backend
        self.poseidon = Poseidon(backend)

    def compute_root(
        self, leaf: Sequence[Value], siblings: Sequence[Sequence[Value]], bits: Sequence[Value]
    ) -> list[Value]:
        """Hash `leaf` up the path, swapping the pair at each level where the path bit is 1."""
        be = self.backend
        current = list(leaf)
        for sibling, bit in zip(siblings, bits):
            left = [be.select(bit, s, c) for s, c in zip(sibling, current)]
            right = [be.select(bit, c, s) for s, c in zip(sibling, current)]
            current = self.poseidon.two_to_one(left, right)
        return current

    def verify(
        self, root: Sequence[Value], leaf: Sequence[Value], siblings: Sequence[Sequence[Value]], bits: Sequence[Value]
    ) -> Value:
        """Return the bit `compute_root(...) == root`."""
        be = self.backend
        computed = self.compute_root(leaf, siblings, bits)
        return be.all_of([be.is_equal(c, r) for c, r in zip(computed, root)])


def verify_membership(root: HashOut, proof: MerkleProof) -> bool:
    """Return `True` if `proof` leads from its leaf to `root`."""
    return proof.compute_root() == root
