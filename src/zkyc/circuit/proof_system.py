"""The boundary with an external proof system.

A proof system turns a circuit description and a full wire assignment into an opaque proof, and checks a proof
against a circuit and a public-input vector. zkyc only relies on the proof system enforcing that every
constraint evaluates to zero.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

import cbor2

from zkyc.arith.backend import P
from zkyc.circuit.builder import CircuitDescription

logger = logging.getLogger(__name__)

TRANSPARENT_FORMAT = "zkyc-transparent-v1"


class ProofSystem(ABC):
    """Interface of a pluggable proof system."""

    @abstractmethod
    def prove(self, circuit: CircuitDescription, assignment: Sequence[int]) -> bytes:
        """Produce a proof that `assignment` satisfies `circuit`.

        Raises:
            ValueError: If `assignment` does not satisfy `circuit`.
        """

    @abstractmethod
    def verify(self, circuit: CircuitDescription, public_inputs: Sequence[int], proof: bytes) -> bool:
        """Return `True` if `proof` shows that `circuit` is satisfiable with the given public inputs."""


class TransparentProofSystem(ProofSystem):
    """A reference proof system whose proof is the CBOR-encoded assignment itself.

    It is sound but reveals the whole witness: it lets the complete protocol run and be tested without an
    external prover, and must not be used where the witness is private.
    """

    def prove(self, circuit: CircuitDescription, assignment: Sequence[int]) -> bytes:
        if len(assignment) != circuit.n_wires:
            msg = f"The circuit has {circuit.n_wires} wires, the assignment {len(assignment)}"
            raise ValueError(msg)
        failing = circuit.failing_labels(assignment)
        if failing:
            msg = f"The assignment does not satisfy the circuit: {', '.join(failing)}"
            raise ValueError(msg)
        proof = cbor2.dumps({"format": TRANSPARENT_FORMAT, "circuit": circuit.digest(), "assignment": list(assignment)})
        logger.info(f"Transparent proof produced: {len(proof)} bytes for {len(circuit.constraints)} constraints")
        return proof

    def verify(self, circuit: CircuitDescription, public_inputs: Sequence[int], proof: bytes) -> bool:
        try:
            decoded = cbor2.loads(proof)
        except cbor2.CBORDecodeError as e:
            logger.warning(f"Malformed proof: {e}")
            return False
        if not isinstance(decoded, dict) or decoded.get("format") != TRANSPARENT_FORMAT:
            logger.warning("Proof is not in the transparent format")
            return False
        if decoded.get("circuit") != circuit.digest():
            logger.warning("Proof was produced for a different circuit")
            return False
        assignment = decoded.get("assignment")
        if (
            not isinstance(assignment, list)
            or len(assignment) != circuit.n_wires
            or any(not isinstance(v, int) or not 0 <= v < P for v in assignment)
        ):
            logger.warning("Proof assignment is malformed")
            return False
        if len(public_inputs) != len(circuit.public):
            logger.warning(f"Expected {len(circuit.public)} public inputs, got {len(public_inputs)}")
            return False
        for (name, wire), expected in zip(circuit.public, public_inputs):
            if assignment[wire] != expected % P:
                logger.info(f"Public input {name} does not match the proof")
                return False
        failing = circuit.failing_labels(assignment)
        if failing:
            logger.info(f"Proof does not satisfy the circuit: {', '.join(failing)}")
            return False
        return True
