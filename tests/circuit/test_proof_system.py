import cbor2
import pytest

from zkyc.arith.backend import P
from zkyc.circuit.builder import CircuitBuilder
from zkyc.circuit.proof_system import TRANSPARENT_FORMAT, TransparentProofSystem


def cube_circuit(x: int) -> CircuitBuilder:
    """Public y with y == x^3 + x + 5."""
    be = CircuitBuilder()
    y = be.public_input("y", x**3 + x + 5)
    a = be.witness(x)
    with be.scope("cube"):
        be.assert_equal(be.add_const(be.add(be.mul(be.square(a), a), a), 5), y)
    return be


@pytest.fixture
def proved():
    be = cube_circuit(3)
    circuit = be.description()
    return circuit, be.public_values(), TransparentProofSystem().prove(circuit, be.values)


def test_prove_and_verify(proved):
    circuit, public, proof = proved
    assert public == [35]
    assert TransparentProofSystem().verify(circuit, public, proof)
    # The verifier's circuit does not depend on the witness.
    assert TransparentProofSystem().verify(cube_circuit(0).description(), public, proof)


@pytest.mark.parametrize("public", [[36], [], [35, 1]])
def test_wrong_public_inputs(proved, public):
    circuit, _, proof = proved
    assert not TransparentProofSystem().verify(circuit, public, proof)


def test_public_inputs_are_field_elements(proved):
    circuit, _, proof = proved
    assert TransparentProofSystem().verify(circuit, [35 + P], proof)


def test_unsatisfied_assignment_is_not_proved():
    be = cube_circuit(3)
    values = list(be.values)
    values[1] = 4
    with pytest.raises(ValueError, match="cube"):
        TransparentProofSystem().prove(be.description(), values)
    with pytest.raises(ValueError, match="wires"):
        TransparentProofSystem().prove(be.description(), values[:-1])


def test_other_circuit(proved):
    _, public, proof = proved
    other = CircuitBuilder()
    y = other.public_input("y", 35)
    other.assert_equal(other.witness(35), y)
    assert not TransparentProofSystem().verify(other.description(), public, proof)


@pytest.mark.parametrize(
    "change",
    [
        {"format": "other-format"},
        {"circuit": b"\x00" * 32},
        {"assignment": "not a list"},
        {"assignment": [P, 3, 9, 27]},
    ],
)
def test_malformed_proofs(proved, change):
    circuit, public, proof = proved
    decoded = cbor2.loads(proof)
    assert decoded["format"] == TRANSPARENT_FORMAT
    decoded.update(change)
    assert not TransparentProofSystem().verify(circuit, public, cbor2.dumps(decoded))


def test_forged_assignment(proved):
    circuit, public, proof = proved
    decoded = cbor2.loads(proof)
    decoded["assignment"][1] = 4
    assert not TransparentProofSystem().verify(circuit, public, cbor2.dumps(decoded))


@pytest.mark.parametrize("proof", [b"", b"\x9f\x01", cbor2.dumps([1, 2, 3])])
def test_garbage(proved, proof):
    circuit, public, _ = proved
    assert not TransparentProofSystem().verify(circuit, public, proof)
