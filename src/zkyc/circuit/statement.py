"""The KYC proof statement.

The statement proves, for public inputs (revocation root, KYC predicate, issuer key, session context, nullifier),
knowledge of a credential, a holder secret key, a Merkle path and an issuer signature such that:

    1. the credential satisfies the predicate (nationality, not expired, old enough),
    2. the credential names the public issuer, which signed its commitment,
    3. the credential leaf belongs to the revocation tree at the public root,
    4. the secret key matches the subject public key of the credential,
    5. the nullifier is the hash of the subject public key and the session context.

The statement is written once, in :meth:`ProofStatement.program`, against an arithmetic backend. Running it on
the native backend gives the expected verdict; running it on the circuit builder gives the constraints, the wire
assignment and the public-input vector. :meth:`ProofStatement.compose` runs both and requires them to agree.
"""

import logging
from dataclasses import dataclass
from datetime import date

from zkyc.arith.backend import ArithmeticBackend, NativeBackend
from zkyc.arith.curve import GENERATOR, CurveOps, fixed_base_table
from zkyc.arith.gfp5 import Gfp5Ops
from zkyc.arith.scalar import Scalar
from zkyc.circuit.builder import CircuitBuilder, CircuitDescription
from zkyc.config import ProtocolConfig
from zkyc.credential.model import Credential, Gender, IdentityFields, commit_elements, field_slice, pack_nationality
from zkyc.encoding import ORIGIN, days_since_origin, years_before
from zkyc.errors import (
    CircuitWitnessInconsistent,
    CredentialPredicateUnsatisfied,
    MerkleProofInvalid,
    SignatureInvalid,
    Verdict,
    ZkycError,
)
from zkyc.hash.poseidon import HashOut, Poseidon, hash_pad
from zkyc.revocation.proof import MerkleGadget, MerkleProof
from zkyc.schnorr.authentication import AuthenticationContext
from zkyc.schnorr.keys import PublicKey, SecretKey
from zkyc.schnorr.signature import SchnorrGadget, Signature

logger = logging.getLogger(__name__)

DATE_BITS = 32

# Top-level assertion scopes of the statement and the error each one reports.
FAILURE_KINDS: dict[str, tuple[type[ZkycError], str]] = {
    "predicate": (CredentialPredicateUnsatisfied, "The credential does not satisfy the KYC predicate"),
    "issuer": (SignatureInvalid, "The credential was not issued by the expected issuer"),
    "signature": (SignatureInvalid, "The issuer signature over the credential commitment is invalid"),
    "revocation": (MerkleProofInvalid, "The credential is not in the revocation tree at the stated root"),
    "holder_key": (CredentialPredicateUnsatisfied, "The secret key does not match the credential subject"),
    "nullifier": (CredentialPredicateUnsatisfied, "The nullifier does not match the holder key and context"),
}


def nullifier(subject: PublicKey, context: AuthenticationContext) -> HashOut:
    """hash_pad(encode(subject) || context): stable per holder and session, unlinkable to the credential."""
    return hash_pad([*subject.to_elements(), *context.to_elements()])


@dataclass(frozen=True)
class KycPredicate:
    """The bank's requirement on the credential fields.

    Attributes:
        nationality (str): Required nationality code.
        reference_date (date): Day at which the credential must be valid and the age is computed.
        minimum_age (int): Minimum age in years at `reference_date`.
    """

    nationality: str
    reference_date: date
    minimum_age: int = 18

    @classmethod
    def from_config(cls, config: ProtocolConfig, reference_date: date) -> "KycPredicate":
        return cls(
            nationality=config.required_nationality, reference_date=reference_date, minimum_age=config.minimum_age
        )

    @property
    def birth_cutoff(self) -> date:
        """Latest birth date satisfying the minimum age."""
        return years_before(self.reference_date, self.minimum_age)

    def to_elements(self) -> list[int]:
        """nationality || reference day || birth cutoff day."""
        return [
            pack_nationality(self.nationality),
            days_since_origin(self.reference_date),
            days_since_origin(self.birth_cutoff),
        ]

    def is_satisfied_by(self, identity: IdentityFields) -> bool:
        """Plain evaluation of the predicate, outside any backend."""
        return (
            identity.nationality == self.nationality
            and identity.expiration_date > self.reference_date
            and identity.birth_date <= self.birth_cutoff
        )


@dataclass(frozen=True)
class PublicInputs:
    revocation_root: HashOut
    predicate: KycPredicate
    issuer: PublicKey
    context: AuthenticationContext
    nullifier: HashOut

    def to_list(self) -> list[int]:
        """The public-input vector, in circuit order."""
        return [
            *self.revocation_root.elements,
            *self.predicate.to_elements(),
            *self.issuer.to_elements(),
            *self.context.to_elements(),
            *self.nullifier.elements,
        ]


@dataclass(frozen=True)
class PrivateWitness:
    credential: Credential
    secret_key: SecretKey
    merkle_proof: MerkleProof
    signature: Signature


@dataclass(frozen=True)
class ComposedStatement:
    """Everything handed to the proof system for one proof request.

    Attributes:
        public_inputs (PublicInputs): The public inputs.
        circuit (CircuitDescription): The constraint system.
        assignment (list[int]): The value of every wire.
        verdict (Verdict): Whether the witness satisfies the statement, and why not.
    """

    public_inputs: PublicInputs
    circuit: CircuitDescription
    assignment: list[int]
    verdict: Verdict

    def public_vector(self) -> list[int]:
        return [self.assignment[wire] for _, wire in self.circuit.public]


def _dedupe(labels: list[str]) -> list[str]:
    out = []
    for label in labels:
        if label not in out:
            out.append(label)
    return out


def verdict_from_labels(labels: list[str]) -> Verdict:
    """Map failed assertion labels to a verdict, one error per top-level scope."""
    errors = []
    seen = set()
    for label in labels:
        top = label.split("/")[0]
        if top in seen:
            continue
        seen.add(top)
        kind, message = FAILURE_KINDS.get(top, (ZkycError, f"Assertion failed in {label}"))
        errors.append(kind(message))
    return Verdict.failure(*errors) if errors else Verdict.success()


class ProofStatement:
    """One proof request: the public parameters fixed by the verifier and the session.

    Args:
        issuer (PublicKey): The issuer key; its fixed-base tables are constants of the circuit.
        predicate (KycPredicate): The KYC predicate.
        context (AuthenticationContext): The session the proof is bound to.
        revocation_root (HashOut): The published root the credential must belong to.
        tree_depth (int): Depth of the revocation tree.
    """

    def __init__(
        self,
        issuer: PublicKey,
        predicate: KycPredicate,
        context: AuthenticationContext,
        revocation_root: HashOut,
        tree_depth: int,
    ):
        self.issuer = issuer
        self.predicate = predicate
        self.context = context
        self.revocation_root = revocation_root
        self.tree_depth = tree_depth

    def public_inputs(self, witness: PrivateWitness) -> PublicInputs:
        return PublicInputs(
            revocation_root=self.revocation_root,
            predicate=self.predicate,
            issuer=self.issuer,
            context=self.context,
            nullifier=nullifier(witness.credential.subject, self.context),
        )

    def _check_shape(self, witness: PrivateWitness) -> None:
        if witness.merkle_proof.depth != self.tree_depth:
            msg = f"The Merkle proof has depth {witness.merkle_proof.depth}, the tree has depth {self.tree_depth}"
            raise ValueError(msg)

    def program(self, be: ArithmeticBackend, witness: PrivateWitness) -> None:
        """The statement, over any backend."""
        self._check_shape(witness)
        public = self.public_inputs(witness)
        curve = CurveOps(be)
        schnorr = SchnorrGadget(be)
        poseidon = Poseidon(be)

        root = [be.public_input(f"revocation_root[{i}]", v) for i, v in enumerate(public.revocation_root.elements)]
        nationality, reference, cutoff = (
            be.public_input(name, v)
            for name, v in zip(("nationality", "reference_day", "birth_cutoff_day"), self.predicate.to_elements())
        )
        issuer_w = [be.public_input(f"issuer[{i}]", v) for i, v in enumerate(self.issuer.to_elements())]
        context = [be.public_input(f"context[{i}]", v) for i, v in enumerate(self.context.to_elements())]
        nullifier_out = [be.public_input(f"nullifier[{i}]", v) for i, v in enumerate(public.nullifier.elements)]

        credential = [be.witness(v) for v in witness.credential.to_elements()]

        with be.scope("predicate"):
            be.assert_equal(credential[field_slice("nationality")][0], nationality)
            birth = credential[field_slice("birth_date")][0]
            expiration = credential[field_slice("expiration_date")][0]
            be.assert_range(birth, DATE_BITS)
            be.assert_range(expiration, DATE_BITS)
            # expiration > reference
            be.assert_range(be.sub(be.sub(expiration, reference), be.one()), DATE_BITS)
            # birth <= cutoff
            be.assert_range(be.sub(cutoff, birth), DATE_BITS)

        with be.scope("issuer"):
            for claimed, public_limb, limb in zip(credential[field_slice("issuer")], issuer_w, self.issuer.to_elements()):
                be.assert_equal(public_limb, be.constant(limb))
                be.assert_equal(claimed, public_limb)

        commitment = commit_elements(be, credential)

        with be.scope("signature"):
            r_w = Gfp5Ops(be).witness(witness.signature.r.encode().limbs)
            s_bits = schnorr.scalar_bits(witness.signature.s)
            be.assert_equal(schnorr.verify(self.issuer, commitment, r_w, s_bits), be.one())

        with be.scope("revocation"):
            leaf = poseidon.hash_no_pad(commitment)
            siblings = [[be.witness(v) for v in s.elements] for s in witness.merkle_proof.siblings]
            path_bits = [be.bit(b) for b in witness.merkle_proof.path_bits]
            be.assert_equal(MerkleGadget(be).verify(root, leaf, siblings, path_bits), be.one())

        subject_w = credential[field_slice("subject")]
        with be.scope("holder_key"):
            sk_bits = schnorr.scalar_bits(witness.secret_key.scalar)
            subject = curve.fixed_base_mul(sk_bits, fixed_base_table(GENERATOR))
            be.assert_equal(curve.encodes_to(subject, subject_w), be.one())

        with be.scope("nullifier"):
            for computed, claimed in zip(poseidon.hash_pad([*subject_w, *context]), nullifier_out):
                be.assert_equal(computed, claimed)

    def evaluate(self, witness: PrivateWitness) -> Verdict:
        """Run the statement natively and report which parts fail."""
        native = NativeBackend(record_failures=True)
        self.program(native, witness)
        return verdict_from_labels(native.failures)

    def build(self, witness: PrivateWitness) -> CircuitBuilder:
        builder = CircuitBuilder()
        self.program(builder, witness)
        logger.debug(f"Statement circuit: {builder.n_constraints} constraints, {len(builder.values)} wires")
        return builder

    def compose(self, witness: PrivateWitness) -> ComposedStatement:
        """Produce the circuit, the wire assignment and the public inputs for `witness`.

        The statement is executed natively and on the circuit builder; the constraint check must fail exactly
        where the native execution fails.

        Raises:
            CircuitWitnessInconsistent: If the native and the circuit execution disagree.
        """
        native = NativeBackend(record_failures=True)
        self.program(native, witness)
        native_labels = _dedupe(native.failures)

        builder = self.build(witness)
        circuit_labels = builder.check()

        if native_labels != circuit_labels:
            msg = f"Native failures {native_labels} differ from circuit failures {circuit_labels}"
            logger.error(msg)
            raise CircuitWitnessInconsistent(msg, native=native_labels, circuit=circuit_labels)
        if list(native.public_inputs.values()) != builder.public_values():
            msg = "Native and circuit public inputs differ"
            logger.error(msg)
            raise CircuitWitnessInconsistent(msg)

        verdict = verdict_from_labels(native_labels)
        if not verdict:
            logger.info(f"Statement not satisfied: {', '.join(native_labels)}")
        return ComposedStatement(
            public_inputs=self.public_inputs(witness),
            circuit=builder.description(),
            assignment=list(builder.values),
            verdict=verdict,
        )

    def placeholder_witness(self) -> PrivateWitness:
        """A well-formed witness carrying no secret, used to derive the circuit shape."""
        identity = IdentityFields(
            first_name="",
            family_name="",
            birth_date=ORIGIN,
            place_of_birth="",
            gender=Gender.M,
            nationality="",
            passport_number="",
            expiration_date=ORIGIN,
        )
        subject = PublicKey(GENERATOR)
        return PrivateWitness(
            credential=Credential(identity=identity, issuer=self.issuer, subject=subject),
            secret_key=SecretKey(Scalar(1)),
            merkle_proof=MerkleProof(
                leaf=HashOut.zero(),
                siblings=(HashOut.zero(),) * self.tree_depth,
                path_bits=(0,) * self.tree_depth,
                root_version=0,
            ),
            signature=Signature(r=GENERATOR, s=Scalar(1)),
        )

    def circuit(self) -> CircuitDescription:
        """The constraint system of this statement, as rebuilt by a verifier.

        The structure of the circuit does not depend on witness values, so building it on a placeholder
        witness yields the same description as the prover's.
        """
        return self.build(self.placeholder_witness()).description()
