"""zkyc: A Python package for zero-knowledge KYC credentials.

The `zkyc` package provides the cryptographic engine of a KYC protocol between three roles: an issuer
(government) that signs identity credentials and maintains a revocation tree, a holder (citizen) that proves
properties of its credential, and a verifier (bank) that checks those proofs against published roots. It contains
the arithmetic of the EcGFp5 curve over the degree-5 extension of the Goldilocks field, the Poseidon hash, Schnorr
signatures, the Merkle revocation tree, the credential model and the proof statement, whose checks run both
natively and as rank-1 constraints.

Usage example:
    Issue a credential and prove that its holder is an adult French citizen:

    >>> from datetime import date
    >>> from zkyc.circuit.proof_system import TransparentProofSystem
    >>> from zkyc.circuit.statement import KycPredicate, PrivateWitness, ProofStatement
    >>> from zkyc.credential.issuance import Issuer
    >>> from zkyc.credential.model import Gender, IdentityFields
    >>> from zkyc.config import ProtocolConfig
    >>> from zkyc.schnorr.authentication import AuthenticationContext
    >>> from zkyc.schnorr.keys import KeyPair
    >>>
    >>> config = ProtocolConfig(tree_depth=8)
    >>> issuer = Issuer(config=config)
    >>> holder = KeyPair.generate()
    >>> identity = IdentityFields(
    >>>     first_name="Marie",
    >>>     family_name="Curie",
    >>>     birth_date=date(1990, 11, 7),
    >>>     place_of_birth="Paris",
    >>>     gender=Gender.F,
    >>>     nationality="FRA",
    >>>     passport_number="12AB34567",
    >>>     expiration_date=date(2030, 1, 1),
    >>> )
    >>> credential, signature = issuer.issue(identity, holder.public)
    >>> record = issuer.publish()
    >>>
    >>> statement = ProofStatement(
    >>>     issuer=issuer.public_key,
    >>>     predicate=KycPredicate.from_config(config, date(2026, 1, 1)),
    >>>     context=AuthenticationContext(service="bank", nonce="session-1"),
    >>>     revocation_root=record.root,
    >>>     tree_depth=config.tree_depth,
    >>> )
    >>> composed = statement.compose(
    >>>     PrivateWitness(
    >>>         credential=credential,
    >>>         secret_key=holder.secret,
    >>>         merkle_proof=issuer.tree.fetch_current_path(credential.leaf()),
    >>>         signature=signature,
    >>>     )
    >>> )
    >>> proof = TransparentProofSystem().prove(composed.circuit, composed.assignment)
    >>> TransparentProofSystem().verify(statement.circuit(), composed.public_inputs.to_list(), proof)
    True
"""
