"""Error hierarchy and typed verification results for zkyc.

Malformed inputs (bad encodings, points off the curve, inversion of zero) raise. Expected verification
failures (bad signature, stale Merkle path, unsatisfied KYC predicate) are reported through :class:`Verdict` so
the caller decides whether to retry or reject. A disagreement between native and in-circuit execution is a
defect and always raises :class:`CircuitWitnessInconsistent`.
"""

from dataclasses import dataclass


class ZkycError(Exception):
    """Base exception for all zkyc errors."""


class InvalidEncoding(ZkycError):
    """Raised when a byte string is not the canonical encoding of a field element, scalar or point.

    This indicates:
    - Wrong length for the fixed-width encoding
    - A limb or scalar that is not reduced modulo its modulus
    """


class PointNotOnCurve(ZkycError):
    """Raised when candidate coordinates do not describe a point of the prime-order group."""


class ZeroInversion(ZkycError, ZeroDivisionError):
    """Raised when inverting the additive identity of a field."""


class SignatureInvalid(ZkycError):
    """The Schnorr verification equation does not hold."""


class MerkleProofInvalid(ZkycError):
    """The recomputed Merkle root does not match the expected one.

    This indicates:
    - A tampered leaf or sibling
    - A path fetched before the latest tree update
    - A root version that was retired or never published
    """


class CredentialPredicateUnsatisfied(ZkycError):
    """A credential field does not meet the KYC predicate, or the holder key does not match."""


class CircuitWitnessInconsistent(ZkycError):
    """Native execution and constraint re-execution disagree.

    This is an internal defect in the translation of a gadget to constraints and is never a user error.
    """

    def __init__(self, message: str, native: list[str] | None = None, circuit: list[str] | None = None):
        super().__init__(message)
        self.native = native or []
        self.circuit = circuit or []


class ConfigError(ZkycError):
    """Invalid protocol configuration."""


@dataclass(frozen=True)
class Verdict:
    """Outcome of a fallible check.

    Attributes:
        ok (bool): `True` if every check passed.
        errors (tuple[ZkycError, ...]): One error instance per failed check, empty when `ok`.
    """

    ok: bool
    errors: tuple[ZkycError, ...] = ()

    @classmethod
    def success(cls) -> "Verdict":
        return cls(ok=True)

    @classmethod
    def failure(cls, *errors: ZkycError) -> "Verdict":
        return cls(ok=False, errors=tuple(errors))

    def __bool__(self) -> bool:
        return self.ok

    def raise_for_errors(self) -> None:
        """Raise the first recorded error, if any."""
        if not self.ok:
            raise self.errors[0]

    def has(self, kind: type[ZkycError]) -> bool:
        """Return `True` if one of the recorded errors is an instance of `kind`."""
        return any(isinstance(error, kind) for error in self.errors)
