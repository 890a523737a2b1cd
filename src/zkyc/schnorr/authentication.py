"""Proof of possession of a credential key towards a service.

The holder signs the context (service name, session nonce) with the secret key bound to its credential. The
same context is the public session input of the proof statement, where it also feeds the nullifier.
"""

from dataclasses import dataclass

from zkyc.encoding import pack_string
from zkyc.schnorr.keys import PublicKey, SecretKey
from zkyc.schnorr.signature import Signature, sign, verify


@dataclass(frozen=True)
class AuthenticationContext:
    """A service name and a session nonce, each at most 20 ASCII characters."""

    service: str
    nonce: str

    def __post_init__(self):
        # Validates both strings.
        self.to_elements()

    def to_elements(self) -> list[int]:
        """The ten field elements service (5) || nonce (5)."""
        return [*pack_string(self.service), *pack_string(self.nonce)]


@dataclass(frozen=True)
class Authentication:
    signature: Signature

    @classmethod
    def create(cls, secret_key: SecretKey, context: AuthenticationContext) -> "Authentication":
        return cls(signature=sign(secret_key, context.to_elements()))

    def verify(self, public_key: PublicKey, context: AuthenticationContext) -> bool:
        """Return `True` if the authentication was produced by the owner of `public_key` for `context`."""
        return verify(public_key, context.to_elements(), self.signature)

    def to_bytes(self) -> bytes:
        return self.signature.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "Authentication":
        return cls(signature=Signature.from_bytes(data))
