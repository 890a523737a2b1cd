"""Identity credentials and their canonical field-element encoding.

The commitment of a credential is `hash_pad` of 32 base-field elements, in this order:

    ====================  ========  ============================================
    field                 elements  encoding
    ====================  ========  ============================================
    first name            5         20 ASCII chars, 4 per element (u32 LE)
    family name           5         idem
    date of birth         1         days since 1900-01-01
    place of birth        5         20 ASCII chars
    gender                1         M = 0, F = 1
    nationality           1         country code, up to 4 ASCII chars (u32 LE)
    passport number       3         9 ASCII chars: u32 LE, u32 LE, last byte
    expiration date       1         days since 1900-01-01
    issuer                5         issuer public key encoding
    subject public key    5         holder public key encoding
    ====================  ========  ============================================
"""

import re
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum

from zkyc.arith.backend import ArithmeticBackend, Value
from zkyc.encoding import date_from_days, days_since_origin, pack_string, unpack_string
from zkyc.hash.poseidon import HashOut, Poseidon, hash_pad
from zkyc.revocation.proof import revocation_leaf
from zkyc.schnorr.keys import PublicKey

PASSPORT_NUMBER_LENGTH = 9
FRENCH_PASSPORT_NUMBER = re.compile(r"\d{2}[A-Z]{2}\d{5}")
FRENCH_NATIONALITY_CODES = ("FR", "FRA")

CREDENTIAL_LAYOUT = (
    ("first_name", 5),
    ("family_name", 5),
    ("birth_date", 1),
    ("place_of_birth", 5),
    ("gender", 1),
    ("nationality", 1),
    ("passport_number", 3),
    ("expiration_date", 1),
    ("issuer", 5),
    ("subject", 5),
)
CREDENTIAL_LENGTH = sum(length for _, length in CREDENTIAL_LAYOUT)


def field_slice(name: str) -> slice:
    """Position of a credential field in the encoded element list."""
    offset = 0
    for field_name, length in CREDENTIAL_LAYOUT:
        if field_name == name:
            return slice(offset, offset + length)
        offset += length
    msg = f"{name} is not a credential field"
    raise KeyError(msg)


class Gender(Enum):
    M = 0
    F = 1


def pack_nationality(code: str) -> int:
    return pack_string(code, limbs=1)[0]


def pack_passport_number(number: str) -> list[int]:
    """Pack up to 9 ASCII characters into three elements (u32 LE, u32 LE, last byte)."""
    if not number.isascii() or len(number) > PASSPORT_NUMBER_LENGTH:
        msg = f"{number!r} is not an ASCII passport number of at most {PASSPORT_NUMBER_LENGTH} characters"
        raise ValueError(msg)
    raw = number.encode("ascii").ljust(PASSPORT_NUMBER_LENGTH, b"\x00")
    return [int.from_bytes(raw[0:4], "little"), int.from_bytes(raw[4:8], "little"), raw[8]]


def unpack_passport_number(elements: list[int]) -> str:
    raw = elements[0].to_bytes(4, "little") + elements[1].to_bytes(4, "little") + bytes([elements[2]])
    return raw.rstrip(b"\x00").decode("ascii")


def is_french_passport_number(number: str) -> bool:
    """Two digits, two uppercase letters, five digits."""
    return FRENCH_PASSPORT_NUMBER.fullmatch(number) is not None


@dataclass(frozen=True)
class IdentityFields:
    """The identity data checked by the issuer before issuance."""

    first_name: str
    family_name: str
    birth_date: date
    place_of_birth: str
    gender: Gender
    nationality: str
    passport_number: str
    expiration_date: date

    def __post_init__(self):
        for name in ("first_name", "family_name", "place_of_birth"):
            pack_string(getattr(self, name))
        pack_nationality(self.nationality)
        pack_passport_number(self.passport_number)
        if self.nationality in FRENCH_NATIONALITY_CODES and not is_french_passport_number(self.passport_number):
            msg = f"{self.passport_number!r} is not a French passport number"
            raise ValueError(msg)
        days_since_origin(self.birth_date)
        if self.expiration_date < self.birth_date:
            msg = "The expiration date precedes the birth date"
            raise ValueError(msg)


@dataclass(frozen=True)
class Credential:
    """An issued credential: identity fields bound to the issuer and to the holder's public key."""

    identity: IdentityFields
    issuer: PublicKey
    subject: PublicKey

    def to_elements(self) -> list[int]:
        """The 32 elements hashed into the commitment, in `CREDENTIAL_LAYOUT` order."""
        identity = self.identity
        return [
            *pack_string(identity.first_name),
            *pack_string(identity.family_name),
            days_since_origin(identity.birth_date),
            *pack_string(identity.place_of_birth),
            identity.gender.value,
            pack_nationality(identity.nationality),
            *pack_passport_number(identity.passport_number),
            days_since_origin(identity.expiration_date),
            *self.issuer.to_elements(),
            *self.subject.to_elements(),
        ]

    @classmethod
    def from_elements(cls, elements: list[int]) -> "Credential":
        """Inverse of :meth:`to_elements`.

        Raises:
            ValueError: If an element does not decode to a valid field value.
            InvalidEncoding: If a public key limb is not canonical.
        """
        if len(elements) != CREDENTIAL_LENGTH:
            msg = f"A credential has {CREDENTIAL_LENGTH} elements, got {len(elements)}"
            raise ValueError(msg)

        def part(name):
            return list(elements[field_slice(name)])

        identity = IdentityFields(
            first_name=unpack_string(part("first_name")),
            family_name=unpack_string(part("family_name")),
            birth_date=date_from_days(part("birth_date")[0]),
            place_of_birth=unpack_string(part("place_of_birth")),
            gender=Gender(part("gender")[0]),
            nationality=unpack_string(part("nationality")),
            passport_number=unpack_passport_number(part("passport_number")),
            expiration_date=date_from_days(part("expiration_date")[0]),
        )
        return cls(
            identity=identity,
            issuer=PublicKey.from_elements(part("issuer")),
            subject=PublicKey.from_elements(part("subject")),
        )

    def commitment(self) -> HashOut:
        return hash_pad(self.to_elements())

    def leaf(self) -> HashOut:
        """The revocation-tree leaf of this credential."""
        return revocation_leaf(self.commitment())

    def with_identity(self, **changes) -> "Credential":
        """Return a copy with some identity fields replaced."""
        return replace(self, identity=replace(self.identity, **changes))


def commit_elements(backend: ArithmeticBackend, elements: list[Value]) -> list[Value]:
    """The credential commitment over a backend."""
    return Poseidon(backend).hash_pad(elements)
