from dataclasses import dataclass
from datetime import date

import pytest

from zkyc.config import ProtocolConfig
from zkyc.credential.issuance import Issuer, issue, verify_issuance
from zkyc.credential.model import (
    CREDENTIAL_LENGTH,
    Credential,
    Gender,
    IdentityFields,
    field_slice,
    is_french_passport_number,
    pack_passport_number,
    unpack_passport_number,
)
from zkyc.encoding import days_since_origin, pack_string, unpack_string, years_before
from zkyc.hash.poseidon import hash_pad
from zkyc.revocation.proof import verify_membership
from zkyc.revocation.tree import RevocationTree
from zkyc.schnorr.keys import KeyPair

IDENTITY = IdentityFields(
    first_name="Marie",
    family_name="Curie",
    birth_date=date(1990, 11, 7),
    place_of_birth="Paris",
    gender=Gender.F,
    nationality="FRA",
    passport_number="12AB34567",
    expiration_date=date(2030, 1, 1),
)


@dataclass
class CredentialEncoding:
    test_data = {
        "test_invalid_identity": [
            {"changes": {"first_name": "x" * 21}, "match": "longer"},
            {"changes": {"place_of_birth": "Zürich"}, "match": "ASCII"},
            {"changes": {"nationality": "FRANCE"}, "match": "longer"},
            {"changes": {"passport_number": "1234567890"}, "match": "passport"},
            {"changes": {"passport_number": "AB1234567"}, "match": "French"},
            {"changes": {"birth_date": date(1899, 12, 31)}, "match": "before"},
            {"changes": {"expiration_date": date(1980, 1, 1)}, "match": "precedes"},
        ],
        "test_french_passport_number": [
            {"number": "12AB34567", "expected": True},
            {"number": "00ZZ00000", "expected": True},
            {"number": "12ab34567", "expected": False},
            {"number": "1AB234567", "expected": False},
            {"number": "12AB3456", "expected": False},
        ],
    }


def test_layout():
    assert CREDENTIAL_LENGTH == 32
    assert field_slice("first_name") == slice(0, 5)
    assert field_slice("birth_date") == slice(10, 11)
    assert field_slice("nationality") == slice(17, 18)
    assert field_slice("passport_number") == slice(18, 21)
    assert field_slice("expiration_date") == slice(21, 22)
    assert field_slice("issuer") == slice(22, 27)
    assert field_slice("subject") == slice(27, 32)
    with pytest.raises(KeyError):
        field_slice("email")


def test_encoding():
    issuer, subject = KeyPair.generate(), KeyPair.generate()
    credential = Credential(identity=IDENTITY, issuer=issuer.public, subject=subject.public)
    elements = credential.to_elements()
    assert len(elements) == 32
    assert elements[0:5] == pack_string("Marie")
    assert elements[10] == days_since_origin(date(1990, 11, 7))
    assert elements[16] == 1
    assert elements[17] == int.from_bytes(b"FRA", "little")
    assert elements[22:27] == issuer.public.to_elements()
    assert elements[27:32] == subject.public.to_elements()
    assert credential.commitment() == hash_pad(elements)
    assert Credential.from_elements(elements) == credential


def test_from_elements_rejects_wrong_length():
    with pytest.raises(ValueError, match="32 elements"):
        Credential.from_elements([0] * 31)


@pytest.mark.parametrize(
    ("changes", "match"),
    [(case["changes"], case["match"]) for case in CredentialEncoding.test_data["test_invalid_identity"]],
)
def test_invalid_identity(changes, match):
    fields = {**IDENTITY.__dict__, **changes}
    with pytest.raises(ValueError, match=match):
        IdentityFields(**fields)


@pytest.mark.parametrize(
    ("number", "expected"),
    [(case["number"], case["expected"]) for case in CredentialEncoding.test_data["test_french_passport_number"]],
)
def test_french_passport_number(number, expected):
    assert is_french_passport_number(number) == expected


def test_passport_number_packing():
    packed = pack_passport_number("12AB34567")
    assert packed == [int.from_bytes(b"12AB", "little"), int.from_bytes(b"3456", "little"), ord("7")]
    assert unpack_passport_number(packed) == "12AB34567"
    assert unpack_passport_number(pack_passport_number("X1")) == "X1"


def test_string_and_date_helpers():
    assert unpack_string(pack_string("Paris")) == "Paris"
    assert days_since_origin(date(1900, 1, 1)) == 0
    assert days_since_origin(date(1900, 1, 2)) == 1
    assert years_before(date(2026, 5, 17), 18) == date(2008, 5, 17)
    assert years_before(date(2024, 2, 29), 1) == date(2023, 2, 28)
    assert years_before(date(2028, 2, 29), 4) == date(2024, 2, 29)


def test_issue_and_verify():
    issuer, subject = KeyPair.generate(), KeyPair.generate()
    credential, signature = issue(IDENTITY, subject.public, issuer.secret)
    assert credential.issuer == issuer.public
    assert verify_issuance(credential, signature, issuer.public)
    assert not verify_issuance(credential, signature, subject.public)
    assert not verify_issuance(credential.with_identity(nationality="DEU"), signature, issuer.public)


def test_issuer_does_not_need_the_subject_secret():
    issuer = Issuer(config=ProtocolConfig(tree_depth=4))
    subject = KeyPair.generate()
    credential, signature = issuer.issue(IDENTITY, subject.public)
    assert credential.subject == subject.public
    assert credential.leaf() not in issuer.tree
    record = issuer.publish()
    assert credential.leaf() in issuer.tree
    assert verify_membership(record.root, issuer.tree.fetch_current_path(credential.leaf()))
    assert verify_issuance(credential, signature, issuer.public_key)


def test_issuer_keeps_an_empty_tree_it_is_given():
    tree = RevocationTree(depth=4)
    assert len(tree) == 0
    issuer = Issuer(config=ProtocolConfig(tree_depth=4), tree=tree)
    assert issuer.tree is tree
    credential, _ = issuer.issue(IDENTITY, KeyPair.generate().public)
    record = issuer.publish()
    assert tree.version == record.version == 1
    assert credential.leaf() in tree


def test_revoke():
    issuer = Issuer(config=ProtocolConfig(tree_depth=4))
    credential, _ = issuer.issue(IDENTITY, KeyPair.generate().public)
    issuer.publish()
    issuer.revoke(credential)
    record = issuer.publish()
    assert record.version == 2
    assert credential.leaf() not in issuer.tree


def test_with_identity():
    credential, _ = issue(IDENTITY, KeyPair.generate().public, KeyPair.generate().secret)
    changed = credential.with_identity(nationality="A")
    assert changed.identity.nationality == "A"
    assert changed.identity.first_name == "Marie"
    assert changed.commitment() != credential.commitment()
