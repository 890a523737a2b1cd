"""Credential issuance by the government and verification of issued credentials."""

import logging
from datetime import datetime

from zkyc.config import ProtocolConfig
from zkyc.credential.model import Credential, IdentityFields
from zkyc.revocation.tree import RevocationTree, RootRecord
from zkyc.schnorr.keys import KeyPair, PublicKey, SecretKey
from zkyc.schnorr.signature import Signature, sign, verify

logger = logging.getLogger(__name__)


def issue(
    identity: IdentityFields, subject_public_key: PublicKey, issuer_secret_key: SecretKey
) -> tuple[Credential, Signature]:
    """Build a credential and sign its commitment with the issuer key.

    Args:
        identity (IdentityFields): The verified identity data.
        subject_public_key (PublicKey): The holder's public key; the issuer never sees the secret key.
        issuer_secret_key (SecretKey): The issuer's signing key.

    Returns:
        The credential and the issuer's signature over its commitment.
    """
    credential = Credential(identity=identity, issuer=issuer_secret_key.public_key(), subject=subject_public_key)
    signature = sign(issuer_secret_key, credential.commitment().to_list())
    return credential, signature


def verify_issuance(credential: Credential, signature: Signature, issuer_public_key: PublicKey) -> bool:
    """Return `True` if `credential` names `issuer_public_key` as issuer and carries its valid signature."""
    if credential.issuer != issuer_public_key:
        return False
    return verify(issuer_public_key, credential.commitment().to_list(), signature)


class Issuer:
    """The issuing authority: its key pair and the revocation tree it alone updates.

    Args:
        keys (KeyPair | None): The issuer key pair. Defaults to a fresh one.
        config (ProtocolConfig | None): Protocol configuration.
        tree (RevocationTree | None): An existing revocation tree. Defaults to an empty tree of
            `config.tree_depth`.
    """

    def __init__(
        self, keys: KeyPair | None = None, config: ProtocolConfig | None = None, tree: RevocationTree | None = None
    ):
        self.config = config or ProtocolConfig()
        self.keys = keys or KeyPair.generate()
        self.tree = tree if tree is not None else RevocationTree(config=self.config)

    @property
    def public_key(self) -> PublicKey:
        return self.keys.public

    def issue(self, identity: IdentityFields, subject_public_key: PublicKey) -> tuple[Credential, Signature]:
        """Issue a credential and stage its leaf for the next published batch."""
        credential, signature = issue(identity, subject_public_key, self.keys.secret)
        self.tree.stage_insert(credential.leaf())
        logger.info("Credential issued, leaf staged for the next revocation-tree batch")
        return credential, signature

    def revoke(self, credential: Credential) -> None:
        """Stage the removal of a credential's leaf."""
        self.tree.stage_remove(credential.leaf())
        logger.info("Credential revocation staged for the next revocation-tree batch")

    def publish(self, timestamp: datetime | None = None) -> RootRecord:
        """Commit the staged batch and publish the new root."""
        return self.tree.commit(timestamp)
