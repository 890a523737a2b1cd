"""Schnorr signatures over EcGFp5.

This package contains the following modules:
- `keys`: secret keys, public keys and key pairs.
- `signature`: signing, verification (native and as a backend gadget) and batch verification.
- `authentication`: proof of key possession towards a service.

Usage example:
    >>> from zkyc.schnorr.keys import keygen
    >>> from zkyc.schnorr.signature import sign, verify
    >>>
    >>> keys = keygen()
    >>> signature = sign(keys.secret, [1, 2, 3])
    >>> verify(keys.public, [1, 2, 3], signature)
    True
"""
