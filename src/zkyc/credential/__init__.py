"""Identity credentials.

This package contains the following modules:
- `model`: identity fields, credentials, their canonical encoding and commitment.
- `issuance`: issuing and verifying credentials, and the `Issuer` role.
"""
