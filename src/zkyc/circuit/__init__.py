"""Circuits and the proof statement.

This package contains the following modules:
- `builder`: the rank-1 constraint system builder, an arithmetic backend whose values are linear combinations.
- `statement`: the KYC proof statement, its public inputs and private witness.
- `proof_system`: the proof-system interface and a transparent reference implementation.
"""
