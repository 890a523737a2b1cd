"""Algebraic hashing.

This package contains the following modules:
- `poseidon`: the Poseidon permutation, its sponge constructions and the Fiat-Shamir challenge derivation.
"""
