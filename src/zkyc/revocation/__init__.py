"""Revocation accumulator.

This package contains the following modules:
- `proof`: Merkle membership proofs, their encoding and the path-recomputation gadget.
- `tree`: the versioned single-writer revocation tree, its snapshots and the published root log.

Usage example:
    >>> from zkyc.hash.poseidon import HashOut
    >>> from zkyc.revocation.tree import RevocationTree
    >>>
    >>> tree = RevocationTree(depth=4)
    >>> leaf = HashOut((1, 2, 3, 4))
    >>> tree.insert(leaf)
    >>> record = tree.commit()
    >>> tree.root_log.check(tree.fetch_current_path(leaf)).ok
    True
"""
