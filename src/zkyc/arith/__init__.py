"""Field, extension-field, scalar and curve arithmetic.

This package contains the following modules:
- `backend`: the arithmetic-backend interface and the native backend.
- `field`: the Goldilocks field F_p.
- `gfp5`: the quintic extension F_p^5 = F_p[z] / (z^5 - 3).
- `scalar`: integers modulo the EcGFp5 group order.
- `curve`: the EcGFp5 group law, scalar multiplication and point encoding.

Usage example:
    >>> from zkyc.arith.curve import GENERATOR, Point
    >>> from zkyc.arith.scalar import Scalar
    >>>
    >>> k = Scalar.random()
    >>> public = GENERATOR * k
    >>> Point.decode(public.to_bytes()) == public
    True
"""
