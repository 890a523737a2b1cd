"""Arithmetic backends over the Goldilocks base field.

Every gadget in zkyc (extension-field arithmetic, curve group law, Poseidon, Merkle paths, Schnorr verification)
is written once against :class:`ArithmeticBackend`. Running it on :class:`NativeBackend` computes plain values;
running it on :class:`zkyc.circuit.builder.CircuitBuilder` computes the same values and records the constraints
that enforce them.

Only the primitives (`constant`, `add`, `mul`, `mul_const`, `witness`, `assert_zero`) differ between backends.
Composite operations (`select`, `is_zero`, `split_bits`, ...) are defined here in terms of the primitives, so both
backends run the same gadget code. A backend may override a composite operation with an equivalent shortcut
(:class:`NativeBackend` computes `sub`, `neg`, `sum`, `linear_combination`, `exp_const` and `select` directly on
integers) as long as it returns the same value and makes the same assertions.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, TypeAlias

P = 0xFFFFFFFF00000001

Value: TypeAlias = Any


class ArithmeticBackend(ABC):
    """Capability set shared by the native and the circuit backend.

    Values are opaque to gadget code: they are produced and consumed only through the methods below. Bits are
    values constrained to {0, 1}.
    """

    def __init__(self):
        self._scopes: list[str] = []

    @property
    def label(self) -> str:
        """The current assertion label, built from the active scopes."""
        return "/".join(self._scopes) if self._scopes else "root"

    @contextmanager
    def scope(self, name: str) -> Iterator[None]:
        """Label the assertions made inside the `with` block."""
        self._scopes.append(name)
        try:
            yield
        finally:
            self._scopes.pop()

    # Primitives

    @abstractmethod
    def constant(self, value: int) -> Value:
        """Embed the integer `value` (reduced modulo p)."""

    @abstractmethod
    def add(self, a: Value, b: Value) -> Value:
        """Return a + b."""

    @abstractmethod
    def mul(self, a: Value, b: Value) -> Value:
        """Return a * b."""

    @abstractmethod
    def mul_const(self, a: Value, k: int) -> Value:
        """Return k * a for an integer constant k."""

    @abstractmethod
    def witness(self, value: int) -> Value:
        """Introduce a free value computed outside the constraint system (a hint)."""

    @abstractmethod
    def value_of(self, a: Value) -> int:
        """Return the concrete residue carried by `a`."""

    @abstractmethod
    def assert_zero(self, a: Value) -> None:
        """Require `a == 0`, labelled with the current scope."""

    @abstractmethod
    def public_input(self, name: str, value: int) -> Value:
        """Introduce the public input called `name`, assigned `value` by the verifier."""

    # Derived operations

    def zero(self) -> Value:
        return self.constant(0)

    def one(self) -> Value:
        return self.constant(1)

    def neg(self, a: Value) -> Value:
        return self.mul_const(a, P - 1)

    def sub(self, a: Value, b: Value) -> Value:
        return self.add(a, self.neg(b))

    def add_const(self, a: Value, k: int) -> Value:
        return self.add(a, self.constant(k))

    def square(self, a: Value) -> Value:
        return self.mul(a, a)

    def sum(self, values: Sequence[Value]) -> Value:
        """Return the sum of `values` (zero for an empty sequence)."""
        out = self.zero()
        for v in values:
            out = self.add(out, v)
        return out

    def linear_combination(self, terms: Sequence[tuple[int, Value]]) -> Value:
        """Return sum(k * v for k, v in terms)."""
        return self.sum([self.mul_const(v, k) for k, v in terms])

    def exp_const(self, a: Value, exponent: int) -> Value:
        """Return a^exponent by square-and-multiply, exponent a non-negative integer constant."""
        out = self.one()
        base = a
        first = True
        while exponent > 0:
            if exponent & 1:
                out = base if first else self.mul(out, base)
                first = False
            exponent >>= 1
            if exponent:
                base = self.square(base)
        return out

    def assert_equal(self, a: Value, b: Value) -> None:
        self.assert_zero(self.sub(a, b))

    def assert_bool(self, a: Value) -> None:
        """Require `a` to be 0 or 1."""
        self.assert_zero(self.mul(a, self.sub(a, self.one())))

    def bit(self, value: int) -> Value:
        """Introduce a hinted bit and constrain it to {0, 1}."""
        b = self.witness(value)
        self.assert_bool(b)
        return b

    def not_(self, bit: Value) -> Value:
        return self.sub(self.one(), bit)

    def and_(self, a: Value, b: Value) -> Value:
        return self.mul(a, b)

    def or_(self, a: Value, b: Value) -> Value:
        return self.sub(self.add(a, b), self.mul(a, b))

    def select(self, bit: Value, a: Value, b: Value) -> Value:
        """Return `a` if `bit` is 1 and `b` if it is 0."""
        return self.add(b, self.mul(bit, self.sub(a, b)))

    def is_zero(self, a: Value) -> Value:
        """Return the bit `a == 0`.

        The prover supplies `inv = a^-1` (or 0). The output `1 - a * inv` is forced to 0 when `a != 0` by the
        constraint `a * out == 0`, and to 1 when `a == 0`.
        """
        value = self.value_of(a)
        inv = self.witness(pow(value, P - 2, P) if value else 0)
        out = self.sub(self.one(), self.mul(a, inv))
        self.assert_zero(self.mul(a, out))
        return out

    def is_equal(self, a: Value, b: Value) -> Value:
        return self.is_zero(self.sub(a, b))

    def all_of(self, bits: Sequence[Value]) -> Value:
        """Return the conjunction of `bits` (1 for an empty sequence)."""
        out = self.one()
        for b in bits:
            out = self.and_(out, b)
        return out

    def from_bits(self, bits: Sequence[Value]) -> Value:
        """Recombine little-endian bits into a field element."""
        return self.linear_combination([(1 << i, b) for i, b in enumerate(bits)])

    def split_bits(self, a: Value, n_bits: int) -> list[Value]:
        """Decompose `a` into `n_bits` little-endian bits, requiring `a < 2^n_bits`.

        Args:
            a: The value to decompose.
            n_bits (int): Number of bits, at most 63 so that the recomposition cannot wrap modulo p.

        Returns:
            The list of bits, least significant first.
        """
        if not 0 < n_bits < 64:
            msg = f"Cannot split into {n_bits} bits, the decomposition must stay below p"
            raise ValueError(msg)
        value = self.value_of(a)
        bits = [self.bit((value >> i) & 1) for i in range(n_bits)]
        self.assert_equal(self.from_bits(bits), a)
        return bits

    def split_u64(self, a: Value) -> list[Value]:
        """Decompose `a` into its canonical 64 little-endian bits.

        A 64-bit decomposition can represent both `x` and `x + p` when `x < 2^32 - 1`. The canonical one is
        selected by requiring that the high 32 bits are not all set unless the low 32 bits are all zero, which
        is exactly the condition `sum(bits) < p`.
        """
        value = self.value_of(a)
        bits = [self.bit((value >> i) & 1) for i in range(64)]
        self.assert_equal(self.from_bits(bits), a)
        high_all_ones = self.all_of(bits[32:])
        low_is_zero = self.is_zero(self.from_bits(bits[:32]))
        self.assert_zero(self.mul(high_all_ones, self.not_(low_is_zero)))
        return bits

    def assert_range(self, a: Value, n_bits: int) -> None:
        """Require `0 <= a < 2^n_bits` (as an integer representative)."""
        self.split_bits(a, n_bits)

    def assert_bits_lt(self, bits: Sequence[Value], bound: int) -> None:
        """Require the integer with little-endian `bits` to be strictly smaller than the constant `bound`.

        The comparison runs from the most significant bit down, tracking whether the prefixes are still equal.
        """
        if bound >= 1 << len(bits):
            return
        bound_bits = [(bound >> i) & 1 for i in range(len(bits))]
        equal = self.one()
        less = self.zero()
        for b, c in zip(reversed(bits), reversed(bound_bits)):
            if c:
                # b < c here iff b == 0
                less = self.add(less, self.mul(equal, self.not_(b)))
                equal = self.mul(equal, b)
            else:
                equal = self.mul(equal, self.not_(b))
        self.assert_equal(less, self.one())


class NativeBackend(ArithmeticBackend):
    """Plain modular arithmetic on Python integers.

    Args:
        record_failures (bool): If `True`, failed assertions are appended to `failures` (as their scope label)
            and execution continues. Otherwise a failed assertion raises `ValueError`.
    """

    is_native = True

    def __init__(self, record_failures: bool = False):
        super().__init__()
        self.record_failures = record_failures
        self.failures: list[str] = []
        self.public_inputs: dict[str, int] = {}

    def constant(self, value: int) -> int:
        return value % P

    def add(self, a: int, b: int) -> int:
        return (a + b) % P

    def sub(self, a: int, b: int) -> int:
        return (a - b) % P

    def neg(self, a: int) -> int:
        return -a % P

    def mul(self, a: int, b: int) -> int:
        return (a * b) % P

    def mul_const(self, a: int, k: int) -> int:
        return (a * k) % P

    def sum(self, values: Sequence[int]) -> int:
        return sum(values) % P

    def linear_combination(self, terms: Sequence[tuple[int, int]]) -> int:
        return sum(k * v for k, v in terms) % P

    def exp_const(self, a: int, exponent: int) -> int:
        return pow(a, exponent, P)

    def select(self, bit: int, a: int, b: int) -> int:
        return a if bit else b

    def witness(self, value: int) -> int:
        return value % P

    def value_of(self, a: int) -> int:
        return a

    def assert_zero(self, a: int) -> None:
        if a % P == 0:
            return
        if self.record_failures:
            self.failures.append(self.label)
            return
        msg = f"Native assertion failed in {self.label}"
        raise ValueError(msg)

    def public_input(self, name: str, value: int) -> int:
        self.public_inputs[name] = value % P
        return value % P


NATIVE = NativeBackend()
