"""A rank-1 constraint system builder implementing the arithmetic-backend interface.

Values handled by the builder are :class:`LinearCombination` objects over wires. Additions and multiplications by
constants only rewrite linear combinations; a multiplication of two non-constant values allocates a new wire `c`
and records the constraint `a * b = c`. Every constraint has the form `<A, w> * <B, w> = <C, w>` and carries the
label of the scope it was emitted in.

Each value also carries its concrete witness value, so building the circuit for a given witness produces the full
wire assignment at the same time.
"""

import hashlib
import json
from array import array
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TypeAlias

from zkyc.arith.backend import P, ArithmeticBackend

# Linear combinations longer than this are replaced by a fresh wire.
MAX_TERMS = 24

FrozenCombination: TypeAlias = tuple[array, array, int]


class LinearCombination:
    """sum(coefficient * wire) + constant, together with its value under the current assignment."""

    __slots__ = ("terms", "constant", "value")

    def __init__(self, terms: dict[int, int], constant: int, value: int):
        self.terms = terms
        self.constant = constant
        self.value = value

    @property
    def is_constant(self) -> bool:
        return not self.terms

    def freeze(self) -> FrozenCombination:
        wires = array("q", self.terms.keys())
        coefficients = array("Q", self.terms.values())
        return (wires, coefficients, self.constant)

    def __repr__(self) -> str:
        return f"LinearCombination({self.terms}, {self.constant}, value={self.value})"


def _evaluate(combination: FrozenCombination, values: Sequence[int]) -> int:
    wires, coefficients, constant = combination
    return (sum(k * values[w] for w, k in zip(wires, coefficients)) + constant) % P


@dataclass(frozen=True)
class Constraint:
    a: FrozenCombination
    b: FrozenCombination
    c: FrozenCombination
    label: str

    def is_satisfied(self, values: Sequence[int]) -> bool:
        return _evaluate(self.a, values) * _evaluate(self.b, values) % P == _evaluate(self.c, values)

    def to_dict(self) -> dict:
        return {
            "a": _combination_to_dict(self.a),
            "b": _combination_to_dict(self.b),
            "c": _combination_to_dict(self.c),
            "label": self.label,
        }


def _combination_to_dict(combination: FrozenCombination) -> dict:
    wires, coefficients, constant = combination
    return {"terms": [[w, k] for w, k in zip(wires, coefficients)], "constant": constant}


@dataclass(frozen=True)
class CircuitDescription:
    """The value-free part of a circuit: wires, public inputs and labelled constraints.

    Attributes:
        n_wires (int): Number of wires.
        public (tuple[tuple[str, int], ...]): Name and wire index of every public input, in order.
        constraints (tuple[Constraint, ...]): The rank-1 constraints.
    """

    n_wires: int
    public: tuple[tuple[str, int], ...]
    constraints: tuple[Constraint, ...]

    def digest(self) -> str:
        """SHA-256 of the circuit structure, identifying the circuit across parties."""
        h = hashlib.sha256()
        h.update(json.dumps({"n_wires": self.n_wires, "public": self.public}).encode())
        for constraint in self.constraints:
            for wires, coefficients, constant in (constraint.a, constraint.b, constraint.c):
                h.update(len(wires).to_bytes(4, "little"))
                h.update(wires.tobytes())
                h.update(coefficients.tobytes())
                h.update(constant.to_bytes(8, "little"))
            h.update(constraint.label.encode())
        return h.hexdigest()

    def failing_labels(self, values: Sequence[int]) -> list[str]:
        """Labels of the unsatisfied constraints, deduplicated in order of first failure."""
        labels = []
        for constraint in self.constraints:
            if not constraint.is_satisfied(values) and constraint.label not in labels:
                labels.append(constraint.label)
        return labels

    def to_dict(self) -> dict:
        return {
            "n_wires": self.n_wires,
            "public": [list(p) for p in self.public],
            "constraints": [c.to_dict() for c in self.constraints],
        }

    def save(self, path: str | Path) -> None:
        with Path(path).open("w") as f:
            json.dump(self.to_dict(), f)


class CircuitBuilder(ArithmeticBackend):
    """Records rank-1 constraints while computing the witness."""

    is_native = False

    def __init__(self):
        super().__init__()
        self.values: list[int] = []
        self.constraints: list[Constraint] = []
        self.public: list[tuple[str, int]] = []

    @property
    def n_constraints(self) -> int:
        return len(self.constraints)

    def _new_wire(self, value: int) -> LinearCombination:
        index = len(self.values)
        self.values.append(value % P)
        return LinearCombination({index: 1}, 0, value % P)

    def _constrain(self, a: LinearCombination, b: LinearCombination, c: LinearCombination) -> None:
        self.constraints.append(Constraint(a.freeze(), b.freeze(), c.freeze(), self.label))

    def _compact(self, lc: LinearCombination) -> LinearCombination:
        if len(lc.terms) <= MAX_TERMS:
            return lc
        wire = self._new_wire(lc.value)
        self._constrain(lc, self.one(), wire)
        return wire

    def constant(self, value: int) -> LinearCombination:
        return LinearCombination({}, value % P, value % P)

    def add(self, a: LinearCombination, b: LinearCombination) -> LinearCombination:
        return self.linear_combination([(1, a), (1, b)])

    def linear_combination(self, terms: Sequence[tuple[int, LinearCombination]]) -> LinearCombination:
        out: dict[int, int] = {}
        constant = 0
        value = 0
        for k, lc in terms:
            k %= P
            if k == 0:
                continue
            for wire, coefficient in lc.terms.items():
                out[wire] = (out.get(wire, 0) + k * coefficient) % P
            constant += k * lc.constant
            value += k * lc.value
        out = {wire: coefficient for wire, coefficient in out.items() if coefficient}
        return self._compact(LinearCombination(out, constant % P, value % P))

    def sum(self, values: Sequence[LinearCombination]) -> LinearCombination:
        return self.linear_combination([(1, v) for v in values])

    def mul_const(self, a: LinearCombination, k: int) -> LinearCombination:
        k %= P
        if k == 0:
            return self.zero()
        return LinearCombination(
            {wire: coefficient * k % P for wire, coefficient in a.terms.items()}, a.constant * k % P, a.value * k % P
        )

    def mul(self, a: LinearCombination, b: LinearCombination) -> LinearCombination:
        if a.is_constant:
            return self.mul_const(b, a.constant)
        if b.is_constant:
            return self.mul_const(a, b.constant)
        c = self._new_wire(a.value * b.value)
        self._constrain(a, b, c)
        return c

    def select(self, bit: LinearCombination, a: LinearCombination, b: LinearCombination) -> LinearCombination:
        """b + bit * (a - b) as a fresh wire, so that values carried through loops stay short."""
        if bit.is_constant:
            return a if bit.constant else b
        diff = self.sub(a, b)
        if diff.is_constant and diff.constant == 0:
            return b
        out = self._new_wire(b.value + bit.value * diff.value)
        self._constrain(bit, diff, self.sub(out, b))
        return out

    def witness(self, value: int) -> LinearCombination:
        return self._new_wire(value)

    def value_of(self, a: LinearCombination) -> int:
        return a.value

    def assert_zero(self, a: LinearCombination) -> None:
        if a.is_constant and a.constant == 0:
            return
        self._constrain(a, self.one(), self.zero())

    def public_input(self, name: str, value: int) -> LinearCombination:
        wire = self._new_wire(value)
        self.public.append((name, next(iter(wire.terms))))
        return wire

    def description(self) -> CircuitDescription:
        return CircuitDescription(n_wires=len(self.values), public=tuple(self.public), constraints=tuple(self.constraints))

    def public_values(self) -> list[int]:
        return [self.values[wire] for _, wire in self.public]

    def check(self) -> list[str]:
        """Re-evaluate every constraint on the assignment; return the labels of the failing ones."""
        return self.description().failing_labels(self.values)
