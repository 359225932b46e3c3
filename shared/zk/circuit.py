"""
Balance Threshold Relation
==========================

The arithmetic statement proved by this service: ``threshold <= balance``
with ``balance`` private and ``threshold`` public.

The comparison is encoded as a rank-1 constraint system over the BN254
scalar field. ``balance - threshold`` is decomposed into ``bit_width``
boolean variables:

    b_i * b_i = b_i                       for i in [0, bit_width)
    (sum 2^i * b_i) * 1 = balance - threshold

When ``threshold > balance`` the difference wraps to a field element far
above 2^bit_width, no bit assignment can reach it, and witness generation
fails on the second constraint.

Variable layout (fixed for every instance of a given bit width):

    index 0            constant one
    index 1            threshold          (public)
    index 2            balance            (private)
    index 3 ..         difference bits    (private, auxiliary)

Version: 1.0.0
"""

import hashlib
import json
from dataclasses import dataclass, field
from functools import cached_property
from typing import ClassVar

from shared.zk.exceptions import (
    ConstraintUnsatisfiedError,
    InvalidWitnessError,
    RelationShapeError,
)
from shared.zk.field import FIELD_MODULUS, fr


MAX_BIT_WIDTH = 128

LinearCombination = dict[int, int]


@dataclass(frozen=True)
class Constraint:
    """A single R1CS row: <a, z> * <b, z> = <c, z>."""

    a: LinearCombination
    b: LinearCombination
    c: LinearCombination

    @staticmethod
    def _dot(lc: LinearCombination, assignment: list[int]) -> int:
        return sum(coeff * assignment[index] for index, coeff in lc.items()) % FIELD_MODULUS

    def is_satisfied(self, assignment: list[int]) -> bool:
        left = self._dot(self.a, assignment) * self._dot(self.b, assignment) % FIELD_MODULUS
        return left == self._dot(self.c, assignment)


@dataclass(frozen=True)
class ConstraintSystem:
    """Compiled, immutable constraint system."""

    num_variables: int
    num_public: int
    constraints: tuple[Constraint, ...]

    @property
    def num_private(self) -> int:
        return self.num_variables - self.num_public - 1

    def first_unsatisfied(self, assignment: list[int]) -> int | None:
        for row, constraint in enumerate(self.constraints):
            if not constraint.is_satisfied(assignment):
                return row
        return None

    def canonical(self) -> dict:
        def encode(lc: LinearCombination) -> list[list[str]]:
            return [[str(k), str(v)] for k, v in sorted(lc.items())]

        return {
            "field": str(FIELD_MODULUS),
            "num_variables": self.num_variables,
            "num_public": self.num_public,
            "constraints": [
                [encode(c.a), encode(c.b), encode(c.c)] for c in self.constraints
            ],
        }


@dataclass(frozen=True)
class BalanceWitness:
    """
    Witness for one proof request.

    Ephemeral: built per prove call, never persisted or logged.
    """

    balance: int = field(repr=False)
    threshold: int

    @property
    def public_inputs(self) -> list[int]:
        return [self.threshold]


def _check_value(name: str, value: object, bound: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidWitnessError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidWitnessError(f"{name} must be non-negative")
    if value >= bound:
        raise InvalidWitnessError(f"{name} exceeds the supported range (< 2^{bound.bit_length() - 1})")
    return value


@dataclass(frozen=True)
class BalanceThresholdRelation:
    """
    Relation ``threshold <= balance``.

    The public/private partition is declared statically; ``compile`` refuses
    a constraint system whose shape differs from the declaration, so one key
    pair stays valid for every witness of this relation.
    """

    PUBLIC_INPUTS: ClassVar[tuple[str, ...]] = ("threshold",)
    PRIVATE_INPUTS: ClassVar[tuple[str, ...]] = ("balance",)
    NAME: ClassVar[str] = "balance_threshold"

    bit_width: int = 64

    def __post_init__(self) -> None:
        if isinstance(self.bit_width, bool) or not isinstance(self.bit_width, int):
            raise RelationShapeError("bit_width must be an integer")
        if not 1 <= self.bit_width <= MAX_BIT_WIDTH:
            raise RelationShapeError(f"bit_width must be in [1, {MAX_BIT_WIDTH}], got {self.bit_width}")

    @property
    def value_bound(self) -> int:
        """Exclusive upper bound for balances and thresholds."""
        return 1 << self.bit_width

    @property
    def num_public(self) -> int:
        return len(self.PUBLIC_INPUTS)

    @property
    def num_private(self) -> int:
        return len(self.PRIVATE_INPUTS) + self.bit_width

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    @cached_property
    def system(self) -> ConstraintSystem:
        return self.compile()

    def compile(self) -> ConstraintSystem:
        one, threshold, balance = 0, 1, 2
        bits = [3 + i for i in range(self.bit_width)]

        constraints = [Constraint(a={v: 1}, b={v: 1}, c={v: 1}) for v in bits]
        constraints.append(
            Constraint(
                a={v: 1 << i for i, v in enumerate(bits)},
                b={one: 1},
                c={balance: 1, threshold: FIELD_MODULUS - 1},
            )
        )

        system = ConstraintSystem(
            num_variables=3 + self.bit_width,
            num_public=1,
            constraints=tuple(constraints),
        )
        if system.num_public != self.num_public or system.num_private != self.num_private:
            raise RelationShapeError(
                f"compiled shape ({system.num_public} public, {system.num_private} private) "
                f"does not match declaration ({self.num_public} public, {self.num_private} private)"
            )
        return system

    @cached_property
    def shape_digest(self) -> str:
        """SHA-256 over the canonical compiled system; keys and proofs carry it."""
        payload = {"relation": self.NAME, **self.system.canonical()}
        encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()
        return hashlib.sha256(encoded).hexdigest()

    # ------------------------------------------------------------------
    # Witness
    # ------------------------------------------------------------------

    def check_public_input(self, threshold: object) -> int:
        return _check_value("threshold", threshold, self.value_bound)

    def build_witness(self, balance: object, threshold: object) -> BalanceWitness:
        """Validate type and magnitude and wrap the inputs."""
        return BalanceWitness(
            balance=_check_value("balance", balance, self.value_bound),
            threshold=self.check_public_input(threshold),
        )

    def assignment(self, witness: BalanceWitness) -> list[int]:
        """Full variable vector for ``witness``; raises if it does not satisfy the relation."""
        difference = fr(witness.balance - witness.threshold)
        bits = [(difference >> i) & 1 for i in range(self.bit_width)]
        values = [1, witness.threshold, witness.balance, *bits]

        failed = self.system.first_unsatisfied(values)
        if failed is not None:
            raise ConstraintUnsatisfiedError(
                f"witness does not satisfy {self.NAME} (constraint {failed})"
            )
        return values

    def is_satisfied(self, witness: BalanceWitness) -> bool:
        try:
            self.assignment(witness)
        except ConstraintUnsatisfiedError:
            return False
        return True
