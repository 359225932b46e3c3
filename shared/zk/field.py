"""
Scalar Field Arithmetic
=======================

Arithmetic over the BN254 scalar field Fr and the polynomial helpers the
Groth16 setup and prover need: a radix-2 evaluation domain built from
roots of unity, FFT/inverse FFT, Lagrange basis evaluation, and division
by the vanishing polynomial X^N - 1.

Field elements are plain Python ints in [0, FIELD_MODULUS).

Version: 1.0.0
"""

import secrets
from dataclasses import dataclass, field
from functools import lru_cache

from py_ecc.optimized_bn128 import curve_order


FIELD_MODULUS: int = curve_order

# 5 generates Fr*; r - 1 = 2^28 * t
MULTIPLICATIVE_GENERATOR = 5
TWO_ADICITY = 28


def fr(value: int) -> int:
    """Reduce an integer into the field."""
    return value % FIELD_MODULUS


def inv(value: int) -> int:
    """Multiplicative inverse. Raises ZeroDivisionError for zero."""
    value = fr(value)
    if value == 0:
        raise ZeroDivisionError("zero has no inverse in Fr")
    return pow(value, FIELD_MODULUS - 2, FIELD_MODULUS)


def random_fr(nonzero: bool = True) -> int:
    """Sample a uniformly random field element."""
    while True:
        value = secrets.randbelow(FIELD_MODULUS)
        if value or not nonzero:
            return value


def batch_inverse(values: list[int]) -> list[int]:
    """Invert many elements with a single modular exponentiation."""
    prefix = [1] * (len(values) + 1)
    for i, value in enumerate(values):
        prefix[i + 1] = prefix[i] * value % FIELD_MODULUS
    acc = inv(prefix[-1])
    result = [0] * len(values)
    for i in range(len(values) - 1, -1, -1):
        result[i] = acc * prefix[i] % FIELD_MODULUS
        acc = acc * values[i] % FIELD_MODULUS
    return result


@lru_cache(maxsize=32)
def root_of_unity(order: int) -> int:
    """Return a primitive root of unity of the given power-of-two order."""
    if order < 1 or order & (order - 1):
        raise ValueError(f"domain size must be a power of two, got {order}")
    if order.bit_length() - 1 > TWO_ADICITY:
        raise ValueError(f"domain size 2^{order.bit_length() - 1} exceeds two-adicity")
    omega = pow(MULTIPLICATIVE_GENERATOR, (FIELD_MODULUS - 1) // order, FIELD_MODULUS)
    if order > 1 and pow(omega, order // 2, FIELD_MODULUS) == 1:
        raise ArithmeticError(f"root of unity of order {order} is not primitive")
    return omega


def _fft(values: list[int], omega: int) -> list[int]:
    n = len(values)
    if n == 1:
        return list(values)
    omega_sq = omega * omega % FIELD_MODULUS
    even = _fft(values[0::2], omega_sq)
    odd = _fft(values[1::2], omega_sq)
    out = [0] * n
    w = 1
    half = n // 2
    for i in range(half):
        t = w * odd[i] % FIELD_MODULUS
        out[i] = (even[i] + t) % FIELD_MODULUS
        out[i + half] = (even[i] - t) % FIELD_MODULUS
        w = w * omega % FIELD_MODULUS
    return out


@dataclass(frozen=True)
class EvaluationDomain:
    """Multiplicative subgroup {omega^i} of size N used for the QAP."""

    size: int
    omega: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "omega", root_of_unity(self.size))

    @classmethod
    def for_constraints(cls, num_constraints: int) -> "EvaluationDomain":
        """Smallest power-of-two domain holding the constraints."""
        size = 1
        while size < max(num_constraints, 2):
            size <<= 1
        return cls(size)

    @property
    def elements(self) -> list[int]:
        points = [1] * self.size
        for i in range(1, self.size):
            points[i] = points[i - 1] * self.omega % FIELD_MODULUS
        return points

    def fft(self, coeffs: list[int]) -> list[int]:
        """Coefficients -> evaluations over the domain."""
        padded = list(coeffs) + [0] * (self.size - len(coeffs))
        return _fft(padded, self.omega)

    def ifft(self, evals: list[int]) -> list[int]:
        """Evaluations over the domain -> coefficients."""
        if len(evals) != self.size:
            raise ValueError(f"expected {self.size} evaluations, got {len(evals)}")
        coeffs = _fft(list(evals), inv(self.omega))
        size_inv = inv(self.size)
        return [c * size_inv % FIELD_MODULUS for c in coeffs]

    def vanishing_at(self, point: int) -> int:
        """Z(point) = point^N - 1."""
        return (pow(point, self.size, FIELD_MODULUS) - 1) % FIELD_MODULUS

    def lagrange_at(self, point: int) -> list[int]:
        """
        Evaluate every Lagrange basis polynomial at ``point``.

        L_i(x) = omega^i * (x^N - 1) / (N * (x - omega^i)).
        ``point`` must lie outside the domain.
        """
        z = self.vanishing_at(point)
        if z == 0:
            raise ValueError("evaluation point lies inside the domain")
        elements = self.elements
        denominators = [self.size * (point - w) % FIELD_MODULUS for w in elements]
        inverses = batch_inverse(denominators)
        return [w * z % FIELD_MODULUS * d % FIELD_MODULUS for w, d in zip(elements, inverses)]


def poly_mul(a: list[int], b: list[int]) -> list[int]:
    """Schoolbook polynomial multiplication."""
    if not a or not b:
        return []
    out = [0] * (len(a) + len(b) - 1)
    for i, x in enumerate(a):
        if x == 0:
            continue
        for j, y in enumerate(b):
            out[i + j] = (out[i + j] + x * y) % FIELD_MODULUS
    return out


def poly_sub(a: list[int], b: list[int]) -> list[int]:
    size = max(len(a), len(b))
    a = list(a) + [0] * (size - len(a))
    b = list(b) + [0] * (size - len(b))
    return [(x - y) % FIELD_MODULUS for x, y in zip(a, b)]


def divide_by_vanishing(poly: list[int], size: int) -> tuple[list[int], list[int]]:
    """
    Divide ``poly`` by X^size - 1.

    Returns (quotient, remainder). The quotient has at most
    ``len(poly) - size`` coefficients.
    """
    work = list(poly)
    if len(work) <= size:
        return [], work
    quotient = [0] * (len(work) - size)
    for k in range(len(work) - 1, size - 1, -1):
        coeff = work[k]
        if coeff == 0:
            continue
        quotient[k - size] = coeff
        work[k] = 0
        work[k - size] = (work[k - size] + coeff) % FIELD_MODULUS
    return quotient, work[:size]
