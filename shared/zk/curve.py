"""
BN254 Curve Helpers
===================

Thin layer over ``py_ecc.optimized_bn128``: scalar multiplication,
multi-scalar multiplication, pairing-product checks, and the snarkjs-style
string encoding of G1/G2 points used by keys and proofs.

G1 points encode as ``[x, y, "1"]`` and G2 points as
``[[x0, x1], [y0, y1], ["1", "0"]]`` (affine, decimal strings). The point
at infinity encodes as ``["0", "1", "0"]`` / ``[["0", "0"], ["1", "0"], ["0", "0"]]``,
matching snarkjs.

Version: 1.0.0
"""

from typing import Any

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    FQ12,
    G1,
    G2,
    Z1,
    Z2,
    add,
    b,
    b2,
    curve_order,
    field_modulus,
    final_exponentiate,
    is_inf,
    is_on_curve,
    multiply,
    neg,
    normalize,
    pairing,
)


G1Point = tuple[FQ, FQ, FQ]
G2Point = tuple[FQ2, FQ2, FQ2]


class PointDecodingError(ValueError):
    """Encoded point is not a valid curve point."""


def g1_mul(scalar: int) -> G1Point:
    """[scalar] * G1."""
    return multiply(G1, scalar % curve_order)


def g2_mul(scalar: int) -> G2Point:
    """[scalar] * G2."""
    return multiply(G2, scalar % curve_order)


def msm(points: list[Any], scalars: list[int], zero: Any) -> Any:
    """Multi-scalar multiplication, skipping zero terms."""
    acc = zero
    for point, scalar in zip(points, scalars):
        scalar %= curve_order
        if scalar == 0 or is_inf(point):
            continue
        term = point if scalar == 1 else multiply(point, scalar)
        acc = add(acc, term)
    return acc


def g1_msm(points: list[G1Point], scalars: list[int]) -> G1Point:
    return msm(points, scalars, Z1)


def g2_msm(points: list[G2Point], scalars: list[int]) -> G2Point:
    return msm(points, scalars, Z2)


def g1_add(*points: G1Point) -> G1Point:
    acc = Z1
    for point in points:
        acc = add(acc, point)
    return acc


def g2_add(*points: G2Point) -> G2Point:
    acc = Z2
    for point in points:
        acc = add(acc, point)
    return acc


def point_mul(point: Any, scalar: int) -> Any:
    """[scalar] * point for a G1 or G2 point."""
    return multiply(point, scalar % curve_order)


def g1_neg(point: G1Point) -> G1Point:
    return neg(point)


def pairing_product_is_one(pairs: list[tuple[G1Point, G2Point]]) -> bool:
    """
    Check prod e(P_i, Q_i) == 1.

    Miller loops are multiplied first and a single final exponentiation is
    applied to the product.
    """
    acc = FQ12.one()
    for p, q in pairs:
        if is_inf(p) or is_inf(q):
            continue
        acc = acc * pairing(q, p, final_exponentiate=False)
    return final_exponentiate(acc) == FQ12.one()


# ============================================================================
# Encoding
# ============================================================================


def _parse_coordinate(raw: Any) -> int:
    if isinstance(raw, bool) or not isinstance(raw, (str, int)):
        raise PointDecodingError(f"coordinate must be a decimal string, got {type(raw).__name__}")
    try:
        value = int(raw)
    except ValueError as e:
        raise PointDecodingError(f"coordinate is not a decimal integer: {raw!r}") from e
    if not 0 <= value < field_modulus:
        raise PointDecodingError("coordinate outside the base field")
    return value


def encode_g1(point: G1Point) -> list[str]:
    if is_inf(point):
        return ["0", "1", "0"]
    x, y = normalize(point)
    return [str(int(x)), str(int(y)), "1"]


def decode_g1(raw: Any, allow_infinity: bool = False) -> G1Point:
    if not isinstance(raw, (list, tuple)) or len(raw) != 3:
        raise PointDecodingError("G1 point must be a list of 3 coordinates")
    x, y, z = (_parse_coordinate(c) for c in raw)
    if z == 0:
        if allow_infinity:
            return Z1
        raise PointDecodingError("G1 point at infinity")
    if z != 1:
        raise PointDecodingError("G1 point must be affine (z = 1)")
    point = (FQ(x), FQ(y), FQ.one())
    if not is_on_curve(point, b):
        raise PointDecodingError("G1 point is not on the curve")
    return point


def encode_g2(point: G2Point) -> list[list[str]]:
    if is_inf(point):
        return [["0", "0"], ["1", "0"], ["0", "0"]]
    x, y = normalize(point)
    return [
        [str(int(c)) for c in x.coeffs],
        [str(int(c)) for c in y.coeffs],
        ["1", "0"],
    ]


def decode_g2(raw: Any, allow_infinity: bool = False) -> G2Point:
    if not isinstance(raw, (list, tuple)) or len(raw) != 3:
        raise PointDecodingError("G2 point must be a list of 3 coordinate pairs")
    pairs = []
    for pair in raw:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise PointDecodingError("G2 coordinate must be a pair")
        pairs.append(tuple(_parse_coordinate(c) for c in pair))
    (x0, x1), (y0, y1), (z0, z1) = pairs
    if (z0, z1) == (0, 0):
        if allow_infinity:
            return Z2
        raise PointDecodingError("G2 point at infinity")
    if (z0, z1) != (1, 0):
        raise PointDecodingError("G2 point must be affine (z = 1)")
    point = (FQ2([x0, x1]), FQ2([y0, y1]), FQ2.one())
    if not is_on_curve(point, b2):
        raise PointDecodingError("G2 point is not on the curve")
    # BN254 G2 has a cofactor; reject points outside the r-torsion subgroup
    if not is_inf(multiply(point, curve_order)):
        raise PointDecodingError("G2 point is not in the prime-order subgroup")
    return point
