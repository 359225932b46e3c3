"""
ZK-SNARK Proof Generation
=========================

Groth16 prover for the balance threshold relation.

``prove`` is synchronous and CPU-bound; async callers offload it with
``asyncio.to_thread``. It reads nothing but its arguments and writes
nothing.

Version: 1.0.0
"""

from shared.logging import get_logger
from shared.zk.circuit import BalanceThresholdRelation, ConstraintSystem
from shared.zk.curve import (
    encode_g1,
    encode_g2,
    g1_add,
    g1_msm,
    g2_add,
    g2_msm,
    point_mul,
)
from shared.zk.exceptions import KeyMismatchError, ProverFaultError
from shared.zk.field import (
    FIELD_MODULUS,
    EvaluationDomain,
    divide_by_vanishing,
    poly_mul,
    poly_sub,
    random_fr,
)
from shared.zk.keys import ProvingKey
from shared.zk.models import ZKProof


logger = get_logger(__name__)


def _quotient(system: ConstraintSystem, assignment: list[int], domain: EvaluationDomain) -> list[int]:
    """Coefficients of h(X) = (A(X) B(X) - C(X)) / (X^N - 1)."""
    evals: dict[str, list[int]] = {}
    for matrix in ("a", "b", "c"):
        column = [0] * domain.size
        for row, constraint in enumerate(system.constraints):
            lc = getattr(constraint, matrix)
            column[row] = sum(coeff * assignment[var] for var, coeff in lc.items()) % FIELD_MODULUS
        evals[matrix] = column

    a_poly = domain.ifft(evals["a"])
    b_poly = domain.ifft(evals["b"])
    c_poly = domain.ifft(evals["c"])

    numerator = poly_sub(poly_mul(a_poly, b_poly), c_poly)
    quotient, remainder = divide_by_vanishing(numerator, domain.size)
    if any(remainder):
        raise ProverFaultError("A*B - C is not divisible by the vanishing polynomial")

    return quotient + [0] * (domain.size - 1 - len(quotient))


def prove(
    proving_key: ProvingKey,
    relation: BalanceThresholdRelation,
    balance: int,
    threshold: int,
) -> ZKProof:
    """
    Generate a proof that ``threshold <= balance``.

    Raises:
        InvalidWitnessError: balance/threshold has the wrong type or range
        ConstraintUnsatisfiedError: threshold > balance
        KeyMismatchError: proving key belongs to a different relation
        ProverFaultError: internal arithmetic failure
    """
    witness = relation.build_witness(balance, threshold)
    assignment = relation.assignment(witness)

    if proving_key.relation_id != relation.shape_digest:
        logger.error(
            "zk_key_mismatch",
            stage="prove",
            key_relation_id=proving_key.relation_id,
            relation_id=relation.shape_digest,
        )
        raise KeyMismatchError("proving key was generated for a different relation")

    system = relation.system
    if len(proving_key.h_query) != proving_key.domain_size - 1 or len(proving_key.a_query) != system.num_variables:
        raise KeyMismatchError("proving key shape does not match the relation")

    try:
        domain = EvaluationDomain(proving_key.domain_size)
        h = _quotient(system, assignment, domain)

        r = random_fr()
        s = random_fr()
        private = assignment[proving_key.num_public + 1:]

        pi_a = g1_add(
            proving_key.alpha_g1,
            g1_msm(list(proving_key.a_query), assignment),
            point_mul(proving_key.delta_g1, r),
        )
        pi_b = g2_add(
            proving_key.beta_g2,
            g2_msm(list(proving_key.b_g2_query), assignment),
            point_mul(proving_key.delta_g2, s),
        )
        b_g1 = g1_add(
            proving_key.beta_g1,
            g1_msm(list(proving_key.b_g1_query), assignment),
            point_mul(proving_key.delta_g1, s),
        )
        pi_c = g1_add(
            g1_msm(list(proving_key.l_query), private),
            g1_msm(list(proving_key.h_query), h),
            point_mul(pi_a, s),
            point_mul(b_g1, r),
            point_mul(proving_key.delta_g1, -r * s),
        )
    except ProverFaultError:
        raise
    except (ArithmeticError, ValueError, AssertionError) as e:
        logger.error("zk_prover_fault", error=str(e), error_type=type(e).__name__)
        raise ProverFaultError(f"proof construction failed: {e}") from e

    return ZKProof(
        pi_a=encode_g1(pi_a),
        pi_b=encode_g2(pi_b),
        pi_c=encode_g1(pi_c),
        relation_id=proving_key.relation_id,
        key_id=proving_key.key_id,
    )
