"""
ZK-SNARK Proof Verification
===========================

Groth16 verifier for the balance threshold relation.

``verify`` is a pure function of (verifying key, threshold, proof). A
proof that decodes but fails the pairing check yields
``VerificationStatus.INVALID``; structural and lifecycle problems raise.

Version: 1.0.0
"""

from typing import Any

from shared.logging import get_logger
from shared.zk.curve import (
    PointDecodingError,
    decode_g1,
    decode_g2,
    g1_add,
    g1_neg,
    pairing_product_is_one,
    point_mul,
)
from shared.zk.exceptions import InvalidWitnessError, KeyMismatchError, MalformedProofError
from shared.zk.keys import CURVE, PROTOCOL, VerifyingKey
from shared.zk.models import VerificationStatus, ZKProof


logger = get_logger(__name__)


def _check_threshold(threshold: Any, bit_width: int) -> int:
    if isinstance(threshold, bool) or not isinstance(threshold, int):
        raise InvalidWitnessError(f"threshold must be an integer, got {type(threshold).__name__}")
    if not 0 <= threshold < (1 << bit_width):
        raise InvalidWitnessError(f"threshold must be in [0, 2^{bit_width})")
    return threshold


def verify(
    verifying_key: VerifyingKey,
    threshold: int,
    proof: ZKProof | dict[str, Any] | bytes | str,
) -> VerificationStatus:
    """
    Check a proof that the prover knew a balance >= ``threshold``.

    Raises:
        MalformedProofError: proof cannot be decoded into valid curve points
        KeyMismatchError: proof was produced under another relation or key pair
        InvalidWitnessError: threshold is not a valid public input
    """
    proof = ZKProof.parse(proof)

    if proof.protocol != PROTOCOL or proof.curve != CURVE:
        raise MalformedProofError(f"unsupported proof system {proof.protocol}/{proof.curve}")

    if proof.relation_id != verifying_key.relation_id:
        logger.error(
            "zk_key_mismatch",
            stage="verify",
            proof_relation_id=proof.relation_id,
            key_relation_id=verifying_key.relation_id,
        )
        raise KeyMismatchError("proof was produced for a different relation")
    if proof.key_id != verifying_key.key_id:
        logger.error(
            "zk_key_mismatch",
            stage="verify",
            proof_key_id=proof.key_id,
            key_id=verifying_key.key_id,
        )
        raise KeyMismatchError("proof was produced under a different key pair")
    if verifying_key.num_public != 1:
        raise KeyMismatchError(f"verifying key expects {verifying_key.num_public} public inputs, relation has 1")

    threshold = _check_threshold(threshold, verifying_key.bit_width)

    try:
        pi_a = decode_g1(proof.pi_a)
        pi_b = decode_g2(proof.pi_b)
        pi_c = decode_g1(proof.pi_c)
    except PointDecodingError as e:
        raise MalformedProofError(str(e)) from e

    public_acc = g1_add(verifying_key.ic[0], point_mul(verifying_key.ic[1], threshold))

    valid = pairing_product_is_one(
        [
            (g1_neg(pi_a), pi_b),
            (verifying_key.alpha_g1, verifying_key.beta_g2),
            (public_acc, verifying_key.gamma_g2),
            (pi_c, verifying_key.delta_g2),
        ]
    )
    return VerificationStatus.VALID if valid else VerificationStatus.INVALID
