"""
Proof Verification Routes
=========================

API endpoint for checking balance threshold proofs.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from services.balance_proof.dependencies import get_protocol
from services.balance_proof.protocol import BalanceProofProtocol
from shared.zk.models import VerificationStatus


router = APIRouter()


class VerifyRequest(BaseModel):
    """Request to verify a proof against a threshold."""

    threshold: int = Field(..., strict=True, description="Threshold the proof must attest to")
    proof: Any = Field(..., description="Proof object, JSON string or hex string")
    attempt_id: str | None = Field(default=None, description="Attempt id from the proof metadata")


class VerifyResponse(BaseModel):
    """Outcome of a verification. ``valid`` is false for a rejected proof."""

    valid: bool
    status: VerificationStatus
    threshold: int
    attempt_id: str | None = None
    verification_time_ms: int


@router.post("", response_model=VerifyResponse)
async def verify_proof(
    request: VerifyRequest,
    protocol: BalanceProofProtocol = Depends(get_protocol),
) -> VerifyResponse:
    """
    Verify a balance threshold proof.

    A well-formed proof that fails the check is answered with 200 and
    ``valid: false``. Undecodable proofs are 400; proofs issued under a
    different key pair are 409.
    """
    result = await protocol.verify_proof(request.threshold, request.proof, attempt_id=request.attempt_id)
    return VerifyResponse(
        valid=result.valid,
        status=result.status,
        threshold=result.threshold,
        attempt_id=result.attempt_id,
        verification_time_ms=result.verification_time_ms,
    )
