"""
Proof Generation Routes
=======================

API endpoint for issuing balance threshold proofs.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from services.balance_proof.dependencies import get_protocol
from services.balance_proof.protocol import BalanceProofProtocol
from shared.zk.models import ProofMetadata, ZKProof


router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class ProofRequest(BaseModel):
    """Request to prove a stored balance meets a threshold."""

    id: str = Field(..., description="Identity whose stored balance is used")
    threshold: int = Field(..., strict=True, description="Public minimum amount")

    model_config = {"json_schema_extra": {"examples": [{"id": "alice", "threshold": 150}]}}


class ProofResponse(BaseModel):
    """Response containing a generated proof."""

    success: bool = True
    proof: ZKProof
    public_signals: list[str]
    metadata: ProofMetadata


# ============================================================================
# Proof Generation Endpoints
# ============================================================================


@router.post("", response_model=ProofResponse)
async def generate_proof(
    request: ProofRequest,
    protocol: BalanceProofProtocol = Depends(get_protocol),
) -> ProofResponse:
    """
    Generate a ZK proof that the identity's balance is at least ``threshold``.

    The proof reveals nothing about the balance beyond the comparison.
    Fails with 422 when the balance is below the threshold and with 404
    when no balance is on record.
    """
    result = await protocol.request_proof(request.id, request.threshold)
    return ProofResponse(
        proof=result.proof,
        public_signals=result.public_signals.signals,
        metadata=result.metadata,
    )
