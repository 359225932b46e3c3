"""
Balance Routes
==============

API endpoint for recording private balances.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from services.balance_proof.dependencies import get_protocol
from services.balance_proof.protocol import BalanceProofProtocol


router = APIRouter()


class StoreBalanceRequest(BaseModel):
    """Request to record a balance."""

    id: str = Field(..., description="Identity the balance belongs to")
    balance: int = Field(..., strict=True, description="Private balance (non-negative integer)")

    model_config = {"json_schema_extra": {"examples": [{"id": "alice", "balance": 200}]}}


class StoreBalanceResponse(BaseModel):
    """Acknowledgement of a stored balance. Never echoes the value."""

    success: bool = True
    id: str


@router.post("", response_model=StoreBalanceResponse)
async def store_balance(
    request: StoreBalanceRequest,
    protocol: BalanceProofProtocol = Depends(get_protocol),
) -> StoreBalanceResponse:
    """
    Record the balance of an identity, replacing any previous value.

    Proofs already issued for the identity are unaffected; they remain
    statements about the balance at the time they were produced.
    """
    await protocol.store_balance(request.id, request.balance)
    return StoreBalanceResponse(id=request.id)
