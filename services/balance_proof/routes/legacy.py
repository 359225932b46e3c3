"""
Compatibility Routes
====================

The original three-endpoint API, kept for existing clients:

- ``POST /store/sum``               ``{"id", "amount"}``
- ``POST /get/proof/neededAmount``  ``{"id", "neededAmount"}`` -> bare proof
- ``POST /validate``                ``{"neededAmount", "proof"}`` -> 200 / 401

``/validate`` does not look up any stored balance; the outcome depends on
the threshold and the proof only. An ``id`` field is accepted and ignored.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from services.balance_proof.dependencies import get_protocol
from services.balance_proof.protocol import BalanceProofProtocol


router = APIRouter()


class LegacyBalanceRequest(BaseModel):
    id: str = ""
    amount: int = Field(default=0, strict=True)


class LegacyProofRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    needed_amount: int = Field(..., alias="neededAmount", strict=True)


class LegacyValidateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    needed_amount: int = Field(..., alias="neededAmount", strict=True)
    proof: Any


@router.post("/store/sum")
async def store_sum(
    request: LegacyBalanceRequest,
    protocol: BalanceProofProtocol = Depends(get_protocol),
) -> dict[str, bool]:
    await protocol.store_balance(request.id, request.amount)
    return {"success": True}


@router.post("/get/proof/neededAmount")
async def get_proof(
    request: LegacyProofRequest,
    protocol: BalanceProofProtocol = Depends(get_protocol),
) -> dict[str, Any]:
    result = await protocol.request_proof(request.id, request.needed_amount)
    return result.proof.model_dump()


@router.post("/validate")
async def validate(
    request: LegacyValidateRequest,
    protocol: BalanceProofProtocol = Depends(get_protocol),
) -> dict[str, bool]:
    result = await protocol.verify_proof(request.needed_amount, request.proof)
    if not result.valid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid proof")
    return {"valid": True}
