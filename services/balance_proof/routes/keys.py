"""
Key Routes
==========

Expose the verifying key so third parties can check proofs offline.
"""

import asyncio
from typing import Any

from fastapi import APIRouter, Depends

from services.balance_proof.dependencies import get_protocol
from services.balance_proof.protocol import BalanceProofProtocol


router = APIRouter()


@router.get("/verifying")
async def get_verifying_key(
    protocol: BalanceProofProtocol = Depends(get_protocol),
) -> dict[str, Any]:
    """Serialized Groth16 verifying key (snarkjs layout plus relation/key ids)."""
    keys = await asyncio.to_thread(protocol.key_manager.get_or_create_keys)
    return {
        "key_id": keys.key_id,
        "verifying_key": keys.verifying_key.to_dict(),
    }


@router.get("/status")
async def get_key_status(
    protocol: BalanceProofProtocol = Depends(get_protocol),
) -> dict[str, Any]:
    """Whether setup has run, without triggering it."""
    manager = protocol.key_manager
    return {
        "initialized": manager.is_initialized,
        "relation_id": manager.relation_hash,
        "bit_width": manager.relation.bit_width,
        "persistent": manager.store is not None,
    }
