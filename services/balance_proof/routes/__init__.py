"""
Balance Proof Service Routes
============================

API route handlers for the balance proof service.
"""

from services.balance_proof.routes import balances, keys, legacy, proofs, verification


__all__ = ["balances", "keys", "legacy", "proofs", "verification"]
