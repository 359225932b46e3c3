"""
Service Dependencies
====================

Process-wide relation, key manager, balance store and protocol, built
from settings on first use and shared by every request.

Usage:
    @router.post("/proofs")
    async def issue(protocol: BalanceProofProtocol = Depends(get_protocol)):
        ...
"""

from functools import lru_cache

from services.balance_proof.protocol import BalanceProofProtocol
from services.balance_proof.store import BalanceStore
from shared.config import KeyStoreBackend, settings
from shared.logging import get_logger
from shared.zk.circuit import BalanceThresholdRelation
from shared.zk.key_manager import FileKeyStore, KeyManager, KeyStore, RedisKeyStore


logger = get_logger(__name__)


def build_key_store() -> KeyStore | None:
    """Key store selected by ``settings.zk.key_store``; None keeps keys in memory only."""
    backend = settings.zk.key_store
    if backend is KeyStoreBackend.FILE:
        return FileKeyStore(settings.zk.key_dir)
    if backend is KeyStoreBackend.REDIS:
        from shared.database.redis import RedisClient

        return RedisKeyStore(RedisClient.get_client(), prefix=settings.zk.redis_key_prefix)

    logger.warning("zk_keys_not_persisted", detail="restarting the service invalidates issued proofs")
    return None


@lru_cache
def get_relation() -> BalanceThresholdRelation:
    return BalanceThresholdRelation(bit_width=settings.zk.bit_width)


@lru_cache
def get_key_manager() -> KeyManager:
    return KeyManager(get_relation(), store=build_key_store())


@lru_cache
def get_balance_store() -> BalanceStore:
    return BalanceStore()


@lru_cache
def get_protocol() -> BalanceProofProtocol:
    """Shared protocol instance used by all routes."""
    return BalanceProofProtocol(get_balance_store(), get_key_manager())
