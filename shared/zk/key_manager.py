"""
Key Manager
===========

Owns the single Groth16 key pair of a relation.

One relation shape, one key pair, valid for every proof that must later
verify. ``get_or_create_keys`` runs setup at most once per manager, even
under concurrent first access; later calls return the cached pair.

Without a key store the pair lives only in memory and a restart
invalidates every outstanding proof. With a store, the pair is persisted
under the relation's shape digest and reloaded on the next start.

Version: 1.0.0
"""

import json
import threading
import time
from pathlib import Path
from typing import Any, Protocol

from redis.exceptions import RedisError

from shared.logging import get_logger
from shared.zk.circuit import BalanceThresholdRelation
from shared.zk.exceptions import KeyMismatchError, SetupFaultError
from shared.zk.keys import KeyPair, ProvingKey, VerifyingKey, setup


logger = get_logger(__name__)


class KeyStore(Protocol):
    """Durable key-value interface for key pairs."""

    def save_keys(
        self,
        relation_hash: str,
        proving_key: ProvingKey,
        verifying_key: VerifyingKey,
    ) -> None: ...

    def load_keys(self, relation_hash: str) -> KeyPair | None: ...


class FileKeyStore:
    """Key pairs as JSON documents, one file per relation hash."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, relation_hash: str) -> Path:
        return self.directory / f"{relation_hash}.json"

    def save_keys(
        self,
        relation_hash: str,
        proving_key: ProvingKey,
        verifying_key: VerifyingKey,
    ) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(relation_hash)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_bytes(KeyPair(proving_key, verifying_key).to_bytes())
        tmp_path.replace(path)
        logger.info("zk_keys_saved", store="file", path=str(path))

    def load_keys(self, relation_hash: str) -> KeyPair | None:
        path = self._path(relation_hash)
        if not path.exists():
            return None
        return KeyPair.from_bytes(path.read_bytes())


class RedisKeyStore:
    """Key pairs as JSON strings in Redis under ``<prefix>:<relation_hash>``."""

    def __init__(self, client: Any, prefix: str = "zk:keys") -> None:
        self.client = client
        self.prefix = prefix

    def _key(self, relation_hash: str) -> str:
        return f"{self.prefix}:{relation_hash}"

    def save_keys(
        self,
        relation_hash: str,
        proving_key: ProvingKey,
        verifying_key: VerifyingKey,
    ) -> None:
        payload = KeyPair(proving_key, verifying_key).to_bytes().decode()
        # nx: never overwrite a pair other processes may already be proving with
        stored = self.client.set(self._key(relation_hash), payload, nx=True)
        logger.info("zk_keys_saved", store="redis", key=self._key(relation_hash), created=bool(stored))

    def load_keys(self, relation_hash: str) -> KeyPair | None:
        payload = self.client.get(self._key(relation_hash))
        if payload is None:
            return None
        return KeyPair.from_bytes(payload)


class KeyManager:
    """
    Single-initialization cache of the relation's key pair.

    Usage:
        manager = KeyManager(BalanceThresholdRelation(bit_width=64))
        keys = manager.get_or_create_keys()
    """

    def __init__(
        self,
        relation: BalanceThresholdRelation,
        store: KeyStore | None = None,
    ) -> None:
        self.relation = relation
        self.store = store
        self._keys: KeyPair | None = None
        self._lock = threading.Lock()

    @property
    def relation_hash(self) -> str:
        return self.relation.shape_digest

    @property
    def is_initialized(self) -> bool:
        return self._keys is not None

    def get_or_create_keys(self) -> KeyPair:
        """
        Return the cached key pair, running setup on first use.

        Concurrent first callers block until the first setup completes and
        then share its result.

        Raises:
            SetupFaultError: setup or key loading failed (a later call may retry)
            KeyMismatchError: persisted keys belong to a different relation
        """
        keys = self._keys
        if keys is not None:
            return keys

        with self._lock:
            if self._keys is None:
                self._keys = self._load_or_setup()
            return self._keys

    def _load_or_setup(self) -> KeyPair:
        relation_hash = self.relation_hash

        if self.store is not None:
            try:
                loaded = self.store.load_keys(relation_hash)
            except (OSError, RedisError, ValueError, KeyError, TypeError, json.JSONDecodeError) as e:
                logger.error("zk_keys_load_failed", relation_id=relation_hash, error=str(e))
                raise SetupFaultError(f"persisted keys are unreadable: {e}") from e

            if loaded is not None:
                self._check_relation(loaded, stage="load")
                logger.info("zk_keys_loaded", relation_id=relation_hash, key_id=loaded.key_id)
                return loaded

        start_time = time.time()
        try:
            keys = setup(self.relation)
        except (ArithmeticError, ValueError, MemoryError) as e:
            logger.error("zk_setup_failed", relation_id=relation_hash, error=str(e))
            raise SetupFaultError(f"key setup failed: {e}") from e
        setup_time_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "zk_keys_generated",
            relation_id=relation_hash,
            key_id=keys.key_id,
            bit_width=self.relation.bit_width,
            setup_time_ms=setup_time_ms,
        )

        if self.store is not None:
            try:
                self.store.save_keys(relation_hash, keys.proving_key, keys.verifying_key)
            except (OSError, RedisError) as e:
                logger.error("zk_keys_save_failed", relation_id=relation_hash, error=str(e))
                raise SetupFaultError(f"could not persist keys: {e}") from e

            # Another process may have won the race to persist; adopt its pair
            try:
                persisted = self.store.load_keys(relation_hash)
            except (OSError, RedisError, ValueError, KeyError, TypeError, json.JSONDecodeError) as e:
                logger.error("zk_keys_load_failed", relation_id=relation_hash, error=str(e))
                raise SetupFaultError(f"persisted keys are unreadable: {e}") from e
            if persisted is not None and persisted.key_id != keys.key_id:
                self._check_relation(persisted, stage="adopt")
                logger.warning("zk_keys_adopted_from_store", relation_id=relation_hash, key_id=persisted.key_id)
                return persisted

        return keys

    def _check_relation(self, keys: KeyPair, stage: str) -> None:
        if keys.relation_id != self.relation_hash:
            logger.error(
                "zk_key_mismatch",
                stage=stage,
                key_relation_id=keys.relation_id,
                relation_id=self.relation_hash,
            )
            raise KeyMismatchError("persisted keys were generated for a different relation")

    def reset(self) -> None:
        """Drop the cached pair. Every outstanding proof becomes unverifiable."""
        with self._lock:
            if self._keys is not None:
                logger.warning(
                    "zk_keys_discarded",
                    relation_id=self.relation_hash,
                    key_id=self._keys.key_id,
                )
            self._keys = None
