"""
Tests for Service Dependency Wiring
===================================
"""

from unittest.mock import MagicMock, patch

from services.balance_proof.dependencies import build_key_store
from shared.config import KeyStoreBackend, settings
from shared.zk.key_manager import FileKeyStore, RedisKeyStore


class TestBuildKeyStore:
    """Tests for key store selection from settings."""

    def test_memory_backend_has_no_store(self, monkeypatch):
        monkeypatch.setattr(settings.zk, "key_store", KeyStoreBackend.MEMORY)
        assert build_key_store() is None

    def test_file_backend(self, monkeypatch, tmp_path):
        monkeypatch.setattr(settings.zk, "key_store", KeyStoreBackend.FILE)
        monkeypatch.setattr(settings.zk, "key_dir", tmp_path)

        store = build_key_store()

        assert isinstance(store, FileKeyStore)
        assert store.directory == tmp_path

    def test_redis_backend(self, monkeypatch):
        monkeypatch.setattr(settings.zk, "key_store", KeyStoreBackend.REDIS)
        monkeypatch.setattr(settings.zk, "redis_key_prefix", "svc:keys")
        client = MagicMock()

        with patch("shared.database.redis.RedisClient.get_client", return_value=client):
            store = build_key_store()

        assert isinstance(store, RedisKeyStore)
        assert store.client is client
        assert store.prefix == "svc:keys"
