"""
Test Configuration
==================

Pytest fixtures for balance proof tests.

Keys are generated once per session for a narrow relation (8-bit values)
so pairing-heavy tests stay fast.
"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["ZK_BIT_WIDTH"] = "8"
os.environ["ZK_KEY_STORE"] = "memory"
os.environ["ZK_WARM_KEYS_ON_STARTUP"] = "false"

from services.balance_proof.protocol import BalanceProofProtocol  # noqa: E402
from services.balance_proof.store import BalanceStore  # noqa: E402
from shared.zk.circuit import BalanceThresholdRelation  # noqa: E402
from shared.zk.key_manager import KeyManager  # noqa: E402
from shared.zk.keys import KeyPair, ProvingKey, VerifyingKey, setup  # noqa: E402


TEST_BIT_WIDTH = 8


class InMemoryKeyStore:
    """Key store double that keeps pairs in a dict and counts calls."""

    def __init__(self, pairs: dict[str, KeyPair] | None = None) -> None:
        self.pairs: dict[str, KeyPair] = dict(pairs or {})
        self.saves = 0
        self.loads = 0

    def save_keys(self, relation_hash: str, proving_key: ProvingKey, verifying_key: VerifyingKey) -> None:
        self.saves += 1
        self.pairs.setdefault(relation_hash, KeyPair(proving_key, verifying_key))

    def load_keys(self, relation_hash: str) -> KeyPair | None:
        self.loads += 1
        return self.pairs.get(relation_hash)


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture(scope="session")
def relation() -> BalanceThresholdRelation:
    """Narrow relation used throughout the suite."""
    return BalanceThresholdRelation(bit_width=TEST_BIT_WIDTH)


@pytest.fixture(scope="session")
def key_pair(relation: BalanceThresholdRelation) -> KeyPair:
    """Key pair shared by the whole session."""
    return setup(relation)


@pytest.fixture(scope="session")
def other_key_pair(relation: BalanceThresholdRelation) -> KeyPair:
    """Second, independent setup of the same relation."""
    return setup(relation)


@pytest.fixture
def key_store(relation: BalanceThresholdRelation, key_pair: KeyPair) -> InMemoryKeyStore:
    """Store pre-loaded with the session key pair."""
    return InMemoryKeyStore({relation.shape_digest: key_pair})


@pytest.fixture
def key_manager(relation: BalanceThresholdRelation, key_store: InMemoryKeyStore) -> KeyManager:
    """Key manager that loads the session key pair instead of running setup."""
    return KeyManager(relation, store=key_store)


@pytest.fixture
def balance_store() -> BalanceStore:
    return BalanceStore()


@pytest.fixture
def protocol(balance_store: BalanceStore, key_manager: KeyManager) -> BalanceProofProtocol:
    """Protocol wired to a fresh store and the session keys."""
    return BalanceProofProtocol(balance_store, key_manager)


@pytest_asyncio.fixture
async def balance_proof_client(protocol: BalanceProofProtocol) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Balance Proof Service."""
    from services.balance_proof.dependencies import get_protocol
    from services.balance_proof.main import app

    app.dependency_overrides[get_protocol] = lambda: protocol
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
