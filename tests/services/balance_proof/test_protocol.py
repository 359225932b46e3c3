"""
Tests for the Balance Proof Protocol
====================================

Scenario-level tests of store -> prove -> verify.
"""

import asyncio
from unittest.mock import patch

import pytest

from services.balance_proof.protocol import (
    AttemptAction,
    AttemptState,
    AttemptWorkflow,
    BalanceProofProtocol,
    ProofAttempt,
)
from services.balance_proof.store import BalanceStore
from shared.zk.exceptions import (
    BalanceNotFoundError,
    ConstraintUnsatisfiedError,
    InvalidWitnessError,
    KeyMismatchError,
    MalformedProofError,
    SetupFaultError,
)
from shared.zk.key_manager import KeyManager
from shared.zk.models import VerificationStatus


@pytest.fixture
def attempt_states(monkeypatch) -> list[AttemptState]:
    """Record every state an attempt moves into."""
    states: list[AttemptState] = []
    advance = ProofAttempt.advance

    def recording_advance(self, action, **context):
        state = advance(self, action, **context)
        states.append(state)
        return state

    monkeypatch.setattr(ProofAttempt, "advance", recording_advance)
    return states


class TestAttemptWorkflow:
    """Tests for the attempt state machine."""

    def test_happy_path(self):
        attempt = ProofAttempt.start(150, identity="alice")
        attempt.advance(AttemptAction.REQUEST_PROOF)
        attempt.advance(AttemptAction.ISSUE_PROOF)
        attempt.advance(AttemptAction.REQUEST_VERIFY)
        attempt.advance(AttemptAction.ACCEPT)

        assert attempt.state is AttemptState.VERIFIED
        assert attempt.is_terminal
        assert attempt.history == [
            AttemptState.STORED,
            AttemptState.PROOF_REQUESTED,
            AttemptState.PROOF_ISSUED,
            AttemptState.VERIFY_REQUESTED,
            AttemptState.VERIFIED,
        ]

    def test_prover_rejection(self):
        attempt = ProofAttempt.start(100, identity="charlie")
        attempt.advance(AttemptAction.REQUEST_PROOF)
        attempt.advance(AttemptAction.REJECT)

        assert attempt.state is AttemptState.REJECTED
        assert attempt.is_terminal

    def test_invalid_transition(self):
        attempt = ProofAttempt.start(150, identity="alice")
        with pytest.raises(ValueError, match="cannot accept"):
            attempt.advance(AttemptAction.ACCEPT)

    def test_terminal_states_have_no_exits(self):
        workflow = AttemptWorkflow()
        for state in (AttemptState.VERIFIED, AttemptState.REJECTED, AttemptState.FAILED):
            assert all(not workflow.can_transition(state, action) for action in AttemptAction)

    def test_non_integer_threshold_not_recorded(self):
        assert ProofAttempt.start("150").threshold is None


class TestBalanceProofProtocol:
    """Tests for BalanceProofProtocol."""

    @pytest.mark.asyncio
    async def test_scenario_sufficient_balance(self, protocol):
        await protocol.store_balance("alice", 200)

        issued = await protocol.request_proof("alice", 150)
        result = await protocol.verify_proof(150, issued.proof, attempt_id=issued.metadata.attempt_id)

        assert result.valid is True
        assert result.status is VerificationStatus.VALID
        assert result.attempt_id == issued.metadata.attempt_id
        assert issued.public_signals.signals == ["150"]
        assert issued.metadata.threshold == 150

    @pytest.mark.asyncio
    async def test_scenario_insufficient_balance(self, protocol):
        await protocol.store_balance("bob", 100)

        with pytest.raises(ConstraintUnsatisfiedError):
            await protocol.request_proof("bob", 150)

    @pytest.mark.asyncio
    async def test_scenario_threshold_substitution(self, protocol):
        await protocol.store_balance("alice", 200)
        issued = await protocol.request_proof("alice", 150)

        result = await protocol.verify_proof(199, issued.proof)

        assert result.valid is False
        assert result.status is VerificationStatus.INVALID

    @pytest.mark.asyncio
    async def test_scenario_unknown_identity(self, protocol):
        with pytest.raises(BalanceNotFoundError):
            await protocol.request_proof("carol", 1)

    @pytest.mark.asyncio
    async def test_scenario_key_regeneration(self, relation, key_pair, other_key_pair):
        """A proof issued before keys are regenerated no longer verifies."""
        manager = KeyManager(relation)
        protocol = BalanceProofProtocol(BalanceStore(), manager)
        await protocol.store_balance("dave", 80)

        with patch("shared.zk.key_manager.setup", return_value=key_pair):
            issued = await protocol.request_proof("dave", 20)

        manager.reset()
        with patch("shared.zk.key_manager.setup", return_value=other_key_pair):
            with pytest.raises(KeyMismatchError):
                await protocol.verify_proof(20, issued.proof)

    @pytest.mark.asyncio
    async def test_balance_overwrite_affects_new_proofs_only(self, protocol):
        await protocol.store_balance("erin", 200)
        issued = await protocol.request_proof("erin", 150)

        await protocol.store_balance("erin", 10)

        with pytest.raises(ConstraintUnsatisfiedError):
            await protocol.request_proof("erin", 150)
        result = await protocol.verify_proof(150, issued.proof)
        assert result.valid is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("balance", [-1, 256, "200", 2.5])
    async def test_store_rejects_invalid_balance(self, protocol, balance_store, balance):
        with pytest.raises(InvalidWitnessError):
            await protocol.store_balance("frank", balance)
        assert "frank" not in balance_store

    @pytest.mark.asyncio
    async def test_malformed_proof(self, protocol):
        with pytest.raises(MalformedProofError):
            await protocol.verify_proof(150, {"pi_a": "nope"})

    @pytest.mark.asyncio
    async def test_setup_fault_propagates(self, relation, balance_store):
        protocol = BalanceProofProtocol(balance_store, KeyManager(relation))
        await protocol.store_balance("gina", 5)

        with patch("shared.zk.key_manager.setup", side_effect=ValueError("bad parameters")):
            with pytest.raises(SetupFaultError):
                await protocol.request_proof("gina", 1)

    @pytest.mark.asyncio
    async def test_concurrent_requests(self, protocol, key_store):
        for i in range(4):
            await protocol.store_balance(f"user-{i}", 100 + i)

        results = await asyncio.gather(
            *(protocol.request_proof(f"user-{i}", 100) for i in range(4)),
        )

        assert len({r.metadata.attempt_id for r in results}) == 4
        assert len({r.metadata.key_id for r in results}) == 1
        assert key_store.loads == 1

    @pytest.mark.asyncio
    async def test_warm_keys(self, protocol, key_pair):
        assert await protocol.warm_keys() == key_pair.key_id
        assert protocol.key_manager.is_initialized


class TestReferenceScenarios:
    """The reference store -> prove -> verify scenarios, with their exact values."""

    @pytest.mark.asyncio
    async def test_alice_proves_150_of_200(self, protocol, attempt_states):
        await protocol.store_balance("alice", 200)
        issued = await protocol.request_proof("alice", 150)
        assert (await protocol.verify_proof(150, issued.proof)).status is VerificationStatus.VALID

        assert attempt_states == [
            AttemptState.PROOF_REQUESTED,
            AttemptState.PROOF_ISSUED,
            AttemptState.VERIFY_REQUESTED,
            AttemptState.VERIFIED,
        ]

    @pytest.mark.asyncio
    async def test_bob_proves_exact_balance(self, protocol):
        await protocol.store_balance("bob", 100)
        issued = await protocol.request_proof("bob", 100)
        assert (await protocol.verify_proof(100, issued.proof)).status is VerificationStatus.VALID

    @pytest.mark.asyncio
    async def test_charlie_below_threshold(self, protocol, attempt_states):
        await protocol.store_balance("charlie", 75)
        with pytest.raises(ConstraintUnsatisfiedError):
            await protocol.request_proof("charlie", 100)

        assert attempt_states == [AttemptState.PROOF_REQUESTED, AttemptState.REJECTED]

    @pytest.mark.asyncio
    async def test_dave_unknown(self, protocol, attempt_states):
        with pytest.raises(BalanceNotFoundError):
            await protocol.request_proof("dave", 100)

        assert attempt_states == [AttemptState.FAILED]

    @pytest.mark.asyncio
    async def test_alice_proof_fails_at_151(self, protocol):
        await protocol.store_balance("alice", 200)
        issued = await protocol.request_proof("alice", 150)

        result = await protocol.verify_proof(151, issued.proof)

        assert result.status is VerificationStatus.INVALID
        assert result.valid is False
