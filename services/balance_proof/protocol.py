"""
Balance Proof Protocol
======================

Sequences the store -> prove -> verify flow and tracks each request as a
``ProofAttempt``.

Attempt lifecycle:
1. Balance on record -> Stored
2. Proof requested -> Proof Requested
3. Prover returns -> Proof Issued, or Rejected when the balance is short
4. Proof presented for checking -> Verify Requested
5. Pairing check -> Verified / Rejected

Any other protocol error moves the attempt to Failed. Proving and
verification are CPU-bound and run in worker threads so the event loop
keeps serving other requests.

Version: 1.0.0
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from services.balance_proof.store import BalanceStore
from shared.logging import get_logger
from shared.zk.circuit import BalanceThresholdRelation
from shared.zk.exceptions import ConstraintUnsatisfiedError, ZKError
from shared.zk.key_manager import KeyManager
from shared.zk.models import (
    ProofMetadata,
    ProofWithMetadata,
    PublicSignals,
    VerificationResult,
    VerificationStatus,
    ZKProof,
)
from shared.zk.prover import prove
from shared.zk.verifier import verify


logger = get_logger(__name__)


class AttemptState(str, Enum):
    """Where a proof attempt is in the protocol."""

    STORED = "stored"
    PROOF_REQUESTED = "proof_requested"
    PROOF_ISSUED = "proof_issued"
    VERIFY_REQUESTED = "verify_requested"
    VERIFIED = "verified"
    REJECTED = "rejected"
    FAILED = "failed"


class AttemptAction(str, Enum):
    """Protocol events that move an attempt forward."""

    REQUEST_PROOF = "request_proof"
    ISSUE_PROOF = "issue_proof"
    REQUEST_VERIFY = "request_verify"
    ACCEPT = "accept"
    REJECT = "reject"
    FAIL = "fail"


TERMINAL_STATES = frozenset({AttemptState.VERIFIED, AttemptState.REJECTED, AttemptState.FAILED})


@dataclass
class AttemptWorkflow:
    """Proof attempt state machine."""

    transitions: dict[AttemptState, dict[AttemptAction, AttemptState]] = field(
        default_factory=lambda: {
            AttemptState.STORED: {
                AttemptAction.REQUEST_PROOF: AttemptState.PROOF_REQUESTED,
                AttemptAction.FAIL: AttemptState.FAILED,
            },
            AttemptState.PROOF_REQUESTED: {
                AttemptAction.ISSUE_PROOF: AttemptState.PROOF_ISSUED,
                AttemptAction.REJECT: AttemptState.REJECTED,
                AttemptAction.FAIL: AttemptState.FAILED,
            },
            AttemptState.PROOF_ISSUED: {
                AttemptAction.REQUEST_VERIFY: AttemptState.VERIFY_REQUESTED,
            },
            AttemptState.VERIFY_REQUESTED: {
                AttemptAction.ACCEPT: AttemptState.VERIFIED,
                AttemptAction.REJECT: AttemptState.REJECTED,
                AttemptAction.FAIL: AttemptState.FAILED,
            },
        }
    )

    def can_transition(self, current: AttemptState, action: AttemptAction) -> bool:
        """Check if transition is valid."""
        return action in self.transitions.get(current, {})

    def get_next_state(self, current: AttemptState, action: AttemptAction) -> AttemptState | None:
        """Get the next state after an action."""
        if not self.can_transition(current, action):
            return None
        return self.transitions[current][action]


_WORKFLOW = AttemptWorkflow()


@dataclass
class ProofAttempt:
    """One pass through the protocol. Holds no balance and no proof."""

    attempt_id: str
    threshold: int | None
    identity: str | None = None
    state: AttemptState = AttemptState.STORED
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    history: list[AttemptState] = field(default_factory=list)

    @classmethod
    def start(
        cls,
        threshold: Any,
        identity: str | None = None,
        state: AttemptState = AttemptState.STORED,
        attempt_id: str | None = None,
    ) -> "ProofAttempt":
        attempt = cls(
            attempt_id=attempt_id or str(uuid.uuid4()),
            threshold=threshold if isinstance(threshold, int) else None,
            identity=identity,
            state=state,
        )
        attempt.history.append(state)
        return attempt

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def advance(self, action: AttemptAction, **context: Any) -> AttemptState:
        """
        Apply ``action`` and log the transition.

        Raises:
            ValueError: ``action`` is not allowed from the current state
        """
        next_state = _WORKFLOW.get_next_state(self.state, action)
        if next_state is None:
            raise ValueError(f"cannot {action.value} from state {self.state.value}")

        log = logger.warning if next_state is AttemptState.FAILED else logger.info
        log(
            "proof_attempt_transition",
            attempt_id=self.attempt_id,
            identity=self.identity,
            threshold=self.threshold,
            from_state=self.state.value,
            to_state=next_state.value,
            **context,
        )
        self.state = next_state
        self.history.append(next_state)
        return next_state


class BalanceProofProtocol:
    """
    Orchestrates balance storage, proof issuance and verification.

    Usage:
        protocol = BalanceProofProtocol(BalanceStore(), KeyManager(relation))
        await protocol.store_balance("alice", 200)
        issued = await protocol.request_proof("alice", 150)
        result = await protocol.verify_proof(150, issued.proof)
    """

    def __init__(self, store: BalanceStore, key_manager: KeyManager) -> None:
        self.store = store
        self.key_manager = key_manager

    @property
    def relation(self) -> BalanceThresholdRelation:
        return self.key_manager.relation

    async def warm_keys(self) -> str:
        """Run key setup ahead of the first request. Returns the key id."""
        keys = await asyncio.to_thread(self.key_manager.get_or_create_keys)
        return keys.key_id

    async def store_balance(self, identity: str, balance: int) -> None:
        """
        Record ``balance`` for ``identity``, replacing any earlier value.

        Raises:
            InvalidWitnessError: balance is negative, not an int, or too large
        """
        self.relation.build_witness(balance, 0)
        self.store.put(identity, balance)
        logger.info("balance_recorded", identity=identity)

    async def request_proof(self, identity: str, threshold: int) -> ProofWithMetadata:
        """
        Prove that the stored balance of ``identity`` is at least ``threshold``.

        Raises:
            BalanceNotFoundError: nothing stored for ``identity``
            ConstraintUnsatisfiedError: balance is below ``threshold``
            InvalidWitnessError: ``threshold`` is out of range
            KeyMismatchError | ProverFaultError | SetupFaultError
        """
        attempt = ProofAttempt.start(threshold, identity=identity)
        start_time = time.time()

        try:
            balance = self.store.get(identity)
            attempt.advance(AttemptAction.REQUEST_PROOF)

            keys = await asyncio.to_thread(self.key_manager.get_or_create_keys)
            proof = await asyncio.to_thread(prove, keys.proving_key, self.relation, balance, threshold)
        except ConstraintUnsatisfiedError as e:
            attempt.advance(AttemptAction.REJECT, error_code=e.error_code)
            raise
        except ZKError as e:
            attempt.advance(AttemptAction.FAIL, error_code=e.error_code)
            raise

        proving_time_ms = int((time.time() - start_time) * 1000)
        attempt.advance(AttemptAction.ISSUE_PROOF, proving_time_ms=proving_time_ms)

        return ProofWithMetadata(
            proof=proof,
            public_signals=PublicSignals(signals=[str(threshold)]),
            metadata=ProofMetadata(
                attempt_id=attempt.attempt_id,
                relation_id=proof.relation_id,
                key_id=proof.key_id,
                threshold=threshold,
                proving_time_ms=proving_time_ms,
            ),
        )

    async def verify_proof(
        self,
        threshold: int,
        proof: ZKProof | dict[str, Any] | bytes | str,
        attempt_id: str | None = None,
    ) -> VerificationResult:
        """
        Check ``proof`` against ``threshold`` with the current verifying key.

        A proof that fails the pairing check is returned as
        ``VerificationStatus.INVALID``; it is not an error.

        Raises:
            MalformedProofError: proof cannot be decoded
            KeyMismatchError: proof was issued under other keys
            InvalidWitnessError: ``threshold`` is out of range
            SetupFaultError: keys could not be created
        """
        attempt = ProofAttempt.start(
            threshold,
            state=AttemptState.PROOF_ISSUED,
            attempt_id=attempt_id,
        )
        attempt.advance(AttemptAction.REQUEST_VERIFY)
        start_time = time.time()

        try:
            keys = await asyncio.to_thread(self.key_manager.get_or_create_keys)
            status = await asyncio.to_thread(verify, keys.verifying_key, threshold, proof)
        except ZKError as e:
            attempt.advance(AttemptAction.FAIL, error_code=e.error_code)
            raise

        verification_time_ms = int((time.time() - start_time) * 1000)
        valid = status is VerificationStatus.VALID
        attempt.advance(
            AttemptAction.ACCEPT if valid else AttemptAction.REJECT,
            verification_time_ms=verification_time_ms,
        )

        return VerificationResult(
            valid=valid,
            status=status,
            threshold=threshold,
            attempt_id=attempt.attempt_id,
            verification_time_ms=verification_time_ms,
        )
