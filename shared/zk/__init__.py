"""
ZK-SNARK Module
===============

Groth16 proofs over BN254 that a private balance meets a public threshold.

Usage:
    from shared.zk import BalanceThresholdRelation, KeyManager, prove, verify

    relation = BalanceThresholdRelation(bit_width=64)
    keys = KeyManager(relation).get_or_create_keys()

    proof = prove(keys.proving_key, relation, balance=200, threshold=150)
    status = verify(keys.verifying_key, 150, proof)

Version: 1.0.0
"""

from shared.zk.circuit import (
    BalanceThresholdRelation,
    BalanceWitness,
    ConstraintSystem,
)
from shared.zk.exceptions import (
    BalanceNotFoundError,
    ConstraintUnsatisfiedError,
    InvalidWitnessError,
    KeyMismatchError,
    MalformedProofError,
    ProverFaultError,
    RelationShapeError,
    SetupFaultError,
    ZKError,
)
from shared.zk.key_manager import (
    FileKeyStore,
    KeyManager,
    KeyStore,
    RedisKeyStore,
)
from shared.zk.keys import KeyPair, ProvingKey, VerifyingKey, setup
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


__all__ = [
    # Relation
    "BalanceThresholdRelation",
    "BalanceWitness",
    "ConstraintSystem",
    # Keys
    "KeyManager",
    "KeyStore",
    "FileKeyStore",
    "RedisKeyStore",
    "KeyPair",
    "ProvingKey",
    "VerifyingKey",
    "setup",
    # Prover / Verifier
    "prove",
    "verify",
    # Models
    "ZKProof",
    "PublicSignals",
    "ProofMetadata",
    "ProofWithMetadata",
    "VerificationResult",
    "VerificationStatus",
    # Errors
    "ZKError",
    "BalanceNotFoundError",
    "ConstraintUnsatisfiedError",
    "InvalidWitnessError",
    "MalformedProofError",
    "KeyMismatchError",
    "ProverFaultError",
    "SetupFaultError",
    "RelationShapeError",
]
