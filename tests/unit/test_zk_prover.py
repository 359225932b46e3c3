"""
Unit Tests for ZK-SNARK Prover and Verifier
===========================================

Tests for Groth16 proof generation and verification over the balance
threshold relation.

Version: 1.0.0
"""

import copy

import pytest

from shared.zk.circuit import BalanceThresholdRelation
from shared.zk.exceptions import (
    ConstraintUnsatisfiedError,
    InvalidWitnessError,
    KeyMismatchError,
    MalformedProofError,
)
from shared.zk.keys import KeyPair, VerifyingKey
from shared.zk.models import VerificationStatus, ZKProof
from shared.zk.prover import prove
from shared.zk.verifier import verify


@pytest.fixture(scope="module")
def issued_proof(relation, key_pair) -> ZKProof:
    """Proof that a balance of 200 covers a threshold of 150."""
    return prove(key_pair.proving_key, relation, balance=200, threshold=150)


class TestProver:
    """Tests for proof generation."""

    def test_proof_has_snarkjs_layout(self, issued_proof, key_pair):
        assert issued_proof.protocol == "groth16"
        assert issued_proof.curve == "bn128"
        assert len(issued_proof.pi_a) == 3
        assert issued_proof.pi_a[2] == "1"
        assert len(issued_proof.pi_b) == 3
        assert all(len(pair) == 2 for pair in issued_proof.pi_b)
        assert issued_proof.pi_b[2] == ["1", "0"]
        assert issued_proof.relation_id == key_pair.relation_id
        assert issued_proof.key_id == key_pair.key_id

    def test_proof_does_not_contain_balance(self, issued_proof):
        fields = set(issued_proof.model_dump())
        assert "balance" not in fields
        assert fields == {"pi_a", "pi_b", "pi_c", "protocol", "curve", "relation_id", "key_id"}

    def test_proofs_are_randomized(self, relation, key_pair, issued_proof):
        again = prove(key_pair.proving_key, relation, balance=200, threshold=150)
        assert again.pi_a != issued_proof.pi_a

    def test_threshold_above_balance(self, relation, key_pair):
        with pytest.raises(ConstraintUnsatisfiedError):
            prove(key_pair.proving_key, relation, balance=100, threshold=150)

    @pytest.mark.parametrize("balance,threshold", [(-5, 0), (300, 10), (10, "5")])
    def test_invalid_inputs(self, relation, key_pair, balance, threshold):
        with pytest.raises(InvalidWitnessError):
            prove(key_pair.proving_key, relation, balance=balance, threshold=threshold)

    def test_key_for_other_relation(self, key_pair):
        wider = BalanceThresholdRelation(bit_width=16)
        with pytest.raises(KeyMismatchError):
            prove(key_pair.proving_key, wider, balance=200, threshold=150)


class TestVerifier:
    """Tests for proof verification."""

    def test_valid_proof(self, key_pair, issued_proof):
        assert verify(key_pair.verifying_key, 150, issued_proof) is VerificationStatus.VALID

    def test_exact_balance(self, relation, key_pair):
        proof = prove(key_pair.proving_key, relation, balance=150, threshold=150)
        assert verify(key_pair.verifying_key, 150, proof) is VerificationStatus.VALID

    def test_zero_threshold(self, relation, key_pair):
        proof = prove(key_pair.proving_key, relation, balance=0, threshold=0)
        assert verify(key_pair.verifying_key, 0, proof) is VerificationStatus.VALID

    @pytest.mark.parametrize("other_threshold", [149, 151, 0])
    def test_proof_bound_to_threshold(self, key_pair, issued_proof, other_threshold):
        assert verify(key_pair.verifying_key, other_threshold, issued_proof) is VerificationStatus.INVALID

    def test_tampered_point_is_invalid(self, key_pair, issued_proof):
        """Swapping in a different valid curve point fails the pairing check."""
        other = prove(key_pair.proving_key, BalanceThresholdRelation(bit_width=8), balance=10, threshold=3)
        forged = issued_proof.model_copy(update={"pi_c": other.pi_c})
        assert verify(key_pair.verifying_key, 150, forged) is VerificationStatus.INVALID

    def test_proof_from_other_key_pair(self, key_pair, other_key_pair, issued_proof):
        with pytest.raises(KeyMismatchError):
            verify(other_key_pair.verifying_key, 150, issued_proof)

    def test_relabeled_proof_from_other_key_pair_is_invalid(self, key_pair, other_key_pair, issued_proof):
        """Forging the key id does not make a foreign proof verify."""
        relabeled = issued_proof.model_copy(update={"key_id": other_key_pair.key_id})
        assert verify(other_key_pair.verifying_key, 150, relabeled) is VerificationStatus.INVALID

    def test_proof_for_other_relation(self, key_pair, issued_proof):
        relabeled = issued_proof.model_copy(update={"relation_id": "0" * 64})
        with pytest.raises(KeyMismatchError):
            verify(key_pair.verifying_key, 150, relabeled)

    @pytest.mark.parametrize("threshold", [-1, 256, "150", 150.0])
    def test_invalid_threshold(self, key_pair, issued_proof, threshold):
        with pytest.raises(InvalidWitnessError):
            verify(key_pair.verifying_key, threshold, issued_proof)

    def test_point_off_curve(self, key_pair, issued_proof):
        broken = issued_proof.model_copy(update={"pi_a": ["1", "1", "1"]})
        with pytest.raises(MalformedProofError, match="not on the curve"):
            verify(key_pair.verifying_key, 150, broken)

    def test_coordinate_out_of_field(self, key_pair, issued_proof):
        pi_a = list(issued_proof.pi_a)
        pi_a[0] = str(2**256)
        with pytest.raises(MalformedProofError):
            verify(key_pair.verifying_key, 150, issued_proof.model_copy(update={"pi_a": pi_a}))

    def test_point_at_infinity(self, key_pair, issued_proof):
        broken = issued_proof.model_copy(update={"pi_c": ["0", "1", "0"]})
        with pytest.raises(MalformedProofError, match="infinity"):
            verify(key_pair.verifying_key, 150, broken)

    def test_wrong_protocol(self, key_pair, issued_proof):
        with pytest.raises(MalformedProofError):
            verify(key_pair.verifying_key, 150, issued_proof.model_copy(update={"protocol": "plonk"}))

    @pytest.mark.parametrize("raw", [b"not json", "zz-not-hex", {"pi_a": ["1"]}, 42, []])
    def test_undecodable_proof(self, key_pair, raw):
        with pytest.raises(MalformedProofError):
            verify(key_pair.verifying_key, 150, raw)

    def test_oversized_proof_string(self, key_pair):
        raw = "{\"a\":" + "[" * 100_000 + "]" * 100_000 + "}"
        with pytest.raises(MalformedProofError, match="limit"):
            verify(key_pair.verifying_key, 150, raw)

    def test_accepts_serialized_forms(self, key_pair, issued_proof):
        vk = key_pair.verifying_key
        assert verify(vk, 150, issued_proof.to_bytes()) is VerificationStatus.VALID
        assert verify(vk, 150, issued_proof.to_hex()) is VerificationStatus.VALID
        assert verify(vk, 150, issued_proof.model_dump()) is VerificationStatus.VALID

    def test_verify_is_deterministic(self, key_pair, issued_proof):
        first = verify(key_pair.verifying_key, 151, issued_proof)
        second = verify(key_pair.verifying_key, 151, issued_proof)
        assert first is second is VerificationStatus.INVALID


class TestKeySerialization:
    """Tests for key pair encoding."""

    def test_key_pair_round_trip(self, key_pair, issued_proof):
        restored = KeyPair.from_bytes(key_pair.to_bytes())

        assert restored.key_id == key_pair.key_id
        assert restored.relation_id == key_pair.relation_id
        assert restored.to_bytes() == key_pair.to_bytes()
        assert verify(restored.verifying_key, 150, issued_proof) is VerificationStatus.VALID

    def test_verifying_key_snarkjs_fields(self, key_pair):
        data = key_pair.verifying_key.to_dict()
        assert data["protocol"] == "groth16"
        assert data["nPublic"] == 1
        assert len(data["IC"]) == 2
        assert {"vk_alpha_1", "vk_beta_2", "vk_gamma_2", "vk_delta_2"} <= data.keys()

    def test_key_id_changes_with_setup(self, key_pair, other_key_pair):
        assert key_pair.relation_id == other_key_pair.relation_id
        assert key_pair.key_id != other_key_pair.key_id

    def test_mismatched_halves_rejected(self, key_pair, other_key_pair):
        data = copy.deepcopy(key_pair.to_dict())
        data["verifying_key"] = other_key_pair.verifying_key.to_dict()
        with pytest.raises(ValueError, match="does not belong"):
            KeyPair.from_dict(data)

    def test_verifying_key_rejects_foreign_curve(self, key_pair):
        data = key_pair.verifying_key.to_dict()
        data["curve"] = "bls12381"
        with pytest.raises(ValueError):
            VerifyingKey.from_dict(data)

    def test_proving_key_query_sizes(self, relation, key_pair):
        pk = key_pair.proving_key
        system = relation.system
        assert len(pk.a_query) == system.num_variables
        assert len(pk.l_query) == system.num_private
        assert len(pk.h_query) == pk.domain_size - 1
        assert pk.domain_size >= len(system.constraints)
