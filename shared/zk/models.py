"""
ZK-SNARK Data Models
====================

Pydantic models for proof data.

Version: 1.0.0
"""

import json
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, ValidationError

from shared.zk.exceptions import MalformedProofError


# Encoded proofs are under 1 KiB; anything far larger is rejected unparsed
MAX_ENCODED_PROOF_SIZE = 8 * 1024


def _check_encoded_size(raw: bytes | str) -> None:
    if isinstance(raw, (bytes, bytearray, str)) and len(raw) > MAX_ENCODED_PROOF_SIZE:
        raise MalformedProofError(
            f"encoded proof is {len(raw)} bytes, limit is {MAX_ENCODED_PROOF_SIZE}"
        )


class VerificationStatus(str, Enum):
    """Outcome of a pairing check. Errors are raised, not returned."""

    VALID = "valid"
    INVALID = "invalid"


class ZKProof(BaseModel):
    """
    A zero-knowledge proof.

    Compatible with the snarkjs Groth16 proof format, extended with the
    identifiers of the relation and verifying key it was produced under.
    Carries no balance information.
    """

    # Proof points (G1 and G2 elements)
    pi_a: list[str] = Field(..., description="Proof point A (G1)")
    pi_b: list[list[str]] = Field(..., description="Proof point B (G2)")
    pi_c: list[str] = Field(..., description="Proof point C (G1)")

    # Protocol info
    protocol: str = Field(default="groth16")
    curve: str = Field(default="bn128")

    # Key lifecycle binding
    relation_id: str = Field(..., description="Digest of the relation shape")
    key_id: str = Field(..., description="Fingerprint of the verifying key")

    def to_bytes(self) -> bytes:
        """Canonical JSON encoding (sorted keys, compact)."""
        return json.dumps(self.model_dump(), sort_keys=True, separators=(",", ":")).encode()

    @classmethod
    def from_bytes(cls, raw: bytes | str) -> "ZKProof":
        _check_encoded_size(raw)
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError, RecursionError) as e:
            raise MalformedProofError(f"proof is not valid JSON: {e}") from e
        return cls.parse(data)

    def to_hex(self) -> str:
        """Convert to hex string for storage."""
        return self.to_bytes().hex()

    @classmethod
    def from_hex(cls, hex_str: str) -> "ZKProof":
        """Create from hex string."""
        if isinstance(hex_str, str) and len(hex_str) > 2 * MAX_ENCODED_PROOF_SIZE:
            raise MalformedProofError("hex encoded proof is too large")
        try:
            raw = bytes.fromhex(hex_str)
        except (ValueError, TypeError) as e:
            raise MalformedProofError("proof is not valid hex") from e
        return cls.from_bytes(raw)

    @classmethod
    def parse(cls, data: object) -> "ZKProof":
        """Accept a model, dict, JSON bytes/str or hex string."""
        if isinstance(data, cls):
            return data
        if isinstance(data, (bytes, bytearray)):
            return cls.from_bytes(bytes(data))
        if isinstance(data, str):
            stripped = data.strip()
            if stripped.startswith("{"):
                return cls.from_bytes(stripped)
            return cls.from_hex(stripped)
        if not isinstance(data, dict):
            raise MalformedProofError(f"unsupported proof encoding: {type(data).__name__}")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise MalformedProofError(f"proof failed schema validation: {e.error_count()} error(s)") from e


class PublicSignals(BaseModel):
    """Public inputs of a proof."""

    signals: list[str] = Field(..., description="Public signals as decimal strings")

    @property
    def threshold(self) -> int:
        """Get the threshold (first signal)."""
        return int(self.signals[0])

    def to_int_list(self) -> list[int]:
        """Convert to list of integers."""
        return [int(s) for s in self.signals]


class ProofMetadata(BaseModel):
    """Metadata about a generated proof."""

    attempt_id: str
    relation_id: str
    key_id: str
    threshold: int = Field(..., ge=0)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    proving_time_ms: int = Field(..., ge=0)


class ProofWithMetadata(BaseModel):
    """Complete proof with metadata."""

    proof: ZKProof
    public_signals: PublicSignals
    metadata: ProofMetadata


class VerificationResult(BaseModel):
    """Result of proof verification."""

    valid: bool
    status: VerificationStatus
    threshold: int
    attempt_id: str | None = None
    verified_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    verification_time_ms: int = Field(..., ge=0)
