"""
ZK Protocol Errors
==================

Typed failures of the balance threshold protocol.

Every error carries a stable ``error_code`` so the service layer can map
it 1:1 to a caller-visible outcome. A failed verification is NOT an error:
it is returned as ``VerificationStatus.INVALID``.

Version: 1.0.0
"""


class ZKError(Exception):
    """Base class for all protocol errors."""

    error_code: str = "zk_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or self.error_code)
        self.message = message or str(self.args[0])


class BalanceNotFoundError(ZKError):
    """Identity has no stored balance."""

    error_code = "not_found"

    def __init__(self, identity: str) -> None:
        super().__init__(f"balance not found for identity '{identity}'")
        self.identity = identity


class ConstraintUnsatisfiedError(ZKError):
    """Witness does not satisfy the relation (balance below threshold)."""

    error_code = "constraint_unsatisfied"


class InvalidWitnessError(ZKError):
    """Witness value has the wrong type or does not fit the field range."""

    error_code = "invalid_witness"


class MalformedProofError(ZKError):
    """Proof encoding is structurally invalid."""

    error_code = "malformed_proof"


class KeyMismatchError(ZKError):
    """Key or proof was produced for a different relation or key pair."""

    error_code = "key_mismatch"


class ProverFaultError(ZKError):
    """Internal arithmetic failure while constructing a proof."""

    error_code = "prover_fault"


class SetupFaultError(ZKError):
    """Key generation failed."""

    error_code = "setup_fault"


class RelationShapeError(ZKError):
    """Compiled constraint system does not match the declared variable partition."""

    error_code = "relation_shape"
