"""
Balance Proof Shared Library
============================

Configuration, logging, storage clients and the zero-knowledge proof
system shared by the balance proof service.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - database: Redis client for key persistence
    - models: Shared Pydantic response models
    - zk: Groth16 relation, keys, prover and verifier

Version: 1.0.0
"""

__version__ = "1.0.0"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
