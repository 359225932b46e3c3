"""
Services
========

HTTP services built on the shared library.

Services:
- balance_proof: private balance storage and threshold proofs
"""

__all__ = [
    "balance_proof",
]
