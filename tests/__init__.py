"""
Balance Proof Test Suite
========================

Test organization:
- tests/unit/                     - Proof system, key management, models, logging
- tests/services/balance_proof/   - Store, protocol and HTTP API

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
"""
