"""
Balance Proof Service
=====================

Store private balances, issue zero-knowledge proofs that a balance meets a
public threshold, and verify such proofs.
"""
