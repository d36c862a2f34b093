"""
Candidate transactions → Duplicate check → Account suggestion → Ledger import

A deterministic, testable pipeline that reconciles parsed candidate
transactions against ledger history and posts them through the ledger's
stage → preview → mapping → commit import API with idempotent row keys.
"""

__version__ = "0.1.0"
