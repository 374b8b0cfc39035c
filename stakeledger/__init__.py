"""Stake Ledger: lock-period staking bookkeeping."""

__version__ = "0.1.0"
