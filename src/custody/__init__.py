"""Custody ledger: custodial wallets, transfers and staking."""

__version__ = "0.1.0"
