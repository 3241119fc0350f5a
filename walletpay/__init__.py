"""Wallet-to-wallet disbursement: validation, transactional transfer, history and an HTTP endpoint."""

__version__ = "0.1.0"