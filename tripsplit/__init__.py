"""Shared trip expense ledger and settlement service."""

__version__ = "0.1.0"
