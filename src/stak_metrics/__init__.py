"""Vesting and position economics for Stak Flying ICOs and Stak Vaults."""

__version__ = "0.1.0"
