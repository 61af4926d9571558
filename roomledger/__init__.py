"""Room utility billing: reading ledger, bill calculation and PDF receipts."""

__version__ = "0.1.0"
