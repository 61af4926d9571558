"""Billing services: calculator, ledger, fonts, receipts and persistence."""
