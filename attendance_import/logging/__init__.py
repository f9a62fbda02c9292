"""Logging setup and the import error ledger."""
