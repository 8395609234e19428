"""Fund ledgers — collections, payouts, and fund health."""

from .disbursement import DisbursementLedger, EntryKind, LedgerEntry, LedgerSnapshot

__all__ = ["DisbursementLedger", "EntryKind", "LedgerEntry", "LedgerSnapshot"]
