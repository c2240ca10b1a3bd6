"""Ledger adapter for the UsageLogger contract."""

from usage_audit.ledger.adapter import (
    LedgerAdapter,
    LedgerReceipt,
    PendingSubmission,
    UsageEvent,
)

__all__ = ["LedgerAdapter", "LedgerReceipt", "PendingSubmission", "UsageEvent"]
