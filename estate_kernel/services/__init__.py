"""Kernel services. Flush-only; the service layer owns commit."""

from estate_kernel.services.account_registry import AccountRegistry
from estate_kernel.services.ledger_poster import LedgerPoster
from estate_kernel.services.sequence_service import SequenceCounter, SequenceService

__all__ = [
    "AccountRegistry",
    "LedgerPoster",
    "SequenceCounter",
    "SequenceService",
]
