"""
Ledger module - the lock state machine and its settlement mutex.
"""

from remitlock.ledger.ledger import LockLedger
from remitlock.ledger.lock import SettlementLockService

__all__ = [
    "LockLedger",
    "SettlementLockService",
]
