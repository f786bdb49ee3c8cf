"""
Value-transfer substrates for RemitLock.
"""

from remitlock.transfer.base import ValueTransferPort
from remitlock.transfer.http import HttpValueTransfer
from remitlock.transfer.memory import InMemoryValueTransfer

__all__ = [
    "ValueTransferPort",
    "HttpValueTransfer",
    "InMemoryValueTransfer",
]
