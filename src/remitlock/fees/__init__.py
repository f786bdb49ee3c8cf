"""
Fee policy for RemitLock.
"""

from remitlock.fees.policy import FeePolicy

__all__ = ["FeePolicy"]
