"""
Access control for RemitLock: owner check and pause/kill circuit breaker.
"""

from remitlock.access.gate import AccessGate

__all__ = ["AccessGate"]
