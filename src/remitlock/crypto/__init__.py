"""
Commitment scheme for RemitLock.
"""

from remitlock.crypto.commitment import (
    commit,
    generate_identity,
    generate_password,
    keccak256,
    normalize_commitment,
    normalize_identity,
)

__all__ = [
    "commit",
    "generate_identity",
    "generate_password",
    "keccak256",
    "normalize_commitment",
    "normalize_identity",
]
