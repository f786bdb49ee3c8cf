"""
Password commitments.

A commitment is keccak256(contract || password || exchange), with each
field in its fixed-width EVM encoding:

    contract  address   20 bytes
    password  bytes32   UTF-8, right-padded with zero bytes
    exchange  address   20 bytes

Binding the contract identity stops a commitment made for one deployment
from being replayed against another. Binding the exchange identity means
only that exchange can rebuild the commitment at redemption time, so a
leaked password is useless to anyone else.
"""

from __future__ import annotations

import re
import secrets

from Crypto.Hash import keccak

from remitlock.core.exceptions import InvalidArgumentError
from remitlock.core.types import Commitment, Identity

ADDRESS_BYTES = 20
PASSWORD_BYTES = 32
COMMITMENT_BYTES = 32

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_COMMITMENT_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def keccak256(data: bytes) -> bytes:
    """Keccak-256 digest (pre-NIST padding, as used by EVM chains)."""
    return keccak.new(digest_bits=256, data=data).digest()


def normalize_identity(value: str | None, field: str = "identity") -> Identity:
    """Validate a 20-byte hex address and return it in lower case."""
    if not isinstance(value, str) or not _ADDRESS_RE.match(value):
        raise InvalidArgumentError(
            f"Invalid {field}: expected 0x-prefixed 20-byte hex address",
            details={field: value},
        )
    return value.lower()


def normalize_commitment(value: str | bytes) -> Commitment:
    """Validate a 32-byte commitment given as hex string or raw bytes."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) != COMMITMENT_BYTES:
            raise InvalidArgumentError(
                "Invalid commitment: expected 32 bytes",
                details={"length": len(value)},
            )
        return "0x" + bytes(value).hex()
    if not isinstance(value, str) or not _COMMITMENT_RE.match(value):
        raise InvalidArgumentError(
            "Invalid commitment: expected 0x-prefixed 32-byte hex digest",
            details={"commitment": value},
        )
    return value.lower()


def encode_password(plaintext: str) -> bytes:
    """Encode a plaintext password into its bytes32 slot."""
    if not isinstance(plaintext, str) or not plaintext:
        raise InvalidArgumentError("Password must be a non-empty string")
    raw = plaintext.encode("utf-8")
    if len(raw) > PASSWORD_BYTES:
        # No detail: the value is secret.
        raise InvalidArgumentError(f"Password longer than {PASSWORD_BYTES} bytes")
    return raw.ljust(PASSWORD_BYTES, b"\x00")


def _address_bytes(identity: Identity) -> bytes:
    return bytes.fromhex(identity[2:])


def commit(
    contract_identity: Identity,
    plaintext_password: str,
    exchange_identity: Identity,
) -> Commitment:
    """
    Derive the commitment for a password.

    Args:
        contract_identity: Address of the remittance instance
        plaintext_password: One-time password shared out of band
        exchange_identity: Address of the exchange allowed to redeem

    Returns:
        0x-prefixed hex commitment

    Raises:
        InvalidArgumentError: If any input is malformed
    """
    contract = normalize_identity(contract_identity, "contract_identity")
    exchange = normalize_identity(exchange_identity, "exchange_identity")
    payload = _address_bytes(contract) + encode_password(plaintext_password) + _address_bytes(exchange)
    return "0x" + keccak256(payload).hex()


def generate_password(nbytes: int = 16) -> str:
    """Generate a random one-time password that fits the bytes32 slot."""
    # token_urlsafe yields ~1.3 chars per byte
    if nbytes <= 0 or nbytes > 24:
        raise InvalidArgumentError("nbytes must be between 1 and 24")
    return secrets.token_urlsafe(nbytes)


def generate_identity() -> Identity:
    """Generate a random address, used when no contract identity is configured."""
    return "0x" + secrets.token_hex(ADDRESS_BYTES)
