"""
RemitLock - trust-minimized remittance escrow.

A remitter locks value under a one-time password commitment. The bound
exchange redeems it with the password, or the remitter reclaims it once
the deadline has passed. Never both.

Usage:
    >>> from remitlock import Remittance, generate_password
    >>>
    >>> remittance = Remittance(deployer=owner, fixed_fee=1)
    >>> password = generate_password()
    >>> commitment = remittance.commit(password, exchange=carol)
    >>> await remittance.create_lock(commitment, deadline, carol, alice, 1_000_000)
    >>> await remittance.redeem(password, caller=carol)
"""

from remitlock.access import AccessGate
from remitlock.client import Remittance
from remitlock.core.config import Config
from remitlock.core.exceptions import (
    AuthorizationError,
    CommitmentReusedError,
    ConfigurationError,
    DeadlineInPastError,
    DeadlineNotReachedError,
    DeadlineTooFarError,
    InsufficientDepositError,
    InsufficientValueError,
    InvalidArgumentError,
    InvalidExchangeError,
    LockContentionError,
    LockEmptyError,
    NotOwnerError,
    NotRemitterError,
    NothingToWithdrawError,
    RemitLockError,
    SolvencyError,
    StateConflictError,
    SystemDeadError,
    SystemPausedError,
    SystemUnavailableError,
    TemporalConstraintError,
    TransferError,
)
from remitlock.core.types import CircuitStatus, Liveness, LockRecord, LockState
from remitlock.crypto import commit, generate_password
from remitlock.events import EventType, RemittanceEvent
from remitlock.fees import FeePolicy
from remitlock.ledger import LockLedger
from remitlock.transfer import HttpValueTransfer, InMemoryValueTransfer, ValueTransferPort

__version__ = "0.1.0"
__all__ = [
    # Main entry point
    "Remittance",
    "Config",
    # Components
    "AccessGate",
    "FeePolicy",
    "LockLedger",
    "commit",
    "generate_password",
    # Transfer substrates
    "ValueTransferPort",
    "InMemoryValueTransfer",
    "HttpValueTransfer",
    # Types
    "CircuitStatus",
    "Liveness",
    "LockRecord",
    "LockState",
    "EventType",
    "RemittanceEvent",
    # Exceptions
    "RemitLockError",
    "ConfigurationError",
    "InvalidArgumentError",
    "InvalidExchangeError",
    "StateConflictError",
    "CommitmentReusedError",
    "LockEmptyError",
    "LockContentionError",
    "AuthorizationError",
    "NotOwnerError",
    "NotRemitterError",
    "TemporalConstraintError",
    "DeadlineInPastError",
    "DeadlineTooFarError",
    "DeadlineNotReachedError",
    "InsufficientValueError",
    "InsufficientDepositError",
    "NothingToWithdrawError",
    "SystemUnavailableError",
    "SystemPausedError",
    "SystemDeadError",
    "TransferError",
    "SolvencyError",
]
