"""
Exception hierarchy for RemitLock.

All RemitLock exceptions inherit from RemitLockError for easy catching.
Every failure is caller-attributable: an operation that raises has had
no effect on ledger, fee or circuit state.
"""

from __future__ import annotations

from typing import Any


class RemitLockError(Exception):
    """
    Base exception for all RemitLock errors.

    Example:
        >>> try:
        ...     await remittance.reclaim(commitment, caller=alice)
        ... except RemitLockError as e:
        ...     print(f"Remittance rejected: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(RemitLockError):
    """
    Configuration is missing or invalid.

    Raised when:
    - Fixed fee is negative
    - Maximum lock window is not positive
    - Owner or contract identity is malformed
    """

    pass


class InvalidArgumentError(RemitLockError):
    """
    Malformed input supplied by the caller.

    Raised when:
    - An identity is not a 20-byte hex address
    - A commitment is not 32 bytes
    - A password is empty or wider than its 32-byte slot
    - An amount is negative
    """

    pass


class InvalidExchangeError(InvalidArgumentError):
    """The exchange identity of a new lock is missing or malformed."""

    pass


class StateConflictError(RemitLockError):
    """
    The lock is not in the state the operation requires.

    Carries the commitment where one is known.
    """

    def __init__(
        self,
        message: str,
        commitment: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.commitment = commitment


class CommitmentReusedError(StateConflictError):
    """The commitment has already been used for a lock, active or settled."""

    pass


class LockEmptyError(StateConflictError):
    """
    No redeemable value is held under the given commitment.

    The same message is used whether the lock never existed, the password
    was wrong, or the lock is already settled.
    """

    MESSAGE = "Lock is empty"

    def __init__(self, commitment: str | None = None) -> None:
        super().__init__(self.MESSAGE, commitment=commitment)


class LockContentionError(StateConflictError):
    """A settlement mutex could not be obtained within the retry budget."""

    pass


class AuthorizationError(RemitLockError):
    """
    Caller is not allowed to perform the operation.

    Raised when:
    - A non-owner calls an owner-only operation
    - A non-remitter tries to reclaim a lock
    """

    def __init__(
        self,
        message: str,
        caller: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.caller = caller


class NotOwnerError(AuthorizationError):
    """Caller is not the owner."""

    pass


class NotRemitterError(AuthorizationError):
    """Caller is not the remitter of the lock."""

    pass


class TemporalConstraintError(RemitLockError):
    """
    Deadline rule violated.

    Carries the deadline and the time the check was made at.
    """

    def __init__(
        self,
        message: str,
        deadline: int,
        now: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.deadline = deadline
        self.now = now

    def __str__(self) -> str:
        return f"{self.message} | Deadline: {self.deadline}, Now: {self.now}"


class DeadlineInPastError(TemporalConstraintError):
    """New lock deadline is not in the future."""

    pass


class DeadlineTooFarError(TemporalConstraintError):
    """New lock deadline exceeds the maximum lock window."""

    pass


class DeadlineNotReachedError(TemporalConstraintError):
    """Reclaim attempted before the lock deadline."""

    pass


class InsufficientValueError(RemitLockError):
    """
    Not enough value for the operation.

    Raised when:
    - A deposit does not cover the fixed fee
    - A fee withdrawal finds nothing accrued
    """

    def __init__(
        self,
        message: str,
        available: int = 0,
        required: int = 0,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.available = available
        self.required = required
        self.shortfall = max(required - available, 0)


class InsufficientDepositError(InsufficientValueError):
    """Deposit is smaller than the fixed fee."""

    def __str__(self) -> str:
        return (
            f"{self.message} | "
            f"Deposit: {self.available}, Fee: {self.required}, "
            f"Shortfall: {self.shortfall}"
        )


class NothingToWithdrawError(InsufficientValueError):
    """No fees accrued for the owner."""

    pass


class SystemUnavailableError(RemitLockError):
    """The circuit breaker blocks the operation."""

    pass


class SystemPausedError(SystemUnavailableError):
    """The system is paused by its owner."""

    pass


class SystemDeadError(SystemUnavailableError):
    """The system has been killed and can never resume."""

    pass


class TransferError(RemitLockError):
    """
    The value-transfer substrate rejected or failed a movement of value.

    Raised when:
    - The source account cannot cover a deposit
    - The custodian API answers with an error status
    - The custodian API cannot be reached
    """

    def __init__(
        self,
        message: str,
        account: str | None = None,
        amount: int | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.account = account
        self.amount = amount
        self.status_code = status_code

    def is_server_error(self) -> bool:
        """Check if this is a server-side error."""
        return self.status_code is not None and 500 <= self.status_code < 600


class SolvencyError(RemitLockError):
    """Value in custody is below what active locks and accrued fees require."""

    def __init__(self, message: str, held: int, owed: int) -> None:
        super().__init__(message, details={"held": held, "owed": owed})
        self.held = held
        self.owed = owed
