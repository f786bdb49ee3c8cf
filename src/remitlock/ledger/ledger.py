"""
Lock ledger: the remittance escrow state machine.

Each commitment moves UNUSED -> ACTIVE -> SETTLED exactly once:

    create_lock   UNUSED -> ACTIVE    remitter deposits, fee is taken
    redeem        ACTIVE -> SETTLED   exchange proves the password, is paid net
    reclaim       ACTIVE -> SETTLED   remitter takes net back after the deadline

Records are never deleted, so a SETTLED commitment blocks reuse forever.
Redeem and reclaim compete for the same record; the per-commitment mutex
makes "read record, decide, write record" indivisible, so only one of
them can ever pay.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from remitlock.core.exceptions import (
    CommitmentReusedError,
    DeadlineInPastError,
    DeadlineNotReachedError,
    DeadlineTooFarError,
    InvalidArgumentError,
    InvalidExchangeError,
    LockEmptyError,
    NotRemitterError,
)
from remitlock.core.logging import get_logger, short_commitment
from remitlock.core.types import Commitment, Identity, LockRecord, LockState
from remitlock.crypto.commitment import commit, normalize_commitment, normalize_identity
from remitlock.events import EventType, RemittanceEvent
from remitlock.ledger.lock import commitment_key

if TYPE_CHECKING:
    from remitlock.access.gate import AccessGate
    from remitlock.fees.policy import FeePolicy
    from remitlock.ledger.lock import SettlementLockService
    from remitlock.storage.base import StorageBackend
    from remitlock.transfer.base import ValueTransferPort


def _now(now: int | None) -> int:
    return int(time.time()) if now is None else int(now)


class LockLedger:
    """
    Commitment -> LockRecord map with its transition rules.

    All state lives in the StorageBackend; this class holds no mutable
    state of its own.
    """

    COLLECTION = "locks"

    def __init__(
        self,
        contract_identity: Identity,
        max_lock_window: int,
        storage: StorageBackend,
        transfer: ValueTransferPort,
        fees: FeePolicy,
        gate: AccessGate,
        locks: SettlementLockService,
    ) -> None:
        """
        Initialize the ledger.

        Args:
            contract_identity: Address bound into every commitment
            max_lock_window: Longest allowed deadline, in seconds from creation
            storage: Storage backend holding lock records
            transfer: Substrate that moves value in and out
            fees: Fee policy sizing deposits
            gate: Circuit breaker consulted before creating locks
            locks: Per-commitment mutex service
        """
        self._identity = normalize_identity(contract_identity, "contract_identity")
        self._max_lock_window = max_lock_window
        self._storage = storage
        self._transfer = transfer
        self._fees = fees
        self._gate = gate
        self._locks = locks
        self._logger = get_logger("ledger")

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def max_lock_window(self) -> int:
        return self._max_lock_window

    async def get_lock(self, commitment: Commitment) -> LockRecord | None:
        """Get the record stored under commitment, if any."""
        data = await self._storage.get(self.COLLECTION, normalize_commitment(commitment))
        if not data:
            return None
        return LockRecord.from_dict(data)

    async def state_of(self, commitment: Commitment) -> LockState:
        record = await self.get_lock(commitment)
        return record.state if record else LockState.UNUSED

    async def active_balance(self) -> int:
        """Sum of net amounts over all ACTIVE locks."""
        rows = await self._storage.query(self.COLLECTION, filters={"state": LockState.ACTIVE.value})
        return sum(int(row["net_amount"]) for row in rows)

    async def create_lock(
        self,
        commitment: Commitment,
        deadline: int,
        exchange: Identity | None,
        remitter: Identity,
        deposit_amount: int,
        now: int | None = None,
    ) -> RemittanceEvent:
        """
        Lock deposit_amount under commitment until deadline.

        Checks run in a fixed order and the first failure wins: circuit,
        exchange, commitment reuse, deadline past, deadline too far,
        deposit covers fee.

        Raises:
            SystemDeadError, SystemPausedError: Circuit blocks new locks
            InvalidExchangeError: Exchange missing or malformed
            CommitmentReusedError: Commitment already used
            DeadlineInPastError: deadline <= now
            DeadlineTooFarError: deadline > now + max_lock_window
            InsufficientDepositError: Deposit smaller than the fee
            TransferError: Deposit could not be pulled in
        """
        now = _now(now)
        commitment = normalize_commitment(commitment)
        remitter = normalize_identity(remitter, "remitter")

        await self._gate.require_operational()

        if not exchange:
            raise InvalidExchangeError("Exchange identity is required")
        try:
            exchange = normalize_identity(exchange, "exchange")
        except InvalidArgumentError as e:
            raise InvalidExchangeError(e.message, details=e.details) from e

        async with self._locks.hold(commitment_key(commitment)):
            if await self.get_lock(commitment) is not None:
                raise CommitmentReusedError("Commitment already used", commitment=commitment)

            if deadline <= now:
                raise DeadlineInPastError("Deadline must be in the future", deadline=deadline, now=now)
            if deadline > now + self._max_lock_window:
                raise DeadlineTooFarError(
                    "Deadline exceeds the maximum lock window",
                    deadline=deadline,
                    now=now,
                    details={"max_lock_window": self._max_lock_window},
                )

            net, fee = self._fees.fee_for(deposit_amount)

            await self._transfer.transfer_in(remitter, deposit_amount, reference=commitment)

            record = LockRecord(
                commitment=commitment,
                remitter=remitter,
                exchange=exchange,
                net_amount=net,
                deadline=deadline,
                state=LockState.ACTIVE,
                created_at=now,
            )
            # The mutex may have expired during transfer_in; the write decides.
            try:
                created = await self._storage.save_if_absent(
                    self.COLLECTION, commitment, record.to_dict()
                )
            except Exception:
                await self._refund(remitter, deposit_amount, commitment)
                raise
            if not created:
                await self._refund(remitter, deposit_amount, commitment)
                raise CommitmentReusedError("Commitment already used", commitment=commitment)

            try:
                await self._fees.accrue(self._gate.owner, fee)
            except Exception:
                await self._storage.delete(self.COLLECTION, commitment)
                await self._refund(remitter, deposit_amount, commitment)
                raise

        self._logger.info(
            f"Locked {net} under {short_commitment(commitment)} "
            f"(fee {fee}, deadline {deadline})"
        )
        return RemittanceEvent(
            type=EventType.LOCK_CREATED,
            data={
                "remitter": remitter,
                "commitment": commitment,
                "net_amount": net,
                "fee": fee,
                "deadline": deadline,
            },
            timestamp=now,
        )

    async def redeem(
        self,
        plaintext_password: str,
        caller: Identity,
        now: int | None = None,
    ) -> RemittanceEvent:
        """
        Pay an active lock to the exchange that knows its password.

        The caller's identity is hashed into the commitment, so only the
        exchange bound at creation can land on an ACTIVE record. The
        deadline is not consulted.

        Raises:
            LockEmptyError: No ACTIVE lock matches (unknown, wrong password,
                wrong caller or already settled; not distinguished)
            TransferError: Payout failed; the lock stays ACTIVE
        """
        now = _now(now)
        caller = normalize_identity(caller, "caller")
        commitment = commit(self._identity, plaintext_password, caller)

        async with self._locks.hold(commitment_key(commitment)):
            record = await self.get_lock(commitment)
            if record is None or not record.is_active:
                self._logger.debug(f"Redeem rejected for {caller}")
                raise LockEmptyError()

            amount = await self._settle(record, caller, now)

        self._logger.info(f"Redeemed {amount} from {short_commitment(commitment)} to {caller}")
        return RemittanceEvent(
            type=EventType.REDEEMED,
            data={"exchange": caller, "commitment": commitment, "amount": amount},
            timestamp=now,
        )

    async def reclaim(
        self,
        commitment: Commitment,
        caller: Identity,
        now: int | None = None,
    ) -> RemittanceEvent:
        """
        Return an expired lock to its remitter.

        Raises:
            LockEmptyError: Lock absent or already settled
            NotRemitterError: Caller did not fund the lock
            DeadlineNotReachedError: now < deadline
            TransferError: Payout failed; the lock stays ACTIVE
        """
        now = _now(now)
        commitment = normalize_commitment(commitment)
        caller = normalize_identity(caller, "caller")

        async with self._locks.hold(commitment_key(commitment)):
            record = await self.get_lock(commitment)
            if record is None or not record.is_active:
                raise LockEmptyError(commitment)
            if caller != record.remitter:
                raise NotRemitterError("Caller is not the remitter", caller=caller)
            if now < record.deadline:
                raise DeadlineNotReachedError(
                    "Deadline has not been reached",
                    deadline=record.deadline,
                    now=now,
                )

            amount = await self._settle(record, caller, now)

        self._logger.info(f"Reclaimed {amount} from {short_commitment(commitment)} to {caller}")
        return RemittanceEvent(
            type=EventType.RECLAIMED,
            data={"remitter": caller, "commitment": commitment, "amount": amount},
            timestamp=now,
        )

    async def _refund(self, remitter: Identity, amount: int, commitment: Commitment) -> None:
        """Return a deposit pulled in for a lock that was never recorded."""
        self._logger.warning(
            f"Lock {short_commitment(commitment)} not recorded, refunding {amount} to {remitter}"
        )
        await self._transfer.transfer_out(remitter, amount, reference=commitment)

    async def _settle(self, record: LockRecord, payee: Identity, now: int) -> int:
        """
        Mark record SETTLED, then pay its net amount to payee.

        Must be called with the commitment mutex held. A failed payout
        puts the record back exactly as it was.
        """
        amount = record.net_amount
        await self._storage.update(
            self.COLLECTION,
            record.commitment,
            {
                "net_amount": "0",
                "state": LockState.SETTLED.value,
                "settled_at": now,
                "settled_by": payee,
            },
        )
        try:
            await self._transfer.transfer_out(payee, amount, reference=record.commitment)
        except Exception:
            await self._storage.save(self.COLLECTION, record.commitment, record.to_dict())
            self._logger.error(
                f"Payout from {short_commitment(record.commitment)} failed, lock restored"
            )
            raise
        return amount
