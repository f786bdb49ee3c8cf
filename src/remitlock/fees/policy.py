"""
Fixed-fee policy and fee accounts.

Every lock pays one fixed fee out of its deposit. Fees accrue to the
owner's FeeAccount, a plain counter in the storage backend, until the
owner withdraws them.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from remitlock.core.exceptions import (
    ConfigurationError,
    InsufficientDepositError,
    InvalidArgumentError,
    NothingToWithdrawError,
)
from remitlock.core.logging import get_logger
from remitlock.core.types import Identity
from remitlock.crypto.commitment import normalize_identity
from remitlock.events import EventType, RemittanceEvent
from remitlock.ledger.lock import fee_account_key

if TYPE_CHECKING:
    from remitlock.ledger.lock import SettlementLockService
    from remitlock.storage.base import StorageBackend
    from remitlock.transfer.base import ValueTransferPort


class FeePolicy:
    """
    Sizes deposits and tracks collected fees per owner.

    The fee is configured once and never changes.
    """

    COLLECTION = "fee_accounts"

    def __init__(
        self,
        fixed_fee: int,
        storage: StorageBackend,
        transfer: ValueTransferPort,
        locks: SettlementLockService,
    ) -> None:
        if fixed_fee < 0:
            raise ConfigurationError("fixed_fee must be non-negative", details={"fixed_fee": fixed_fee})
        self._fixed_fee = fixed_fee
        self._storage = storage
        self._transfer = transfer
        self._locks = locks
        self._logger = get_logger("fees")

    @property
    def fixed_fee(self) -> int:
        return self._fixed_fee

    def fee_for(self, deposit_amount: int) -> tuple[int, int]:
        """
        Split a deposit into (net, fee).

        Raises:
            InvalidArgumentError: If the deposit is negative
            InsufficientDepositError: If the deposit does not cover the fee
        """
        if deposit_amount < 0:
            raise InvalidArgumentError("Deposit must be non-negative", details={"deposit": deposit_amount})
        if deposit_amount < self._fixed_fee:
            raise InsufficientDepositError(
                "Deposit does not cover the fee",
                available=deposit_amount,
                required=self._fixed_fee,
            )
        return deposit_amount - self._fixed_fee, self._fixed_fee

    async def accrue(self, owner: Identity, fee_amount: int) -> int:
        """Credit fee_amount to owner. Returns the new balance."""
        if fee_amount < 0:
            raise InvalidArgumentError("Fee must be non-negative", details={"fee": fee_amount})
        owner = normalize_identity(owner, "owner")
        balance = await self._storage.atomic_add(self.COLLECTION, owner, fee_amount)
        self._logger.debug(f"Accrued fee {fee_amount} to {owner} (balance {balance})")
        return balance

    async def accrued(self, owner: Identity) -> int:
        """Fees currently owed to owner."""
        data = await self._storage.get(self.COLLECTION, normalize_identity(owner, "owner"))
        if not data:
            return 0
        return int(data.get("value", "0"))

    async def total_accrued(self) -> int:
        """Fees owed across all owners."""
        rows = await self._storage.query(self.COLLECTION)
        return sum(int(row.get("value", "0")) for row in rows)

    async def withdraw(self, owner: Identity, now: int | None = None) -> RemittanceEvent:
        """
        Pay out everything accrued to owner.

        The balance is zeroed before the payout; if the payout fails the
        balance is restored and the transfer error propagates.

        Raises:
            NothingToWithdrawError: If nothing is accrued
            TransferError: If the payout failed
        """
        owner = normalize_identity(owner, "owner")
        async with self._locks.hold(fee_account_key(owner)):
            amount = await self.accrued(owner)
            if amount <= 0:
                raise NothingToWithdrawError("No fees to withdraw", available=0, required=1)

            await self._storage.atomic_add(self.COLLECTION, owner, -amount)
            try:
                await self._transfer.transfer_out(owner, amount, reference=f"fees:{owner}")
            except Exception:
                await self._storage.atomic_add(self.COLLECTION, owner, amount)
                self._logger.error(f"Fee payout of {amount} to {owner} failed, balance restored")
                raise

        self._logger.info(f"Withdrew {amount} in fees to {owner}")
        return RemittanceEvent(
            type=EventType.FEES_WITHDRAWN,
            data={"owner": owner, "amount": amount},
            timestamp=int(time.time()) if now is None else now,
        )
