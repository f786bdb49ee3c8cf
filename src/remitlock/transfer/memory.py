"""
In-process value transfer.

Keeps account balances and the custody balance in dicts. Used by the
test-suite and for local experiments.
"""

from __future__ import annotations

import asyncio

from remitlock.core.exceptions import InvalidArgumentError, TransferError
from remitlock.transfer.base import ValueTransferPort


class InMemoryValueTransfer(ValueTransferPort):
    """Balances kept in memory, keyed by lower-cased identity."""

    def __init__(self, balances: dict[str, int] | None = None) -> None:
        self._balances: dict[str, int] = {}
        self._held = 0
        for account, amount in (balances or {}).items():
            self.fund(account, amount)

    def fund(self, account: str, amount: int) -> None:
        """Credit an external account, e.g. to give a remitter spendable value."""
        if amount < 0:
            raise InvalidArgumentError("Funding amount must be non-negative")
        key = account.lower()
        self._balances[key] = self._balances.get(key, 0) + amount

    def balance_of(self, account: str) -> int:
        return self._balances.get(account.lower(), 0)

    async def transfer_in(self, source: str, amount: int, reference: str | None = None) -> None:
        # Yield like a real substrate would, so concurrent callers interleave
        await asyncio.sleep(0)
        if amount < 0:
            raise TransferError("Negative transfer", account=source, amount=amount)
        key = source.lower()
        available = self._balances.get(key, 0)
        if available < amount:
            raise TransferError(
                "Insufficient funds in source account",
                account=source,
                amount=amount,
                details={"available": available, "reference": reference},
            )
        self._balances[key] = available - amount
        self._held += amount

    async def transfer_out(self, destination: str, amount: int, reference: str | None = None) -> None:
        await asyncio.sleep(0)
        if amount < 0:
            raise TransferError("Negative transfer", account=destination, amount=amount)
        if amount > self._held:
            raise TransferError(
                "Custody balance too low",
                account=destination,
                amount=amount,
                details={"held": self._held, "reference": reference},
            )
        self._held -= amount
        key = destination.lower()
        self._balances[key] = self._balances.get(key, 0) + amount

    async def held(self) -> int | None:
        return self._held
