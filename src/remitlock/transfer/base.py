"""
Base value-transfer interface.

The ledger never moves value itself. It asks a ValueTransferPort to pull
deposits in and to push redemptions, reclamations and fee withdrawals
out. Implementations must be all-or-nothing: a call either moves exactly
``amount`` or raises TransferError having moved nothing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ValueTransferPort(ABC):
    """
    Abstract base class for value-transfer substrates.

    - InMemoryValueTransfer: balances held in process, for tests and local runs
    - HttpValueTransfer: custodian REST API
    """

    @abstractmethod
    async def transfer_in(self, source: str, amount: int, reference: str | None = None) -> None:
        """
        Pull exactly ``amount`` from ``source`` into custody.

        Args:
            source: Account being debited
            amount: Amount to pull
            reference: Correlation ID (commitment) for the substrate's records

        Raises:
            TransferError: If nothing was moved
        """
        ...

    @abstractmethod
    async def transfer_out(self, destination: str, amount: int, reference: str | None = None) -> None:
        """
        Pay ``amount`` out of custody to ``destination``.

        Raises:
            TransferError: If nothing was moved
        """
        ...

    async def held(self) -> int | None:
        """
        Value currently in custody, if the substrate can report it.

        Returns:
            Amount held, or None when unknown
        """
        return None

    async def close(self) -> None:
        """Release substrate resources."""
        return None
