"""
Owner-gated circuit breaker.

Holds the owner identity and the pause/kill state guarding which ledger
operations may run. State lives in the StorageBackend so every process
serving one ledger sees the same circuit.

    ALIVE, running  --pause-->   ALIVE, paused
    ALIVE, paused   --unpause--> ALIVE, running
    ALIVE, *        --kill-->    DEAD, paused      (terminal)
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from remitlock.core.exceptions import NotOwnerError, SystemDeadError, SystemPausedError
from remitlock.core.logging import get_logger
from remitlock.core.types import CircuitStatus, Identity, Liveness
from remitlock.crypto.commitment import normalize_identity
from remitlock.events import EventType, RemittanceEvent

if TYPE_CHECKING:
    from remitlock.ledger.lock import SettlementLockService
    from remitlock.storage.base import StorageBackend


class AccessGate:
    """
    Owner check plus pause/kill switch.

    The owner is fixed for the lifetime of the gate. Kill is one-way: once
    DEAD, nothing brings the system back.
    """

    COLLECTION = "circuit"
    KEY = "state"

    def __init__(
        self,
        owner: Identity,
        storage: StorageBackend,
        locks: SettlementLockService,
    ) -> None:
        """
        Initialize the gate.

        Args:
            owner: Owner identity
            storage: Storage backend holding circuit state
            locks: Mutex service serializing circuit changes
        """
        self._owner = normalize_identity(owner, "owner")
        self._storage = storage
        self._locks = locks
        self._logger = get_logger("access")

    @property
    def owner(self) -> Identity:
        return self._owner

    async def _load(self) -> dict[str, Any]:
        data = await self._storage.get(self.COLLECTION, self.KEY)
        if not data:
            return {"paused": False, "liveness": Liveness.ALIVE.value}
        return data

    async def state(self) -> CircuitStatus:
        """Get current circuit state."""
        data = await self._load()
        return CircuitStatus(
            owner=self._owner,
            paused=bool(data.get("paused", False)),
            liveness=Liveness(data.get("liveness", Liveness.ALIVE.value)),
        )

    def require_owner(self, caller: Identity) -> None:
        """Raise NotOwnerError unless caller is the owner."""
        if normalize_identity(caller, "caller") != self._owner:
            raise NotOwnerError("Caller is not the owner", caller=caller)

    async def require_operational(self) -> None:
        """Raise unless the system is alive and not paused. Death is reported first."""
        status = await self.state()
        if status.killed:
            raise SystemDeadError("System has been killed")
        if status.paused:
            raise SystemPausedError("System is paused")

    async def _set(self, paused: bool, liveness: Liveness) -> None:
        await self._storage.save(
            self.COLLECTION,
            self.KEY,
            {"paused": paused, "liveness": liveness.value},
        )

    async def pause(self, caller: Identity, now: int | None = None) -> RemittanceEvent:
        """Pause the system (owner only)."""
        self.require_owner(caller)
        async with self._locks.hold("circuit"):
            status = await self.state()
            if status.killed:
                raise SystemDeadError("System has been killed")
            await self._set(True, Liveness.ALIVE)
        self._logger.warning("Circuit PAUSED by owner")
        return self._event(EventType.PAUSED, now)

    async def unpause(self, caller: Identity, now: int | None = None) -> RemittanceEvent:
        """Resume the system (owner only). A killed system cannot resume."""
        self.require_owner(caller)
        async with self._locks.hold("circuit"):
            status = await self.state()
            if status.killed:
                raise SystemDeadError("System has been killed")
            await self._set(False, Liveness.ALIVE)
        self._logger.info("Circuit UNPAUSED by owner")
        return self._event(EventType.UNPAUSED, now)

    async def kill(self, caller: Identity, now: int | None = None) -> RemittanceEvent:
        """Kill the system for good (owner only)."""
        self.require_owner(caller)
        async with self._locks.hold("circuit"):
            status = await self.state()
            if status.killed:
                raise SystemDeadError("System has been killed")
            await self._set(True, Liveness.DEAD)
        self._logger.critical("Circuit KILLED. No new locks will ever be accepted.")
        return self._event(EventType.KILLED, now)

    def _event(self, event_type: EventType, now: int | None) -> RemittanceEvent:
        return RemittanceEvent(
            type=event_type,
            data={"sender": self._owner},
            timestamp=int(time.time()) if now is None else now,
        )
