"""
Type definitions for RemitLock.

Enums and data classes shared by the ledger, the access gate and the
facade.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeAlias

# 0x-prefixed, lower-case, 20-byte hex address
Identity: TypeAlias = str
# 0x-prefixed, lower-case, 32-byte hex digest
Commitment: TypeAlias = str


class LockState(str, Enum):
    """Lifecycle of a commitment."""

    UNUSED = "unused"  # never locked
    ACTIVE = "active"  # value held
    SETTLED = "settled"  # paid out, commitment burnt


class Liveness(str, Enum):
    """One-way liveness of the system."""

    ALIVE = "alive"
    DEAD = "dead"


@dataclass
class LockRecord:
    """
    Value held under one commitment.

    Attributes:
        commitment: Commitment the value is locked under
        remitter: Identity that funded the lock and may reclaim it
        exchange: Identity bound into the commitment at creation
        net_amount: Deposit minus fee; zero once settled
        deadline: UNIX seconds after which the remitter may reclaim
        state: ACTIVE or SETTLED
        created_at: UNIX seconds of creation
        settled_at: UNIX seconds of settlement, if settled
        settled_by: Identity that received the payout, if settled
    """

    commitment: Commitment
    remitter: Identity
    exchange: Identity
    net_amount: int
    deadline: int
    state: LockState = LockState.ACTIVE
    created_at: int = 0
    settled_at: int | None = None
    settled_by: Identity | None = None

    @property
    def is_active(self) -> bool:
        return self.state == LockState.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "commitment": self.commitment,
            "remitter": self.remitter,
            "exchange": self.exchange,
            "net_amount": str(self.net_amount),
            "deadline": self.deadline,
            "state": self.state.value,
            "created_at": self.created_at,
            "settled_at": self.settled_at,
            "settled_by": self.settled_by,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LockRecord:
        """Create LockRecord from dictionary."""
        return cls(
            commitment=data["commitment"],
            remitter=data["remitter"],
            exchange=data["exchange"],
            net_amount=int(data.get("net_amount", "0")),
            deadline=int(data["deadline"]),
            state=LockState(data.get("state", LockState.ACTIVE.value)),
            created_at=int(data.get("created_at", 0)),
            settled_at=data.get("settled_at"),
            settled_by=data.get("settled_by"),
        )


@dataclass(frozen=True)
class CircuitStatus:
    """Snapshot of the circuit breaker."""

    owner: Identity
    paused: bool
    liveness: Liveness

    @property
    def killed(self) -> bool:
        return self.liveness == Liveness.DEAD

    @property
    def operational(self) -> bool:
        return not self.paused and not self.killed
