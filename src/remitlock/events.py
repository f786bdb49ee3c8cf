"""
Event records for RemitLock.

Every successful mutating operation produces one RemittanceEvent. The
event is returned to the caller and published on the EventBus; listeners
observe state changes but can never affect them.
"""

from __future__ import annotations

import inspect
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from remitlock.core.logging import get_logger


class EventType(str, Enum):
    """Types of remittance events."""

    LOCK_CREATED = "lock.created"
    REDEEMED = "lock.redeemed"
    RECLAIMED = "lock.reclaimed"
    FEES_WITHDRAWN = "fees.withdrawn"
    PAUSED = "circuit.paused"
    UNPAUSED = "circuit.unpaused"
    KILLED = "circuit.killed"


@dataclass
class RemittanceEvent:
    """
    Structured record of a committed operation.

    Attributes:
        type: What happened
        data: Identities and amounts involved
        timestamp: UNIX seconds the operation was evaluated at
        id: Unique event ID
    """

    type: EventType
    data: dict[str, Any]
    timestamp: int = field(default_factory=lambda: int(time.time()))
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "timestamp": self.timestamp,
            "data": dict(self.data),
        }


Listener = Callable[[RemittanceEvent], "Awaitable[None] | None"]


class EventBus:
    """Fan-out of events to subscribed listeners."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._logger = get_logger("events")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener (plain function or coroutine function).

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def publish(self, event: RemittanceEvent) -> None:
        """Log the event and deliver it to every listener."""
        self._logger.info(f"{event.type.value} {event.data}")
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                # The operation is already committed
                self._logger.exception(f"Listener failed for event {event.id}")
