"""Remittance - main entry point."""

from __future__ import annotations

from typing import TYPE_CHECKING

from remitlock.access.gate import AccessGate
from remitlock.core.config import Config
from remitlock.core.exceptions import ConfigurationError, InvalidArgumentError, SolvencyError
from remitlock.core.logging import configure_logging, get_logger
from remitlock.core.types import CircuitStatus, Commitment, Identity, LockRecord, LockState
from remitlock.crypto.commitment import commit, generate_identity, normalize_identity
from remitlock.events import EventBus, Listener, RemittanceEvent
from remitlock.fees.policy import FeePolicy
from remitlock.ledger.ledger import LockLedger
from remitlock.ledger.lock import SettlementLockService
from remitlock.storage import get_storage
from remitlock.transfer.http import HttpValueTransfer
from remitlock.transfer.memory import InMemoryValueTransfer

if TYPE_CHECKING:
    from collections.abc import Callable

    from remitlock.storage.base import StorageBackend
    from remitlock.transfer.base import ValueTransferPort


class Remittance:
    """
    Trust-minimized remittance escrow.

    A remitter locks value under a password commitment. The exchange bound
    into the commitment redeems it by presenting the password; once the
    deadline passes the remitter may reclaim it instead. Exactly one of
    the two ever gets paid.

    Example:
        >>> remittance = Remittance(deployer=alice, fixed_fee=1)
        >>> password = generate_password()
        >>> commitment = remittance.commit(password, exchange=carol)
        >>> await remittance.create_lock(commitment, deadline, carol, alice, 1_000)
        >>> await remittance.redeem(password, caller=carol)
    """

    def __init__(
        self,
        deployer: Identity,
        fixed_fee: int | None = None,
        max_lock_window: int | None = None,
        owner: Identity | None = None,
        contract_identity: Identity | None = None,
        transfer: ValueTransferPort | None = None,
        storage: StorageBackend | None = None,
        config: Config | None = None,
        log_level: int | str | None = None,
    ) -> None:
        """
        Initialize the remittance instance.

        Args:
            deployer: Identity creating the instance; owner unless owner is given
            fixed_fee: Fee withheld from every deposit (or REMITLOCK_FIXED_FEE)
            max_lock_window: Longest lock, in seconds (or REMITLOCK_MAX_LOCK_WINDOW)
            owner: Explicit owner identity
            contract_identity: Address bound into commitments (random if omitted)
            transfer: Value-transfer substrate (in-memory unless a custodian URL is configured)
            storage: Storage backend (from REMITLOCK_STORAGE_BACKEND if omitted)
            config: Full configuration; explicit arguments override it
            log_level: Logging level (config.log_level if omitted)
        """
        overrides = {
            key: value
            for key, value in {
                "fixed_fee": fixed_fee,
                "max_lock_window": max_lock_window,
                "owner": owner,
                "contract_identity": contract_identity,
            }.items()
            if value is not None
        }
        try:
            if config is None:
                config = Config.from_env(**overrides)
            elif overrides:
                config = config.with_updates(**overrides)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        self._config = config

        configure_logging(level=log_level if log_level is not None else config.log_level)
        self._logger = get_logger("client")

        try:
            owner_identity = normalize_identity(config.owner or deployer, "owner")
            identity = normalize_identity(
                config.contract_identity or generate_identity(), "contract_identity"
            )
        except InvalidArgumentError as e:
            raise ConfigurationError(e.message, details=e.details) from e

        if storage is None:
            kwargs = {"redis_url": config.redis_url} if config.storage_backend == "redis" else {}
            storage = get_storage(config.storage_backend, **kwargs)
        if transfer is None:
            if config.transfer_api_url:
                transfer = HttpValueTransfer(
                    config.transfer_api_url,
                    api_key=config.transfer_api_key,
                    timeout=config.request_timeout,
                )
            else:
                transfer = InMemoryValueTransfer()

        self._storage = storage
        self._transfer = transfer
        self._locks = SettlementLockService(
            storage,
            ttl=config.lock_ttl,
            retry_count=config.lock_retry_count,
            retry_delay=config.lock_retry_delay,
        )
        self._gate = AccessGate(owner_identity, storage, self._locks)
        self._fees = FeePolicy(config.fixed_fee, storage, transfer, self._locks)
        self._ledger = LockLedger(
            contract_identity=identity,
            max_lock_window=config.max_lock_window,
            storage=storage,
            transfer=transfer,
            fees=self._fees,
            gate=self._gate,
            locks=self._locks,
        )
        self._events = EventBus()

        self._logger.info(
            f"Remittance {identity} ready (owner {owner_identity}, fee {config.fixed_fee}, "
            f"window {config.max_lock_window}s)"
        )

    # Read-only accessors

    @property
    def config(self) -> Config:
        return self._config

    @property
    def identity(self) -> Identity:
        """Address bound into every commitment for this instance."""
        return self._ledger.identity

    @property
    def owner(self) -> Identity:
        return self._gate.owner

    @property
    def fixed_fee(self) -> int:
        return self._fees.fixed_fee

    @property
    def max_lock_window(self) -> int:
        return self._ledger.max_lock_window

    @property
    def transfer(self) -> ValueTransferPort:
        return self._transfer

    async def get_lock(self, commitment: Commitment) -> LockRecord | None:
        return await self._ledger.get_lock(commitment)

    async def lock_state(self, commitment: Commitment) -> LockState:
        return await self._ledger.state_of(commitment)

    async def accrued_fees(self, owner: Identity | None = None) -> int:
        """Fees owed to owner (the instance owner by default)."""
        return await self._fees.accrued(owner or self.owner)

    async def circuit_state(self) -> CircuitStatus:
        return await self._gate.state()

    # Operations

    def commit(self, plaintext_password: str, exchange: Identity) -> Commitment:
        """Commitment for password, bound to this instance and exchange."""
        return commit(self.identity, plaintext_password, exchange)

    async def create_lock(
        self,
        commitment: Commitment,
        deadline: int,
        exchange: Identity | None,
        remitter: Identity,
        deposit_amount: int,
        now: int | None = None,
    ) -> RemittanceEvent:
        """Lock deposit_amount from remitter under commitment. See LockLedger.create_lock."""
        event = await self._ledger.create_lock(
            commitment, deadline, exchange, remitter, deposit_amount, now=now
        )
        await self._events.publish(event)
        return event

    async def redeem(
        self,
        plaintext_password: str,
        caller: Identity,
        now: int | None = None,
    ) -> RemittanceEvent:
        """Pay the lock matching (password, caller) to caller."""
        event = await self._ledger.redeem(plaintext_password, caller, now=now)
        await self._events.publish(event)
        return event

    async def reclaim(
        self,
        commitment: Commitment,
        caller: Identity,
        now: int | None = None,
    ) -> RemittanceEvent:
        """Return an expired lock to its remitter."""
        event = await self._ledger.reclaim(commitment, caller, now=now)
        await self._events.publish(event)
        return event

    async def withdraw_fees(self, caller: Identity, now: int | None = None) -> RemittanceEvent:
        """Pay caller every fee accrued to it."""
        event = await self._fees.withdraw(caller, now=now)
        await self._events.publish(event)
        return event

    async def pause(self, caller: Identity, now: int | None = None) -> RemittanceEvent:
        event = await self._gate.pause(caller, now=now)
        await self._events.publish(event)
        return event

    async def unpause(self, caller: Identity, now: int | None = None) -> RemittanceEvent:
        event = await self._gate.unpause(caller, now=now)
        await self._events.publish(event)
        return event

    async def kill(self, caller: Identity, now: int | None = None) -> RemittanceEvent:
        event = await self._gate.kill(caller, now=now)
        await self._events.publish(event)
        return event

    # Observability

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Receive every event published by this instance."""
        return self._events.subscribe(listener)

    async def owed(self) -> int:
        """Value the instance must be able to pay out: active locks plus accrued fees."""
        return await self._ledger.active_balance() + await self._fees.total_accrued()

    async def check_solvency(self) -> int:
        """
        Verify custody covers everything owed.

        Returns:
            Surplus held beyond what is owed (0 if the substrate cannot report custody)

        Raises:
            SolvencyError: If custody falls short
        """
        owed = await self.owed()
        held = await self._transfer.held()
        if held is None:
            self._logger.debug("Substrate does not report custody; solvency not checked")
            return 0
        if held < owed:
            self._logger.critical(f"Custody {held} below owed {owed}")
            raise SolvencyError("Custody below owed balance", held=held, owed=owed)
        return held - owed

    async def close(self) -> None:
        """Release substrate and storage connections."""
        await self._transfer.close()
        close = getattr(self._storage, "close", None)
        if close is not None:
            await close()
