"""
Tests for the lock state machine.

Covers creation checks and their order, redemption, reclamation and the
permanent reuse ban.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from conftest import ALICE, BOB, CAROL, CONTRACT, DAY, DEPOSIT, FEE, HOUR, MALLORY, NOW, PASSWORD

from remitlock import Remittance
from remitlock.core.config import Config
from remitlock.core.exceptions import (
    CommitmentReusedError,
    DeadlineInPastError,
    DeadlineNotReachedError,
    DeadlineTooFarError,
    InsufficientDepositError,
    InvalidArgumentError,
    InvalidExchangeError,
    LockEmptyError,
    NotRemitterError,
    SystemDeadError,
    SystemPausedError,
    TransferError,
)
from remitlock.core.types import LockState
from remitlock.crypto.commitment import commit
from remitlock.events import EventType
from remitlock.storage.memory import InMemoryStorage
from remitlock.transfer.memory import InMemoryValueTransfer

DEADLINE = NOW + 12 * HOUR


class TestCreateLock:
    @pytest.mark.asyncio
    async def test_creates_active_record(self, remittance, commitment, transfer):
        event = await remittance.create_lock(commitment, DEADLINE, CAROL, BOB, DEPOSIT, now=NOW)

        assert event.type == EventType.LOCK_CREATED
        assert event.data == {
            "remitter": BOB,
            "commitment": commitment,
            "net_amount": DEPOSIT - FEE,
            "fee": FEE,
            "deadline": DEADLINE,
        }

        record = await remittance.get_lock(commitment)
        assert record.remitter == BOB
        assert record.exchange == CAROL
        assert record.net_amount == 999_999_999
        assert record.deadline == DEADLINE
        assert record.state == LockState.ACTIVE
        assert record.created_at == NOW

        assert await remittance.accrued_fees() == 1
        assert transfer.balance_of(BOB) == 4 * DEPOSIT
        assert await transfer.held() == DEPOSIT

    @pytest.mark.asyncio
    async def test_unused_commitment_state(self, remittance, commitment):
        assert await remittance.lock_state(commitment) == LockState.UNUSED
        assert await remittance.get_lock(commitment) is None

    @pytest.mark.asyncio
    async def test_rejects_repeated_commitment(self, remittance, locked):
        with pytest.raises(CommitmentReusedError):
            await remittance.create_lock(locked, DEADLINE, CAROL, BOB, DEPOSIT, now=NOW)

    @pytest.mark.asyncio
    async def test_rejects_commitment_after_settlement(self, remittance, locked):
        await remittance.redeem(PASSWORD, CAROL, now=NOW + 1)
        with pytest.raises(CommitmentReusedError):
            await remittance.create_lock(locked, DEADLINE, CAROL, BOB, DEPOSIT, now=NOW + 2)
        assert await remittance.lock_state(locked) == LockState.SETTLED

    @pytest.mark.asyncio
    async def test_rejects_deadline_in_past(self, remittance, commitment):
        with pytest.raises(DeadlineInPastError):
            await remittance.create_lock(commitment, NOW - 1, CAROL, BOB, DEPOSIT, now=NOW)

    @pytest.mark.asyncio
    async def test_rejects_deadline_equal_to_now(self, remittance, commitment):
        with pytest.raises(DeadlineInPastError):
            await remittance.create_lock(commitment, NOW, CAROL, BOB, DEPOSIT, now=NOW)

    @pytest.mark.asyncio
    async def test_rejects_deadline_too_far(self, remittance, commitment):
        with pytest.raises(DeadlineTooFarError):
            await remittance.create_lock(commitment, NOW + DAY + 1, CAROL, BOB, DEPOSIT, now=NOW)

    @pytest.mark.asyncio
    async def test_accepts_deadline_at_window_edge(self, remittance, commitment):
        await remittance.create_lock(commitment, NOW + DAY, CAROL, BOB, DEPOSIT, now=NOW)
        assert await remittance.lock_state(commitment) == LockState.ACTIVE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("exchange", [None, ""])
    async def test_rejects_missing_exchange(self, remittance, commitment, exchange):
        with pytest.raises(InvalidExchangeError):
            await remittance.create_lock(commitment, DEADLINE, exchange, BOB, DEPOSIT, now=NOW)

    @pytest.mark.asyncio
    async def test_rejects_malformed_exchange(self, remittance, commitment):
        with pytest.raises(InvalidExchangeError):
            await remittance.create_lock(commitment, DEADLINE, "carol", BOB, DEPOSIT, now=NOW)

    @pytest.mark.asyncio
    async def test_rejects_deposit_below_fee(self, storage, transfer):
        pricey = Remittance(
            deployer=ALICE,
            fixed_fee=100,
            contract_identity=CONTRACT,
            storage=storage,
            transfer=transfer,
            log_level="WARNING",
        )
        c = pricey.commit(PASSWORD, CAROL)
        with pytest.raises(InsufficientDepositError):
            await pricey.create_lock(c, DEADLINE, CAROL, BOB, 99, now=NOW)
        assert await pricey.lock_state(c) == LockState.UNUSED
        assert transfer.balance_of(BOB) == 5 * DEPOSIT

    @pytest.mark.asyncio
    async def test_rejects_malformed_commitment(self, remittance):
        with pytest.raises(InvalidArgumentError):
            await remittance.create_lock("0x1234", DEADLINE, CAROL, BOB, DEPOSIT, now=NOW)

    @pytest.mark.asyncio
    async def test_failed_deposit_leaves_no_trace(self, remittance, commitment):
        poor = "0x" + "99" * 20
        with pytest.raises(TransferError):
            await remittance.create_lock(commitment, DEADLINE, CAROL, poor, DEPOSIT, now=NOW)

        assert await remittance.lock_state(commitment) == LockState.UNUSED
        assert await remittance.accrued_fees() == 0

    @pytest.mark.asyncio
    async def test_rejected_when_paused(self, remittance, commitment):
        await remittance.pause(ALICE)
        with pytest.raises(SystemPausedError):
            await remittance.create_lock(commitment, DEADLINE, CAROL, BOB, DEPOSIT, now=NOW)

        await remittance.unpause(ALICE)
        await remittance.create_lock(commitment, DEADLINE, CAROL, BOB, DEPOSIT, now=NOW)


class TestCheckOrder:
    """First failing precondition wins."""

    @pytest.mark.asyncio
    async def test_circuit_before_exchange(self, remittance, commitment):
        await remittance.kill(ALICE)
        with pytest.raises(SystemDeadError):
            await remittance.create_lock(commitment, NOW - 1, None, BOB, 0, now=NOW)

    @pytest.mark.asyncio
    async def test_exchange_before_reuse(self, remittance, locked):
        with pytest.raises(InvalidExchangeError):
            await remittance.create_lock(locked, NOW - 1, None, BOB, 0, now=NOW)

    @pytest.mark.asyncio
    async def test_reuse_before_deadline(self, remittance, locked):
        with pytest.raises(CommitmentReusedError):
            await remittance.create_lock(locked, NOW - 1, CAROL, BOB, 0, now=NOW)

    @pytest.mark.asyncio
    async def test_deadline_before_deposit(self, remittance, commitment):
        with pytest.raises(DeadlineTooFarError):
            await remittance.create_lock(commitment, NOW + 2 * DAY, CAROL, BOB, 0, now=NOW)


class SlowValueTransfer(InMemoryValueTransfer):
    """Substrate whose deposits take longer than the settlement mutex lives."""

    def __init__(self, delay: float, balances: dict[str, int]) -> None:
        super().__init__(balances)
        self.delay = delay

    async def transfer_in(self, source, amount, reference=None):
        await asyncio.sleep(self.delay)
        await super().transfer_in(source, amount, reference=reference)


class TestCreateLockPartialFailure:
    """A create that cannot be recorded returns the deposit."""

    @pytest.mark.asyncio
    async def test_expired_mutex_does_not_double_lock(self):
        transfer = SlowValueTransfer(1.2, {BOB: 5 * DEPOSIT})
        config = Config(
            fixed_fee=FEE,
            contract_identity=CONTRACT,
            lock_ttl=1,
            request_timeout=0.5,
            lock_retry_count=40,
            lock_retry_delay=0.05,
        )
        remittance = Remittance(
            deployer=ALICE,
            config=config,
            storage=InMemoryStorage(),
            transfer=transfer,
            log_level="WARNING",
        )
        c = remittance.commit(PASSWORD, CAROL)

        results = await asyncio.gather(
            remittance.create_lock(c, DEADLINE, CAROL, BOB, DEPOSIT, now=NOW),
            remittance.create_lock(c, DEADLINE, CAROL, BOB, DEPOSIT, now=NOW),
            return_exceptions=True,
        )

        assert sum(not isinstance(r, Exception) for r in results) == 1
        assert any(isinstance(r, CommitmentReusedError) for r in results)
        assert await transfer.held() == DEPOSIT
        assert transfer.balance_of(BOB) == 4 * DEPOSIT
        assert await remittance.accrued_fees() == FEE
        assert await remittance.check_solvency() == 0

    @pytest.mark.asyncio
    async def test_storage_failure_refunds_deposit(self, remittance, commitment, storage, transfer):
        storage.save_if_absent = AsyncMock(side_effect=ConnectionError("storage down"))

        with pytest.raises(ConnectionError):
            await remittance.create_lock(commitment, DEADLINE, CAROL, BOB, DEPOSIT, now=NOW)

        assert transfer.balance_of(BOB) == 5 * DEPOSIT
        assert await transfer.held() == 0
        assert await remittance.accrued_fees() == 0

    @pytest.mark.asyncio
    async def test_fee_accrual_failure_unwinds_lock(self, remittance, commitment, storage, transfer):
        storage.atomic_add = AsyncMock(side_effect=ConnectionError("storage down"))

        with pytest.raises(ConnectionError):
            await remittance.create_lock(commitment, DEADLINE, CAROL, BOB, DEPOSIT, now=NOW)

        assert await remittance.lock_state(commitment) == LockState.UNUSED
        assert transfer.balance_of(BOB) == 5 * DEPOSIT
        assert await transfer.held() == 0


class TestRedeem:
    @pytest.mark.asyncio
    async def test_exchange_redeems_with_password(self, remittance, locked, transfer):
        event = await remittance.redeem(PASSWORD, CAROL, now=NOW + 1)

        assert event.type == EventType.REDEEMED
        assert event.data == {"exchange": CAROL, "commitment": locked, "amount": 999_999_999}
        assert transfer.balance_of(CAROL) == 999_999_999

        record = await remittance.get_lock(locked)
        assert record.net_amount == 0
        assert record.state == LockState.SETTLED
        assert record.settled_by == CAROL

    @pytest.mark.asyncio
    async def test_second_redeem_is_empty(self, remittance, locked):
        await remittance.redeem(PASSWORD, CAROL, now=NOW + 1)
        with pytest.raises(LockEmptyError):
            await remittance.redeem(PASSWORD, CAROL, now=NOW + 2)

    @pytest.mark.asyncio
    async def test_wrong_password_is_empty(self, remittance, locked):
        with pytest.raises(LockEmptyError):
            await remittance.redeem("wrong password", CAROL, now=NOW + 1)
        assert await remittance.lock_state(locked) == LockState.ACTIVE

    @pytest.mark.asyncio
    async def test_other_caller_is_empty(self, remittance, locked, transfer):
        with pytest.raises(LockEmptyError):
            await remittance.redeem(PASSWORD, MALLORY, now=NOW + 1)
        assert transfer.balance_of(MALLORY) == DEPOSIT
        assert await remittance.lock_state(locked) == LockState.ACTIVE

    @pytest.mark.asyncio
    async def test_failures_share_one_message(self, remittance, locked):
        messages = set()
        for password, caller in [("nope", CAROL), (PASSWORD, MALLORY)]:
            with pytest.raises(LockEmptyError) as exc:
                await remittance.redeem(password, caller, now=NOW + 1)
            messages.add(str(exc.value))
        await remittance.redeem(PASSWORD, CAROL, now=NOW + 1)
        with pytest.raises(LockEmptyError) as exc:
            await remittance.redeem(PASSWORD, CAROL, now=NOW + 2)
        messages.add(str(exc.value))

        assert messages == {"Lock is empty"}

    @pytest.mark.asyncio
    async def test_redeem_after_deadline(self, remittance, locked, transfer):
        await remittance.redeem(PASSWORD, CAROL, now=NOW + 2 * DAY)
        assert transfer.balance_of(CAROL) == DEPOSIT - FEE

    @pytest.mark.asyncio
    async def test_commitment_from_other_instance_not_redeemable(self, remittance, transfer, storage):
        foreign = commit("0x" + "77" * 20, PASSWORD, CAROL)
        await remittance.create_lock(foreign, NOW + HOUR, CAROL, BOB, DEPOSIT, now=NOW)
        with pytest.raises(LockEmptyError):
            await remittance.redeem(PASSWORD, CAROL, now=NOW + 1)

    @pytest.mark.asyncio
    async def test_failed_payout_keeps_lock_active(self, remittance, locked, transfer, monkeypatch):
        monkeypatch.setattr(
            transfer, "transfer_out", AsyncMock(side_effect=TransferError("custodian down"))
        )
        with pytest.raises(TransferError):
            await remittance.redeem(PASSWORD, CAROL, now=NOW + 1)

        record = await remittance.get_lock(locked)
        assert record.state == LockState.ACTIVE
        assert record.net_amount == DEPOSIT - FEE
        assert record.settled_by is None

    @pytest.mark.asyncio
    async def test_redeem_allowed_while_paused(self, remittance, locked):
        await remittance.pause(ALICE)
        await remittance.redeem(PASSWORD, CAROL, now=NOW + 1)
        assert await remittance.lock_state(locked) == LockState.SETTLED


class TestReclaim:
    @pytest.mark.asyncio
    async def test_remitter_reclaims_after_deadline(self, remittance, locked, transfer):
        event = await remittance.reclaim(locked, BOB, now=NOW + 12 * HOUR)

        assert event.type == EventType.RECLAIMED
        assert event.data == {"remitter": BOB, "commitment": locked, "amount": DEPOSIT - FEE}
        assert transfer.balance_of(BOB) == 5 * DEPOSIT - FEE
        assert (await remittance.get_lock(locked)).net_amount == 0

    @pytest.mark.asyncio
    async def test_rejects_non_remitter(self, remittance, locked):
        with pytest.raises(NotRemitterError):
            await remittance.reclaim(locked, MALLORY, now=NOW + DAY)
        assert await remittance.lock_state(locked) == LockState.ACTIVE

    @pytest.mark.asyncio
    async def test_rejects_before_deadline(self, remittance, locked):
        with pytest.raises(DeadlineNotReachedError) as exc:
            await remittance.reclaim(locked, BOB, now=NOW + 12 * HOUR - 1)
        assert exc.value.deadline == NOW + 12 * HOUR

    @pytest.mark.asyncio
    async def test_rejects_unknown_lock(self, remittance, commitment):
        with pytest.raises(LockEmptyError):
            await remittance.reclaim(commitment, BOB, now=NOW + DAY)

    @pytest.mark.asyncio
    async def test_rejects_after_redeem(self, remittance, locked):
        await remittance.redeem(PASSWORD, CAROL, now=NOW + 1)
        with pytest.raises(LockEmptyError):
            await remittance.reclaim(locked, BOB, now=NOW + DAY)

    @pytest.mark.asyncio
    async def test_redeem_rejected_after_reclaim(self, remittance, locked, transfer):
        await remittance.reclaim(locked, BOB, now=NOW + DAY)
        with pytest.raises(LockEmptyError):
            await remittance.redeem(PASSWORD, CAROL, now=NOW + DAY)
        assert transfer.balance_of(CAROL) == 0

    @pytest.mark.asyncio
    async def test_empty_checked_before_remitter(self, remittance, locked):
        await remittance.reclaim(locked, BOB, now=NOW + DAY)
        with pytest.raises(LockEmptyError):
            await remittance.reclaim(locked, MALLORY, now=NOW + DAY)
