"""Tests for SettlementLockService."""

import asyncio

import pytest

from remitlock.core.exceptions import LockContentionError
from remitlock.ledger.lock import SettlementLockService, commitment_key, fee_account_key
from remitlock.storage.memory import InMemoryStorage


@pytest.fixture
def lock_service(storage):
    return SettlementLockService(storage, retry_count=1, retry_delay=0.01)


@pytest.mark.asyncio
async def test_acquire_and_release_lock(lock_service):
    token = await lock_service.acquire("commitment:0xabc")
    assert isinstance(token, str)

    # Held, so a second acquire gives up after its retry
    assert await lock_service.acquire("commitment:0xabc") is None

    assert await lock_service.release("commitment:0xabc", token) is True

    token_2 = await lock_service.acquire("commitment:0xabc")
    assert token_2 is not None
    await lock_service.release("commitment:0xabc", token_2)


@pytest.mark.asyncio
async def test_keys_are_independent(lock_service):
    first = await lock_service.acquire(commitment_key("0x01"))
    second = await lock_service.acquire(commitment_key("0x02"))
    assert first is not None
    assert second is not None


@pytest.mark.asyncio
async def test_token_ownership(lock_service):
    token = await lock_service.acquire("fees:0xowner")
    assert await lock_service.release("fees:0xowner", "wrong-token") is False
    assert await lock_service.acquire("fees:0xowner") is None
    assert await lock_service.release("fees:0xowner", token) is True


@pytest.mark.asyncio
async def test_lock_ttl():
    service = SettlementLockService(InMemoryStorage(), ttl=1, retry_count=0)
    assert await service.acquire("k") is not None
    assert await service.acquire("k") is None

    await asyncio.sleep(1.1)

    assert await service.acquire("k") is not None


@pytest.mark.asyncio
async def test_retry_waits_for_release(storage):
    service = SettlementLockService(storage, retry_count=10, retry_delay=0.02)
    token = await service.acquire("k")

    async def delayed_release():
        await asyncio.sleep(0.05)
        await service.release("k", token)

    task = asyncio.create_task(delayed_release())
    assert await service.acquire("k") is not None
    await task


@pytest.mark.asyncio
async def test_hold_releases_on_error(lock_service):
    with pytest.raises(RuntimeError):
        async with lock_service.hold("k"):
            raise RuntimeError("boom")

    async with lock_service.hold("k") as token:
        assert token


@pytest.mark.asyncio
async def test_hold_raises_on_contention(lock_service):
    async with lock_service.hold("k"):
        with pytest.raises(LockContentionError):
            async with lock_service.hold("k"):
                pass


def test_key_helpers():
    assert commitment_key("0xabc") == "commitment:0xabc"
    assert fee_account_key("0xdef") == "fees:0xdef"
