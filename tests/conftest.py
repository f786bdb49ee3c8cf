import pytest
import pytest_asyncio

from remitlock import Remittance
from remitlock.storage.memory import InMemoryStorage
from remitlock.transfer.memory import InMemoryValueTransfer

ALICE = "0x" + "a1" * 20  # owner
BOB = "0x" + "b0" * 20  # remitter
CAROL = "0x" + "c0" * 20  # exchange
MALLORY = "0x" + "ee" * 20
CONTRACT = "0x" + "5c" * 20

NOW = 1_700_000_000
HOUR = 60 * 60
DAY = 24 * HOUR

FEE = 1
DEPOSIT = 1_000_000_000
PASSWORD = "correct horse battery staple"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep REMITLOCK_* settings from the developer's shell out of the tests."""
    for name in (
        "REMITLOCK_FIXED_FEE",
        "REMITLOCK_MAX_LOCK_WINDOW",
        "REMITLOCK_OWNER",
        "REMITLOCK_CONTRACT_IDENTITY",
        "REMITLOCK_STORAGE_BACKEND",
        "REMITLOCK_REDIS_URL",
        "REMITLOCK_TRANSFER_API_URL",
        "REMITLOCK_TRANSFER_API_KEY",
        "REMITLOCK_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def transfer():
    return InMemoryValueTransfer({BOB: 5 * DEPOSIT, MALLORY: DEPOSIT})


@pytest.fixture
def remittance(storage, transfer):
    return Remittance(
        deployer=ALICE,
        fixed_fee=FEE,
        max_lock_window=DAY,
        contract_identity=CONTRACT,
        storage=storage,
        transfer=transfer,
        log_level="WARNING",
    )


@pytest.fixture
def commitment(remittance):
    return remittance.commit(PASSWORD, CAROL)


@pytest_asyncio.fixture
async def locked(remittance, commitment):
    """A lock of DEPOSIT from Bob to Carol, deadline 12h out."""
    await remittance.create_lock(commitment, NOW + 12 * HOUR, CAROL, BOB, DEPOSIT, now=NOW)
    return commitment
