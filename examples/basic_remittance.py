"""
Example: Basic Remittance Flow

Demonstrates a full lock / redeem / reclaim cycle on the in-memory substrate.
"""

import asyncio
import time

from dotenv import load_dotenv
load_dotenv()

from remitlock import (
    InMemoryValueTransfer,
    LockEmptyError,
    Remittance,
    RemittanceEvent,
    generate_password,
)

OWNER = "0x" + "a1" * 20
REMITTER = "0x" + "b0" * 20
EXCHANGE = "0x" + "c0" * 20


def print_event(event: RemittanceEvent) -> None:
    print(f"   📣 {event.type.value}: {event.data}")


async def main():
    """
    Basic example showing:
    1. Create a remittance instance
    2. Lock funds under a password commitment
    3. Redeem them as the exchange
    4. Reclaim an expired lock
    5. Withdraw fees
    """
    print("=== RemitLock Basic Example ===\n")

    transfer = InMemoryValueTransfer({REMITTER: 10_000})
    remittance = Remittance(deployer=OWNER, fixed_fee=10, transfer=transfer)
    remittance.subscribe(print_event)
    print(f"✅ Instance {remittance.identity} (owner {remittance.owner[:10]}...)")

    # Step 2: lock funds; the password travels to the recipient off-band
    now = int(time.time())
    password = generate_password()
    commitment = remittance.commit(password, EXCHANGE)
    await remittance.create_lock(commitment, now + 3600, EXCHANGE, REMITTER, 1_000, now=now)
    print(f"✅ Locked 1000 under {commitment[:18]}...")

    # Step 3: exchange redeems with the password
    await remittance.redeem(password, EXCHANGE, now=now + 60)
    print(f"✅ Exchange balance: {transfer.balance_of(EXCHANGE)}")

    try:
        await remittance.redeem(password, EXCHANGE, now=now + 61)
    except LockEmptyError as e:
        print(f"⚠️  Second redeem rejected: {e}")

    # Step 4: a lock nobody redeems goes back to the remitter after its deadline
    other = remittance.commit(generate_password(), EXCHANGE)
    await remittance.create_lock(other, now + 600, EXCHANGE, REMITTER, 500, now=now)
    await remittance.reclaim(other, REMITTER, now=now + 600)
    print(f"✅ Remitter balance: {transfer.balance_of(REMITTER)}")

    # Step 5: owner collects fees
    await remittance.withdraw_fees(OWNER, now=now + 700)
    print(f"✅ Owner balance: {transfer.balance_of(OWNER)}")
    print(f"✅ Surplus held: {await remittance.check_solvency()}")

    await remittance.close()


if __name__ == "__main__":
    asyncio.run(main())
