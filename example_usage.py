#!/usr/bin/env python3
"""
Example usage of the fanout bounded executor
"""

import asyncio
import random

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fanout import (
    BoundedExecutor,
    CancellationToken,
    DeadlineExceededError,
    FatalError,
    current_token,
    exponential,
    recurs,
    sleep_or_cancel,
    spaced,
)
from fanout.utils.logger import configure_logging


async def fetch_lead(lead_id: int) -> dict:
    """Pretend to call a flaky CRM API."""
    # honour batch cancellation while "waiting on the network"
    completed = await sleep_or_cancel(random.uniform(0.05, 0.3), current_token())
    if not completed:
        current_token().raise_if_triggered()
    if random.random() < 0.3:
        raise ConnectionError(f"CRM timeout for lead {lead_id}")
    return {"id": lead_id, "score": random.randint(0, 100)}


async def main():
    """Main example function"""
    configure_logging()

    lead_ids = list(range(1, 21))
    schedule = exponential(0.05, 2, max_delay=1).either(spaced(1)).up_to(5) & recurs(4)
    executor = BoundedExecutor(5)

    print(f"🚀 Fetching {len(lead_ids)} leads, 5 at a time...")
    result = await executor.execute(lead_ids, fetch_lead, schedule=schedule)
    print(f"✅ Batch {result.batch_id} finished: {result.state.value}")
    if result.ok:
        top = max(result.results, key=lambda lead: lead["score"])
        print(f"🏆 Best lead: #{top['id']} (score {top['score']})")
    else:
        print(f"❌ Batch error: {result.error!r}")

    print("\n" + "=" * 50)
    print("⏱️  Same batch with a 0.2s deadline...")
    try:
        await executor.run(lead_ids, fetch_lead, schedule=schedule, timeout=0.2)
    except DeadlineExceededError as e:
        print(f"⌛ {e}")

    print("\n" + "=" * 50)
    print("🛑 Cancelling from the outside after 0.1s...")
    token = CancellationToken(name="user")
    asyncio.get_running_loop().call_later(0.1, token.trigger, "user pressed stop")
    result = await executor.execute(lead_ids, fetch_lead, token=token)
    print(f"📊 {result.summary()}")

    print("\n" + "=" * 50)
    print("💥 A fatal error stops the whole batch...")

    async def validate(lead_id: int) -> int:
        if lead_id == 3:
            raise FatalError(f"lead {lead_id} has no owner")
        await asyncio.sleep(0.05)
        return lead_id

    result = await executor.execute(lead_ids, validate)
    print(f"📊 {result.summary()}")


if __name__ == "__main__":
    asyncio.run(main())
