"""
Recompute follower/following counters from the follows table.

Usage:
    python -m scripts.reconcile_follow_counters            # every user
    python -m scripts.reconcile_follow_counters <user_id>  # one user
"""
import asyncio
import logging
import sys

from sortmyai.core.database import AsyncSessionLocal, engine
from sortmyai.core.logging_config import configure_logging
from sortmyai.services.follow_service import FollowService

logger = logging.getLogger("reconcile_follow_counters")


async def reconcile(user_id: str | None = None) -> int:
    try:
        async with AsyncSessionLocal() as db:
            corrected = await FollowService(db).reconcile_counters(user_id)
    finally:
        await engine.dispose()

    logger.info(f"Corrected {corrected} user(s)")
    return corrected


if __name__ == "__main__":
    configure_logging()
    asyncio.run(reconcile(sys.argv[1] if len(sys.argv) > 1 else None))
