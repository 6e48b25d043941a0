import time
from typing import Optional

from genjobs.db.connection import execute


async def purge_expired(now: Optional[int] = None) -> int:
    now_ts = int(time.time()) if now is None else now
    return await execute(
        "delete from webhook_deliveries where expires_at <= ?", (now_ts,)
    )


async def claim_delivery(track_id: str, ttl_sec: int, now: Optional[int] = None) -> bool:
    """Record the first delivery for ``track_id``; False if already claimed.

    Claims are stored in the shared database and expire after ``ttl_sec``.
    """
    now_ts = int(time.time()) if now is None else now
    await purge_expired(now_ts)
    inserted = await execute(
        """
        insert or ignore into webhook_deliveries (track_id, received_at, expires_at)
        values (?, ?, ?)
        """,
        (track_id, now_ts, now_ts + ttl_sec),
    )
    return inserted > 0


async def release_delivery(track_id: str) -> None:
    await execute("delete from webhook_deliveries where track_id = ?", (track_id,))
