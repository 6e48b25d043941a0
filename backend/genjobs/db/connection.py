import asyncio
import sqlite3
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from genjobs.core.config import DB_PATH

T = TypeVar("T")

db_lock = asyncio.Lock()
db_conn: sqlite3.Connection | None = None


def init_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        create table if not exists generation_jobs (
          job_id text primary key,
          endpoint text not null,
          track_id text not null unique,
          webhook text,
          status text not null,
          created_at text not null,
          updated_at text not null,
          remote_id text,
          eta real,
          poll_interval real,
          poll_timeout real,
          message text,
          parameters_json text,
          result_json text,
          error_json text
        );
        """
    )
    conn.execute(
        """
        create table if not exists job_events (
          event_id integer primary key,
          job_id text not null,
          created_at text not null,
          level text not null,
          message text not null,
          meta_json text
        );
        """
    )
    conn.execute(
        """
        create table if not exists webhook_deliveries (
          track_id text primary key,
          received_at integer not null,
          expires_at integer not null
        );
        """
    )
    conn.execute(
        """
        create index if not exists idx_generation_jobs_created
        on generation_jobs (created_at);
        """
    )
    conn.commit()


async def connect_db(path: Optional[str] = None) -> None:
    global db_conn, db_lock
    db_lock = asyncio.Lock()
    db_conn = sqlite3.connect(path or DB_PATH, check_same_thread=False)
    db_conn.row_factory = sqlite3.Row
    init_db(db_conn)


async def close_db() -> None:
    global db_conn
    if db_conn:
        db_conn.close()
    db_conn = None


def _cursor(query: str, params: Sequence[Any]) -> sqlite3.Cursor:
    if db_conn is None:
        raise RuntimeError("database not initialized")
    return db_conn.execute(query, tuple(params))


async def _locked(fn: Callable[[], T]) -> T:
    async with db_lock:
        return await asyncio.to_thread(fn)


async def execute(query: str, params: Sequence[Any] = ()) -> int:
    """Run a write statement, commit, and return the affected row count."""

    def run() -> int:
        cur = _cursor(query, params)
        cur.connection.commit()
        return cur.rowcount

    return await _locked(run)


async def fetchone(query: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
    return await _locked(lambda: _cursor(query, params).fetchone())


async def fetchall(query: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
    return await _locked(lambda: _cursor(query, params).fetchall())
