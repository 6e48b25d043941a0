import json
import uuid
from typing import Any, Dict, List, Optional, Tuple

from genjobs.db.connection import execute, fetchall, fetchone
from genjobs.utils.time import utc_now

TERMINAL_STATUSES = frozenset({"succeeded", "failed", "timed_out", "canceled"})

_JSON_FIELDS = {"parameters", "result", "error"}


def _row_to_job(row: Any) -> Dict[str, Any]:
    return {
        "job_id": row["job_id"],
        "endpoint": row["endpoint"],
        "track_id": row["track_id"],
        "webhook": row["webhook"],
        "status": row["status"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
        "remote_id": row["remote_id"],
        "eta": row["eta"],
        "poll_interval": row["poll_interval"],
        "poll_timeout": row["poll_timeout"],
        "message": row["message"],
        "parameters": json.loads(row["parameters_json"]) if row["parameters_json"] else {},
        "result": json.loads(row["result_json"]) if row["result_json"] else None,
        "error": json.loads(row["error_json"]) if row["error_json"] else None,
    }


def new_track_id() -> str:
    return f"trk_{uuid.uuid4().hex}"


async def create_job(
    endpoint: str,
    parameters: Dict[str, Any],
    track_id: str,
    webhook: Optional[str] = None,
    poll_interval: Optional[float] = None,
    poll_timeout: Optional[float] = None,
) -> str:
    job_id = f"gen_{uuid.uuid4().hex}"
    now = utc_now()
    await execute(
        """
        insert into generation_jobs (
          job_id, endpoint, track_id, webhook, status, created_at, updated_at,
          remote_id, eta, poll_interval, poll_timeout, message,
          parameters_json, result_json, error_json
        )
        values (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            job_id,
            endpoint,
            track_id,
            webhook,
            "queued",
            now,
            now,
            None,
            None,
            poll_interval,
            poll_timeout,
            None,
            json.dumps(parameters),
            None,
            None,
        ),
    )
    return job_id


def _assignments(fields: Dict[str, Any]) -> Tuple[List[str], List[Any]]:
    fields["updated_at"] = utc_now()
    columns = []
    values: List[Any] = []
    for key, value in fields.items():
        if key in _JSON_FIELDS:
            columns.append(f"{key}_json = ?")
            values.append(json.dumps(value) if value is not None else None)
        else:
            columns.append(f"{key} = ?")
            values.append(value)
    return columns, values


async def update_active_job(job_id: str, **fields: Any) -> bool:
    """Update a job unless it already reached a terminal status."""
    columns, values = _assignments(fields)
    placeholders = ", ".join("?" for _ in TERMINAL_STATUSES)
    values.append(job_id)
    values.extend(sorted(TERMINAL_STATUSES))
    changed = await execute(
        f"update generation_jobs set {', '.join(columns)} "
        f"where job_id = ? and status not in ({placeholders})",
        tuple(values),
    )
    return changed > 0


async def fetch_job(job_id: str) -> Optional[Dict[str, Any]]:
    row = await fetchone("select * from generation_jobs where job_id = ?", (job_id,))
    if row is None:
        return None
    return _row_to_job(row)


async def fetch_job_by_track_id(track_id: str) -> Optional[Dict[str, Any]]:
    row = await fetchone(
        "select * from generation_jobs where track_id = ?", (track_id,)
    )
    if row is None:
        return None
    return _row_to_job(row)


async def fetch_jobs(limit: int = 200) -> List[Dict[str, Any]]:
    rows = await fetchall(
        "select * from generation_jobs order by created_at desc limit ?", (limit,)
    )
    return [_row_to_job(row) for row in rows]


async def record_event(
    job_id: str, level: str, message: str, meta: Optional[Dict[str, Any]] = None
) -> None:
    await execute(
        """
        insert into job_events (job_id, created_at, level, message, meta_json)
        values (?, ?, ?, ?, ?)
        """,
        (job_id, utc_now(), level, message, json.dumps(meta) if meta else None),
    )


async def fetch_events(job_id: str) -> List[Dict[str, Any]]:
    rows = await fetchall(
        "select * from job_events where job_id = ? order by event_id", (job_id,)
    )
    return [
        {
            "created_at": row["created_at"],
            "level": row["level"],
            "message": row["message"],
            "meta": json.loads(row["meta_json"]) if row["meta_json"] else None,
        }
        for row in rows
    ]
