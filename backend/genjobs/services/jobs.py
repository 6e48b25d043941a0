import asyncio
import time
from typing import Any, Callable, Dict, Optional

from genjobs.core.config import BACKEND_WORKERS
from genjobs.db import jobs_repo
from genjobs.schemas.generation import (
    Cancelled,
    GenerationRequest,
    JobHandle,
    Pending,
    Success,
    Timeout,
    TokenMismatch,
    UnexpectedResponse,
)
from genjobs.services.catalog import poll_settings_for
from genjobs.services.client import AsyncJobClient
from genjobs.utils.time import elapsed_since
from genjobs.websocket.manager import hub

JOB_STATUS_BY_KIND: Dict[str, str] = {
    "success": "succeeded",
    "failure": "failed",
    "transport_error": "failed",
    "unexpected_response": "failed",
    "empty_output": "failed",
    "missing_job_id": "failed",
    "token_mismatch": "failed",
    "timeout": "timed_out",
    "cancelled": "canceled",
}


def describe_result(result: Any) -> str:
    if isinstance(result, Success):
        return f"{len(result.outputs)} output(s)"
    if isinstance(result, Timeout):
        return f"timed out after {result.elapsed:.0f}s and {result.polls} poll(s)"
    if isinstance(result, Cancelled):
        return "canceled"
    if isinstance(result, TokenMismatch):
        return f"tracking token mismatch (got {result.received!r})"
    return getattr(result, "message", result.kind)


class GenerationService:
    """Worker pool running queued generation jobs through ``AsyncJobClient``."""

    def __init__(
        self,
        workers: int = BACKEND_WORKERS,
        client_factory: Callable[[], AsyncJobClient] = AsyncJobClient,
    ) -> None:
        self.workers = workers
        self.client_factory = client_factory
        self.client: Optional[AsyncJobClient] = None
        self.queue: Optional[asyncio.Queue[str]] = None
        self.active_jobs: set[str] = set()
        self.cancel_events: Dict[str, asyncio.Event] = {}
        self.started_at = time.time()
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        if self._tasks:
            return
        self.client = self.client_factory()
        self.queue = asyncio.Queue()
        self.started_at = time.time()
        for worker_id in range(self.workers):
            self._tasks.append(asyncio.create_task(self.worker_loop(worker_id)))

    async def stop(self) -> None:
        for event in self.cancel_events.values():
            event.set()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        if self.client is not None:
            await self.client.aclose()
            self.client = None
        self.queue = None
        self.cancel_events.clear()
        self.active_jobs.clear()

    async def enqueue(self, job_id: str) -> None:
        if self.queue is None:
            raise RuntimeError("generation service not started")
        self.cancel_events.setdefault(job_id, asyncio.Event())
        await self.queue.put(job_id)

    def request_cancel(self, job_id: str) -> bool:
        event = self.cancel_events.get(job_id)
        if event is None:
            return False
        event.set()
        return True

    async def _mark_pending(self, job_id: str, handle: JobHandle) -> None:
        changed = await jobs_repo.update_active_job(
            job_id,
            status="pending",
            remote_id=handle.id,
            eta=handle.eta,
            message="waiting for remote job",
        )
        if changed:
            await jobs_repo.record_event(
                job_id, "info", f"remote job {handle.id} pending", {"eta": handle.eta}
            )
            await hub.job_status(job_id, "pending", remote_id=handle.id, eta=handle.eta)

    async def apply_result(self, job_id: str, result: Any, source: str = "poll") -> bool:
        status = JOB_STATUS_BY_KIND.get(result.kind)
        if status is None:
            return False
        message = describe_result(result)
        fields: Dict[str, Any] = {"status": status, "message": message}
        if isinstance(result, Success):
            fields["result"] = {"outputs": result.outputs, "metadata": result.metadata}
        else:
            fields["error"] = result.model_dump(mode="json")
        changed = await jobs_repo.update_active_job(job_id, **fields)
        if not changed:
            return False
        level = "info" if status == "succeeded" else "error"
        await jobs_repo.record_event(job_id, level, f"{source}: {message}")
        await hub.job_status(job_id, status)
        await hub.emit_log(level, f"generation {job_id} {status} via {source}: {message}")
        return True

    async def process_job(self, job_id: str) -> None:
        job = await jobs_repo.fetch_job(job_id)
        if not job or job["status"] in jobs_repo.TERMINAL_STATUSES:
            return
        if self.client is None:
            raise RuntimeError("generation service not started")
        cancel = self.cancel_events.setdefault(job_id, asyncio.Event())

        if not await jobs_repo.update_active_job(job_id, status="running", message="submitting"):
            return
        await hub.job_status(job_id, "running")

        request = GenerationRequest(
            endpoint=job["endpoint"],
            parameters=job["parameters"],
            track_id=job["track_id"],
            webhook=job["webhook"],
        )
        defaults = poll_settings_for(job["endpoint"])
        try:
            result = await self.client.submit(request)
            if isinstance(result, Pending):
                await self._mark_pending(job_id, result.handle)
                result = await self.client.resolve(
                    result.handle,
                    job["poll_interval"] or defaults.poll_interval,
                    job["poll_timeout"] or defaults.timeout,
                    cancel=cancel,
                )
        except Exception as exc:  # pragma: no cover
            result = UnexpectedResponse(message=f"{type(exc).__name__}: {exc}")
        await self.apply_result(job_id, result)

    async def worker_loop(self, worker_id: int) -> None:
        queue = self.queue
        if queue is None:
            return
        await hub.emit_log("info", f"worker {worker_id} ready")
        while True:
            job_id = await queue.get()
            self.active_jobs.add(job_id)
            try:
                await self.process_job(job_id)
            except Exception as exc:
                await hub.emit_log("error", f"generation {job_id} crashed: {exc}")
            finally:
                self.active_jobs.discard(job_id)
                self.cancel_events.pop(job_id, None)
                queue.task_done()

    def status_snapshot(self) -> Dict[str, Any]:
        return {
            "uptime_sec": elapsed_since(self.started_at),
            "queue_depth": self.queue.qsize() if self.queue is not None else 0,
            "workers": {
                "active": len(self.active_jobs),
                "idle": max(self.workers - len(self.active_jobs), 0),
            },
            "subscribers": hub.subscribers,
        }


service = GenerationService()
