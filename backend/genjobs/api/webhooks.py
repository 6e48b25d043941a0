import json

from fastapi import APIRouter, HTTPException, Request

from genjobs.core.config import WEBHOOK_DEDUP_TTL_SEC
from genjobs.db import jobs_repo, webhooks_repo
from genjobs.schemas.generation import TokenMismatch, UnexpectedResponse
from genjobs.schemas.jobs import WebhookAck
from genjobs.services.jobs import service
from genjobs.services.webhooks import match_webhook
from genjobs.websocket.manager import hub

router = APIRouter()


@router.post("/webhooks/{track_id}", response_model=WebhookAck)
async def receive_webhook(track_id: str, request: Request) -> WebhookAck:
    job = await jobs_repo.fetch_job_by_track_id(track_id)
    if not job:
        raise HTTPException(status_code=404, detail="unknown tracking token")

    raw = await request.body()
    try:
        notification = json.loads(raw)
    except ValueError:
        notification = raw.decode(errors="replace")

    result = match_webhook(notification, job["track_id"])
    if isinstance(result, TokenMismatch):
        await hub.emit_log(
            "warn", f"webhook for {track_id} carried track_id {result.received!r}"
        )
        raise HTTPException(status_code=400, detail="tracking token mismatch")
    if isinstance(result, UnexpectedResponse):
        await jobs_repo.record_event(
            job["job_id"], "warn", f"webhook ignored: {result.message}"
        )
        await hub.emit_log("warn", f"webhook for {track_id} ignored: {result.message}")
        return WebhookAck(
            track_id=track_id,
            accepted=False,
            outcome=result.kind,
            job_id=job["job_id"],
        )

    if not await webhooks_repo.claim_delivery(track_id, WEBHOOK_DEDUP_TTL_SEC):
        return WebhookAck(
            track_id=track_id,
            accepted=True,
            duplicate=True,
            outcome=result.kind,
            job_id=job["job_id"],
        )

    try:
        await service.apply_result(job["job_id"], result, source="webhook")
    except Exception:
        await webhooks_repo.release_delivery(track_id)
        raise
    service.request_cancel(job["job_id"])
    return WebhookAck(
        track_id=track_id, accepted=True, outcome=result.kind, job_id=job["job_id"]
    )
