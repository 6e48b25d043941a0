from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from genjobs.api.deps import verify_token
from genjobs.db import jobs_repo
from genjobs.schemas.jobs import (
    GenerationCreate,
    GenerationList,
    GenerationRecord,
    GenerationResponse,
)
from genjobs.services.catalog import ENDPOINTS, build_request, derive_fetch_path
from genjobs.services.jobs import service
from genjobs.services.webhooks import webhook_url_for
from genjobs.websocket.manager import hub

router = APIRouter()


def _resolve_endpoint(request: GenerationCreate) -> str:
    if request.endpoint in ENDPOINTS:
        try:
            return build_request(request.endpoint, request.parameters).endpoint
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
    if "/" not in request.endpoint:
        raise HTTPException(
            status_code=400, detail=f"unknown endpoint: {request.endpoint}"
        )
    try:
        derive_fetch_path(request.endpoint)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return request.endpoint


@router.post("/generations", response_model=GenerationResponse)
async def create_generation(
    request: GenerationCreate, _: None = Depends(verify_token)
) -> GenerationResponse:
    if "key" in request.parameters:
        raise HTTPException(
            status_code=400, detail="the API key is configured on the server"
        )
    endpoint = _resolve_endpoint(request)
    track_id = request.track_id or jobs_repo.new_track_id()
    if await jobs_repo.fetch_job_by_track_id(track_id):
        raise HTTPException(status_code=409, detail=f"track_id already used: {track_id}")
    webhook = webhook_url_for(track_id) if request.use_webhook else None
    job_id = await jobs_repo.create_job(
        endpoint,
        request.parameters,
        track_id,
        webhook=webhook,
        poll_interval=request.poll_interval,
        poll_timeout=request.timeout,
    )
    await service.enqueue(job_id)
    await hub.emit_log("info", f"generation queued {job_id} ({endpoint})")
    return GenerationResponse(job_id=job_id, track_id=track_id, status="queued")


@router.get("/generations", response_model=GenerationList)
async def list_generations(_: None = Depends(verify_token)) -> GenerationList:
    jobs = await jobs_repo.fetch_jobs()
    return GenerationList(jobs=[GenerationRecord(**job) for job in jobs])


@router.get("/generations/{job_id}", response_model=GenerationRecord)
async def get_generation(
    job_id: str, _: None = Depends(verify_token)
) -> GenerationRecord:
    job = await jobs_repo.fetch_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="generation not found")
    return GenerationRecord(**job)


@router.get("/generations/{job_id}/events")
async def get_generation_events(
    job_id: str, _: None = Depends(verify_token)
) -> Dict[str, Any]:
    job = await jobs_repo.fetch_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="generation not found")
    return {"job_id": job_id, "events": await jobs_repo.fetch_events(job_id)}


@router.post("/generations/{job_id}/cancel")
async def cancel_generation(
    job_id: str, _: None = Depends(verify_token)
) -> Dict[str, Any]:
    job = await jobs_repo.fetch_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="generation not found")
    if job["status"] in jobs_repo.TERMINAL_STATUSES:
        return {"job_id": job_id, "status": job["status"]}
    changed = await jobs_repo.update_active_job(
        job_id, status="canceled", message="canceled by caller"
    )
    service.request_cancel(job_id)
    if changed:
        await jobs_repo.record_event(job_id, "info", "generation canceled")
        await hub.job_status(job_id, "canceled")
        return {"job_id": job_id, "status": "canceled"}
    job = await jobs_repo.fetch_job(job_id)
    return {"job_id": job_id, "status": job["status"] if job else "canceled"}
