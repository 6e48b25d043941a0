from typing import Any, Dict

from fastapi import APIRouter, Depends

from genjobs.api.deps import verify_token
from genjobs.services.catalog import ENDPOINTS, POLL_DEFAULTS
from genjobs.services.jobs import service
from genjobs.utils.time import utc_now

router = APIRouter()


@router.get("/health")
async def health(_: None = Depends(verify_token)) -> Dict[str, Any]:
    return {"status": "ok", "time": utc_now(), "workers_running": service.running}


@router.get("/status")
async def status(_: None = Depends(verify_token)) -> Dict[str, Any]:
    return service.status_snapshot()


@router.get("/endpoints")
async def endpoints(_: None = Depends(verify_token)) -> Dict[str, Any]:
    return {
        "endpoints": [
            {
                "name": spec.name,
                "path": spec.path,
                "kind": spec.kind.value,
                "required": list(spec.required),
                "poll": POLL_DEFAULTS[spec.kind].model_dump(),
            }
            for spec in ENDPOINTS.values()
        ]
    }
