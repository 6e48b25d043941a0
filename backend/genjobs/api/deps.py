import secrets
from typing import Optional

from fastapi import HTTPException, Request, WebSocket

from genjobs.core.config import BACKEND_TOKEN

TOKEN_HEADER = "X-Backend-Token"


def _token_ok(presented: Optional[str]) -> bool:
    if not BACKEND_TOKEN:
        return True
    return presented is not None and secrets.compare_digest(presented, BACKEND_TOKEN)


async def verify_token(request: Request) -> None:
    if not _token_ok(request.headers.get(TOKEN_HEADER)):
        raise HTTPException(status_code=401, detail="unauthorized")


async def verify_ws_token(websocket: WebSocket) -> bool:
    if not _token_ok(websocket.headers.get(TOKEN_HEADER)):
        await websocket.close(code=1008)
        return False
    return True
