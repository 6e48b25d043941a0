from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from genjobs.api.deps import verify_ws_token
from genjobs.utils.time import utc_now
from genjobs.websocket.manager import hub

router = APIRouter()


@router.websocket("/events")
async def events(websocket: WebSocket) -> None:
    if not await verify_ws_token(websocket):
        return
    await hub.connect(websocket)
    await websocket.send_json(
        {"type": "connected", "timestamp": utc_now(), "subscribers": hub.subscribers}
    )
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        hub.disconnect(websocket)
