from typing import Any, Dict, Optional

from fastapi import WebSocket

from genjobs.core.logging import logger
from genjobs.utils.time import utc_now

_LOG_METHODS = {
    "error": logger.error,
    "warn": logger.warning,
}


class EventHub:
    def __init__(self) -> None:
        self.connections: set[WebSocket] = set()

    @property
    def subscribers(self) -> int:
        return len(self.connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.connections.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        self.connections.discard(websocket)

    async def broadcast(self, payload: Dict[str, Any]) -> None:
        dead: list[WebSocket] = []
        for conn in list(self.connections):
            try:
                await conn.send_json(payload)
            except RuntimeError:
                dead.append(conn)
        for conn in dead:
            self.connections.discard(conn)

    async def job_status(self, job_id: str, status: str, **extra: Any) -> None:
        await self.broadcast(
            {
                "type": "generation.status",
                "job_id": job_id,
                "status": status,
                "timestamp": utc_now(),
                **extra,
            }
        )

    async def emit_log(
        self, level: str, message: str, meta: Optional[Dict[str, Any]] = None
    ) -> None:
        log_message = message.strip()
        if not log_message:
            return
        _LOG_METHODS.get(level, logger.info)(log_message)
        await self.broadcast(
            {
                "type": "log",
                "level": level,
                "message": log_message,
                "timestamp": utc_now(),
                "meta": meta,
            }
        )


hub = EventHub()
