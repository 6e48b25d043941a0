from fastapi import FastAPI

from genjobs.api import events, generations, status, webhooks
from genjobs.core.config import BACKEND_HOST, BACKEND_PORT, ensure_dirs
from genjobs.core.logging import configure_logging
from genjobs.db.connection import close_db, connect_db
from genjobs.services.jobs import service
from genjobs.websocket.manager import hub

app = FastAPI(title="genjobs", version="0.1.0")

app.include_router(status.router)
app.include_router(generations.router)
app.include_router(webhooks.router)
app.include_router(events.router)


@app.on_event("startup")
async def on_startup() -> None:
    ensure_dirs()
    configure_logging()
    await connect_db()
    await service.start()
    await hub.emit_log("info", "genjobs backend started")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await service.stop()
    await close_db()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "genjobs.main:app",
        host=BACKEND_HOST,
        port=BACKEND_PORT,
        log_level="info",
    )


if __name__ == "__main__":
    run()
