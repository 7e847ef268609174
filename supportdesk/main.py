from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from supportdesk.api.routes import router, ws_manager
from supportdesk.config import settings
from supportdesk.context import AppContext
from supportdesk.models import Event

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


async def _ws_broadcast(event: Event) -> None:
    """EventBus subscriber: push snapshots and update status to WebSocket clients."""
    await ws_manager.broadcast(event.model_dump(mode="json"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── startup ───────────────────────────────────────
    context = AppContext.create(settings)
    context.event_bus.subscribe(_ws_broadcast)
    await context.init()
    app.state.context = context

    yield

    # ── shutdown ──────────────────────────────────────
    await context.shutdown()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


def run() -> None:
    import uvicorn

    uvicorn.run("supportdesk.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
