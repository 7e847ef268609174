from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect

from supportdesk.context import AppContext
from supportdesk.engine.report_renderer import render_plain_text, render_system_table
from supportdesk.errors import CollectionError, InvalidTransition, UpdateError
from supportdesk.models import PerformanceMetrics, SystemSnapshot, TicketRequest

logger = logging.getLogger(__name__)

router = APIRouter()


# ── WebSocket connection manager ──────────────────────


class ConnectionManager:
    """Tracks active WebSocket clients and broadcasts messages."""

    def __init__(self) -> None:
        self.active_connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, data: dict) -> None:
        dead: list[WebSocket] = []
        for ws in self.active_connections:
            try:
                await ws.send_json(data)
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)


ws_manager = ConnectionManager()


def _context(request: Request) -> AppContext:
    return request.app.state.context


async def _fresh_snapshot(context: AppContext) -> SystemSnapshot:
    try:
        return await context.collector.collect()
    except CollectionError as exc:
        logger.error("Snapshot request failed: %s", exc)
        raise HTTPException(status_code=503, detail="System information is unavailable")


# ── snapshot routes ───────────────────────────────────


@router.get("/api/snapshot")
async def get_snapshot(request: Request) -> dict:
    snapshot = await _fresh_snapshot(_context(request))
    return snapshot.to_json()


@router.get("/api/metrics")
async def get_metrics(request: Request) -> dict:
    snapshot = await _fresh_snapshot(_context(request))
    return PerformanceMetrics.from_snapshot(snapshot).model_dump(mode="json")


@router.get("/api/report")
async def get_report(request: Request) -> dict:
    snapshot = await _fresh_snapshot(_context(request))
    return {"text": render_plain_text(snapshot), "html": render_system_table(snapshot)}


@router.post("/api/snapshot/refresh")
async def refresh_snapshot(request: Request) -> dict:
    events = await _context(request).poller.refresh()
    return {"published": len(events)}


@router.get("/api/security")
async def get_security(request: Request) -> dict:
    status = await _context(request).queries.security_status()
    return status.model_dump(mode="json")


# ── tickets ───────────────────────────────────────────


@router.post("/api/tickets")
async def submit_ticket(ticket: TicketRequest, request: Request) -> dict:
    result = await _context(request).tickets.submit(ticket)
    if not result.success:
        raise HTTPException(status_code=502, detail=result.error or "Unable to submit ticket")
    return result.model_dump(mode="json")


# ── updates ───────────────────────────────────────────


@router.get("/api/update")
async def get_update(request: Request) -> dict:
    return _context(request).updates.status()


@router.post("/api/update/{action}")
async def update_action(action: str, request: Request) -> dict:
    updates = _context(request).updates
    operations = {
        "check": updates.check,
        "download": updates.download,
        "install": updates.install,
    }
    operation = operations.get(action)
    if operation is None:
        raise HTTPException(status_code=404, detail=f"Unknown update action: {action}")
    try:
        await operation()
    except (InvalidTransition, UpdateError) as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return updates.status()


# ── status ────────────────────────────────────────────


@router.get("/api/status")
async def get_status(request: Request) -> dict:
    context = _context(request)
    event_bus = context.event_bus
    return {
        "status": "running",
        "event_bus_running": event_bus.running,
        "subscribers": event_bus.subscriber_count,
        "pending_events": event_bus.pending,
        "poll_interval": context.poller.interval,
        "poller": context.poller.stats(),
        "update_state": context.updates.state.value,
    }


# ── WebSocket endpoint ────────────────────────────────


@router.websocket("/ws/snapshots")
async def websocket_snapshots(websocket: WebSocket) -> None:
    await ws_manager.connect(websocket)
    try:
        while True:
            # Keep connection alive; client can send pings or messages
            await websocket.receive_text()
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket)
