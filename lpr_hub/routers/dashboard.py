# lpr_hub/routers/dashboard.py
"""
Dashboard feed.
WS  /ws (and /) — live `dashboard_update` snapshots.
GET /api/stats  — the same snapshot, once.
"""

from fastapi import APIRouter, Depends, WebSocket
from lpr_hub.database import get_store
from lpr_hub.schemas.dashboard import DashboardUpdate
from lpr_hub.services.entity_store import EntityStore

router = APIRouter()


@router.websocket("/ws")
@router.websocket("/")
async def dashboard_feed(websocket: WebSocket):
    await websocket.app.state.dashboards.serve(websocket)


@router.get("/api/stats", summary="Current dashboard snapshot")
def get_stats(store: EntityStore = Depends(get_store)):
    return DashboardUpdate.from_snapshot(store.get_dashboard_snapshot()).to_message()
