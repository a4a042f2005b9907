# lpr_hub/routers/events.py
"""
Camera detection webhook + event log viewer.
POST /, /hik   — receives detection events (query params + multipart pictures).
GET  /api/events — lists stored events with optional filters.
"""

from typing import Optional
from fastapi import APIRouter, Request, Depends, Query
from starlette.datastructures import UploadFile
from lpr_hub.database import get_store
from lpr_hub.schemas.event import EventOut
from lpr_hub.services.entity_store import EntityStore
from lpr_hub.services.event_parser import parse_event_time
from lpr_hub.services.ingestion_service import ingest_detection
from lpr_hub.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/", summary="Camera webhook — receives detection events")
@router.post("/hik", summary="Camera webhook — Hikvision path alias")
async def receive_detection(request: Request, store: EntityStore = Depends(get_store)):
    """
    Metadata arrives as query parameters; text form fields with the same
    names are accepted as a fallback. Up to three JPEG attachments.
    Returns 400 for missing/invalid fields and 500 if the event could not be stored.
    """
    async with request.form() as form:
        params = {k: v for k, v in form.items() if isinstance(v, str)}
        params.update({k: v for k, v in request.query_params.items() if v})

        files = {}
        for name, value in form.multi_items():
            if isinstance(value, UploadFile):
                files.setdefault(name, value)

        logger.debug(f"Detection POST from {request.client.host if request.client else '?'} | "
                     f"params={sorted(params)} files={sorted(files)}")
        event_id, event = await ingest_detection(store, params, files)

    return {
        "status": "success",
        "message": "Vehicle detection event processed successfully",
        "event_id": event_id,
        "event": event.as_dict(),
    }


@router.get("/api/events", response_model=list[EventOut], summary="List detection events")
def list_events(
    license_plate: Optional[str] = Query(None, alias="licensePlate"),
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    site_id: Optional[int] = Query(None, alias="siteId"),
    limit: int = Query(100, ge=1, le=1000),
    store: EntityStore = Depends(get_store),
):
    """Plate substring match and inclusive dateTime range, newest first."""
    return store.list_events(
        license_plate=license_plate,
        date_from=parse_event_time(date_from) if date_from else None,
        date_to=parse_event_time(date_to) if date_to else None,
        site_id=site_id,
        limit=limit,
    )
