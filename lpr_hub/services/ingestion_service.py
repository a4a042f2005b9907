# lpr_hub/services/ingestion_service.py
"""
Ingestion of one detection POST: validate → store pictures → commit event.

This is the only path that auto-registers cameras (the store's insert_event
upserts the camera inside the event transaction). The event_update and,
for a new camera, camera_update cues are published by the store once that
transaction has committed, so a failed ingestion never notifies anyone.
"""

from typing import Mapping
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from lpr_hub.errors import ValidationError, StorageError
from lpr_hub.services.entity_store import EntityStore
from lpr_hub.services.event_parser import DetectionEvent, parse_detection_event
from lpr_hub.services.upload_service import save_attachments, remove_attachments
from lpr_hub.utils.logger import get_logger

logger = get_logger(__name__)


async def ingest_detection(store: EntityStore, params: Mapping,
                           files: Mapping[str, UploadFile] = None) -> tuple[int, DetectionEvent]:
    """
    Returns (event_id, event). Raises ValidationError for bad input and
    StorageError (reported as InternalError) for anything that failed downstream.
    """
    try:
        event = parse_detection_event(params)
    except ValidationError as e:
        logger.warning(f"Rejected detection from channel={params.get('channelID')!r}: {e.detail}")
        raise

    stored = await save_attachments(files or {}, event.license_plate)
    event.images.update(stored)

    try:
        event_id = await run_in_threadpool(store.insert_event, event)
    except ValidationError:
        remove_attachments(stored.values())
        raise
    except Exception as e:
        remove_attachments(stored.values())
        logger.error(f"Failed to store detection {event.license_plate} from {event.channel_id}: {e}")
        raise StorageError("Failed to store detection event") from e

    logger.info(
        f"Detection #{event_id}: channel={event.channel_id} plate={event.license_plate} "
        f"type={event.event_type} time={event.date_time.isoformat()} images={sorted(stored)}"
    )
    return event_id, event
