# lpr_hub/services/upload_service.py
"""
Stores detection pictures from the multipart body on disk.

Saves to:  {UPLOAD_DIR}/{plate}_{timestamp}_{role}.jpg
The stored filename is the image reference persisted on the event row.
"""

import os
import re
from datetime import datetime
from typing import Mapping
from starlette.datastructures import UploadFile
from lpr_hub.config import settings
from lpr_hub.errors import ValidationError
from lpr_hub.services.event_parser import resolve_image_fields
from lpr_hub.utils.logger import get_logger

logger = get_logger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")
_EXTENSION = re.compile(r"\.[a-z0-9]{1,5}")


def _stored_name(license_plate: str, role: str, original_name: str | None) -> str:
    plate = _UNSAFE.sub("_", license_plate or "unknown").strip("_") or "unknown"
    timestamp = datetime.utcnow().strftime("%Y%m%dT%H%M%S%f")
    ext = os.path.splitext(original_name or "")[1].lower()
    if not _EXTENSION.fullmatch(ext):
        ext = ".jpg"
    return f"{plate}_{timestamp}_{role}{ext}"


async def save_attachments(files: Mapping[str, UploadFile], license_plate: str) -> dict:
    """
    Persist the attachments that map to an image role.
    Every attachment is checked before anything is written, so a rejected
    request leaves no files behind. Returns {role: stored_filename}.
    """
    roles = resolve_image_fields(files.keys())
    payloads = {}
    for role, field_name in roles.items():
        upload = files[field_name]
        content_type = (upload.content_type or "").split(";")[0].strip().lower()
        if content_type not in settings.ALLOWED_IMAGE_TYPES:
            raise ValidationError(f"Only JPEG images are allowed ({field_name}: {content_type or 'unknown'})")
        data = await upload.read()
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise ValidationError(f"{field_name} exceeds {settings.MAX_UPLOAD_BYTES} bytes")
        payloads[role] = (upload.filename, data)
    if not payloads:
        return {}

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    stored = {}
    try:
        for role, (original_name, data) in payloads.items():
            filename = _stored_name(license_plate, role, original_name)
            with open(os.path.join(settings.UPLOAD_DIR, filename), "wb") as f:
                f.write(data)
            stored[role] = filename
            logger.info(f"[UPLOAD] Saved {role} image: {filename} ({len(data)} bytes)")
    except OSError:
        remove_attachments(stored.values())
        raise
    return stored


def remove_attachments(filenames):
    """Best-effort cleanup of files written for a request that did not commit."""
    for filename in filenames:
        path = os.path.join(settings.UPLOAD_DIR, filename)
        try:
            os.remove(path)
            logger.info(f"[UPLOAD] Removed orphaned image: {filename}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"[UPLOAD] Failed to remove {filename}: {e}")
