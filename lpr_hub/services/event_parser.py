# lpr_hub/services/event_parser.py
"""
Parses the metadata of an inbound detection POST into a DetectionEvent.

Cameras send the detection fields as query parameters (channelID, dateTime,
licensePlate, ...) and the pictures as multipart attachments. Firmware
versions disagree on the attachment field names, so each image role has a
small synonym list resolved first-match-wins.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Optional
from lpr_hub.errors import ValidationError
from lpr_hub.utils.logger import get_logger

logger = get_logger(__name__)

# Query parameter → DetectionEvent attribute
QUERY_FIELDS = {
    "channelID": "channel_id",
    "dateTime": "date_time",
    "eventType": "event_type",
    "country": "country",
    "licensePlate": "license_plate",
    "lane": "lane",
    "direction": "direction",
    "confidenceLevel": "confidence_level",
    "macAddress": "mac_address",
}

REQUIRED_FIELDS = ("channelID", "dateTime", "eventType", "licensePlate")

# Image role → accepted multipart field names, in priority order
IMAGE_FIELD_SYNONYMS = {
    "license_plate": ("licensePlatePicture.jpg", "licensePlatePicture", "licensePlateImage", "plateImage"),
    "vehicle": ("vehiclePicture.jpg", "vehiclePicture", "vehicleImage"),
    "detection": ("detectionPicture.jpg", "detectionPicture", "detectionImage", "fullScenePicture.jpg"),
}

IMAGE_ROLES = tuple(IMAGE_FIELD_SYNONYMS)


@dataclass
class DetectionEvent:
    channel_id: str
    date_time: datetime              # UTC, naive
    event_type: str
    license_plate: str
    country: Optional[str] = None
    lane: Optional[str] = None
    direction: Optional[str] = None
    confidence_level: Optional[str] = None
    mac_address: Optional[str] = None
    # role → stored image reference (license_plate | vehicle | detection)
    images: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "channelID": self.channel_id,
            "dateTime": self.date_time.isoformat() + "Z",
            "eventType": self.event_type,
            "country": self.country,
            "licensePlate": self.license_plate,
            "lane": self.lane,
            "direction": self.direction,
            "confidenceLevel": self.confidence_level,
            "macAddress": self.mac_address,
            "images": {role: self.images.get(role) for role in IMAGE_ROLES},
        }


def _clean(value) -> Optional[str]:
    """Empty or whitespace-only values become None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_event_time(raw: str) -> datetime:
    """
    Parse an ISO-8601 camera timestamp and normalise it to naive UTC.
    Values without an offset are taken as UTC.
    """
    try:
        parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    except (ValueError, OverflowError):
        raise ValidationError(f"dateTime is not a valid ISO-8601 timestamp: {raw!r}")
    return parsed


def missing_required(params: Mapping) -> list[str]:
    return [name for name in REQUIRED_FIELDS if not _clean(params.get(name))]


def resolve_image_fields(field_names) -> dict:
    """
    Map uploaded multipart field names to image roles.
    Returns {role: field_name}; fields matching no role are dropped.
    """
    present = set(field_names)
    resolved = {}
    for role, synonyms in IMAGE_FIELD_SYNONYMS.items():
        for name in synonyms:
            if name in present:
                resolved[role] = name
                break
    dropped = present - set(resolved.values())
    if dropped:
        logger.debug(f"Ignoring unmapped attachment fields: {sorted(dropped)}")
    return resolved


def parse_detection_event(params: Mapping, images: Optional[Mapping] = None) -> DetectionEvent:
    """
    Validate and normalise detection metadata.
    Raises ValidationError when a required field is missing or dateTime is malformed.
    """
    missing = missing_required(params)
    if missing:
        raise ValidationError(f"Missing required parameters: {', '.join(missing)}")

    values = {attr: _clean(params.get(name)) for name, attr in QUERY_FIELDS.items()}
    values["date_time"] = parse_event_time(values["date_time"])

    refs = {}
    for role, ref in (images or {}).items():
        if role not in IMAGE_FIELD_SYNONYMS:
            logger.debug(f"Dropping image reference with unknown role {role!r}")
            continue
        if _clean(ref):
            refs[role] = _clean(ref)

    return DetectionEvent(images=refs, **values)
