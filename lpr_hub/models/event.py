# lpr_hub/models/event.py
"""
Detection events table — one immutable row per accepted ingestion.
date_time is the camera-supplied detection time (UTC), created_at is receipt time.
Image columns hold references (stored filenames), never the image bytes.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from lpr_hub.database import Base


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    channel_id = Column(String(100), nullable=False, index=True)
    date_time = Column(DateTime, nullable=False, index=True)
    event_type = Column(String(100), nullable=False)
    country = Column(String(50))
    license_plate = Column(String(50), nullable=False, index=True)
    lane = Column(String(20))
    direction = Column(String(50))
    confidence_level = Column(String(20))
    mac_address = Column(String(50))        # snapshot of the camera MAC at ingestion
    license_plate_image = Column(String(255))
    vehicle_image = Column(String(255))
    detection_image = Column(String(255))
    site_id = Column(Integer, ForeignKey("sites.id"), index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Event {self.id} plate={self.license_plate} channel={self.channel_id}>"
