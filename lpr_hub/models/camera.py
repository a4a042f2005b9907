# lpr_hub/models/camera.py
"""
Cameras table — one row per channel identifier.
Rows are auto-registered on the first detection from an unseen channel,
or created explicitly from the management API.
"""

import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, CheckConstraint
from lpr_hub.database import Base


class CameraStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Camera(Base):
    __tablename__ = "cameras"
    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive')", name="ck_cameras_status"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    channel_id = Column(String(100), unique=True, nullable=False, index=True)
    mac_address = Column(String(50))
    name = Column(String(200))
    description = Column(Text)
    site_id = Column(Integer, ForeignKey("sites.id"), index=True)   # nullable → unassigned
    status = Column(String(16), nullable=False, default=CameraStatus.ACTIVE.value)
    last_seen = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Camera {self.id} channel={self.channel_id} site={self.site_id}>"
