from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from lpr_hub.models.camera import CameraStatus


class CameraCreate(BaseModel):
    channel_id: Optional[str] = Field(None, alias="channelID")
    mac_address: Optional[str] = Field(None, alias="macAddress")
    name: Optional[str] = None
    description: Optional[str] = None
    site_id: Optional[int] = None

    class Config:
        populate_by_name = True


class CameraUpdate(BaseModel):
    """Partial update — only the fields present in the body are written."""
    mac_address: Optional[str] = Field(None, alias="macAddress")
    name: Optional[str] = None
    description: Optional[str] = None
    site_id: Optional[int] = None
    status: Optional[CameraStatus] = None

    class Config:
        populate_by_name = True


class CameraOut(BaseModel):
    id: int
    channel_id: str = Field(alias="channelID")
    mac_address: Optional[str] = Field(None, alias="macAddress")
    name: Optional[str]
    description: Optional[str]
    site_id: Optional[int]
    status: str
    last_seen: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
        populate_by_name = True
