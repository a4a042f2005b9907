from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class EventOut(BaseModel):
    id: int
    channel_id: str = Field(alias="channelID")
    date_time: datetime = Field(alias="dateTime")
    event_type: str = Field(alias="eventType")
    country: Optional[str]
    license_plate: str = Field(alias="licensePlate")
    lane: Optional[str]
    direction: Optional[str]
    confidence_level: Optional[str] = Field(None, alias="confidenceLevel")
    mac_address: Optional[str] = Field(None, alias="macAddress")
    license_plate_image: Optional[str] = Field(None, alias="licensePlateImage")
    vehicle_image: Optional[str] = Field(None, alias="vehicleImage")
    detection_image: Optional[str] = Field(None, alias="detectionImage")
    site_id: Optional[int]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
        populate_by_name = True
