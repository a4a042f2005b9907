# lpr_hub/schemas/dashboard.py
"""Snapshot payload pushed to dashboard clients and served by GET /api/stats."""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Literal, Optional


class _CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class EventStats(_CamelModel):
    total_events: int = 0
    unique_vehicles: int = 0
    active_channels: int = 0
    total_sites: int = 0
    last_detection: Optional[datetime] = None


class SiteStats(_CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    camera_count: int = 0
    event_count: int = 0
    last_detection: Optional[datetime] = None
    last_vehicle_image: Optional[str] = None


class DashboardUpdate(_CamelModel):
    type: Literal["dashboard_update"] = "dashboard_update"
    stats: EventStats
    sites: list[SiteStats]

    @classmethod
    def from_snapshot(cls, snapshot: dict) -> "DashboardUpdate":
        return cls(
            stats=EventStats(**snapshot["stats"]),
            sites=[SiteStats(**row) for row in snapshot["sites"]],
        )

    def to_message(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
