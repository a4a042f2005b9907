from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class SiteCreate(BaseModel):
    name: Optional[str] = None        # required; validated by the store → 400
    description: Optional[str] = None


class SiteUpdate(SiteCreate):
    pass


class SiteOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
