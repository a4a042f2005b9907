# lpr_hub/models/site.py
"""
Sites table — named locations that cameras are assigned to.
The name is the natural key used by create-or-get lookups.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text
from lpr_hub.database import Base


class Site(Base):
    __tablename__ = "sites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), unique=True, nullable=False, index=True)
    description = Column(Text)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Site {self.id} name={self.name}>"
