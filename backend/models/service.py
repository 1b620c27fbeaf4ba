"""Service model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from backend.database import Base


class Service(Base):
    """A bookable dental procedure."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    description = Column(String, nullable=False)
    date_created = Column(DateTime, nullable=False, default=datetime.now)
    date_updated = Column(DateTime, nullable=False, default=datetime.now)
