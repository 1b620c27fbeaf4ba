"""Role model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from backend.database import Base


class Role(Base):
    """Authorization category such as dentist or patient."""
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True)
    description = Column(String, nullable=False)
    date_created = Column(DateTime, nullable=False, default=datetime.now)
    date_updated = Column(DateTime, nullable=False, default=datetime.now)
