"""Appointment model definitions."""

import enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from backend.database import Base
from backend.models.service import Service
from backend.models.user import User


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Appointment(Base):
    """Represents a scheduled appointment between a patient and a dentist."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    appointment_date = Column(DateTime, nullable=False)
    patient_user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    dentist_user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="RESTRICT"), nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.PENDING.value)
    notes = Column(String)

    patient = relationship(User, foreign_keys=[patient_user_id])
    dentist = relationship(User, foreign_keys=[dentist_user_id])
    service = relationship(Service)
