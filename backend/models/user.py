"""User and role-assignment model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from backend.database import Base
from backend.models.role import Role


class User(Base):
    """Represents a patient, dentist or staff account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    gender = Column(String)
    phone = Column(String)
    is_active = Column(Boolean, nullable=False, default=True)
    date_updated = Column(DateTime, nullable=False, default=datetime.now)

    role = relationship("UserRole", back_populates="user", uselist=False, cascade="all, delete-orphan")


class UserRole(Base):
    """Binds a user to the single role that governs authorization."""
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", name="uq_user_roles_user"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="RESTRICT"), nullable=False)
    date_updated = Column(DateTime, nullable=False, default=datetime.now)

    user = relationship("User", back_populates="role")
    role = relationship(Role)
