"""
Bookable event template.
"""
from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship

from meeting_engine.enums import LocationType
from meeting_engine.models.base import Base, new_id
from meeting_engine.utils import utcnow


class Event(Base):
    """Bookable template. ``location_type`` is the orchestration dispatch key."""

    __tablename__ = 'events'

    id = Column(String(36), primary_key=True, default=new_id)
    owner_user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    location_type = Column(SAEnum(LocationType, native_enum=False, length=64), nullable=False)
    calendar_id = Column(String(512), nullable=True)
    duration = Column(Integer, nullable=False, default=30)  # minutes
    is_private = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<Event(id='{self.id}', location_type='{self.location_type}')>"
