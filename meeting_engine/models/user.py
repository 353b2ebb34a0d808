"""
User model.
"""
from sqlalchemy import Column, String, DateTime

from meeting_engine.models.base import Base, new_id
from meeting_engine.utils import utcnow


class User(Base):
    """Organizer who owns events and integrations."""

    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    timezone = Column(String(64), nullable=False, default="UTC")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<User(id='{self.id}', email='{self.email}')>"
