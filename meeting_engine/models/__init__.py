"""
Database models package.
Import all models here for easy access and Alembic auto-detection.
"""
from meeting_engine.models.base import Base
from meeting_engine.models.user import User
from meeting_engine.models.event import Event
from meeting_engine.models.integration import Integration
from meeting_engine.models.meeting import Meeting

__all__ = [
    'Base',
    'User',
    'Event',
    'Integration',
    'Meeting',
]
