"""
Durable booking record.
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Enum as SAEnum

from meeting_engine.enums import IntegrationAppType, MeetingStatus
from meeting_engine.models.base import Base, new_id
from meeting_engine.utils import utcnow


class Meeting(Base):
    """
    One confirmed booking.

    Written only after both remote artifacts exist. ``calendar_event_id`` and
    ``meeting_provider_id`` are kept after cancellation so deletions can be
    retried and audited.
    """

    __tablename__ = 'meetings'

    id = Column(String(36), primary_key=True, default=new_id)
    event_id = Column(String(36), ForeignKey('events.id', ondelete='CASCADE'), nullable=False, index=True)
    owner_user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    guest_name = Column(String(255), nullable=False)
    guest_email = Column(String(255), nullable=False)
    additional_info = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False, index=True)  # UTC
    end_time = Column(DateTime, nullable=False)  # UTC
    meet_link = Column(Text, nullable=False)
    calendar_event_id = Column(String(1024), nullable=False)
    calendar_app_type = Column(SAEnum(IntegrationAppType, native_enum=False, length=64), nullable=False)
    calendar_id = Column(String(512), nullable=True)
    meeting_provider_id = Column(String(255), nullable=True)
    status = Column(
        SAEnum(MeetingStatus, native_enum=False, length=16),
        nullable=False,
        default=MeetingStatus.SCHEDULED,
        index=True,
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Meeting(id='{self.id}', status='{self.status}')>"
