"""
Per-user OAuth credential for one provider app.
"""
from sqlalchemy import (
    Column, String, BigInteger, Boolean, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum
)

from meeting_engine.enums import IntegrationAppType, IntegrationCategory, IntegrationProvider
from meeting_engine.models.base import Base, new_id
from meeting_engine.utils import utcnow


class Integration(Base):
    """Connected provider app. Tokens are stored Fernet-encrypted."""

    __tablename__ = 'integrations'
    __table_args__ = (
        UniqueConstraint('user_id', 'app_type', name='uq_integrations_user_app_type'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    provider = Column(SAEnum(IntegrationProvider, native_enum=False, length=32), nullable=False)
    category = Column(SAEnum(IntegrationCategory, native_enum=False, length=64), nullable=False)
    app_type = Column(SAEnum(IntegrationAppType, native_enum=False, length=64), nullable=False)
    access_token = Column(String(8192), nullable=False)  # Encrypted
    refresh_token = Column(String(8192), nullable=True)  # Encrypted
    expiry_date = Column(BigInteger, nullable=True)  # epoch millis, NULL = no expiry reported
    calendar_id = Column(String(512), nullable=True)
    provider_user_id = Column(String(255), nullable=True)
    is_connected = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Integration(user_id='{self.user_id}', app_type='{self.app_type}')>"
