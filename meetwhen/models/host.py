from sqlalchemy import Column, String, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from meetwhen.core.database import Base
from meetwhen.models.types import UTCDateTime, utcnow


class Host(Base):
    __tablename__ = "hosts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    username = Column(String, unique=True, nullable=False)
    timezone = Column(String, nullable=False, default="UTC")  # IANA name

    # Bumped by every booking write; commits compare-and-write on it
    booking_version = Column(Integer, nullable=False, default=0)

    # Google Calendar Integration
    google_calendar_id = Column(String, nullable=True)  # e.g. "primary"
    google_refresh_token = Column(String, nullable=True)  # Encrypted
    google_token_expires_at = Column(UTCDateTime, nullable=True)

    # Timestamps
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    availability_rules = relationship(
        "AvailabilityRule", back_populates="host", cascade="all, delete-orphan"
    )
    date_overrides = relationship(
        "DateOverride", back_populates="host", cascade="all, delete-orphan"
    )
    event_types = relationship("EventType", back_populates="host", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="host", cascade="all, delete-orphan")
    webhooks = relationship("Webhook", back_populates="host", cascade="all, delete-orphan")

    @property
    def has_linked_calendar(self) -> bool:
        return bool(self.google_refresh_token)

    def __repr__(self):
        return f"<Host(id={self.id}, username={self.username})>"
