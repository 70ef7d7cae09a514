from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from meetwhen.core.database import Base
from meetwhen.models.types import UTCDateTime, utcnow


class EventType(Base):
    __tablename__ = "event_types"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    host_id = Column(
        UUID(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title = Column(String, nullable=False)
    slug = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String, nullable=True)

    # Scheduling policy, all in minutes except max_days_ahead
    duration = Column(Integer, nullable=False, default=30)
    buffer_before = Column(Integer, nullable=False, default=0)
    buffer_after = Column(Integer, nullable=False, default=0)
    min_notice = Column(Integer, nullable=False, default=0)
    max_days_ahead = Column(Integer, nullable=False, default=60)
    max_attendees = Column(Integer, nullable=False, default=1)

    # Optional fixed daily window replacing the host's general hours
    available_start_time = Column(String(5), nullable=True)
    available_end_time = Column(String(5), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    host = relationship("Host", back_populates="event_types")
    bookings = relationship("Booking", back_populates="event_type")

    __table_args__ = (
        UniqueConstraint("host_id", "slug", name="uq_event_type_host_slug"),
        CheckConstraint("duration > 0", name="ck_event_type_duration"),
        CheckConstraint("buffer_before >= 0 AND buffer_after >= 0", name="ck_event_type_buffers"),
        CheckConstraint("min_notice >= 0", name="ck_event_type_min_notice"),
        CheckConstraint("max_days_ahead >= 1", name="ck_event_type_horizon"),
        CheckConstraint("max_attendees >= 1", name="ck_event_type_capacity"),
    )

    def __repr__(self):
        return f"<EventType(id={self.id}, slug={self.slug}, duration={self.duration})>"
