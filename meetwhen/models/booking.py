from enum import Enum

from sqlalchemy import Column, String, ForeignKey, Text, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from meetwhen.core.database import Base
from meetwhen.models.types import UTCDateTime, utcnow


class BookingStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"
    PENDING_RESCHEDULE = "PENDING_RESCHEDULE"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    host_id = Column(
        UUID(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False
    )
    event_type_id = Column(UUID(as_uuid=True), ForeignKey("event_types.id"), nullable=False)

    # Stored explicitly so later event type edits do not move the booking
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)

    status = Column(String, nullable=False, default=BookingStatus.CONFIRMED.value)

    # Guest Info
    guest_name = Column(String, nullable=False)
    guest_email = Column(String, nullable=False)
    guest_timezone = Column(String, nullable=False, default="UTC")
    guest_phone = Column(String, nullable=True)

    # Notes
    notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    host = relationship("Host", back_populates="bookings")
    event_type = relationship("EventType", back_populates="bookings")

    __table_args__ = (
        Index("idx_bookings_host_start", "host_id", "start_time"),
    )

    @property
    def is_active(self) -> bool:
        return self.status != BookingStatus.CANCELLED.value

    @property
    def is_reschedulable(self) -> bool:
        return self.status in (BookingStatus.CONFIRMED.value, BookingStatus.PENDING_RESCHEDULE.value)

    def __repr__(self):
        return f"<Booking(id={self.id}, guest={self.guest_name}, start={self.start_time})>"
