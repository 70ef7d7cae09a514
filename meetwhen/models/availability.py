from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from meetwhen.core.database import Base
from meetwhen.models.types import UTCDateTime, utcnow


class AvailabilityRule(Base):
    """Recurring weekly free window, wall-clock in the host's timezone."""

    __tablename__ = "availability_rules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    host_id = Column(
        UUID(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday ... 6 = Saturday
    start_time = Column(String(5), nullable=False)  # "HH:MM"
    end_time = Column(String(5), nullable=False)

    created_at = Column(UTCDateTime, default=utcnow)

    host = relationship("Host", back_populates="availability_rules")

    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_rule_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_rule_window_order"),
    )

    def __repr__(self):
        return f"<AvailabilityRule(day={self.day_of_week}, {self.start_time}-{self.end_time})>"


class DateOverride(Base):
    """Replaces every recurring rule for one calendar date."""

    __tablename__ = "date_overrides"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    host_id = Column(
        UUID(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    date = Column(Date, nullable=False)
    is_available = Column(Boolean, nullable=False, default=False)
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    reason = Column(String, nullable=True)  # e.g. "Holiday"

    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    host = relationship("Host", back_populates="date_overrides")

    __table_args__ = (
        UniqueConstraint("host_id", "date", name="uq_date_override_host_date"),
        CheckConstraint(
            "is_available = false OR (start_time IS NOT NULL AND end_time IS NOT NULL "
            "AND start_time < end_time)",
            name="ck_override_window",
        ),
    )

    def __repr__(self):
        return f"<DateOverride(date={self.date}, available={self.is_available})>"
