from sqlalchemy import Boolean, Column, ForeignKey, JSON, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
import uuid
from meetwhen.core.database import Base
from meetwhen.models.types import UTCDateTime, utcnow


class Webhook(Base):
    __tablename__ = "webhooks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    host_id = Column(
        UUID(as_uuid=True), ForeignKey("hosts.id", ondelete="CASCADE"), nullable=False, index=True
    )

    url = Column(String, nullable=False)
    secret = Column(String, nullable=False)  # HMAC-SHA256 signing key
    events = Column(JSON, default=list)  # e.g. ["booking.created"]
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(UTCDateTime, default=utcnow)

    host = relationship("Host", back_populates="webhooks")

    def __repr__(self):
        return f"<Webhook(id={self.id}, url={self.url})>"
