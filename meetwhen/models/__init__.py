from meetwhen.models.host import Host
from meetwhen.models.availability import AvailabilityRule, DateOverride
from meetwhen.models.event_type import EventType
from meetwhen.models.booking import Booking, BookingStatus
from meetwhen.models.webhook import Webhook

__all__ = [
    "Host",
    "AvailabilityRule",
    "DateOverride",
    "EventType",
    "Booking",
    "BookingStatus",
    "Webhook",
]
