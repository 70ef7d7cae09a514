from meetwhen.integrations.providers.base import BusyCalendarProvider
from meetwhen.integrations.providers.native import NativeCalendarProvider
from meetwhen.integrations.providers.registry import register_provider, resolve_provider

__all__ = [
    "BusyCalendarProvider",
    "NativeCalendarProvider",
    "register_provider",
    "resolve_provider",
]
