from __future__ import annotations

from meetwhen.integrations.providers.base import BusyCalendarProvider
from meetwhen.integrations.providers.google import GoogleCalendarProvider
from meetwhen.integrations.providers.native import NativeCalendarProvider


_PROVIDERS: dict[str, BusyCalendarProvider] = {
    "native": NativeCalendarProvider(),
    "google": GoogleCalendarProvider(),
}


def provider_name_for(host) -> str:
    return "google" if host.has_linked_calendar else "native"


def resolve_provider(host) -> BusyCalendarProvider:
    return _PROVIDERS.get(provider_name_for(host), _PROVIDERS["native"])


def register_provider(name: str, provider: BusyCalendarProvider) -> None:
    """Install or replace a provider (used to plug in fakes)."""
    _PROVIDERS[name] = provider
