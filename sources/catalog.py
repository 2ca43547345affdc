"""The set of event source adapters served by the entry point."""
import logging
from functools import partial
from typing import List, Type

from config import Settings
from sources.base import EventsSourceHandler
from sources.dissent_sheets import DissentGoogleSheetsSource
from sources.facebook_events import FacebookEventsSource
from sources.foopee import FoopeeEventsSource
from sources.google_calendar import GoogleCalendarEventsSource
from sources.mobilize import MobilizeEventsSource
from sources.nineteen_hz import NineteenHzEventsSource
from sources.nokings import NoKingsEventsSource
from sources.plura import PluraEventsSource
from sources.protests import ProtestsEventsSource
from sources.registry import EventSourceRegistry, HandlerFactory

logger = logging.getLogger(__name__)

# Registration order, which is also lookup order
SOURCE_CLASSES: List[Type[EventsSourceHandler]] = [
    GoogleCalendarEventsSource,
    FacebookEventsSource,
    FoopeeEventsSource,
    DissentGoogleSheetsSource,
    MobilizeEventsSource,
    NoKingsEventsSource,
    NineteenHzEventsSource,
    PluraEventsSource,
    ProtestsEventsSource,
]


def source_factories(timeout: int) -> List[HandlerFactory]:
    return [partial(cls, timeout=timeout) for cls in SOURCE_CLASSES]


def build_registry(settings: Settings) -> EventSourceRegistry:
    """
    Register every adapter and freeze the registry.

    Args:
        settings: Runtime settings, for the HTTP timeout

    Returns:
        Initialized EventSourceRegistry
    """
    registry = EventSourceRegistry()
    for factory in source_factories(settings.timeout_seconds):
        registry.register_factory(factory)
    registry.initialize()
    logger.info(f"Event sources available: {', '.join(s.prefix for s in registry.list_sources())}")
    return registry
