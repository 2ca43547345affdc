"""Registry mapping source-identifier prefixes to adapters."""
import logging
from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Tuple

from processor.models import EventsSource, EventsSourceParams, EventsSourceResponse
from sources.base import BadRequestError, EventsSourceHandler

logger = logging.getLogger(__name__)

HandlerFactory = Callable[[], EventsSourceHandler]

SEPARATORS = (':', '.')


class RegistryFrozenError(RuntimeError):
    """Raised when a factory is registered after initialization."""


class EventSourceRegistry:
    """
    Owns the adapters and dispatches fetches by identifier prefix.

    Factories are registered first, then ``initialize`` builds every adapter
    once. After that the registry is frozen.
    """

    def __init__(self):
        self._factories: List[HandlerFactory] = []
        self._handlers: List[EventsSourceHandler] = []
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def handlers(self) -> List[EventsSourceHandler]:
        return list(self._handlers)

    def register_factory(self, factory: HandlerFactory) -> None:
        """
        Queue a zero-argument adapter constructor.

        Raises:
            RegistryFrozenError: If the registry has already been initialized
        """
        if self._initialized:
            logger.warning(f"register_factory called after initialize: {factory!r}")
            raise RegistryFrozenError('Event source registry is already initialized')
        self._factories.append(factory)

    def initialize(self, factories: Iterable[HandlerFactory] = ()) -> None:
        """
        Build every queued adapter, in registration order.

        Args:
            factories: Extra factories appended before building

        Construction failures are logged and skipped. An adapter whose prefix
        is already taken is discarded with an error. A second call is a
        no-op.
        """
        if self._initialized:
            logger.warning('Event source registry already initialized, ignoring')
            return

        for factory in factories:
            self._factories.append(factory)

        for factory in self._factories:
            try:
                handler = factory()
            except Exception as e:
                logger.error(f"Failed to construct event source from {factory!r}: {e}", exc_info=True)
                continue

            prefix = handler.type.prefix
            existing = self._find_by_prefix(prefix)
            if existing is not None:
                logger.error(
                    f"Duplicate event source prefix '{prefix}': keeping "
                    f"{type(existing).__name__}, discarding {type(handler).__name__}"
                )
                continue

            self._handlers.append(handler)
            logger.debug(f"Registered event source '{prefix}' ({type(handler).__name__})")

        self._initialized = True
        logger.info(f"Event source registry initialized with {len(self._handlers)} handlers")

    def _find_by_prefix(self, prefix: str) -> Optional[EventsSourceHandler]:
        for handler in self._handlers:
            if handler.type.prefix == prefix:
                return handler
        return None

    def lookup(self, source_identifier: str) -> Tuple[Optional[EventsSourceHandler], str]:
        """
        Find the adapter owning an identifier like 'gc:calendar@example.com'.

        Args:
            source_identifier: '<prefix>:<id>' or '<prefix>.<id>'

        Returns:
            (handler, id without prefix), or (None, '') if nothing matches
        """
        for handler in self._handlers:
            prefix = handler.type.prefix
            for separator in SEPARATORS:
                marker = f"{prefix}{separator}"
                if source_identifier.startswith(marker):
                    return handler, source_identifier[len(marker):]
        return None, ''

    def fetch(self, source_identifier: str, params: Optional[EventsSourceParams] = None) -> EventsSourceResponse:
        """
        Resolve an identifier and fetch its events.

        Raises:
            BadRequestError: If no adapter owns the identifier
        """
        handler, source_id = self.lookup(source_identifier)
        if handler is None:
            raise BadRequestError(f"No handler available for event source: {source_identifier}")

        params = replace(params or EventsSourceParams(), id=source_id)
        logger.info(f"Fetching '{source_identifier}' with {type(handler).__name__}")
        return handler.fetch_events(params)

    def list_sources(self) -> List[EventsSource]:
        return [handler.type for handler in self._handlers]
