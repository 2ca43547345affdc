"""Unit tests for the event source registry."""
import logging

import pytest

from processor.models import EventsSource, EventsSourceParams, EventsSourceResponse
from sources.base import BadRequestError, EventsSourceHandler, build_response
from sources.registry import EventSourceRegistry, RegistryFrozenError


class EchoSource(EventsSourceHandler):
    """Returns no events and records the params it was called with."""

    type = EventsSource(prefix='echo', name='Echo', url='https://echo.example.com/')

    def __init__(self, timeout: int = 30):
        super().__init__(timeout)
        self.calls = []

    def fetch_events(self, params: EventsSourceParams) -> EventsSourceResponse:
        self.calls.append(params)
        return build_response(self.type, params.id, [])


class OtherEchoSource(EchoSource):
    """Same prefix as EchoSource."""


class PrefixSource(EchoSource):
    type = EventsSource(prefix='ec', name='Ec', url='https://ec.example.com/')


def broken_factory():
    raise RuntimeError('cannot build')


class TestEventSourceRegistry:
    """Test cases for EventSourceRegistry."""

    def test_fetch_strips_prefix(self):
        registry = EventSourceRegistry()
        registry.register_factory(EchoSource)
        registry.initialize()

        response = registry.fetch('echo:abc', EventsSourceParams(time_min='2024-06-01T00:00:00Z'))

        handler = registry.handlers[0]
        assert response.source.id == 'abc'
        assert handler.calls[0].id == 'abc'
        assert handler.calls[0].time_min == '2024-06-01T00:00:00Z'

    def test_dot_separator(self):
        registry = EventSourceRegistry()
        registry.initialize([EchoSource])
        handler, source_id = registry.lookup('echo.abc')
        assert isinstance(handler, EchoSource)
        assert source_id == 'abc'

    def test_prefix_needs_separator(self):
        """Test 'ec' does not claim 'echo:x', and 'echo' does not claim 'echox'."""
        registry = EventSourceRegistry()
        registry.initialize([PrefixSource, EchoSource])

        handler, source_id = registry.lookup('echo:x')
        assert isinstance(handler, EchoSource) and not isinstance(handler, PrefixSource)
        assert source_id == 'x'
        assert registry.lookup('echox') == (None, '')

    def test_unknown_prefix(self):
        registry = EventSourceRegistry()
        registry.initialize([EchoSource])
        with pytest.raises(BadRequestError) as exc_info:
            registry.fetch('nope:abc')
        assert exc_info.value.status == 400
        assert 'nope:abc' in str(exc_info.value)

    def test_duplicate_prefix_first_wins(self, caplog):
        registry = EventSourceRegistry()
        registry.register_factory(EchoSource)
        registry.register_factory(OtherEchoSource)

        with caplog.at_level(logging.ERROR):
            registry.initialize()

        assert len(registry.handlers) == 1
        assert type(registry.handlers[0]) is EchoSource
        assert 'Duplicate event source prefix' in caplog.text

    def test_construction_failure_skipped(self):
        registry = EventSourceRegistry()
        registry.initialize([broken_factory, EchoSource])
        assert [s.prefix for s in registry.list_sources()] == ['echo']

    def test_register_after_initialize_raises(self):
        registry = EventSourceRegistry()
        registry.initialize([EchoSource])
        with pytest.raises(RegistryFrozenError):
            registry.register_factory(OtherEchoSource)

    def test_initialize_twice_is_noop(self):
        registry = EventSourceRegistry()
        registry.initialize([EchoSource])
        registry.initialize([PrefixSource])
        assert registry.initialized
        assert [s.prefix for s in registry.list_sources()] == ['echo']
