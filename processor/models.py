"""Data models for event sources and normalized events."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class TzState(str, Enum):
    """Provisional timezone states an event can carry before resolution."""
    REINTERPRET_UTC_TO_LOCAL = 'REINTERPRET_UTC_TO_LOCAL'
    TIME_IS_ACCURATE = 'TIME_IS_ACCURATE'
    UNKNOWN_TZ = 'UNKNOWN_TZ'

    def __str__(self) -> str:
        return self.value


# Either a sentinel state or a concrete IANA zone name
Timezone = Union[TzState, str]

RESOLVED = 'resolved'
UNRESOLVED = 'unresolved'


@dataclass
class Location:
    """Geocoded (or not) location attached to an event."""
    status: str
    original_location: str = ''
    lat: Optional[float] = None
    lng: Optional[float] = None
    formatted_address: Optional[str] = None
    location_tz: Optional[Timezone] = None

    @classmethod
    def resolved(
        cls,
        lat: float,
        lng: float,
        formatted_address: str,
        location_tz: Timezone,
        original_location: str = ''
    ) -> 'Location':
        return cls(
            status=RESOLVED,
            original_location=original_location,
            lat=lat,
            lng=lng,
            formatted_address=formatted_address,
            location_tz=location_tz
        )

    @classmethod
    def unresolved(cls, original_location: str) -> 'Location':
        return cls(status=UNRESOLVED, original_location=original_location)

    @property
    def is_resolved(self) -> bool:
        return self.status == RESOLVED and self.lat is not None and self.lng is not None

    def to_dict(self) -> Dict[str, Any]:
        if self.status == RESOLVED:
            return {
                'status': RESOLVED,
                'lat': self.lat,
                'lng': self.lng,
                'formatted_address': self.formatted_address,
                'location_tz': str(self.location_tz) if self.location_tz else None,
                'original_location': self.original_location
            }
        return {'status': UNRESOLVED, 'original_location': self.original_location}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Location':
        return cls(
            status=data.get('status', UNRESOLVED),
            original_location=data.get('original_location', ''),
            lat=data.get('lat'),
            lng=data.get('lng'),
            formatted_address=data.get('formatted_address'),
            location_tz=parse_tz(data.get('location_tz'))
        )


def parse_tz(value: Optional[str]) -> Optional[Timezone]:
    """
    Convert a serialized tz string back into a TzState when it names a sentinel.

    Args:
        value: Sentinel name, IANA zone name or None

    Returns:
        TzState member, the zone string unchanged, or None
    """
    if value is None or value == '':
        return value
    try:
        return TzState(value)
    except ValueError:
        return value


@dataclass
class CmfEvent:
    """Normalized event emitted by every source adapter."""
    id: str
    name: str
    start: str
    end: str
    location: str = ''
    description: str = ''
    description_urls: List[str] = field(default_factory=list)
    original_event_url: Optional[str] = None
    tz: Optional[Timezone] = None
    start_secs: Optional[int] = None
    end_secs: Optional[int] = None
    resolved_location: Optional[Location] = None
    note: Optional[str] = None
    tz_finalized: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the wire field names."""
        data = {
            'id': self.id,
            'name': self.name,
            'start': self.start,
            'end': self.end,
            'location': self.location,
            'description': self.description,
            'description_urls': list(self.description_urls),
            'original_event_url': self.original_event_url,
            'tz': str(self.tz) if self.tz else None
        }
        if self.start_secs is not None:
            data['startSecs'] = self.start_secs
        if self.end_secs is not None:
            data['endSecs'] = self.end_secs
        if self.resolved_location is not None:
            data['resolved_location'] = self.resolved_location.to_dict()
        if self.note:
            data['note'] = self.note
        if self.tz_finalized:
            data['tzFinalized'] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CmfEvent':
        resolved = data.get('resolved_location')
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            start=data.get('start', ''),
            end=data.get('end', ''),
            location=data.get('location', ''),
            description=data.get('description', ''),
            description_urls=list(data.get('description_urls') or []),
            original_event_url=data.get('original_event_url'),
            tz=parse_tz(data.get('tz')),
            start_secs=data.get('startSecs'),
            end_secs=data.get('endSecs'),
            resolved_location=Location.from_dict(resolved) if resolved else None,
            note=data.get('note'),
            tz_finalized=bool(data.get('tzFinalized', False))
        )


@dataclass(frozen=True)
class EventsSource:
    """Static metadata identifying an adapter family."""
    prefix: str
    name: str
    url: str


@dataclass
class EventsSourceParams:
    """Parameters handed to an adapter's fetch_events."""
    id: str = ''
    time_min: Optional[str] = None
    time_max: Optional[str] = None


@dataclass
class SourceMetadata:
    """Per-response source description."""
    prefix: str
    name: str
    url: str
    id: str
    total_count: int
    unknown_locations_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'prefix': self.prefix,
            'name': self.name,
            'url': self.url,
            'id': self.id,
            'totalCount': self.total_count,
            'unknownLocationsCount': self.unknown_locations_count
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceMetadata':
        return cls(
            prefix=data.get('prefix', ''),
            name=data.get('name', ''),
            url=data.get('url', ''),
            id=data.get('id', ''),
            total_count=data.get('totalCount', 0),
            unknown_locations_count=data.get('unknownLocationsCount', 0)
        )


@dataclass
class EventsSourceResponse:
    """Unified response returned by every adapter."""
    http_status: int
    events: List[CmfEvent]
    source: SourceMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            'httpStatus': self.http_status,
            'events': [event.to_dict() for event in self.events],
            'source': self.source.to_dict()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EventsSourceResponse':
        return cls(
            http_status=data.get('httpStatus', 200),
            events=[CmfEvent.from_dict(item) for item in data.get('events', [])],
            source=SourceMetadata.from_dict(data.get('source', {}))
        )
