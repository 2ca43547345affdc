"""Shared adapter contract, error types and HTTP helpers for event sources."""
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Set

import requests

from processor.models import (
    CmfEvent,
    EventsSource,
    EventsSourceParams,
    EventsSourceResponse,
    SourceMetadata,
)

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r'https?://\S+')

PRIVATE_ADDRESS = 'This event’s address is private. Sign up for more details'

USER_AGENT = 'Mozilla/5.0 (compatible; cmf-event-sources/0.1)'


class HttpError(Exception):
    """Upstream or request failure carrying an HTTP status."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.reason = message
        super().__init__(f"HTTP {status}: {message}")


class BadRequestError(HttpError):
    """Client error: the request cannot be served as given."""

    def __init__(self, message: str):
        super().__init__(400, message)


class NotFoundError(HttpError):
    def __init__(self, message: str):
        super().__init__(404, message)


class ConfigurationError(Exception):
    """Required configuration is missing."""


def extract_urls(text: Optional[str]) -> List[str]:
    """
    Find every http(s) URL in free text.

    Args:
        text: Text to scan, may be empty or None

    Returns:
        URLs in order of appearance
    """
    if not text:
        return []
    return URL_PATTERN.findall(text)


def ensure_unique_id(base_id: str, seen: Set[str]) -> str:
    """
    Return base_id, or base_id suffixed with -2, -3, ... if already seen.

    The returned id is added to ``seen``.
    """
    candidate = base_id
    counter = 2
    while candidate in seen:
        candidate = f"{base_id}-{counter}"
        counter += 1
    seen.add(candidate)
    return candidate


def join_location(parts: Iterable[Optional[str]]) -> str:
    """Join non-empty address parts with commas, dropping the private placeholder."""
    cleaned = []
    for part in parts:
        if part is None:
            continue
        part = str(part).strip()
        if part and part != PRIVATE_ADDRESS:
            cleaned.append(part)
    return ', '.join(cleaned)


def _raise_for_status(response: requests.Response) -> None:
    if not response.ok:
        reason = response.reason or 'Request failed'
        raise HttpError(response.status_code, reason)


def http_get(
    url: str,
    timeout: int,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None
) -> requests.Response:
    """
    GET a URL, normalizing failures to HttpError.

    Args:
        url: URL to fetch
        timeout: Socket timeout in seconds
        params: Optional query parameters
        headers: Optional extra headers

    Returns:
        The successful response

    Raises:
        HttpError: On a non-2xx status or a transport failure
    """
    request_headers = {'User-Agent': USER_AGENT}
    if headers:
        request_headers.update(headers)
    try:
        response = requests.get(url, params=params, headers=request_headers, timeout=timeout)
    except requests.RequestException as e:
        logger.error(f"GET {url} failed: {e}")
        raise HttpError(500, str(e)) from e
    logger.info(f"GET {response.url} -> {response.status_code}")
    _raise_for_status(response)
    return response


def http_post_json(
    url: str,
    payload: Dict[str, Any],
    timeout: int,
    headers: Optional[Dict[str, str]] = None
) -> requests.Response:
    """POST a JSON body, normalizing failures to HttpError."""
    request_headers = {'User-Agent': USER_AGENT}
    if headers:
        request_headers.update(headers)
    try:
        response = requests.post(url, json=payload, headers=request_headers, timeout=timeout)
    except requests.RequestException as e:
        logger.error(f"POST {url} failed: {e}")
        raise HttpError(500, str(e)) from e
    logger.info(f"POST {url} -> {response.status_code}")
    _raise_for_status(response)
    return response


def build_response(
    source_type: EventsSource,
    source_id: str,
    events: List[CmfEvent],
    unknown_locations_count: int = 0,
    name: Optional[str] = None,
    url: Optional[str] = None
) -> EventsSourceResponse:
    """
    Wrap adapter output in an EventsSourceResponse.

    ``name`` and ``url`` override the adapter defaults for this response only.
    """
    return EventsSourceResponse(
        http_status=200,
        events=events,
        source=SourceMetadata(
            prefix=source_type.prefix,
            name=name or source_type.name,
            url=url or source_type.url,
            id=source_id,
            total_count=len(events),
            unknown_locations_count=unknown_locations_count
        )
    )


class EventsSourceHandler(ABC):
    """Interface every event source adapter implements."""

    type: EventsSource

    def __init__(self, timeout: int = 30):
        """
        Initialize the adapter.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.timeout = timeout

    @abstractmethod
    def fetch_events(self, params: EventsSourceParams) -> EventsSourceResponse:
        """
        Fetch and normalize events for one source id.

        Args:
            params: Adapter-specific id plus optional time bounds

        Returns:
            EventsSourceResponse with http_status 200

        Raises:
            HttpError: On upstream failures or invalid ids
            ConfigurationError: When a required setting is missing
        """

    def get_cache_ttl(self) -> Optional[int]:
        """Cache TTL hint in seconds; None uses the default, <= 0 disables caching."""
        return None
