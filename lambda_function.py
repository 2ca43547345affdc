"""AWS Lambda handler serving normalized events for one event source."""
import json
import logging
import time
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from config import Settings
from processor.models import EventsSourceParams, EventsSourceResponse
from sources.base import HttpError
from sources.catalog import build_registry
from sources.registry import EventSourceRegistry
from storage.dynamodb_cache import EventsSourceCache, build_cache_key

RESPONSE_HEADERS = {
    'Content-Type': 'application/json',
    'Access-Control-Allow-Origin': '*'
}

# Built once per container
_registry: Optional[EventSourceRegistry] = None
_cache: Optional[EventsSourceCache] = None


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def get_registry(settings: Settings) -> EventSourceRegistry:
    global _registry
    if _registry is None:
        _registry = build_registry(settings)
    return _registry


def get_cache(settings: Settings) -> Optional[EventsSourceCache]:
    global _cache
    if not settings.use_cache:
        return None
    if _cache is None or _cache.table_name != settings.cache_table_name:
        _cache = EventsSourceCache(settings.cache_table_name)
    return _cache


def read_request(event: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """
    Pull id, timeMin and timeMax from an API Gateway event or a direct invocation.

    Returns:
        Dict with keys 'id', 'timeMin', 'timeMax' (values may be None)
    """
    query = (event or {}).get('queryStringParameters') or event or {}
    return {
        'id': query.get('id') or None,
        'timeMin': query.get('timeMin') or None,
        'timeMax': query.get('timeMax') or None
    }


def fetch_with_cache(
    registry: EventSourceRegistry,
    source_identifier: str,
    params: EventsSourceParams,
    settings: Settings,
    cache: Optional[EventsSourceCache] = None
) -> EventsSourceResponse:
    """
    Fetch through the response cache.

    The adapter's TTL hint wins over CACHE_TTL_API_EVENTSOURCE; a TTL <= 0
    bypasses the cache. Cache errors are logged and never fail the fetch.

    Args:
        registry: Initialized registry
        source_identifier: '<prefix>:<id>'
        params: Time bounds for the fetch
        settings: Runtime settings
        cache: Optional response cache

    Returns:
        EventsSourceResponse from cache or from the adapter
    """
    logger = logging.getLogger(__name__)
    handler, _ = registry.lookup(source_identifier)
    ttl = None
    if handler is not None:
        ttl = handler.get_cache_ttl()
    if ttl is None:
        ttl = settings.cache_ttl_api_eventsource

    if cache is None or handler is None or ttl <= 0:
        return registry.fetch(source_identifier, params)

    cache_key = build_cache_key(source_identifier, params.time_min, params.time_max)
    try:
        cached = cache.get(cache_key)
    except (BotoCoreError, ClientError) as e:
        logger.warning(f"Cache read failed for {cache_key}: {e}")
        cached = None
    if cached is not None:
        return cached

    response = registry.fetch(source_identifier, params)
    try:
        cache.put(cache_key, response, ttl)
    except (BotoCoreError, ClientError) as e:
        logger.warning(f"Cache write failed for {cache_key}: {e}")
    return response


def _error_response(status: int, message: str, error: Exception, start_time: float) -> Dict[str, Any]:
    return {
        'statusCode': status,
        'headers': RESPONSE_HEADERS,
        'body': json.dumps({
            'message': message,
            'error': str(error),
            'error_type': type(error).__name__,
            'duration_seconds': round(time.time() - start_time, 2)
        })
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler: fetch one event source's normalized events.

    Args:
        event: API Gateway proxy event, or a dict with id/timeMin/timeMax
        context: Lambda context object

    Returns:
        Response dict with statusCode, headers and the JSON
        EventsSourceResponse as body
    """
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    request = read_request(event)
    source_identifier = request['id']
    logger.info(
        f"Lambda execution started",
        extra={
            'source_id': source_identifier,
            'time_min': request['timeMin'],
            'time_max': request['timeMax']
        }
    )

    if not source_identifier:
        logger.warning('Request without an event source id')
        return _error_response(400, 'Missing event source id', ValueError('id is required'), start_time)

    try:
        registry = get_registry(settings)
        params = EventsSourceParams(time_min=request['timeMin'], time_max=request['timeMax'])
        response = fetch_with_cache(registry, source_identifier, params, settings, get_cache(settings))
    except HttpError as e:
        logger.error(
            f"Event source fetch failed: {e}",
            extra={'error_type': type(e).__name__, 'status': e.status}
        )
        return _error_response(e.status, e.reason, e, start_time)
    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(time.time() - start_time, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response(500, 'Failed to fetch events', e, start_time)

    duration = time.time() - start_time
    logger.info(
        f"Lambda execution completed successfully",
        extra={
            'duration_seconds': round(duration, 2),
            'source_id': source_identifier,
            'total_count': response.source.total_count
        }
    )

    return {
        'statusCode': 200,
        'headers': RESPONSE_HEADERS,
        'body': json.dumps(response.to_dict())
    }
