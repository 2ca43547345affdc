"""DynamoDB-backed cache for event source responses."""
import json
import logging
import time
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from processor.models import EventsSourceResponse

logger = logging.getLogger(__name__)


def build_cache_key(source_identifier: str, time_min: Optional[str] = None, time_max: Optional[str] = None) -> str:
    """Cache key for one fetch, '<identifier>|<timeMin>|<timeMax>'."""
    return f"{source_identifier}|{time_min or ''}|{time_max or ''}"


class EventsSourceCache:
    """
    Caches serialized EventsSourceResponse payloads in a DynamoDB table.

    Items carry a numeric ``ttl`` attribute for DynamoDB's expiry, which can
    lag by hours, so reads also treat an expired item as a miss.
    """

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table, keyed on 'cache_key'
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized EventsSourceCache for table: {table_name}")

    def get(self, cache_key: str) -> Optional[EventsSourceResponse]:
        """
        Look up a cached response.

        Args:
            cache_key: Key from build_cache_key

        Returns:
            The cached response, or None when missing or expired

        Raises:
            ClientError: If the DynamoDB read fails
        """
        try:
            response = self.table.get_item(Key={'cache_key': cache_key})
        except ClientError as e:
            logger.error(f"Error reading cache item {cache_key}: {e}")
            raise

        item = response.get('Item')
        if not item:
            logger.debug(f"Cache miss: {cache_key}")
            return None

        if int(item.get('ttl', 0)) <= int(time.time()):
            logger.debug(f"Cache expired: {cache_key}")
            return None

        logger.info(f"Cache hit: {cache_key}")
        return EventsSourceResponse.from_dict(json.loads(item['payload']))

    def put(self, cache_key: str, response: EventsSourceResponse, ttl_seconds: int) -> None:
        """
        Store a response for ttl_seconds.

        Raises:
            ClientError: If the DynamoDB write fails
        """
        now = int(time.time())
        try:
            self.table.put_item(Item={
                'cache_key': cache_key,
                'payload': json.dumps(response.to_dict()),
                'ttl': now + ttl_seconds,
                'last_updated': now
            })
            logger.info(f"Cached {cache_key} for {ttl_seconds}s")
        except ClientError as e:
            logger.error(f"Error writing cache item {cache_key}: {e}")
            raise
