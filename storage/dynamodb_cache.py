"""DynamoDB-backed key-value cache with per-item expiry."""
import json
import logging
import time
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class DynamoDBCacheStore:
    """Key-value cache stored in a DynamoDB table with a TTL attribute."""

    KEY_ATTRIBUTE = 'cache_key'
    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(self, table_name: str, region_name: Optional[str] = None):
        """
        Initialize DynamoDB resource and table reference.

        Args:
            table_name: Name of the DynamoDB table
            region_name: Optional AWS region override
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBCacheStore for table: {table_name}")

    def get(self, key: str) -> Optional[Any]:
        """
        Read a cached value.

        DynamoDB deletes expired items lazily, so expiry is checked here.

        Args:
            key: Cache key

        Returns:
            Cached value or None on miss
        """
        try:
            response = self.table.get_item(Key={self.KEY_ATTRIBUTE: key})
        except ClientError as e:
            logger.error(f"Error reading cache key {key}: {e}")
            return None

        item = response.get('Item')
        if not item:
            return None

        if int(item.get('expires_at', 0)) <= int(time.time()):
            logger.debug(f"Cache entry expired: {key}")
            return None

        try:
            return json.loads(item['payload'])
        except (KeyError, ValueError) as e:
            logger.warning(f"Failed to decode cache entry {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """
        Write a value with a single put so the entry is never partial.

        Args:
            key: Cache key
            value: JSON-serializable value
            ttl_seconds: Lifetime of the entry

        Returns:
            True on success, False otherwise
        """
        if ttl_seconds <= 0:
            return False

        now = int(time.time())
        item = {
            self.KEY_ATTRIBUTE: key,
            'payload': json.dumps(value),
            'created_at': now,
            'expires_at': now + int(ttl_seconds)
        }

        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            logger.error(f"Error writing cache key {key}: {e}")
            return False
        return True

    def delete(self, key: str) -> bool:
        try:
            self.table.delete_item(Key={self.KEY_ATTRIBUTE: key})
        except ClientError as e:
            logger.error(f"Error deleting cache key {key}: {e}")
            return False
        return True

    def delete_by_prefix(self, prefix: str) -> int:
        """
        Delete all entries whose key starts with prefix.

        Args:
            prefix: Key prefix

        Returns:
            Count of deleted entries
        """
        keys = [item[self.KEY_ATTRIBUTE] for item in self._scan_prefix(prefix)]
        if not keys:
            return 0

        logger.info(f"Deleting {len(keys)} cache entries with prefix {prefix}")
        deleted_count = 0

        # Process in batches of 25 (DynamoDB limit)
        for i in range(0, len(keys), self.BATCH_SIZE):
            batch = keys[i:i + self.BATCH_SIZE]

            try:
                with self.table.batch_writer() as writer:
                    for key in batch:
                        writer.delete_item(Key={self.KEY_ATTRIBUTE: key})
                        deleted_count += 1

            except ClientError as e:
                logger.error(
                    f"Error deleting batch {i // self.BATCH_SIZE + 1}: {e}"
                )
                continue

        return deleted_count

    def stats(self, prefix: str) -> Dict[str, Any]:
        """
        Count live entries under prefix and find the newest write.

        Returns:
            Dict with cached_items and last_cache_time (epoch seconds)
        """
        now = int(time.time())
        live = [
            item for item in self._scan_prefix(prefix)
            if int(item.get('expires_at', 0)) > now
        ]
        last_cache_time = max(
            (int(item.get('created_at', 0)) for item in live), default=None
        )
        return {
            'cached_items': len(live),
            'last_cache_time': last_cache_time
        }

    def _scan_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        """Scan the table for items whose key starts with prefix."""
        scan_kwargs = {
            'FilterExpression': Attr(self.KEY_ATTRIBUTE).begins_with(prefix),
            'ProjectionExpression': '#k, created_at, expires_at',
            'ExpressionAttributeNames': {'#k': self.KEY_ATTRIBUTE}
        }

        try:
            response = self.table.scan(**scan_kwargs)
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **scan_kwargs
                )
                items.extend(response.get('Items', []))

        except ClientError as e:
            logger.error(f"Error scanning cache table: {e}")
            raise

        return items
