"""Cache of processed event lists with an administrator-set duration."""
import logging
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from processor.cache_key import DEFAULT_DURATION, clamp_duration
from processor.models import ProcessedEvent

logger = logging.getLogger(__name__)


class EventCache:
    """Stores processed event lists under prefixed keys."""

    CACHE_PREFIX = 'tag_filter_'
    OPTION_DURATION = 'cache_duration'

    def __init__(self, store, config_store):
        """
        Initialize the cache.

        Args:
            store: Key-value cache store (get/set/delete/delete_by_prefix)
            config_store: Config store holding the duration setting
        """
        self.store = store
        self.config_store = config_store

    def get_duration(self) -> int:
        """
        Read the configured cache duration.

        Returns:
            Duration in seconds, 0 meaning caching is disabled
        """
        return clamp_duration(
            self.config_store.get(self.OPTION_DURATION, DEFAULT_DURATION)
        )

    def set_duration(self, duration: Any) -> int:
        """
        Persist a new duration, clamped to [0, 3600].

        Returns:
            The stored duration
        """
        duration = clamp_duration(duration)
        self.config_store.set(self.OPTION_DURATION, duration)
        logger.info(f"Cache duration set to {duration} seconds")
        return duration

    def get(self, key: str) -> Optional[List[ProcessedEvent]]:
        """
        Read cached events.

        Returns:
            Event list, or None on miss, when caching is disabled or when
            the duration setting cannot be read
        """
        try:
            duration = self.get_duration()
        except ClientError as e:
            logger.warning(f"Treating cache read of {key} as a miss: {e}")
            return None
        if duration == 0:
            return None

        payload = self.store.get(self._full_key(key))
        if payload is None:
            return None

        try:
            return [ProcessedEvent.from_dict(item) for item in payload]
        except (KeyError, TypeError) as e:
            logger.warning(f"Discarding malformed cache entry {key}: {e}")
            return None

    def set(self, key: str, events: List[ProcessedEvent]) -> bool:
        """
        Cache events for the configured duration.

        Returns:
            True if written, False if caching is disabled or the write failed
        """
        try:
            duration = self.get_duration()
        except ClientError as e:
            logger.warning(f"Skipping cache write of {key}: {e}")
            return False
        if duration == 0:
            return False

        payload = [event.to_dict() for event in events]
        return self.store.set(self._full_key(key), payload, duration)

    def delete(self, key: str) -> bool:
        """Delete one cached event list."""
        return self.store.delete(self._full_key(key))

    def clear_all(self) -> int:
        """Delete every cached event list."""
        deleted = self.store.delete_by_prefix(self.CACHE_PREFIX)
        logger.info(f"Cleared {deleted} cache entries")
        return deleted

    def get_stats(self) -> Dict[str, Any]:
        """
        Summarize the cache.

        Returns:
            Dict with cached_items, last_cache_time and duration
        """
        stats = self.store.stats(self.CACHE_PREFIX)
        stats['duration'] = self.get_duration()
        return stats

    def _full_key(self, key: str) -> str:
        return self.CACHE_PREFIX + key
