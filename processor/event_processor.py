"""Event processor for tagging and normalizing raw calendar events."""
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from urllib.parse import quote

from processor.models import ProcessedEvent, RawEvent
from processor.tag_parser import TagParser

logger = logging.getLogger(__name__)


class EventProcessor:
    """Turns raw calendar events into tagged ProcessedEvent records."""

    MAP_SEARCH_URL = 'https://www.google.com/maps/search/'
    UNTITLED = '(Untitled)'

    def __init__(self, tag_parser: TagParser):
        """
        Initialize the processor.

        Args:
            tag_parser: Parser used to extract and strip tag markers
        """
        self.tag_parser = tag_parser

    def process_events(self, raw_events: List[RawEvent],
                       valid_ids: Optional[Iterable[str]] = None) -> List[ProcessedEvent]:
        """
        Process raw events.

        The whitelist is read once so every event in the batch is
        classified against the same snapshot.

        Args:
            raw_events: List of RawEvent objects from the calendar API
            valid_ids: Whitelist snapshot; read from the registry if omitted

        Returns:
            List of ProcessedEvent objects ordered by start time
        """
        if valid_ids is None:
            valid_ids = self.tag_parser.valid_ids()
        valid_ids = set(valid_ids)

        processed_events = [
            self._process_single_event(event, valid_ids) for event in raw_events
        ]
        processed_events.sort(key=self._start_sort_key)

        logger.info(
            f"Processed {len(processed_events)} events out of "
            f"{len(raw_events)} total events"
        )
        return processed_events

    def _process_single_event(self, event: RawEvent,
                              valid_ids: Iterable[str]) -> ProcessedEvent:
        """
        Process a single event.

        Args:
            event: Raw event
            valid_ids: Whitelist snapshot

        Returns:
            ProcessedEvent object
        """
        description = event.raw_description or ''
        tag_result = self.tag_parser.extract_tags(description, valid_ids)
        location = event.location or ''

        return ProcessedEvent(
            id=event.id,
            title=event.title or self.UNTITLED,
            clean_description=self.tag_parser.strip_tags(description),
            location=location,
            start=event.start,
            end=event.end,
            is_all_day=event.is_all_day,
            valid_tags=tag_result.valid,
            invalid_tags=tag_result.invalid,
            html_link=event.html_link,
            map_link=self.generate_map_link(location)
        )

    def generate_map_link(self, location: str) -> str:
        """
        Generate a map search link from location text.

        Args:
            location: Location text

        Returns:
            Map URL or empty string when there is no location
        """
        if not location or not location.strip():
            return ''
        return self.MAP_SEARCH_URL + quote(location, safe='')

    @staticmethod
    def _start_sort_key(event: ProcessedEvent) -> datetime:
        """Sort key for an event start; all-day dates sort at midnight UTC."""
        try:
            start = datetime.fromisoformat(event.start.replace('Z', '+00:00'))
        except (AttributeError, ValueError):
            return datetime.max.replace(tzinfo=timezone.utc)

        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        return start
