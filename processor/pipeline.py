"""Event pipeline: cache check, fetch, parse, policy filter, cache store."""
import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Optional

from processor.cache_key import generate_key, normalize_tags
from processor.errors import (
    AuthRequired,
    CalendarTagFilterError,
    FetchError,
    NoCalendarSelected,
)
from processor.event_processor import EventProcessor
from processor.models import PipelineResult
from processor.periods import normalize_period, time_range
from processor.visibility import filter_by_tags

logger = logging.getLogger(__name__)

PRIVILEGED_SCOPE = 'privileged'


@contextmanager
def stage_timer(stage: str):
    """Log the wall-clock duration of a pipeline stage."""
    start_time = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        logger.debug(
            f"Stage {stage} finished in {duration_ms} ms",
            extra={'stage': stage, 'duration_ms': duration_ms}
        )


class EventPipeline:
    """Serves tagged, filtered and cached calendar events."""

    def __init__(self, calendar_client, processor: EventProcessor, cache,
                 calendar_id: Optional[str], max_results: int = 100):
        """
        Initialize the pipeline.

        Args:
            calendar_client: Calendar access collaborator, or None when
                no credential is configured
            processor: EventProcessor for the parse stage
            cache: EventCache
            calendar_id: Selected calendar id
            max_results: Maximum events fetched per request
        """
        self.calendar_client = calendar_client
        self.processor = processor
        self.cache = cache
        self.calendar_id = calendar_id
        self.max_results = max_results

    def get_events(self, period: str, tags: Optional[Iterable[str]] = None,
                   year: Optional[int] = None, month: Optional[int] = None,
                   week: Optional[int] = None,
                   viewer_is_privileged: bool = False,
                   bypass_cache: bool = False) -> PipelineResult:
        """
        Get events for a period.

        Args:
            period: 'week', 'month', 'year' or 'future'
            tags: Requested filter tags
            year: Optional specific year
            month: Optional specific month (1-12)
            week: Optional specific week number
            viewer_is_privileged: Whether the viewer has administrative rights
            bypass_cache: Skip the cache read for this request only

        Returns:
            PipelineResult with the visible events or an error
        """
        period = normalize_period(period)
        tags = normalize_tags(tags)
        logger.info(
            f"Getting events for period {period}, "
            f"tags: {','.join(tags) if tags else 'NONE'}"
        )

        if self.calendar_client is None:
            return self._fail(AuthRequired())
        if not self.calendar_id:
            return self._fail(NoCalendarSelected())

        cache_key = generate_key(
            self.calendar_id, period, tags, year, month, week,
            scope=PRIVILEGED_SCOPE if viewer_is_privileged else None
        )

        with stage_timer('check_cache'):
            cached_events = None if bypass_cache else self.cache.get(cache_key)

        if cached_events is not None:
            logger.info(f"Returning {len(cached_events)} cached events")
            return PipelineResult(events=cached_events, from_cache=True)

        logger.info(
            'Cache bypassed via debug parameter' if bypass_cache
            else 'Cache miss, fetching from API'
        )

        with stage_timer('fetch'):
            try:
                time_min, time_max = time_range(period, year, month, week)
                raw_events = self.calendar_client.list_events(
                    self.calendar_id, time_min, time_max,
                    max_results=self.max_results
                )
            except CalendarTagFilterError as e:
                return self._fail(e)
            except Exception as e:
                logger.error(
                    f"Calendar fetch raised: {e}",
                    extra={'error_type': type(e).__name__},
                    exc_info=True
                )
                return self._fail(FetchError(
                    f"Failed to retrieve events from Google Calendar: {e}"
                ))

        with stage_timer('parse'):
            processed_events = self.processor.process_events(raw_events)

        with stage_timer('policy_filter'):
            visible_events = filter_by_tags(
                processed_events, tags, viewer_is_privileged
            )
        logger.info(
            f"{len(visible_events)} of {len(processed_events)} events visible"
        )

        with stage_timer('store_cache'):
            stored = self.cache.set(cache_key, visible_events)
        if not stored:
            logger.debug("Result not cached")

        return PipelineResult(events=visible_events)

    def test_connection(self) -> Dict[str, Any]:
        """
        Check that the calendar can be read.

        Returns:
            Dict with the calendar summary and a sample event count

        Raises:
            AuthRequired, NoCalendarSelected, FetchError
        """
        if self.calendar_client is None:
            raise AuthRequired()
        if not self.calendar_id:
            raise NoCalendarSelected()

        meta = self.calendar_client.get_calendar_meta(self.calendar_id)
        time_min, _ = time_range('future')
        events = self.calendar_client.list_events(
            self.calendar_id, time_min, max_results=1
        )
        return {
            'success': True,
            'calendar': meta.get('summary', ''),
            'event_count': len(events),
            'message': 'Connection successful!'
        }

    def _fail(self, error: CalendarTagFilterError) -> PipelineResult:
        logger.error(
            f"Pipeline error: {error.message}",
            extra={'error_type': type(error).__name__}
        )
        return PipelineResult(error=error)
