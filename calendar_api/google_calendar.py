"""Google Calendar REST client."""
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from processor.errors import AuthRequired, FetchError
from processor.models import RawEvent

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """Read-only client for the Google Calendar v3 API."""

    BASE_URL = "https://www.googleapis.com/calendar/v3"

    def __init__(self, access_token: str, timeout: int = 30,
                 max_retries: int = 3, retry_delay: float = 1):
        """
        Initialize the calendar client.

        Args:
            access_token: OAuth2 bearer token
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Attempts per request (default: 3)
            retry_delay: Base backoff delay in seconds (default: 1)
        """
        self.access_token = access_token
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.session = requests.Session()

    def list_events(self, calendar_id: str, time_min: datetime,
                    time_max: Optional[datetime] = None,
                    max_results: int = 100) -> List[RawEvent]:
        """
        Fetch events in a time window, recurring events expanded.

        Args:
            calendar_id: Calendar to read
            time_min: Window start
            time_max: Optional window end
            max_results: Maximum number of events (default: 100)

        Returns:
            List of RawEvent objects ordered by start time

        Raises:
            AuthRequired: If the access token is rejected
            FetchError: If the request fails after all retries
        """
        params = {
            'timeMin': time_min.isoformat(),
            'maxResults': max_results,
            'singleEvents': 'true',
            'orderBy': 'startTime'
        }
        if time_max:
            params['timeMax'] = time_max.isoformat()

        logger.info(
            f"Fetching events for {calendar_id} from {params['timeMin']} "
            f"to {params.get('timeMax', 'FUTURE')}"
        )
        data = self._get(f"/calendars/{quote(calendar_id, safe='')}/events", params)

        events = []
        for item in data.get('items', []):
            try:
                events.append(self._parse_event_item(item))
            except (KeyError, TypeError) as e:
                logger.warning(f"Failed to parse event item: {e}")
                continue

        logger.info(f"Successfully fetched {len(events)} events")
        return events

    def get_calendar_meta(self, calendar_id: str) -> Dict[str, Any]:
        """
        Fetch calendar metadata.

        Returns:
            Dict with the calendar summary
        """
        data = self._get(f"/calendars/{quote(calendar_id, safe='')}", {})
        return {'summary': data.get('summary', '')}

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Perform a GET request with retry logic.

        Network errors and 5xx responses are retried with exponential
        backoff. A 401 is raised immediately.
        """
        headers = {'Authorization': f"Bearer {self.access_token}"}

        for attempt in range(self.max_retries):
            try:
                response = self.session.get(
                    self.BASE_URL + path,
                    params=params,
                    headers=headers,
                    timeout=self.timeout
                )
                if response.status_code == 401:
                    raise AuthRequired(
                        'Google Calendar rejected the access token. '
                        'Please reconnect your account.'
                    )
                if 400 <= response.status_code < 500:
                    raise FetchError(
                        f"Failed to retrieve events from Google Calendar: "
                        f"HTTP {response.status_code}"
                    )
                response.raise_for_status()
                return response.json()

            except (requests.RequestException, ValueError) as e:
                if attempt < self.max_retries - 1:
                    # Calculate exponential backoff delay
                    delay = self.retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise FetchError(
                        f"Failed to retrieve events from Google Calendar: {e}"
                    ) from e

        raise FetchError('Failed to retrieve events from Google Calendar')

    def _parse_event_item(self, item: Dict[str, Any]) -> RawEvent:
        """
        Convert an API event resource to a RawEvent.

        All-day events carry 'date' instead of 'dateTime'.
        """
        start = item.get('start', {})
        end = item.get('end', {})
        is_all_day = bool(start.get('date'))

        return RawEvent(
            id=item['id'],
            title=item.get('summary'),
            raw_description=item.get('description', ''),
            location=item.get('location', ''),
            start=start['date'] if is_all_day else start['dateTime'],
            end=end.get('date') if is_all_day else end.get('dateTime'),
            is_all_day=is_all_day,
            html_link=item.get('htmlLink')
        )
