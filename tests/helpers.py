"""Test helpers shared across test modules."""
from processor.models import ProcessedEvent, RawEvent


class FixedRegistry:
    """In-memory whitelist for parser and policy tests."""

    def __init__(self, ids):
        self.ids = set(ids)

    def valid_ids(self):
        return set(self.ids)


def make_raw_event(event_id, description='', title='Event', location='',
                   start='2024-01-15T10:00:00Z', end='2024-01-15T12:00:00Z',
                   is_all_day=False):
    return RawEvent(
        id=event_id,
        title=title,
        raw_description=description,
        location=location,
        start=start,
        end=end,
        is_all_day=is_all_day,
        html_link=f'https://calendar.google.com/event?eid={event_id}'
    )


def make_processed_event(event_id, valid=(), invalid=(),
                         start='2024-01-15T10:00:00Z'):
    return ProcessedEvent(
        id=event_id,
        title=f'Event {event_id}',
        clean_description='',
        location='',
        start=start,
        end=start,
        is_all_day=False,
        valid_tags=frozenset(valid),
        invalid_tags=frozenset(invalid),
        html_link=None,
        map_link=''
    )
