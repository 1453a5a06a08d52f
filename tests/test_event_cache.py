"""Unit tests for EventCache duration policy."""
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from helpers import make_processed_event
from storage.event_cache import EventCache


def test_default_duration(event_cache):
    assert event_cache.get_duration() == 60


@pytest.mark.parametrize('value,expected', [
    (0, 0), (120, 120), (3600, 3600), (5000, 3600), (-5, 0), ('90', 90),
])
def test_set_duration_clamps(event_cache, value, expected):
    assert event_cache.set_duration(value) == expected
    assert event_cache.get_duration() == expected


def test_set_and_get_events(event_cache):
    events = [
        make_processed_event('1', valid={'COMMUNITY'}),
        make_processed_event('2', invalid={'FOOBAR'}),
    ]

    assert event_cache.set('key', events) is True

    cached = event_cache.get('key')
    assert cached == events
    assert cached[1].has_unknown_tags_only


def test_zero_duration_disables_cache(event_cache):
    """Test that writes are no-ops and reads always miss."""
    event_cache.set_duration(0)

    assert event_cache.set('key', [make_processed_event('1', valid={'COMMUNITY'})]) is False
    assert event_cache.get('key') is None


def test_zero_duration_hides_existing_entries(event_cache):
    event_cache.set('key', [make_processed_event('1', valid={'COMMUNITY'})])

    event_cache.set_duration(0)

    assert event_cache.get('key') is None


def test_clear_all(event_cache, cache_store):
    event_cache.set('a', [])
    event_cache.set('b', [])
    cache_store.set('unrelated', [], 60)

    assert event_cache.clear_all() == 2
    assert event_cache.get('a') is None
    assert cache_store.get('unrelated') == []


def test_get_stats(event_cache):
    event_cache.set('a', [])

    stats = event_cache.get_stats()

    assert stats['cached_items'] == 1
    assert stats['duration'] == 60


def test_unreadable_duration_is_a_miss_and_skips_writes(cache_store, caplog):
    """Test that a failing config table never breaks cache reads or writes."""
    config_store = Mock()
    config_store.get.side_effect = ClientError(
        {'Error': {'Code': 'ResourceNotFoundException', 'Message': 'gone'}}, 'GetItem'
    )
    cache = EventCache(cache_store, config_store)

    with caplog.at_level('WARNING', logger='storage.event_cache'):
        assert cache.get('key') is None
        assert cache.set('key', [make_processed_event('1', valid={'COMMUNITY'})]) is False

    assert cache_store.get(EventCache.CACHE_PREFIX + 'key') is None
    assert len([record for record in caplog.records if record.name == 'storage.event_cache']) == 2
