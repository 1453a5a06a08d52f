"""Unit tests for the DynamoDB config and cache stores."""
import time
from unittest.mock import patch


def test_config_store_round_trip(config_store):
    assert config_store.get('calendar_id') is None
    assert config_store.get('calendar_id', 'fallback') == 'fallback'

    config_store.set('calendar_id', 'team@example.com')
    config_store.set('cache_duration', 120)

    assert config_store.get('calendar_id') == 'team@example.com'
    assert config_store.get('cache_duration') == 120
    assert isinstance(config_store.get('cache_duration'), int)


def test_config_store_lists_and_empty_lists(config_store):
    config_store.set('categories', [{'id': 'A', 'display_name': 'A', 'color': '#fff'}])
    assert config_store.get('categories')[0]['id'] == 'A'

    config_store.set('categories', [])
    assert config_store.get('categories') == []


def test_config_store_delete(config_store):
    config_store.set('access_token', 'secret')

    config_store.delete('access_token')

    assert config_store.get('access_token') is None


def test_cache_store_set_and_get(cache_store):
    assert cache_store.get('tag_filter_a') is None

    assert cache_store.set('tag_filter_a', [{'id': '1'}], 60) is True

    assert cache_store.get('tag_filter_a') == [{'id': '1'}]


def test_cache_store_zero_ttl_is_noop(cache_store):
    assert cache_store.set('tag_filter_a', [], 0) is False
    assert cache_store.get('tag_filter_a') is None


def test_cache_store_expired_entry_is_miss(cache_store):
    cache_store.set('tag_filter_a', [{'id': '1'}], 60)

    with patch('storage.dynamodb_cache.time.time', return_value=time.time() + 61):
        assert cache_store.get('tag_filter_a') is None


def test_cache_store_delete(cache_store):
    cache_store.set('tag_filter_a', [], 60)

    cache_store.delete('tag_filter_a')

    assert cache_store.get('tag_filter_a') is None


def test_cache_store_delete_by_prefix(cache_store):
    for i in range(30):
        cache_store.set(f'tag_filter_{i}', [], 60)
    cache_store.set('other_key', [], 60)

    deleted = cache_store.delete_by_prefix('tag_filter_')

    assert deleted == 30
    assert cache_store.get('tag_filter_0') is None
    assert cache_store.get('other_key') == []


def test_cache_store_stats(cache_store):
    cache_store.set('tag_filter_a', [], 60)
    cache_store.set('tag_filter_b', [], 60)
    cache_store.set('other_key', [], 60)

    stats = cache_store.stats('tag_filter_')

    assert stats['cached_items'] == 2
    assert stats['last_cache_time'] is not None


def test_cache_store_stats_empty(cache_store):
    stats = cache_store.stats('tag_filter_')

    assert stats == {'cached_items': 0, 'last_cache_time': None}
