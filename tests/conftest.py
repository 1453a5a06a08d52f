"""Shared fixtures."""
import boto3
import pytest
from moto import mock_aws

from processor.tag_parser import TagParser
from storage.category_registry import CategoryRegistry
from storage.dynamodb_cache import DynamoDBCacheStore
from storage.dynamodb_config import DynamoDBConfigStore
from storage.event_cache import EventCache

from helpers import FixedRegistry

CONFIG_TABLE = 'test-tag-filter-config'
CACHE_TABLE = 'test-tag-filter-cache'


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake AWS credentials so boto3 never reaches a real account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


def _create_table(dynamodb, name, key):
    return dynamodb.create_table(
        TableName=name,
        KeySchema=[{'AttributeName': key, 'KeyType': 'HASH'}],
        AttributeDefinitions=[{'AttributeName': key, 'AttributeType': 'S'}],
        BillingMode='PAY_PER_REQUEST'
    )


@pytest.fixture
def dynamodb_tables(aws_credentials):
    """Create mock config and cache tables."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')
        config_table = _create_table(dynamodb, CONFIG_TABLE, 'option_name')
        cache_table = _create_table(dynamodb, CACHE_TABLE, 'cache_key')
        yield config_table, cache_table


@pytest.fixture
def config_store(dynamodb_tables):
    return DynamoDBConfigStore(CONFIG_TABLE, region_name='us-east-1')


@pytest.fixture
def cache_store(dynamodb_tables):
    return DynamoDBCacheStore(CACHE_TABLE, region_name='us-east-1')


@pytest.fixture
def registry(config_store):
    return CategoryRegistry(config_store)


@pytest.fixture
def event_cache(cache_store, config_store):
    return EventCache(cache_store, config_store)


@pytest.fixture
def tag_parser():
    return TagParser(FixedRegistry({'COMMUNITY', 'WORKSHOP', 'TRAINING'}))

