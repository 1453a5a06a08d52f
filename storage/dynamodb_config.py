"""DynamoDB-backed store for named configuration values."""
import logging
from decimal import Decimal
from typing import Any, Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


def from_dynamodb(value: Any) -> Any:
    """
    Convert values read from DynamoDB into plain Python types.

    boto3 returns numbers as Decimal; integral values become int, the
    rest float. Lists and maps are converted recursively.
    """
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, list):
        return [from_dynamodb(item) for item in value]
    if isinstance(value, dict):
        return {key: from_dynamodb(item) for key, item in value.items()}
    return value


class DynamoDBConfigStore:
    """Get/set/delete of named scalar and list values."""

    KEY_ATTRIBUTE = 'option_name'

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
        logger.info(f"Initialized DynamoDBConfigStore for table: {table_name}")

    def get(self, name: str, default: Any = None) -> Any:
        """
        Read a named value.

        Args:
            name: Option name
            default: Returned when the option has never been written

        Returns:
            Stored value or default
        """
        try:
            response = self.table.get_item(Key={self.KEY_ATTRIBUTE: name})
        except ClientError as e:
            logger.error(f"Error reading option '{name}': {e}")
            raise

        item = response.get('Item')
        if item is None or 'value' not in item:
            return default
        return from_dynamodb(item['value'])

    def set(self, name: str, value: Any) -> bool:
        """
        Write a named value with a single put.

        Args:
            name: Option name
            value: Scalar, list or map

        Returns:
            True on success
        """
        try:
            self.table.put_item(Item={self.KEY_ATTRIBUTE: name, 'value': value})
        except ClientError as e:
            logger.error(f"Error writing option '{name}': {e}")
            raise
        return True

    def delete(self, name: str) -> bool:
        """Delete a named value."""
        try:
            self.table.delete_item(Key={self.KEY_ATTRIBUTE: name})
        except ClientError as e:
            logger.error(f"Error deleting option '{name}': {e}")
            raise
        return True
