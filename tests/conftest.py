"""
Test configuration and fixtures for the table access layer.

Provides a configuration, a moto-backed DynamoDB table with the
PartitionKey/RowKey schema, and clients bound to it.
"""

import sys
from pathlib import Path

# Add parent directory to path so we can import table_access
sys.path.insert(0, str(Path(__file__).parent.parent))

import boto3
import pytest
from moto import mock_aws

from table_access import DynamoTableStore, TableAccessConfig, TableClient, TableGateway

from tests.helpers import SegmentedFakeStore, make_row


@pytest.fixture
def mock_config():
    """Configuration for mocked testing."""
    return TableAccessConfig(
        aws_access_key_id="test_key",
        aws_secret_access_key="test_secret",
        region_name="us-east-1",
        endpoint_url=None,  # Use default AWS endpoint for moto
        environment="test",
        table_prefix="test",
        raise_on_store_error=False
    )


@pytest.fixture
def mock_dynamodb_resource():
    """Mock DynamoDB resource."""
    with mock_aws():
        yield boto3.resource('dynamodb', region_name='us-east-1')


@pytest.fixture
def customers_table(mock_dynamodb_resource):
    """Create the test_test_customers table with the PartitionKey/RowKey schema."""
    table = mock_dynamodb_resource.create_table(
        TableName='test_test_customers',
        KeySchema=[
            {'AttributeName': 'PartitionKey', 'KeyType': 'HASH'},
            {'AttributeName': 'RowKey', 'KeyType': 'RANGE'}
        ],
        AttributeDefinitions=[
            {'AttributeName': 'PartitionKey', 'AttributeType': 'S'},
            {'AttributeName': 'RowKey', 'AttributeType': 'S'}
        ],
        BillingMode='PAY_PER_REQUEST'
    )
    return table


@pytest.fixture
def seeded_table(customers_table):
    """Customers table holding 5 rows in 'eu' and 2 rows in 'us'."""
    items = [
        {'PartitionKey': 'eu', 'RowKey': f'c-{i}', 'Name': f'Customer {i}', 'Age': 20 + i,
         'ETag': f'etag-{i}', 'Timestamp': '2024-01-01T10:00:00+00:00'}
        for i in range(5)
    ]
    items += [
        {'PartitionKey': 'us', 'RowKey': 'c-100', 'Name': 'Grace', 'Age': 45},
        {'PartitionKey': 'us', 'RowKey': 'c-101', 'Name': 'Linus', 'Age': 17},
    ]
    with customers_table.batch_writer() as batch:
        for item in items:
            batch.put_item(Item=item)
    return customers_table


@pytest.fixture
def dynamo_store(mock_config, customers_table):
    """DynamoTableStore bound to the mocked customers table."""
    return DynamoTableStore(TableGateway(mock_config, 'test_test_customers'))


@pytest.fixture
def dynamo_client(mock_config, dynamo_store):
    """TableClient bound to the mocked customers table."""
    return TableClient(dynamo_store, mock_config)


@pytest.fixture
def fake_store():
    """In-memory store serving three segments of two rows each."""
    return SegmentedFakeStore([
        [make_row('p', 'r1'), make_row('p', 'r2')],
        [make_row('p', 'r3'), make_row('p', 'r4')],
        [make_row('p', 'r5'), make_row('p', 'r6')],
    ])
