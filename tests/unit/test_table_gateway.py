"""
Tests for TableGateway (core/table_gateway.py)

These tests verify the thin DynamoDB wrapper: lazy resource creation,
transport tuning, raw pass-throughs and error classification.
"""

import logging
from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from table_access.config import TableAccessConfig
from table_access.core.table_gateway import TableGateway, create_table_gateway, map_dynamodb_error
from table_access.exceptions import ConflictError, StoreUnavailable


def create_client_error(error_code: str, message: str = "Test error", operation: str = "TestOperation") -> ClientError:
    """ClientError with the given DynamoDB error code."""
    return ClientError(
        error_response={
            'Error': {
                'Code': error_code,
                'Message': message
            }
        },
        operation_name=operation
    )


@pytest.fixture
def gateway_config():
    """Configuration for gateway testing."""
    return TableAccessConfig(
        region_name="us-east-1",
        table_prefix="test",
        environment="dev",
        aws_access_key_id="fake_key",
        aws_secret_access_key="fake_secret",
        enable_debug_logging=False
    )


@pytest.fixture
def mock_table():
    """Table double returning empty responses."""
    table = Mock()
    table.query.return_value = {'Items': []}
    table.scan.return_value = {'Items': []}
    table.get_item.return_value = {}
    table.put_item.return_value = {}
    table.update_item.return_value = {'Attributes': {}}
    table.delete_item.return_value = {'Attributes': {}}
    return table


class TestTableGateway:
    """Pass-throughs, lazy setup and transport tuning."""

    def test_initialization(self, gateway_config):
        gateway = TableGateway(gateway_config, "test_table")

        assert gateway.config == gateway_config
        assert gateway.table_name == "test_table"
        assert gateway._dynamodb is None
        assert gateway._table is None

    def test_create_table_gateway_applies_prefix(self, gateway_config):
        gateway = create_table_gateway(gateway_config, "customers")

        assert gateway.table_name == "test_dev_customers"

    def test_dynamodb_property_lazy_initialization(self, gateway_config):
        with patch('boto3.Session') as mock_session_class:
            mock_session = Mock()
            mock_dynamodb = Mock()
            mock_session_class.return_value = mock_session
            mock_session.resource.return_value = mock_dynamodb

            gateway = TableGateway(gateway_config, "test_table")

            result1 = gateway.dynamodb
            result2 = gateway.dynamodb

            assert result1 == result2 == mock_dynamodb
            mock_session_class.assert_called_once()
            mock_session.resource.assert_called_once()

    def test_transport_tuning_is_applied_once(self, gateway_config):
        """Pool size and keep-alive reach the botocore Config."""
        gateway_config.max_pool_connections = 25
        with patch('boto3.Session') as mock_session_class:
            mock_session = Mock()
            mock_session_class.return_value = mock_session

            gateway = TableGateway(gateway_config, "test_table")
            _ = gateway.dynamodb

            _, kwargs = mock_session.resource.call_args
            client_config = kwargs['config']
            assert client_config.max_pool_connections == 25
            assert client_config.tcp_keepalive is True
            assert client_config.retries == {'max_attempts': 3}
            assert client_config.read_timeout == 30.0
            assert 'endpoint_url' not in kwargs

    def test_transport_tuning_disabled(self, gateway_config):
        gateway_config.optimize_connection = False

        client_config = TableGateway(gateway_config, "test_table").build_client_config()

        # botocore default pool size
        assert client_config.max_pool_connections == 10
        assert client_config.tcp_keepalive is None

    def test_endpoint_url_is_forwarded(self, gateway_config):
        gateway_config.endpoint_url = "http://localhost:8000"
        with patch('boto3.Session') as mock_session_class:
            mock_session = Mock()
            mock_session_class.return_value = mock_session

            _ = TableGateway(gateway_config, "test_table").dynamodb

            _, kwargs = mock_session.resource.call_args
            assert kwargs['endpoint_url'] == "http://localhost:8000"

    def test_dynamodb_connection_error(self, gateway_config):
        with patch('boto3.Session') as mock_session_class:
            mock_session_class.side_effect = Exception("Connection failed")

            gateway = TableGateway(gateway_config, "test_table")

            with pytest.raises(StoreUnavailable, match="Failed to connect to DynamoDB"):
                _ = gateway.dynamodb

    def test_table_access_error(self, gateway_config):
        with patch('boto3.Session') as mock_session_class:
            mock_session = Mock()
            mock_dynamodb = Mock()
            mock_session_class.return_value = mock_session
            mock_session.resource.return_value = mock_dynamodb
            mock_dynamodb.Table.side_effect = Exception("Table access failed")

            gateway = TableGateway(gateway_config, "test_table")

            with pytest.raises(StoreUnavailable, match="Failed to access table"):
                _ = gateway.table

    def test_debug_logging_flag(self, gateway_config):
        gateway_config.enable_debug_logging = True
        logger = logging.getLogger('table_access')
        previous = logger.level
        try:
            TableGateway(gateway_config, "test_table")
            assert logger.level == logging.DEBUG
        finally:
            logger.setLevel(previous)

    def test_query_operation(self, gateway_config, mock_table):
        with patch.object(TableGateway, 'table', mock_table):
            gateway = TableGateway(gateway_config, "test_table")

            query_kwargs = {
                'KeyConditionExpression': 'test_condition',
                'Limit': 10
            }

            result = gateway.query(**query_kwargs)

            mock_table.query.assert_called_once_with(**query_kwargs)
            assert result == mock_table.query.return_value

    def test_query_client_error_mapping(self, gateway_config, mock_table):
        mock_error = create_client_error('ValidationException', operation='Query')
        mock_table.query.side_effect = mock_error

        with patch.object(TableGateway, 'table', mock_table):
            with patch('table_access.core.table_gateway.map_dynamodb_error') as mock_map:
                mock_map.return_value = StoreUnavailable("Mapped error")

                gateway = TableGateway(gateway_config, "test_table")

                with pytest.raises(StoreUnavailable, match="Mapped error"):
                    gateway.query()

                mock_map.assert_called_once_with(mock_error, "Query", "test_table", None)

    def test_botocore_error_is_retryable_store_fault(self, gateway_config, mock_table):
        mock_table.scan.side_effect = EndpointConnectionError(endpoint_url="http://localhost:8000")

        with patch.object(TableGateway, 'table', mock_table):
            gateway = TableGateway(gateway_config, "test_table")

            with pytest.raises(StoreUnavailable) as exc_info:
                gateway.scan(ProjectionExpression='#p0')

            assert exc_info.value.retryable is True
            assert exc_info.value.operation == "Scan"

    def test_scan_operation(self, gateway_config, mock_table):
        with patch.object(TableGateway, 'table', mock_table):
            gateway = TableGateway(gateway_config, "test_table")

            scan_kwargs = {
                'ProjectionExpression': '#p0, #p1',
                'Limit': 100
            }

            result = gateway.scan(**scan_kwargs)

            mock_table.scan.assert_called_once_with(**scan_kwargs)
            assert result == mock_table.scan.return_value

    def test_scan_without_projection_logs(self, gateway_config, mock_table):
        with patch.object(TableGateway, 'table', mock_table):
            with patch('table_access.core.table_gateway.logger') as mock_logger:
                gateway = TableGateway(gateway_config, "test_table")

                gateway.scan()

                mock_logger.debug.assert_any_call("Scan on test_table without ProjectionExpression")

    def test_get_item(self, gateway_config, mock_table):
        mock_table.get_item.return_value = {'Item': {'PartitionKey': 'p', 'RowKey': 'r'}}

        with patch.object(TableGateway, 'table', mock_table):
            gateway = TableGateway(gateway_config, "test_table")

            item = gateway.get_item({'PartitionKey': 'p', 'RowKey': 'r'}, ProjectionExpression='#p0')

            mock_table.get_item.assert_called_once_with(
                Key={'PartitionKey': 'p', 'RowKey': 'r'},
                ProjectionExpression='#p0'
            )
            assert item == {'PartitionKey': 'p', 'RowKey': 'r'}

    def test_get_item_missing(self, gateway_config, mock_table):
        with patch.object(TableGateway, 'table', mock_table):
            gateway = TableGateway(gateway_config, "test_table")

            assert gateway.get_item({'PartitionKey': 'p', 'RowKey': 'r'}) is None

    def test_put_item_operation(self, gateway_config, mock_table):
        with patch.object(TableGateway, 'table', mock_table):
            gateway = TableGateway(gateway_config, "test_table")

            item = {'PartitionKey': 'p', 'RowKey': 'r', 'Name': 'Ada'}
            condition = Mock()

            gateway.put_item(item, condition_expression=condition)

            mock_table.put_item.assert_called_once_with(
                Item=item,
                ConditionExpression=condition
            )

    def test_put_item_without_condition(self, gateway_config, mock_table):
        with patch.object(TableGateway, 'table', mock_table):
            gateway = TableGateway(gateway_config, "test_table")

            item = {'PartitionKey': 'p', 'RowKey': 'r'}

            gateway.put_item(item)

            mock_table.put_item.assert_called_once_with(Item=item)

    def test_put_item_conditional_failure(self, gateway_config, mock_table):
        """Rejected conditions surface as ConflictError carrying the resource id."""
        mock_table.put_item.side_effect = create_client_error('ConditionalCheckFailedException', operation='PutItem')

        with patch.object(TableGateway, 'table', mock_table):
            gateway = TableGateway(gateway_config, "test_table")

            with pytest.raises(ConflictError) as exc_info:
                gateway.put_item({'PartitionKey': 'p', 'RowKey': 'r'}, resource_id="p/r")

            assert exc_info.value.resource_id == "p/r"

    def test_update_item_operation(self, gateway_config, mock_table):
        with patch.object(TableGateway, 'table', mock_table):
            gateway = TableGateway(gateway_config, "test_table")

            key = {'PartitionKey': 'p', 'RowKey': 'r'}
            update_expr = 'SET #u0 = :u0'
            expr_values = {':u0': 'Ada'}
            expr_names = {'#u0': 'Name'}
            condition = Mock()

            result = gateway.update_item(
                key=key,
                update_expression=update_expr,
                expression_attribute_values=expr_values,
                expression_attribute_names=expr_names,
                condition_expression=condition,
                return_values='ALL_NEW'
            )

            mock_table.update_item.assert_called_once_with(
                Key=key,
                UpdateExpression=update_expr,
                ExpressionAttributeValues=expr_values,
                ExpressionAttributeNames=expr_names,
                ConditionExpression=condition,
                ReturnValues='ALL_NEW'
            )
            assert result == mock_table.update_item.return_value['Attributes']

    def test_update_item_minimal_params(self, gateway_config, mock_table):
        with patch.object(TableGateway, 'table', mock_table):
            gateway = TableGateway(gateway_config, "test_table")

            key = {'PartitionKey': 'p', 'RowKey': 'r'}

            result = gateway.update_item(key=key, update_expression='SET #u0 = :u0')

            mock_table.update_item.assert_called_once_with(
                Key=key,
                UpdateExpression='SET #u0 = :u0',
                ReturnValues='NONE'
            )
            assert result is None

    def test_delete_item_operation(self, gateway_config, mock_table):
        with patch.object(TableGateway, 'table', mock_table):
            gateway = TableGateway(gateway_config, "test_table")

            key = {'PartitionKey': 'p', 'RowKey': 'r'}
            condition = Mock()

            result = gateway.delete_item(key=key, condition_expression=condition, return_values='ALL_OLD')

            mock_table.delete_item.assert_called_once_with(
                Key=key,
                ConditionExpression=condition,
                ReturnValues='ALL_OLD'
            )
            assert result == mock_table.delete_item.return_value['Attributes']

    def test_delete_item_client_error_mapping(self, gateway_config, mock_table):
        mock_error = create_client_error('ConditionalCheckFailedException', operation='DeleteItem')
        mock_table.delete_item.side_effect = mock_error

        with patch.object(TableGateway, 'table', mock_table):
            with patch('table_access.core.table_gateway.map_dynamodb_error') as mock_map:
                mock_map.return_value = ConflictError("Mapped error")

                gateway = TableGateway(gateway_config, "test_table")

                with pytest.raises(ConflictError):
                    gateway.delete_item(key={'PartitionKey': 'p', 'RowKey': 'r'})

                mock_map.assert_called_once_with(mock_error, "DeleteItem", "test_table", "p/r")


class TestEnsureTable:
    """Table creation on demand."""

    def test_existing_table_is_left_alone(self, gateway_config):
        mock_dynamodb = Mock()

        with patch.object(TableGateway, 'dynamodb', mock_dynamodb):
            TableGateway(gateway_config, "test_table").ensure_table()

            mock_dynamodb.meta.client.describe_table.assert_called_once_with(TableName="test_table")
            mock_dynamodb.create_table.assert_not_called()

    def test_missing_table_is_created(self, gateway_config):
        mock_dynamodb = Mock()
        mock_dynamodb.meta.client.describe_table.side_effect = create_client_error('ResourceNotFoundException')

        with patch.object(TableGateway, 'dynamodb', mock_dynamodb):
            gateway = TableGateway(gateway_config, "test_table")
            gateway.ensure_table()

            _, kwargs = mock_dynamodb.create_table.call_args
            assert kwargs['KeySchema'] == [
                {'AttributeName': 'PartitionKey', 'KeyType': 'HASH'},
                {'AttributeName': 'RowKey', 'KeyType': 'RANGE'}
            ]
            assert kwargs['BillingMode'] == 'PAY_PER_REQUEST'
            mock_dynamodb.create_table.return_value.wait_until_exists.assert_called_once()
            assert gateway._table is mock_dynamodb.create_table.return_value

    def test_concurrent_creation_is_tolerated(self, gateway_config):
        mock_dynamodb = Mock()
        mock_dynamodb.meta.client.describe_table.side_effect = create_client_error('ResourceNotFoundException')
        mock_dynamodb.create_table.side_effect = create_client_error('ResourceInUseException')

        with patch.object(TableGateway, 'dynamodb', mock_dynamodb):
            TableGateway(gateway_config, "test_table").ensure_table()

    def test_describe_failure_is_store_fault(self, gateway_config):
        mock_dynamodb = Mock()
        mock_dynamodb.meta.client.describe_table.side_effect = create_client_error('AccessDeniedException')

        with patch.object(TableGateway, 'dynamodb', mock_dynamodb):
            with pytest.raises(StoreUnavailable, match="Authentication/authorization failed"):
                TableGateway(gateway_config, "test_table").ensure_table()


class TestErrorMapping:
    """Test map_dynamodb_error classification."""

    @pytest.mark.parametrize("code", ['ConditionalCheckFailedException', 'TransactionConflictException'])
    def test_conflicts(self, code):
        error = create_client_error(code, 'The conditional request failed')

        result = map_dynamodb_error(error, 'PutItem', 'test_table', 'p/r')

        assert isinstance(result, ConflictError)
        assert 'p/r' in str(result)
        assert 'conditional request failed' in str(result).lower()
        assert result.original_error == error

    @pytest.mark.parametrize("code", [
        'ProvisionedThroughputExceededException',
        'RequestLimitExceeded',
        'ThrottlingException',
        'InternalServerError',
        'ServiceUnavailable',
    ])
    def test_retryable_store_faults(self, code):
        result = map_dynamodb_error(create_client_error(code), 'Query', 'test_table')

        assert isinstance(result, StoreUnavailable)
        assert result.retryable is True
        assert result.operation == 'Query'
        assert result.table_name == 'test_table'

    @pytest.mark.parametrize("code,fragment", [
        ('ResourceNotFoundException', 'Table not found'),
        ('AccessDeniedException', 'Authentication/authorization failed'),
        ('UnrecognizedClientException', 'Authentication/authorization failed'),
        ('ValidationException', 'Request rejected'),
    ])
    def test_permanent_store_faults(self, code, fragment):
        result = map_dynamodb_error(create_client_error(code), 'Scan', 'test_table')

        assert isinstance(result, StoreUnavailable)
        assert result.retryable is False
        assert fragment in str(result)

    def test_unknown_code_logs_warning(self):
        with patch('table_access.core.table_gateway.logger') as mock_logger:
            result = map_dynamodb_error(create_client_error('SomethingNew'), 'Query', 'test_table')

        assert isinstance(result, StoreUnavailable)
        mock_logger.warning.assert_called_once()

    def test_missing_error_details(self):
        error = ClientError(error_response={}, operation_name='Query')

        result = map_dynamodb_error(error, 'Query', 'test_table')

        assert isinstance(result, StoreUnavailable)
        assert 'Query on test_table' in str(result)
