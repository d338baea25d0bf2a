"""
DynamoDB Table Gateway

Transport boundary between the access layer and boto3.
The gateway:

1. Creates the boto3 session, resource and Table handle lazily
2. Applies connection tuning (pool size, keep-alive, retries, timeouts) once,
   when the resource is created
3. Maps botocore failures into the access layer's exception taxonomy

Everything above the gateway (store, paginator, client) works in terms of
StoreUnavailable and ConflictError and never sees a raw ClientError.
"""

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import TableAccessConfig
from ..exceptions import ConflictError, StoreUnavailable

logger = logging.getLogger(__name__)


CONFLICT_ERROR_CODES = frozenset({
    'ConditionalCheckFailedException',
    'TransactionConflictException',
})

RETRYABLE_ERROR_CODES = frozenset({
    'ProvisionedThroughputExceededException',
    'RequestLimitExceeded',
    'ThrottlingException',
    'TooManyRequestsException',
    'InternalServerError',
    'ServiceUnavailable',
    'ServiceUnavailableException',
    'RequestTimeoutException',
    'TransactionInProgressException',
})


def map_dynamodb_error(
    error: ClientError,
    operation: str,
    table_name: str,
    resource_id: Optional[str] = None
) -> Exception:
    """Map DynamoDB ClientError to access layer exceptions.

    Args:
        error: ClientError raised by boto3
        operation: The operation that failed (e.g., "Query", "PutItem")
        table_name: Physical table name
        resource_id: Row identifier ("pk/rk") added to the error context

    Returns:
        ConflictError for rejected conditions, StoreUnavailable otherwise
        (``retryable`` set for throttling and transient service errors)
    """
    error_code = error.response.get('Error', {}).get('Code', 'Unknown')
    error_message = error.response.get('Error', {}).get('Message', str(error))

    context = f"{operation} on {table_name}"
    if resource_id:
        context += f" (resource: {resource_id})"

    full_message = f"{context}: {error_message}"

    if error_code in CONFLICT_ERROR_CODES:
        return ConflictError(f"Conditional check failed - {full_message}", resource_id, original_error=error)

    if error_code in RETRYABLE_ERROR_CODES:
        return StoreUnavailable(
            f"Throttling/service error - {full_message}",
            operation=operation,
            table_name=table_name,
            retryable=True,
            original_error=error
        )

    if error_code == 'ResourceNotFoundException':
        return StoreUnavailable(f"Table not found - {full_message}", operation, table_name, original_error=error)

    if error_code in ('UnrecognizedClientException', 'AccessDeniedException', 'ExpiredTokenException'):
        return StoreUnavailable(
            f"Authentication/authorization failed - {full_message}", operation, table_name, original_error=error
        )

    if error_code == 'ValidationException':
        return StoreUnavailable(f"Request rejected - {full_message}", operation, table_name, original_error=error)

    logger.warning(f"Unknown DynamoDB error code '{error_code}' mapped to StoreUnavailable")
    return StoreUnavailable(f"DynamoDB operation failed - {full_message}", operation, table_name, original_error=error)


class TableGateway:
    """
    Thin gateway for one DynamoDB table.

    Exposes raw pass-throughs with error mapping. Callers build the request
    kwargs; the gateway only adds transport setup and error classification.
    """

    def __init__(self, config: TableAccessConfig, table_name: str):
        """Bind a gateway to one physical table.

        Args:
            config: Table access configuration
            table_name: Full name of the DynamoDB table
        """
        self.config = config
        self.table_name = table_name
        self._dynamodb = None
        self._table = None

        if config.enable_debug_logging:
            logging.getLogger('table_access').setLevel(logging.DEBUG)

    def build_client_config(self) -> Config:
        """botocore Config carrying the transport tuning from the configuration."""
        config_kwargs: Dict[str, Any] = {
            'retries': {'max_attempts': self.config.retries},
            'read_timeout': self.config.timeout_seconds,
            'connect_timeout': self.config.timeout_seconds,
        }
        if self.config.optimize_connection:
            config_kwargs['max_pool_connections'] = self.config.max_pool_connections
            config_kwargs['tcp_keepalive'] = self.config.tcp_keepalive
        return Config(**config_kwargs)

    @property
    def dynamodb(self):
        """boto3 DynamoDB resource, created on first use with the tuned client config."""
        if self._dynamodb is None:
            try:
                session = boto3.Session(
                    aws_access_key_id=self.config.aws_access_key_id,
                    aws_secret_access_key=self.config.aws_secret_access_key,
                    region_name=self.config.region_name
                )

                dynamodb_config = {
                    'region_name': self.config.region_name,
                    'config': self.build_client_config(),
                }

                if self.config.endpoint_url:
                    dynamodb_config['endpoint_url'] = self.config.endpoint_url

                self._dynamodb = session.resource('dynamodb', **dynamodb_config)
            except Exception as e:
                logger.error(f"Failed to create DynamoDB resource: {e}")
                raise StoreUnavailable(f"Failed to connect to DynamoDB: {e}", "Connect", self.table_name, original_error=e) from e
        return self._dynamodb

    @property
    def table(self):
        """boto3 Table resource for this gateway's table."""
        if self._table is None:
            try:
                self._table = self.dynamodb.Table(self.table_name)
            except StoreUnavailable:
                raise
            except Exception as e:
                logger.error(f"Failed to access table '{self.table_name}': {e}")
                raise StoreUnavailable(f"Failed to access table '{self.table_name}': {e}", "Connect", self.table_name, original_error=e) from e
        return self._table

    def _call(self, operation: str, method, resource_id: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        try:
            return method(**kwargs)
        except ClientError as e:
            raise map_dynamodb_error(e, operation, self.table_name, resource_id) from e
        except BotoCoreError as e:
            logger.error(f"{operation} on {self.table_name} failed before reaching DynamoDB: {e}")
            raise StoreUnavailable(
                f"{operation} on {self.table_name} failed: {e}",
                operation,
                self.table_name,
                retryable=True,
                original_error=e
            ) from e

    def query(self, **kwargs) -> Dict[str, Any]:
        """
        Raw Query; callers supply every request parameter.

        Raw pass-through to boto3 with error handling.

        Example:
            response = gateway.query(
                KeyConditionExpression=Key('PartitionKey').eq('customers'),
                Limit=50,
                ExclusiveStartKey=last_key
            )
        """
        return self._call("Query", self.table.query, **kwargs)

    def scan(self, **kwargs) -> Dict[str, Any]:
        """
        Raw Scan; callers supply every request parameter.

        Prefer a partition-restricted query whenever the partition is known.
        """
        if 'ProjectionExpression' not in kwargs:
            logger.debug(f"Scan on {self.table_name} without ProjectionExpression")
        return self._call("Scan", self.table.scan, **kwargs)

    def get_item(self, key: Dict[str, Any], **kwargs) -> Optional[Dict[str, Any]]:
        """
        Point lookup by primary key.

        Returns:
            The item, or None when no item has that key
        """
        response = self._call(
            "GetItem",
            self.table.get_item,
            resource_id=_resource_id(key),
            Key=key,
            **kwargs
        )
        return response.get('Item')

    def put_item(self, item: Dict[str, Any], condition_expression=None, resource_id: Optional[str] = None) -> None:
        """
        Write a whole item, optionally guarded by a condition.

        Args:
            item: Complete item, system attributes included
            condition_expression: boto3 condition or raw ConditionExpression
        """
        put_kwargs: Dict[str, Any] = {'Item': item}
        if condition_expression is not None:
            put_kwargs['ConditionExpression'] = condition_expression

        self._call("PutItem", self.table.put_item, resource_id=resource_id, **put_kwargs)
        logger.debug(f"Put item in {self.table_name}")

    def update_item(
        self,
        key: Dict[str, Any],
        update_expression: str,
        expression_attribute_values: Optional[Dict[str, Any]] = None,
        expression_attribute_names: Optional[Dict[str, str]] = None,
        condition_expression=None,
        return_values: str = 'NONE'
    ) -> Optional[Dict[str, Any]]:
        """
        Apply an UpdateExpression to one item.

        Returns:
            Attributes selected by return_values, or None for 'NONE'
        """
        update_kwargs: Dict[str, Any] = {
            'Key': key,
            'UpdateExpression': update_expression,
            'ReturnValues': return_values
        }

        if expression_attribute_values:
            update_kwargs['ExpressionAttributeValues'] = expression_attribute_values
        if expression_attribute_names:
            update_kwargs['ExpressionAttributeNames'] = expression_attribute_names
        if condition_expression is not None:
            update_kwargs['ConditionExpression'] = condition_expression

        response = self._call(
            "UpdateItem", self.table.update_item, resource_id=_resource_id(key), **update_kwargs
        )
        logger.debug(f"Updated item in {self.table_name}: {key}")

        return response.get('Attributes') if return_values != 'NONE' else None

    def delete_item(
        self,
        key: Dict[str, Any],
        condition_expression=None,
        return_values: str = 'NONE'
    ) -> Optional[Dict[str, Any]]:
        """
        Remove one item by key.

        Returns:
            Attributes selected by return_values, or None for 'NONE'
        """
        delete_kwargs: Dict[str, Any] = {
            'Key': key,
            'ReturnValues': return_values
        }

        if condition_expression is not None:
            delete_kwargs['ConditionExpression'] = condition_expression

        response = self._call(
            "DeleteItem", self.table.delete_item, resource_id=_resource_id(key), **delete_kwargs
        )
        logger.debug(f"Deleted item from {self.table_name}: {key}")

        return response.get('Attributes') if return_values != 'NONE' else None

    def ensure_table(self) -> None:
        """
        Create the table when it does not exist yet and wait until it is active.

        Key schema: partition key attribute as HASH, row key attribute as RANGE,
        both strings, on-demand billing.
        """
        client = self.dynamodb.meta.client
        try:
            client.describe_table(TableName=self.table_name)
            return
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') != 'ResourceNotFoundException':
                raise map_dynamodb_error(e, "DescribeTable", self.table_name) from e

        pk = self.config.partition_key_attribute
        rk = self.config.row_key_attribute
        try:
            table = self.dynamodb.create_table(
                TableName=self.table_name,
                KeySchema=[
                    {'AttributeName': pk, 'KeyType': 'HASH'},
                    {'AttributeName': rk, 'KeyType': 'RANGE'}
                ],
                AttributeDefinitions=[
                    {'AttributeName': pk, 'AttributeType': 'S'},
                    {'AttributeName': rk, 'AttributeType': 'S'}
                ],
                BillingMode='PAY_PER_REQUEST'
            )
            table.wait_until_exists()
        except ClientError as e:
            # Created concurrently by another process
            if e.response.get('Error', {}).get('Code') == 'ResourceInUseException':
                return
            raise map_dynamodb_error(e, "CreateTable", self.table_name) from e

        self._table = table
        logger.info(f"Created table {self.table_name}")


def _resource_id(key: Dict[str, Any]) -> Optional[str]:
    if not key:
        return None
    return "/".join(str(v) for v in list(key.values())[:2])


def create_table_gateway(config: TableAccessConfig, table_name: str) -> TableGateway:
    """
    Gateway for the physical table derived from ``table_name``.

    Args:
        config: Table access configuration
        table_name: Base table name (prefix and environment are applied)

    Returns:
        TableGateway bound to the prefixed table name
    """
    full_table_name = config.get_table_name(table_name)
    return TableGateway(config, full_table_name)
