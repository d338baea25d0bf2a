"""
Core infrastructure components for the remote table store.

- TableGateway: Thin wrapper over boto3 DynamoDB operations
- DynamoTableStore: The store collaborator (segments, lookups, writes)
- Factory functions for creating gateways
"""

from .store import DynamoTableStore, TableStore
from .table_gateway import TableGateway, create_table_gateway, map_dynamodb_error

__all__ = [
    "DynamoTableStore",
    "TableStore",
    "TableGateway",
    "create_table_gateway",
    "map_dynamodb_error",
]
