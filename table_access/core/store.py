"""
Table Store Collaborator

TableStore is the contract the access layer consumes from the remote store:
segmented fetches, point lookups, single-row writes and deletes.
DynamoTableStore implements it on a DynamoDB table whose HASH key is the
partition key attribute and whose RANGE key is the row key attribute.

Store faults surface as StoreUnavailable. Rejected conditional writes are not
faults: they come back as TableResult outcomes with 404/409/412 status codes.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from boto3.dynamodb.conditions import Attr, Key

from ..config import TableAccessConfig
from ..exceptions import ConflictError
from ..models import ANY_ETAG, QueryDescriptor, Row, Segment, TableResult, WriteMode
from ..utils import (
    build_key,
    build_projection_expression,
    format_timestamp,
    new_etag,
    parse_timestamp,
    to_dynamodb_value,
    utc_now,
)
from .table_gateway import TableGateway

logger = logging.getLogger(__name__)


class TableStore(Protocol):
    """Remote store capabilities used by the paginator and the client."""

    def fetch_segment(self, query: QueryDescriptor, continuation_token: Optional[Dict[str, Any]]) -> Segment:
        ...

    def get_by_key(self, partition_key: str, row_key: str, select_columns: Optional[Sequence[str]] = None) -> Optional[Row]:
        ...

    def put_row(self, row: Row, mode: WriteMode) -> TableResult:
        ...

    def delete_row(self, partition_key: str, row_key: str, etag: Optional[str] = ANY_ETAG) -> TableResult:
        ...


class DynamoTableStore:
    """
    TableStore backed by a DynamoDB table.

    Item layout:
        {PartitionKey, RowKey, ETag, Timestamp, <property>...}
    Attribute names for the four system attributes come from the configuration.
    """

    def __init__(self, gateway: TableGateway):
        self.gateway = gateway
        self.config: TableAccessConfig = gateway.config

    @property
    def table_name(self) -> str:
        return self.gateway.table_name

    @property
    def system_attributes(self) -> Tuple[str, str, str, str]:
        return (
            self.config.partition_key_attribute,
            self.config.row_key_attribute,
            self.config.etag_attribute,
            self.config.timestamp_attribute,
        )

    # =========================================================================
    # Item <-> Row conversion
    # =========================================================================

    def item_to_row(self, item: Dict[str, Any]) -> Row:
        """Lift the system attributes of an item into Row metadata."""
        pk_attr, rk_attr, etag_attr, ts_attr = self.system_attributes
        properties = {k: v for k, v in item.items() if k not in (pk_attr, rk_attr, etag_attr, ts_attr)}
        return Row(
            partition_key=str(item[pk_attr]),
            row_key=str(item[rk_attr]),
            properties=properties,
            etag=item.get(etag_attr),
            timestamp=parse_timestamp(item.get(ts_attr)),
        )

    def row_to_item(self, row: Row, etag: str, timestamp: str) -> Dict[str, Any]:
        """Build the full item for a put; system attributes win over same-named properties."""
        pk_attr, rk_attr, etag_attr, ts_attr = self.system_attributes
        item = to_dynamodb_value(dict(row.properties))
        item[pk_attr] = row.partition_key
        item[rk_attr] = row.row_key
        item[etag_attr] = etag
        item[ts_attr] = timestamp
        return item

    def _key(self, partition_key: str, row_key: str) -> Dict[str, str]:
        return build_key(self.config.partition_key_attribute, self.config.row_key_attribute, partition_key, row_key)

    def _projection(self, select_columns: Optional[Sequence[str]]) -> Tuple[Optional[str], Optional[Dict[str, str]]]:
        # Rows are identified by their key, so projections always carry it
        if not select_columns:
            return None, None
        pk_attr, rk_attr, etag_attr, ts_attr = self.system_attributes
        return build_projection_expression([pk_attr, rk_attr, etag_attr, ts_attr, *select_columns])

    # =========================================================================
    # Reads
    # =========================================================================

    def fetch_segment(self, query: QueryDescriptor, continuation_token: Optional[Dict[str, Any]]) -> Segment:
        """
        Fetch one segment for ``query`` starting at ``continuation_token``.

        DynamoDB Operation: Query on the partition when ``query.partition_key``
        is set, Scan otherwise. ``Limit`` is the remaining take-count; DynamoDB
        applies it before the FilterExpression, so a segment can be short (or
        empty) while still carrying a continuation token.
        """
        request: Dict[str, Any] = {}
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}

        proj_expr, proj_names = self._projection(query.select_columns)
        if proj_expr:
            request['ProjectionExpression'] = proj_expr
            names.update(proj_names)

        if query.filter is not None:
            request['FilterExpression'] = query.filter
            if query.expression_attribute_names:
                names.update(query.expression_attribute_names)
            if query.expression_attribute_values:
                values.update(query.expression_attribute_values)

        if names:
            request['ExpressionAttributeNames'] = names
        if values:
            request['ExpressionAttributeValues'] = values
        if query.take_count is not None:
            request['Limit'] = query.take_count
        if continuation_token:
            request['ExclusiveStartKey'] = continuation_token

        if query.partition_key is not None:
            request['KeyConditionExpression'] = Key(self.config.partition_key_attribute).eq(query.partition_key)
            response = self.gateway.query(**request)
        else:
            response = self.gateway.scan(**request)

        rows = [self.item_to_row(item) for item in response.get('Items', [])]
        return Segment(rows=rows, continuation_token=response.get('LastEvaluatedKey'))

    def get_by_key(self, partition_key: str, row_key: str, select_columns: Optional[Sequence[str]] = None) -> Optional[Row]:
        """
        Point lookup by partition key and row key.

        DynamoDB Operation: GetItem with optional projection
        """
        get_kwargs: Dict[str, Any] = {}
        proj_expr, proj_names = self._projection(select_columns)
        if proj_expr:
            get_kwargs['ProjectionExpression'] = proj_expr
            get_kwargs['ExpressionAttributeNames'] = proj_names

        item = self.gateway.get_item(self._key(partition_key, row_key), **get_kwargs)
        if item is None:
            return None
        return self.item_to_row(item)

    # =========================================================================
    # Writes
    # =========================================================================

    def _exists_condition(self, etag: Optional[str]):
        condition = Attr(self.config.partition_key_attribute).exists()
        if etag and etag != ANY_ETAG:
            condition = condition & Attr(self.config.etag_attribute).eq(etag)
        return condition

    @staticmethod
    def _rejected_status(mode: WriteMode, etag: Optional[str]) -> int:
        if mode is WriteMode.INSERT:
            return 409
        if etag and etag != ANY_ETAG:
            return 412
        return 404

    def put_row(self, row: Row, mode: WriteMode) -> TableResult:
        """
        Write one row with the given mode.

        DynamoDB Operation:
        - INSERT: PutItem, condition attribute_not_exists(partition key)
        - REPLACE: PutItem, condition exists (+ etag match)
        - INSERT_OR_REPLACE: unconditional PutItem
        - MERGE: UpdateItem SET, condition exists (+ etag match)
        - INSERT_OR_MERGE: unconditional UpdateItem SET

        Returns:
            TableResult with 201 (insert) or 204 on success, 404/409/412 when
            the condition was rejected

        Raises:
            StoreUnavailable: DynamoDB faulted
        """
        etag = new_etag()
        timestamp = format_timestamp(utc_now())
        resource_id = f"{row.partition_key}/{row.row_key}"

        try:
            if mode in (WriteMode.INSERT, WriteMode.REPLACE, WriteMode.INSERT_OR_REPLACE):
                condition = None
                if mode is WriteMode.INSERT:
                    condition = Attr(self.config.partition_key_attribute).not_exists()
                elif mode is WriteMode.REPLACE:
                    condition = self._exists_condition(row.etag)
                item = self.row_to_item(row, etag, timestamp)
                self.gateway.put_item(item, condition_expression=condition, resource_id=resource_id)
            else:
                condition = self._exists_condition(row.etag) if mode is WriteMode.MERGE else None
                self._merge(row, etag, timestamp, condition)
        except ConflictError as e:
            status = self._rejected_status(mode, row.etag)
            logger.info(f"{mode.value} of {resource_id} in {self.table_name} rejected with {status}: {e.message}")
            return TableResult(status_code=status, row=row, etag=row.etag)

        written = row.model_copy(update={'etag': etag, 'timestamp': parse_timestamp(timestamp)})
        logger.info(f"{mode.value} of {resource_id} in {self.table_name} succeeded")
        return TableResult(status_code=201 if mode is WriteMode.INSERT else 204, row=written, etag=etag)

    def _merge(self, row: Row, etag: str, timestamp: str, condition) -> None:
        pk_attr, rk_attr, etag_attr, ts_attr = self.system_attributes
        updates = {k: v for k, v in row.properties.items() if k not in (pk_attr, rk_attr, etag_attr, ts_attr)}
        updates[etag_attr] = etag
        updates[ts_attr] = timestamp

        update_parts: List[str] = []
        expression_names: Dict[str, str] = {}
        expression_values: Dict[str, Any] = {}
        for i, (name, value) in enumerate(updates.items()):
            update_parts.append(f"#u{i} = :u{i}")
            expression_names[f"#u{i}"] = name
            expression_values[f":u{i}"] = to_dynamodb_value(value)

        self.gateway.update_item(
            key=self._key(row.partition_key, row.row_key),
            update_expression="SET " + ", ".join(update_parts),
            expression_attribute_values=expression_values,
            expression_attribute_names=expression_names,
            condition_expression=condition
        )

    def delete_row(self, partition_key: str, row_key: str, etag: Optional[str] = ANY_ETAG) -> TableResult:
        """
        Delete one row. An etag of ``"*"`` (or None) deletes whatever version exists.

        Returns:
            TableResult with 204 on success, 404 when the row is missing,
            412 on an etag mismatch
        """
        try:
            self.gateway.delete_item(
                key=self._key(partition_key, row_key),
                condition_expression=self._exists_condition(etag)
            )
        except ConflictError:
            status = 412 if etag and etag != ANY_ETAG else 404
            logger.info(f"Delete of {partition_key}/{row_key} in {self.table_name} rejected with {status}")
            return TableResult(status_code=status)

        logger.info(f"Deleted {partition_key}/{row_key} from {self.table_name}")
        return TableResult(status_code=204)
