"""
Query Descriptor and Segment Models

QueryDescriptor captures caller intent for one logical retrieval and stays
immutable once a retrieval begins. Segment is one bounded batch of rows
returned by a single remote fetch, plus the continuation token for the next.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .row import Row


class QueryDescriptor(BaseModel):
    """
    Caller intent for a segmented retrieval.

    Attributes:
        filter: Store-side filter. Either a boto3 condition
            (``Attr('Status').eq('active')``) or a raw FilterExpression string
            used together with ``expression_attribute_values``/``names``.
        select_columns: Property names to project; None returns every property.
        take_count: Maximum number of rows across all segments; None is unbounded.
        partition_key: Restrict the retrieval to one partition (key-condition
            query instead of a table scan).

    Example:
        query = QueryDescriptor(
            partition_key="customers",
            filter=Attr("Country").eq("NL"),
            select_columns=("Name", "Country"),
            take_count=100,
        )
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    filter: Optional[Any] = Field(None, description="boto3 condition or raw FilterExpression")
    expression_attribute_values: Optional[Dict[str, Any]] = Field(
        None, description="Values for a raw FilterExpression string"
    )
    expression_attribute_names: Optional[Dict[str, str]] = Field(
        None, description="Names for a raw FilterExpression string"
    )
    select_columns: Optional[Tuple[str, ...]] = Field(None, description="Projected property names")
    take_count: Optional[int] = Field(None, ge=0, description="Maximum rows to retrieve")
    partition_key: Optional[str] = Field(None, description="Restrict to a single partition")

    @field_validator('select_columns', mode='before')
    @classmethod
    def normalize_select_columns(cls, v):
        if v is None:
            return v
        if isinstance(v, str):
            return (v,)
        return tuple(v)

    def with_take_count(self, take_count: Optional[int]) -> 'QueryDescriptor':
        """Working copy with a different take-count; the original is untouched."""
        return self.model_copy(update={'take_count': take_count})

    def with_select_columns(self, select_columns: Optional[Tuple[str, ...]]) -> 'QueryDescriptor':
        """Working copy with a different projection."""
        return self.model_copy(update={'select_columns': select_columns})


class Segment(BaseModel):
    """One batch of rows from a single fetch. A None token means no more data."""

    rows: List[Row] = Field(default_factory=list)
    continuation_token: Optional[Dict[str, Any]] = Field(None, description="Opaque cursor for the next fetch")

    @property
    def count(self) -> int:
        return len(self.rows)

    @property
    def has_more(self) -> bool:
        return self.continuation_token is not None
