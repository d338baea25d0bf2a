"""
Access Layer Configuration

Settings come from the environment (a local ``.env`` file is loaded on
import) and can be overridden per instance. Transport tuning is read once,
when the gateway builds its botocore client.
"""

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

load_dotenv()

ENVIRONMENTS = ('dev', 'test', 'staging', 'prod')


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() in ("1", "true", "yes")


class TableAccessConfig(BaseModel):
    """Connection, schema and behaviour settings for one table store."""

    model_config = ConfigDict(validate_assignment=True)

    # Credentials and endpoint; None falls back to the boto3 credential chain
    aws_access_key_id: Optional[str] = Field(
        default_factory=lambda: os.getenv("AWS_ACCESS_KEY_ID"),
        description="Access key id (AWS_ACCESS_KEY_ID)"
    )
    aws_secret_access_key: Optional[str] = Field(
        default_factory=lambda: os.getenv("AWS_SECRET_ACCESS_KEY"),
        description="Secret access key (AWS_SECRET_ACCESS_KEY)"
    )
    region_name: str = Field(
        default_factory=lambda: os.getenv("AWS_REGION", "us-east-1"),
        description="Region of the table (AWS_REGION)"
    )
    endpoint_url: Optional[str] = Field(
        default_factory=lambda: os.getenv("DYNAMODB_ENDPOINT_URL"),
        description="Endpoint override, e.g. DynamoDB Local (DYNAMODB_ENDPOINT_URL)"
    )

    # Table naming
    table_prefix: str = Field(
        default_factory=lambda: os.getenv("DYNAMODB_TABLE_PREFIX", ""),
        description="Leading segment of every physical table name (DYNAMODB_TABLE_PREFIX)"
    )
    environment: str = Field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "dev"),
        description="Deployment stage; every stage except prod is part of the table name (ENVIRONMENT)"
    )

    # Table schema
    partition_key_attribute: str = Field("PartitionKey", description="Attribute used as the table HASH key")
    row_key_attribute: str = Field("RowKey", description="Attribute used as the table RANGE key")
    etag_attribute: str = Field("ETag", description="Attribute holding the concurrency stamp")
    timestamp_attribute: str = Field("Timestamp", description="Attribute holding the last write time (UTC ISO)")

    # Transport tuning
    optimize_connection: bool = Field(
        True,
        description="Apply max_pool_connections and tcp_keepalive; False keeps botocore defaults"
    )
    max_pool_connections: int = Field(10, description="Size of the HTTP connection pool")
    tcp_keepalive: bool = Field(True, description="Keep pooled sockets alive between requests")
    retries: int = Field(3, description="botocore max_attempts; this layer never retries itself")
    timeout_seconds: float = Field(30.0, description="Connect and read timeout per request")

    # Behaviour
    raise_on_store_error: bool = Field(
        default_factory=lambda: _env_flag("TABLE_ACCESS_RAISE_ON_STORE_ERROR"),
        description="Re-raise StoreUnavailable instead of returning defaults (TABLE_ACCESS_RAISE_ON_STORE_ERROR)"
    )
    enable_debug_logging: bool = Field(
        default_factory=lambda: _env_flag("DYNAMODB_DEBUG_LOGGING"),
        description="Lower the table_access logger to DEBUG (DYNAMODB_DEBUG_LOGGING)"
    )

    @field_validator('region_name')
    @classmethod
    def region_required(cls, v):
        if not v:
            raise ValueError("AWS region name is required")
        return v

    @field_validator('environment')
    @classmethod
    def known_environment(cls, v):
        if v not in ENVIRONMENTS:
            raise ValueError(f"Environment must be one of: {list(ENVIRONMENTS)}")
        return v

    @field_validator('partition_key_attribute', 'row_key_attribute', 'etag_attribute', 'timestamp_attribute')
    @classmethod
    def attribute_name_required(cls, v):
        if not v:
            raise ValueError("Attribute names cannot be empty")
        return v

    @field_validator('max_pool_connections', 'retries')
    @classmethod
    def not_negative(cls, v):
        if v < 0:
            raise ValueError("Connection settings cannot be negative")
        return v

    def get_table_name(self, base_name: str) -> str:
        """
        Physical table name: ``[prefix_][environment_]base_name``.

        The environment segment is left out in prod.
        """
        stage = None if self.environment == "prod" else self.environment
        return "_".join(part for part in (self.table_prefix, stage, base_name) if part)

    @classmethod
    def from_env(cls) -> 'TableAccessConfig':
        """Build a configuration purely from environment variables."""
        return cls()

    @classmethod
    def for_local_development(cls) -> 'TableAccessConfig':
        """Configuration for DynamoDB Local on port 8000 with debug logging."""
        return cls(
            aws_access_key_id="local",
            aws_secret_access_key="local",
            region_name="us-east-1",
            endpoint_url="http://localhost:8000",
            environment="dev",
            enable_debug_logging=True
        )
