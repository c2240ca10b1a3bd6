"""Configuration management using Pydantic Settings."""

import os

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        # Only load .env file in development (not Lambda/production)
        env_file=".env" if os.getenv("AWS_EXECUTION_ENV") is None else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # AWS Configuration
    aws_region: str = "us-east-2"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None

    @field_validator(
        "aws_access_key_id",
        "aws_secret_access_key",
        "aws_session_token",
        "ledger_private_key",
        "ledger_contract_address",
        "ledger_rpc_url",
        mode="before",
    )
    @classmethod
    def convert_empty_string_to_none(cls, v):
        """Treat empty strings from the environment as unset."""
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    # DynamoDB Configuration
    dynamodb_endpoint_url: str | None = None
    dynamodb_table_api_keys: str = "usage-audit-api-keys"
    dynamodb_table_usage_logs: str = "usage-audit-usage-logs"
    dynamodb_table_usage_counters: str = "usage-audit-usage-counters"

    # Application Configuration
    log_level: str = "INFO"
    service_name: str = "usage-audit"
    api_title: str = "Usage Audit Proxy"
    api_version: str = "1.0.0"

    # Proxy Configuration
    proxy_target_base: str = "https://api.open-meteo.com/v1"
    upstream_timeout_seconds: float = 10.0
    upstream_user_agent: str = "usage-proxy/1.0"
    default_tag: str = "proxy:v1"
    default_owner_id: str = "anonymous"
    recent_logs_limit: int = 10

    # Ledger Configuration
    ledger_rpc_url: str | None = None
    ledger_private_key: str | None = None
    ledger_contract_address: str | None = None
    ledger_receipt_timeout_seconds: float = 120.0

    @property
    def ledger_configured(self) -> bool:
        """Whether every setting needed to submit ledger transactions is present."""
        return bool(
            self.ledger_rpc_url
            and self.ledger_private_key
            and self.ledger_contract_address
        )


# Global settings instance
settings = Settings()
