"""DynamoDB fixtures backed by an in-process moto server."""

import uuid

import aioboto3
import pytest
from moto.server import ThreadedMotoServer

from infrastructure.dynamodb_tables import create_all_tables
from usage_audit.config import settings
from usage_audit.repositories.base import get_dynamodb_config

MOTO_PORT = 5075


@pytest.fixture(scope="session")
def moto_endpoint():
    """Start a moto server once for the whole session."""
    server = ThreadedMotoServer(ip_address="127.0.0.1", port=MOTO_PORT, verbose=False)
    server.start()
    yield f"http://127.0.0.1:{MOTO_PORT}"
    server.stop()


@pytest.fixture
async def dynamodb_tables(moto_endpoint, monkeypatch):
    """
    Point settings at moto and create fresh tables for each test.

    Table names get a random suffix so tests never share data.
    """
    suffix = uuid.uuid4().hex[:8]
    monkeypatch.setattr(settings, "dynamodb_endpoint_url", moto_endpoint)
    monkeypatch.setattr(settings, "aws_region", "us-east-1")
    monkeypatch.setattr(settings, "aws_access_key_id", "testing")
    monkeypatch.setattr(settings, "aws_secret_access_key", "testing")
    monkeypatch.setattr(settings, "aws_session_token", None)
    monkeypatch.setattr(settings, "dynamodb_table_api_keys", f"api-keys-{suffix}")
    monkeypatch.setattr(settings, "dynamodb_table_usage_logs", f"usage-logs-{suffix}")
    monkeypatch.setattr(
        settings, "dynamodb_table_usage_counters", f"usage-counters-{suffix}"
    )

    session = aioboto3.Session()
    async with session.resource("dynamodb", **get_dynamodb_config()) as dynamodb:
        await create_all_tables(dynamodb, settings)
    yield settings
