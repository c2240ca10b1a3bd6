"""Tests for the Lambda entry point."""

import asyncio
import json

import pytest

from usage_audit.lambda_handler import lambda_handler


def _api_gateway_event(path: str, method: str = "GET") -> dict:
    """Minimal REST API (v1) proxy event with the stage prefix in the path."""
    return {
        "resource": "/{proxy+}",
        "path": path,
        "httpMethod": method,
        "headers": {"Host": "example.execute-api.us-east-1.amazonaws.com"},
        "multiValueHeaders": {
            "Host": ["example.execute-api.us-east-1.amazonaws.com"]
        },
        "queryStringParameters": None,
        "multiValueQueryStringParameters": None,
        "pathParameters": {"proxy": path.lstrip("/")},
        "stageVariables": None,
        "requestContext": {
            "resourcePath": "/{proxy+}",
            "httpMethod": method,
            "path": path,
            "stage": "v1",
            "identity": {"sourceIp": "127.0.0.1"},
        },
        "body": None,
        "isBase64Encoded": False,
    }


@pytest.fixture(autouse=True)
def _event_loop_for_mangum():
    """Mangum calls asyncio.get_event_loop(); give this sync test a current loop
    (pytest-asyncio leaves none set after async tests have run)."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield
    asyncio.set_event_loop(None)
    loop.close()


def test_lambda_handler_serves_status_under_stage_prefix() -> None:
    response = lambda_handler(_api_gateway_event("/v1/status"), {})

    assert response["statusCode"] == 200
    body = json.loads(response["body"])
    assert body["status"] == "ok"
