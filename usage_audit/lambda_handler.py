"""AWS Lambda handler for the usage audit proxy.

Wraps the FastAPI application with the Mangum adapter so it can run on
AWS Lambda behind API Gateway.
"""

from mangum import Mangum

from usage_audit.main import app

# api_gateway_base_path strips the stage name from paths
handler = Mangum(app, lifespan="off", api_gateway_base_path="/v1")


def lambda_handler(event: dict, context: object) -> dict:
    """
    AWS Lambda function handler.

    Args:
        event: API Gateway event containing request details
        context: Lambda context object with runtime information

    Returns:
        API Gateway response dict with statusCode, headers, and body
    """
    return handler(event, context)
