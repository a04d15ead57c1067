"""AWS Lambda handler for API Gateway requests.

The FastAPI application is built once per Lambda container, during cold start, and
served through the Mangum ASGI adapter on every invocation.
"""

import logging
import os
from typing import Any

from mangum import Mangum

from main import create_application

logger = logging.getLogger(__name__)

# Build app and adapter during cold start (skip in test mode)
if os.getenv("ENVIRONMENT") != "test":
    mangum_handler = Mangum(create_application(), lifespan="off")
else:
    mangum_handler = None  # type: ignore


def is_api_gateway_event(event: dict[str, Any]) -> bool:
    """Determine if the event is an API Gateway (REST or HTTP API) request.

    Args:
        event: The Lambda event payload

    Returns:
        True if this is an API Gateway request, False otherwise
    """
    request_context = event.get("requestContext")
    return isinstance(request_context, dict) and (
        "http" in request_context or "httpMethod" in event
    )


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Serve an API Gateway request through the FastAPI application.

    Args:
        event: The Lambda event payload
        context: The Lambda context object

    Returns:
        Response dict with statusCode and body
    """
    logger.info(f"Received Lambda invocation, request_id: {context.aws_request_id}")

    if not is_api_gateway_event(event):
        logger.warning("Unsupported event: not an API Gateway request")
        return {"statusCode": 400, "body": "Unsupported event type"}

    try:
        result: dict[str, Any] = mangum_handler(event, context)
        return result
    except Exception as e:
        logger.exception(f"Unhandled error in Lambda handler: {e}")
        return {"statusCode": 500, "body": "Internal server error"}
