"""
Redrive API Lambda Function

API Gateway (REST, proxy integration) handler exposing:

    GET  /dlq/messages        List DLQ messages with their receipt handles
    POST /redrive             Bulk redrive: {"maxMessages": n, "redriveAll": bool}
    POST /redrive/selective   Redrive chosen messages: {"messages": [...]}

Messages posted to /redrive/selective are the objects returned by
GET /dlq/messages. Their receipt handles are used as-is, so they must be
redriven before the listing's visibility timeout expires.
"""

import base64
import json
import re
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from message_snapshot import MessageSnapshot
from redrive_config import ConfigurationError, RedriveConfig, configure_logging
from redrive_engine import InvalidRedriveRequest, RedriveEngine, RedriveInterrupted
from sqs_gateway import SqsGateway

logger = configure_logging()

QUEUE_NOT_FOUND_CODES = {"AWS.SimpleQueueService.NonExistentQueue", "QueueDoesNotExist"}
ACCESS_DENIED_CODES = {"AccessDenied", "AccessDeniedException", "UnauthorizedOperation"}
THROTTLING_CODES = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "RequestThrottled",
}

_gateway: Optional[SqsGateway] = None


def get_gateway() -> SqsGateway:
    """Get or create the SQS gateway, reused across warm invocations."""
    global _gateway
    if _gateway is None:
        _gateway = SqsGateway()
    return _gateway


def redact_sensitive_info(message: Optional[str]) -> Optional[str]:
    """Mask AWS account IDs and access key IDs in text returned to clients."""
    if message is None:
        return None
    message = re.sub(r"\d{12}", "************", message)
    return re.sub(r"AKIA[0-9A-Z]{16}", "AKIA****************", message)


def json_response(status_code: int, body: Any) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    body = {
        "errorCode": error_code,
        "message": message,
        "details": redact_sensitive_info(details),
    }
    body.update(extra)
    return json_response(status_code, body)


def client_error_response(e: ClientError, **extra: Any) -> Dict[str, Any]:
    """Map a botocore ClientError onto an HTTP error response."""
    code = e.response.get("Error", {}).get("Code", "")

    if code in QUEUE_NOT_FOUND_CODES:
        return error_response(
            404,
            "QUEUE_NOT_FOUND",
            "Queue not found. Verify the queue name and your AWS permissions.",
            str(e),
            **extra,
        )
    if code in ACCESS_DENIED_CODES:
        return error_response(
            403,
            "ACCESS_DENIED",
            "Access denied. Check your AWS credentials and permissions.",
            str(e),
            **extra,
        )
    if code in THROTTLING_CODES:
        return error_response(
            429,
            "THROTTLED",
            "Request throttled. Please try again later.",
            str(e),
            **extra,
        )
    return error_response(
        502,
        "AWS_ERROR",
        f"AWS service error: {redact_sensitive_info(str(e))}",
        str(e),
        **extra,
    )


def render_result(result) -> Dict[str, Any]:
    rendered = result.to_dict()
    for failure in rendered["failed"]:
        failure["error"] = redact_sensitive_info(failure["error"])
    return rendered


def parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
    raw = event.get("body")
    if not raw:
        return {}
    if event.get("isBase64Encoded"):
        raw = base64.b64decode(raw).decode("utf-8")

    try:
        payload = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError:
        raise InvalidRedriveRequest("Request body must be valid JSON")

    if not isinstance(payload, dict):
        raise InvalidRedriveRequest("Request body must be a JSON object")
    return payload


def optional_int(value: Any, name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidRedriveRequest(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRedriveRequest(f"{name} must be an integer")


def list_dlq_messages(event, config: RedriveConfig, gateway: SqsGateway):
    params = event.get("queryStringParameters") or {}
    max_messages = optional_int(params.get("maxMessages"), "maxMessages")
    if max_messages is None:
        max_messages = 10
    visibility_timeout = optional_int(
        params.get("visibilityTimeout"), "visibilityTimeout"
    )
    if visibility_timeout is None:
        visibility_timeout = config.listing_visibility_timeout

    snapshots = gateway.receive(config.dlq_url, max_messages, visibility_timeout, 0)
    logger.info(f"Listed {len(snapshots)} messages from DLQ")
    return json_response(200, [snapshot.to_dict() for snapshot in snapshots])


def redrive_bulk(event, config: RedriveConfig, gateway: SqsGateway):
    payload = parse_body(event)
    limit = optional_int(payload.get("maxMessages"), "maxMessages")
    redrive_all = payload.get("redriveAll", False)
    if not isinstance(redrive_all, bool):
        raise InvalidRedriveRequest("redriveAll must be a boolean")

    engine = RedriveEngine(gateway, wait_time_seconds=config.receive_wait_seconds)
    result = engine.redrive_bulk(
        config.dlq_url, config.main_queue_url, limit=limit, drain_all=redrive_all
    )
    return json_response(200, render_result(result))


def redrive_selective(event, config: RedriveConfig, gateway: SqsGateway):
    payload = parse_body(event)
    messages = payload.get("messages")

    if not isinstance(messages, list) or not messages:
        raise InvalidRedriveRequest("No messages provided for selective redrive")
    if not all(isinstance(message, dict) for message in messages):
        raise InvalidRedriveRequest("Each message must be a JSON object")
    for message in messages:
        attributes = message.get("messageAttributes")
        if attributes is not None and not isinstance(attributes, dict):
            raise InvalidRedriveRequest(
                f"messageAttributes must be a JSON object for message: "
                f"{message.get('messageId')}"
            )

    snapshots = [MessageSnapshot.from_request(message) for message in messages]

    engine = RedriveEngine(gateway)
    result = engine.redrive_selected(config.dlq_url, config.main_queue_url, snapshots)
    return json_response(200, render_result(result))


ROUTES = {
    ("GET", "/dlq/messages"): list_dlq_messages,
    ("POST", "/redrive"): redrive_bulk,
    ("POST", "/redrive/selective"): redrive_selective,
}


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Route an API Gateway proxy event to the matching redrive operation.
    """
    method = event.get("httpMethod", "")
    path = event.get("resource") or event.get("path") or ""
    route = ROUTES.get((method.upper(), path.rstrip("/") or "/"))

    if route is None:
        logger.warning(f"No route for {method} {path}")
        return error_response(404, "NOT_FOUND", f"No route for {method} {path}")

    logger.info(f"Handling {method} {path}")

    try:
        config = RedriveConfig.from_env()
        return route(event, config, get_gateway())

    except ConfigurationError as e:
        logger.error(str(e))
        return error_response(500, "CONFIGURATION_ERROR", str(e))

    except ValueError as e:
        logger.warning(f"Validation error: {str(e)}")
        return error_response(400, "VALIDATION_ERROR", str(e))

    except RedriveInterrupted as e:
        logger.error(f"Redrive interrupted: {str(e)}", exc_info=True)
        partial = {"result": render_result(e.result)}
        if isinstance(e.__cause__, ClientError):
            return client_error_response(e.__cause__, **partial)
        return error_response(
            502, "AWS_ERROR", "Redrive interrupted", str(e), **partial
        )

    except ClientError as e:
        logger.error(f"AWS SQS error: {str(e)}", exc_info=True)
        return client_error_response(e)

    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return error_response(
            500, "UNEXPECTED_ERROR", "An unexpected error occurred", str(e)
        )
