"""
DLQ Redrive Lambda Function

This function redrives (reprocesses) messages from the Dead Letter Queue (DLQ)
back to the main processing queue. It can be triggered manually or on a schedule.

Event (all optional):
    - maxMessages: Number of messages to redrive (default: MAX_MESSAGES)
    - redriveAll: Redrive until the DLQ is empty, ignoring maxMessages

See redrive_config for the environment variables.
"""

import json
from typing import Any, Dict

from redrive_config import ConfigurationError, RedriveConfig, configure_logging
from redrive_engine import RedriveEngine, RedriveInterrupted
from sqs_gateway import SqsGateway

logger = configure_logging()


def get_gateway() -> SqsGateway:
    """Get or create the SQS gateway (lazy initialization for testing)."""
    return SqsGateway()


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for redriving messages from DLQ to main queue.

    Args:
        event: Lambda event object (can contain 'maxMessages' and 'redriveAll')
        context: Lambda context object

    Returns:
        Response with number of messages redriven and any errors
    """
    event = event or {}

    try:
        config = RedriveConfig.from_env()
    except ConfigurationError as e:
        logger.error(str(e))
        return {"statusCode": 500, "body": json.dumps({"error": str(e)})}

    try:
        max_messages = int(event.get("maxMessages", config.max_messages))
    except (TypeError, ValueError):
        error_msg = f"maxMessages must be an integer, got {event.get('maxMessages')!r}"
        logger.error(error_msg)
        return {"statusCode": 400, "body": json.dumps({"error": error_msg})}

    redrive_all = event.get("redriveAll", False)
    if not isinstance(redrive_all, bool):
        error_msg = f"redriveAll must be a boolean, got {redrive_all!r}"
        logger.error(error_msg)
        return {"statusCode": 400, "body": json.dumps({"error": error_msg})}

    gateway = get_gateway()
    engine = RedriveEngine(gateway, wait_time_seconds=config.receive_wait_seconds)

    try:
        approx_messages = gateway.approximate_message_count(config.dlq_url)
        logger.info(f"Approximate messages in DLQ: {approx_messages}")

        if approx_messages == 0:
            logger.info("No messages in DLQ to redrive")
            return {
                "statusCode": 200,
                "body": json.dumps(
                    {
                        "message": "No messages in DLQ",
                        "redrivenCount": 0,
                        "failedCount": 0,
                        "processedCount": 0,
                    }
                ),
            }

        result = engine.redrive_bulk(
            config.dlq_url,
            config.main_queue_url,
            limit=max_messages,
            drain_all=redrive_all,
        )

    except RedriveInterrupted as e:
        logger.error(f"Error during DLQ redrive: {str(e)}", exc_info=True)
        return {
            "statusCode": 500,
            "body": json.dumps(
                {
                    "error": str(e),
                    "redrivenCount": e.result.success_count,
                    "failedCount": e.result.failure_count,
                    "processedCount": e.result.processed_count,
                }
            ),
        }
    except Exception as e:
        error_msg = f"Error during DLQ redrive: {str(e)}"
        logger.error(error_msg, exc_info=True)
        return {"statusCode": 500, "body": json.dumps({"error": error_msg})}

    body = {
        "message": "DLQ redrive completed",
        "redrivenCount": result.success_count,
        "failedCount": result.failure_count,
        "processedCount": result.processed_count,
    }

    if result.failed:
        # Limit error list to avoid response size issues
        body["errors"] = [
            f"Failed to redrive message {failure.message_id}: {failure.error}"
            for failure in result.failed[:10]
        ]

    logger.info(f"DLQ redrive completed: {json.dumps(body)}")

    return {"statusCode": 200, "body": json.dumps(body)}
