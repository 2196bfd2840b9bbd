"""
boto3-backed SQS gateway used by the redrive engine and the API handler.

Clients are created lazily per region and cached on the gateway instance,
so handlers can build one gateway per cold start and tests can inject their
own session.
"""

import logging
import re
import threading
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import boto3
from botocore.config import Config

from message_snapshot import MessageSnapshot

logger = logging.getLogger(__name__)

boto_config = Config(retries={"max_attempts": 3, "mode": "standard"})

# sqs.<region>.amazonaws.com or the legacy <region>.queue.amazonaws.com
_QUEUE_HOST_REGION = re.compile(
    r"^(?:sqs\.(?P<region>[a-z0-9-]+)|(?P<legacy>[a-z0-9-]+)\.queue)\.amazonaws\.com"
)


def region_from_queue_url(queue_url: str) -> Optional[str]:
    """Return the region encoded in an SQS queue URL, or None if it has none."""
    host = urlparse(queue_url).hostname or ""
    match = _QUEUE_HOST_REGION.match(host)
    if not match:
        return None
    return match.group("region") or match.group("legacy")


class SqsGateway:
    def __init__(
        self,
        session: Optional[boto3.session.Session] = None,
        config: Optional[Config] = None,
        default_region: Optional[str] = None,
    ):
        self._session = session or boto3.session.Session()
        self._config = config or boto_config
        self._default_region = default_region or self._session.region_name
        self._clients: Dict[Optional[str], Any] = {}
        self._lock = threading.Lock()

    def client_for(self, queue_url: str):
        """Get or create the SQS client for the region of queue_url."""
        region = region_from_queue_url(queue_url) or self._default_region
        with self._lock:
            client = self._clients.get(region)
            if client is None:
                logger.debug(f"Creating SQS client for region {region}")
                client = self._session.client(
                    "sqs", region_name=region, config=self._config
                )
                self._clients[region] = client
            return client

    def clear_clients(self) -> None:
        with self._lock:
            self._clients.clear()

    def receive(
        self,
        queue_url: str,
        max_count: int,
        visibility_timeout: Optional[int] = None,
        wait_time_seconds: Optional[int] = None,
    ) -> List[MessageSnapshot]:
        """
        Receive up to max_count messages from a queue.

        Args:
            queue_url: URL of the SQS queue
            max_count: Maximum number of messages to retrieve (1-10)
            visibility_timeout: Optional visibility timeout override in seconds
            wait_time_seconds: Optional long polling wait in seconds

        Returns:
            Snapshots of the received messages, empty if none were visible
        """
        if not 1 <= max_count <= 10:
            raise ValueError(f"max_count must be between 1 and 10, got {max_count}")

        params = {
            "QueueUrl": queue_url,
            "MaxNumberOfMessages": max_count,
            "AttributeNames": ["All"],
            "MessageAttributeNames": ["All"],
        }
        if visibility_timeout is not None:
            params["VisibilityTimeout"] = visibility_timeout
        if wait_time_seconds is not None:
            params["WaitTimeSeconds"] = wait_time_seconds

        response = self.client_for(queue_url).receive_message(**params)
        return [
            MessageSnapshot.from_sqs_message(message)
            for message in response.get("Messages", [])
        ]

    def send(
        self,
        queue_url: str,
        body: str,
        attributes: Optional[Dict[str, Dict[str, Any]]] = None,
        delay_seconds: Optional[int] = None,
    ) -> str:
        """Send a message and return the ID SQS assigned to it."""
        params = {"QueueUrl": queue_url, "MessageBody": body}
        if attributes:
            params["MessageAttributes"] = attributes
        if delay_seconds is not None:
            params["DelaySeconds"] = delay_seconds

        response = self.client_for(queue_url).send_message(**params)
        return response["MessageId"]

    def delete(self, queue_url: str, receipt_handle: str) -> None:
        self.client_for(queue_url).delete_message(
            QueueUrl=queue_url, ReceiptHandle=receipt_handle
        )

    def approximate_message_count(self, queue_url: str) -> int:
        response = self.client_for(queue_url).get_queue_attributes(
            QueueUrl=queue_url, AttributeNames=["ApproximateNumberOfMessages"]
        )
        return int(
            response.get("Attributes", {}).get("ApproximateNumberOfMessages", "0")
        )
