"""Shared pytest fixtures for the redrive Lambda tests."""

import json
import os
import sys
from unittest.mock import MagicMock

import pytest

# Add lambda/redrive to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../../lambda/redrive"))

from message_snapshot import MessageSnapshot  # noqa: E402

DLQ_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/test-dlq"
MAIN_QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/test-queue"


def make_snapshot(index, attributes=None):
    return MessageSnapshot(
        message_id=f"msg-{index}",
        body=json.dumps({"index": index}),
        receipt_handle=f"receipt-{index}",
        attributes=attributes or {},
    )


@pytest.fixture
def redrive_env(monkeypatch):
    """Set up environment variables for the redrive handlers."""
    monkeypatch.setenv("DLQ_URL", DLQ_URL)
    monkeypatch.setenv("MAIN_QUEUE_URL", MAIN_QUEUE_URL)
    monkeypatch.setenv("MAX_MESSAGES", "10")


@pytest.fixture
def gateway():
    """Mock queue gateway; send/delete succeed unless a test says otherwise."""
    mock_gateway = MagicMock()
    mock_gateway.send.return_value = "sent-msg-id"
    mock_gateway.delete.return_value = None
    mock_gateway.receive.return_value = []
    return mock_gateway


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mocked AWS Credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
