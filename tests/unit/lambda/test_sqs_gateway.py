"""Tests for the boto3 SQS gateway, run against moto."""

from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

from message_snapshot import MessageSnapshot
from redrive_engine import RedriveEngine
from sqs_gateway import SqsGateway, region_from_queue_url


@pytest.fixture
def sqs_queues(aws_credentials):
    """Create a main queue and DLQ with moto."""
    with mock_aws():
        client = boto3.client("sqs", region_name="us-east-1")
        dlq_url = client.create_queue(QueueName="test-dlq")["QueueUrl"]
        main_url = client.create_queue(QueueName="test-queue")["QueueUrl"]
        yield client, dlq_url, main_url


@pytest.fixture
def sqs_gateway(sqs_queues):
    return SqsGateway(session=boto3.session.Session(region_name="us-east-1"))


def fill_queue(client, queue_url, count):
    for i in range(count):
        client.send_message(
            QueueUrl=queue_url,
            MessageBody=f"message-{i}",
            MessageAttributes={
                "index": {"DataType": "Number", "StringValue": str(i)},
            },
        )


@pytest.mark.parametrize(
    "queue_url,region",
    [
        ("https://sqs.eu-west-2.amazonaws.com/123456789012/orders", "eu-west-2"),
        ("https://ap-southeast-2.queue.amazonaws.com/123456789012/orders", "ap-southeast-2"),
        ("http://localhost:4566/000000000000/orders", None),
    ],
)
def test_region_from_queue_url(queue_url, region):
    assert region_from_queue_url(queue_url) == region


def test_clients_cached_per_region():
    session = MagicMock()
    session.client.side_effect = lambda *args, **kwargs: MagicMock()
    gateway = SqsGateway(session=session, default_region="us-east-1")

    east = gateway.client_for("https://sqs.us-east-1.amazonaws.com/1/a")
    assert gateway.client_for("https://sqs.us-east-1.amazonaws.com/1/b") is east
    west = gateway.client_for("https://sqs.us-west-2.amazonaws.com/1/a")
    assert west is not east
    assert session.client.call_count == 2

    gateway.clear_clients()
    gateway.client_for("https://sqs.us-east-1.amazonaws.com/1/a")
    assert session.client.call_count == 3


@pytest.mark.parametrize("max_count", [0, 11])
def test_receive_rejects_out_of_range_batch(max_count):
    gateway = SqsGateway(session=MagicMock())

    with pytest.raises(ValueError):
        gateway.receive("https://sqs.us-east-1.amazonaws.com/1/a", max_count)


def test_receive_returns_snapshots(sqs_queues, sqs_gateway):
    client, dlq_url, _ = sqs_queues
    fill_queue(client, dlq_url, 3)

    snapshots = sqs_gateway.receive(dlq_url, 10, visibility_timeout=30)

    assert 1 <= len(snapshots) <= 3
    for snapshot in snapshots:
        assert isinstance(snapshot, MessageSnapshot)
        assert snapshot.receipt_handle
        assert snapshot.body.startswith("message-")
        assert snapshot.attributes["index"]["DataType"] == "Number"


def test_receive_empty_queue(sqs_queues, sqs_gateway):
    _, dlq_url, _ = sqs_queues

    assert sqs_gateway.receive(dlq_url, 10) == []


def test_send_and_delete(sqs_queues, sqs_gateway):
    client, _, main_url = sqs_queues

    message_id = sqs_gateway.send(
        main_url, "hello", {"source": {"DataType": "String", "StringValue": "test"}}
    )
    assert message_id

    received = sqs_gateway.receive(main_url, 1)
    assert received[0].message_id == message_id
    assert received[0].attributes["source"]["StringValue"] == "test"

    sqs_gateway.delete(main_url, received[0].receipt_handle)
    assert sqs_gateway.approximate_message_count(main_url) == 0


def test_approximate_message_count(sqs_queues, sqs_gateway):
    client, dlq_url, _ = sqs_queues
    fill_queue(client, dlq_url, 4)

    assert sqs_gateway.approximate_message_count(dlq_url) == 4


def test_bulk_redrive_drains_dlq(sqs_queues, sqs_gateway):
    client, dlq_url, main_url = sqs_queues
    fill_queue(client, dlq_url, 15)

    result = RedriveEngine(sqs_gateway).redrive_bulk(dlq_url, main_url, drain_all=True)

    assert result.processed_count == 15
    assert result.success_count == 15
    assert sqs_gateway.approximate_message_count(main_url) == 15
    assert sqs_gateway.approximate_message_count(dlq_url) == 0


def test_selective_redrive_of_listed_messages(sqs_queues, sqs_gateway):
    client, dlq_url, main_url = sqs_queues
    fill_queue(client, dlq_url, 3)

    listed = sqs_gateway.receive(dlq_url, 10, visibility_timeout=60)
    selected = [MessageSnapshot.from_request(s.to_dict()) for s in listed]

    result = RedriveEngine(sqs_gateway).redrive_selected(dlq_url, main_url, selected)

    assert result.success_count == len(listed)
    assert result.failure_count == 0
    redriven = sqs_gateway.receive(main_url, 10)
    assert {m.body for m in redriven} == {s.body for s in listed}
    assert all(m.attributes["index"]["DataType"] == "Number" for m in redriven)
