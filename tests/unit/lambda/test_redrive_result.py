"""Tests for redrive outcome aggregation."""

from redrive_result import Failure, RedriveResult, Success


def test_record_dispatches_on_outcome():
    result = RedriveResult()

    for outcome in [Success("m1"), Failure("m2", "Send failed"), Success("m3")]:
        result.mark_processed()
        result.record(outcome)

    assert result.processed_count == 3
    assert result.success_count == 2
    assert result.failure_count == 1
    assert result.succeeded == ["m1", "m3"]
    assert result.failed == [Failure("m2", "Send failed")]


def test_to_dict_shape():
    result = RedriveResult()
    result.mark_processed()
    result.record_success("m1")
    result.mark_processed()
    result.record_failure("m2", "Access denied")

    assert result.to_dict() == {
        "processedCount": 2,
        "successCount": 1,
        "failureCount": 1,
        "succeeded": [{"messageId": "m1"}],
        "failed": [{"messageId": "m2", "error": "Access denied"}],
    }


def test_empty_result():
    assert RedriveResult().to_dict() == {
        "processedCount": 0,
        "successCount": 0,
        "failureCount": 0,
        "succeeded": [],
        "failed": [],
    }
