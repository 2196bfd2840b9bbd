"""
Outcome aggregation for a single redrive invocation.

Each message moved (or not) by the redrive engine produces either a Success
or a Failure. RedriveResult accumulates them in order and renders the JSON
shape returned to API callers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union


@dataclass(frozen=True)
class Success:
    message_id: str


@dataclass(frozen=True)
class Failure:
    message_id: str
    error: str


Outcome = Union[Success, Failure]


@dataclass
class RedriveResult:
    """
    Counts and per-message outcomes of one redrive run.

    processed_count is bumped by the engine before a message is attempted, so
    it reflects work started even if the run is interrupted mid-batch. Once a
    message's outcome is recorded, processed == success + failure holds.
    """

    processed_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    succeeded: List[str] = field(default_factory=list)
    failed: List[Failure] = field(default_factory=list)

    def mark_processed(self) -> None:
        self.processed_count += 1

    def record_success(self, message_id: str) -> None:
        self.succeeded.append(message_id)
        self.success_count += 1

    def record_failure(self, message_id: str, error_detail: str) -> None:
        self.failed.append(Failure(message_id, error_detail))
        self.failure_count += 1

    def record(self, outcome: Outcome) -> None:
        if isinstance(outcome, Success):
            self.record_success(outcome.message_id)
        else:
            self.record_failure(outcome.message_id, outcome.error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processedCount": self.processed_count,
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "succeeded": [{"messageId": message_id} for message_id in self.succeeded],
            "failed": [
                {"messageId": failure.message_id, "error": failure.error}
                for failure in self.failed
            ],
        }
