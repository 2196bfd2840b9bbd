"""
DLQ Redrive Engine

Moves messages from a dead-letter queue back to its main queue, in one of
two modes:

    - Bulk: receive batches from the DLQ until a target count is reached or
      the DLQ returns an empty batch.
    - Selective: redrive an explicit list of snapshots that the caller
      retrieved earlier, using their receipt handles as given. The DLQ is
      never received from in this mode, since receiving again would rotate
      the receipt handles the caller holds.

For every message the engine sends to the main queue first and deletes from
the DLQ only if the send succeeded. Send and delete errors are recorded per
message and never stop the run.

The gateway is any object providing:
    receive(queue_url, max_count, visibility_timeout, wait_time_seconds)
    send(queue_url, body, attributes, delay_seconds)
    delete(queue_url, receipt_handle)
"""

import logging
from typing import Any, Optional, Sequence

from message_snapshot import MessageSnapshot
from redrive_result import Failure, Outcome, RedriveResult, Success

logger = logging.getLogger(__name__)

# SQS returns at most 10 messages per ReceiveMessage call
MAX_BATCH_SIZE = 10


class InvalidRedriveRequest(ValueError):
    """Raised for caller input that cannot be redriven, before any SQS call."""


class RedriveInterrupted(Exception):
    """
    Raised when bulk redrive cannot receive from the DLQ.

    The partial result accumulated before the failing receive is attached so
    callers can still report what was moved.
    """

    def __init__(self, message: str, result: RedriveResult):
        super().__init__(message)
        self.result = result


class RedriveEngine:
    def __init__(self, gateway: Any, wait_time_seconds: int = 0):
        self.gateway = gateway
        self.wait_time_seconds = wait_time_seconds

    def redrive_bulk(
        self,
        dlq_url: str,
        main_queue_url: str,
        limit: Optional[int] = None,
        drain_all: bool = False,
    ) -> RedriveResult:
        """
        Redrive up to `limit` messages, or everything when drain_all is set.

        Args:
            dlq_url: URL of the dead-letter queue
            main_queue_url: URL of the queue to redrive into
            limit: Number of messages to move (values below 1 mean 1)
            drain_all: Keep going until the DLQ returns an empty batch

        Returns:
            RedriveResult for the run

        Raises:
            RedriveInterrupted: If receiving from the DLQ fails
        """
        # None means unbounded
        target = None if drain_all else max(limit or 1, 1)
        result = RedriveResult()

        logger.info(
            f"Starting bulk redrive: dlq={dlq_url}, target={main_queue_url}, "
            f"limit={'all' if target is None else target}"
        )

        while target is None or result.processed_count < target:
            if target is None:
                batch_size = MAX_BATCH_SIZE
            else:
                batch_size = min(MAX_BATCH_SIZE, target - result.processed_count)

            try:
                messages = self.gateway.receive(
                    dlq_url, batch_size, None, self.wait_time_seconds
                )
            except Exception as e:
                logger.error(f"Error receiving from DLQ {dlq_url}: {str(e)}")
                raise RedriveInterrupted(
                    f"Error receiving from DLQ: {str(e)}", result
                ) from e

            if not messages:
                logger.info("No more messages available in DLQ")
                break

            logger.info(f"Received {len(messages)} messages from DLQ")

            for message in messages:
                if target is not None and result.processed_count >= target:
                    break
                self._redrive_one(dlq_url, main_queue_url, message, result)

        self._log_summary(result)
        return result

    def redrive_selected(
        self,
        dlq_url: str,
        main_queue_url: str,
        snapshots: Sequence[MessageSnapshot],
    ) -> RedriveResult:
        """
        Redrive the given snapshots in order using their own receipt handles.

        Raises:
            InvalidRedriveRequest: If snapshots is empty or any snapshot has
                no receipt handle. Nothing is sent or deleted in that case.
        """
        if not snapshots:
            raise InvalidRedriveRequest("No messages provided for selective redrive")

        for snapshot in snapshots:
            if not snapshot.receipt_handle:
                raise InvalidRedriveRequest(
                    f"Receipt handle is required for message: {snapshot.message_id}"
                )

        logger.info(
            f"Starting selective redrive of {len(snapshots)} messages: "
            f"dlq={dlq_url}, target={main_queue_url}"
        )

        result = RedriveResult()
        for snapshot in snapshots:
            self._redrive_one(dlq_url, main_queue_url, snapshot, result)

        self._log_summary(result)
        return result

    def _redrive_one(
        self,
        dlq_url: str,
        main_queue_url: str,
        message: MessageSnapshot,
        result: RedriveResult,
    ) -> None:
        result.mark_processed()
        outcome = self._move(dlq_url, main_queue_url, message)
        result.record(outcome)

        if isinstance(outcome, Success):
            logger.info(
                f"Redriven message {message.message_id} ({result.success_count} so far)"
            )
        else:
            logger.error(
                f"Failed to redrive message {message.message_id}: {outcome.error}"
            )

    def _move(
        self, dlq_url: str, main_queue_url: str, message: MessageSnapshot
    ) -> Outcome:
        try:
            self.gateway.send(main_queue_url, message.body, message.attributes, None)
        except Exception as e:
            # Not deleted: the message reappears in the DLQ once its
            # visibility timeout lapses
            return Failure(message.message_id, str(e))

        try:
            self.gateway.delete(dlq_url, message.receipt_handle)
        except Exception as e:
            logger.warning(
                f"Message {message.message_id} was sent but not deleted from the "
                "DLQ and may be delivered twice"
            )
            return Failure(message.message_id, str(e))

        return Success(message.message_id)

    def _log_summary(self, result: RedriveResult) -> None:
        logger.info(
            f"Redrive completed: processed={result.processed_count}, "
            f"succeeded={result.success_count}, failed={result.failure_count}"
        )
