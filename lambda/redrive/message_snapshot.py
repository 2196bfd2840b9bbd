"""
Message snapshots passed between the queue gateway and the redrive engine.

A snapshot is an immutable view of one SQS message as it was when it was
retrieved, including the receipt handle from that retrieval. The body and
message attributes are never parsed or rewritten.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class MessageSnapshot:
    """
    One message at a point in time.

    Attributes:
        message_id: ID assigned by SQS
        body: Raw message body
        receipt_handle: Handle from the retrieval that produced this snapshot
        attributes: Message attributes in the boto3 MessageAttributeValue shape.
            The snapshot holds its own copy. Treat it as read-only; it is
            excluded from the hash.
    """

    message_id: str
    body: str
    receipt_handle: str
    attributes: Dict[str, Dict[str, Any]] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        # botocore validation requires a plain dict for MessageAttributes
        object.__setattr__(self, "attributes", dict(self.attributes or {}))

    @classmethod
    def from_sqs_message(cls, message: Mapping[str, Any]) -> "MessageSnapshot":
        """Build a snapshot from a boto3 receive_message entry."""
        return cls(
            message_id=message["MessageId"],
            body=message["Body"],
            receipt_handle=message["ReceiptHandle"],
            attributes=dict(message.get("MessageAttributes") or {}),
        )

    @classmethod
    def from_request(cls, payload: Mapping[str, Any]) -> "MessageSnapshot":
        """
        Build a snapshot from the camelCase JSON shape sent by API clients.

        Message attributes go through convert_message_attributes, so entries
        without both a data type and a string value are dropped.
        """
        return cls(
            message_id=payload.get("messageId") or "unknown",
            body=payload.get("body") or "",
            receipt_handle=payload.get("receiptHandle") or "",
            attributes=convert_message_attributes(payload.get("messageAttributes")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Render the snapshot in the camelCase shape accepted by from_request."""
        message_attributes = {}
        for name, value in self.attributes.items():
            rendered = {"dataType": value.get("DataType")}
            if "StringValue" in value:
                rendered["stringValue"] = value["StringValue"]
            message_attributes[name] = rendered

        return {
            "messageId": self.message_id,
            "body": self.body,
            "receiptHandle": self.receipt_handle,
            "messageAttributes": message_attributes,
        }


def convert_message_attributes(
    raw: Optional[Mapping[str, Any]],
) -> Dict[str, Dict[str, str]]:
    """
    Convert generic attribute mappings into boto3 MessageAttributeValue dicts.

    An entry is kept only if it carries both a data type and a string value,
    spelled either as in JSON requests (dataType/stringValue) or as boto3
    returns them (DataType/StringValue). Anything else is dropped silently.

    Args:
        raw: Attribute name to attribute mapping, or None

    Returns:
        Attributes ready to pass as MessageAttributes to send_message
    """
    if not raw or not isinstance(raw, Mapping):
        return {}

    converted = {}
    for name, value in raw.items():
        if not isinstance(value, Mapping):
            continue

        data_type = value.get("dataType", value.get("DataType"))
        string_value = value.get("stringValue", value.get("StringValue"))

        if data_type is not None and string_value is not None:
            converted[name] = {"DataType": data_type, "StringValue": string_value}

    return converted
