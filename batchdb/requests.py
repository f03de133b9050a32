from dataclasses import dataclass, field
from typing import Dict, List, Union


@dataclass(frozen=True)
class PutRequest:
    """Write a complete record, replacing any record with the same key."""
    item: dict

    def to_dynamo(self, encode):
        return {"PutRequest": {"Item": encode(self.item)}}


@dataclass(frozen=True)
class DeleteRequest:
    """Delete the record with the given key, if it exists."""
    key: dict

    def to_dynamo(self, encode):
        return {"DeleteRequest": {"Key": encode(self.key)}}


WriteRequest = Union[PutRequest, DeleteRequest]


def write_request_from_dynamo(request, decode):
    """Turn a DynamoDB wire-format write request back into a WriteRequest."""
    if "PutRequest" in request:
        return PutRequest(decode(request["PutRequest"]["Item"]))
    if "DeleteRequest" in request:
        return DeleteRequest(decode(request["DeleteRequest"]["Key"]))
    raise ValueError(f"Not a PutRequest or DeleteRequest: {request}")


@dataclass
class BatchWriteResult:
    """Outcome of one batch write round.

    `unprocessed` maps table names to the requests the service did not get to.
    """
    unprocessed: Dict[str, List[WriteRequest]] = field(default_factory=dict)

    @property
    def success(self):
        return not any(self.unprocessed.values())


@dataclass
class BatchGetResult:
    """Outcome of one batch get round.

    `items` maps table names to the records found, `unprocessed_keys` maps table
    names to the keys the service did not get to.
    """
    items: Dict[str, List[dict]] = field(default_factory=dict)
    unprocessed_keys: Dict[str, List[dict]] = field(default_factory=dict)
