# zkid/common/protocol.py
"""
Protocol messages and their wire form.

Each message travels as one JSON record per line:
  {"kind":"commit","payload":"<64 hex chars>"}
The payload is the lowercase hex of the fixed 32-byte encoding of a point
(commit) or a scalar (challenge, response).
"""
import re
from dataclasses import dataclass
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from zkid.common.errors import InvalidHexLength, MalformedRecord, UnexpectedKind
from zkid.crypto.group import (
    GroupElement,
    Scalar,
    point_from_bytes,
    point_to_bytes,
    scalar_from_bytes,
    scalar_to_bytes,
)

PAYLOAD_BYTES = 32
_HEX_RE = re.compile(r"[0-9a-fA-F]*")


class Message(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    kind: Literal["commit", "challenge", "response"]
    payload: str


@dataclass(frozen=True)
class Commit:
    kind = "commit"
    point: GroupElement


@dataclass(frozen=True)
class Challenge:
    kind = "challenge"
    scalar: Scalar


@dataclass(frozen=True)
class Response:
    kind = "response"
    scalar: Scalar


ProtocolMessage = Union[Commit, Challenge, Response]


def _payload_bytes(msg: ProtocolMessage) -> bytes:
    if isinstance(msg, Commit):
        return point_to_bytes(msg.point)
    if isinstance(msg, (Challenge, Response)):
        return scalar_to_bytes(msg.scalar)
    raise TypeError(f"not a protocol message: {msg!r}")


def payload_hex(msg: ProtocolMessage) -> str:
    return _payload_bytes(msg).hex()


def encode(msg: ProtocolMessage) -> str:
    """Return the single-line record for `msg` (without the trailing newline)."""
    record = Message(kind=msg.kind, payload=payload_hex(msg))
    return record.model_dump_json()


def decode(line: str) -> ProtocolMessage:
    """
    Parse one record.

    Raises:
      - MalformedRecord if the line is not a {kind, payload} record or payload is not hex
      - InvalidHexLength if the payload is not exactly 32 bytes
      - InvalidPoint if a commit payload is not a group element
    """
    try:
        record = Message.model_validate_json(line)
    except ValidationError as e:
        raise MalformedRecord(f"malformed record: {e.error_count()} error(s)") from e

    if not _HEX_RE.fullmatch(record.payload):
        raise MalformedRecord("payload is not hex")
    if len(record.payload) != 2 * PAYLOAD_BYTES:
        raise InvalidHexLength(
            f"payload must be {2 * PAYLOAD_BYTES} hex chars, got {len(record.payload)}"
        )
    raw = bytes.fromhex(record.payload)

    if record.kind == "commit":
        return Commit(point_from_bytes(raw))
    if record.kind == "challenge":
        return Challenge(scalar_from_bytes(raw))
    return Response(scalar_from_bytes(raw))


def expect(msg: ProtocolMessage, cls):
    """Return `msg` if it is a `cls`, else raise UnexpectedKind."""
    if not isinstance(msg, cls):
        raise UnexpectedKind(cls.kind, msg.kind)
    return msg
