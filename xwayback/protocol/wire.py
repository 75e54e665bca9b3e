"""
Wayland wire format codec.

Only the small message set needed to enumerate outputs is covered. Each
message is a header of two native-endian 32-bit words (object id, then
`size << 16 | opcode`) followed by arguments padded to 32-bit boundaries.

Signature characters:
    i  signed 32-bit integer
    u  unsigned 32-bit integer
    o  object id
    n  new object id
    s  length-prefixed, NUL-terminated string (None encodes as length 0)
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Optional

__all__ = [
    "DISPLAY_ID",
    "HEADER_SIZE",
    "WireMessage",
    "MessageReader",
    "message_encode",
    "args_decode",
]

DISPLAY_ID = 1
HEADER_SIZE = 8
MAX_MESSAGE_SIZE = 4096

_HEADER = struct.Struct("=II")
_INT = struct.Struct("=i")
_UINT = struct.Struct("=I")


@dataclass(frozen=True)
class WireMessage:
    """Undecoded message: target object, opcode and raw argument bytes"""

    object_id: int
    opcode: int
    body: bytes


def padding_get(length: int) -> int:
    return (4 - (length % 4)) % 4


def string_encode(value: Optional[str]) -> bytes:
    if value is None:
        return _UINT.pack(0)
    raw: bytes = value.encode("utf-8") + b"\0"
    return _UINT.pack(len(raw)) + raw + b"\0" * padding_get(len(raw))


def message_encode(object_id: int, opcode: int, signature: str, *args: Any) -> bytes:
    """
    Encode one message

    Args:
        object_id: Target object id
        opcode: Request or event opcode
        signature: Argument signature (see module docstring)
        *args: Argument values, one per signature character

    Returns:
        Encoded message bytes

    Raises:
        ValueError: If the arguments do not match the signature
    """
    if len(signature) != len(args):
        raise ValueError(f"Signature '{signature}' expects {len(signature)} args, got {len(args)}")

    body = bytearray()
    for code, value in zip(signature, args):
        if code == "i":
            body += _INT.pack(value)
        elif code in "uon":
            body += _UINT.pack(value)
        elif code == "s":
            body += string_encode(value)
        else:
            raise ValueError(f"Unsupported signature code '{code}'")

    size: int = HEADER_SIZE + len(body)
    if size > MAX_MESSAGE_SIZE:
        raise ValueError(f"Message of {size} bytes exceeds wire limit")
    return _HEADER.pack(object_id, (size << 16) | opcode) + bytes(body)


def args_decode(body: bytes, signature: str) -> tuple[Any, ...]:
    """
    Decode message arguments

    Args:
        body: Raw argument bytes
        signature: Argument signature

    Returns:
        Tuple of decoded values

    Raises:
        ValueError: If the body is truncated or malformed
    """
    values: list[Any] = []
    offset = 0
    try:
        for code in signature:
            if code == "i":
                values.append(_INT.unpack_from(body, offset)[0])
                offset += 4
            elif code in "uon":
                values.append(_UINT.unpack_from(body, offset)[0])
                offset += 4
            elif code == "s":
                length: int = _UINT.unpack_from(body, offset)[0]
                offset += 4
                if length == 0:
                    values.append(None)
                    continue
                raw = body[offset:offset + length]
                if len(raw) != length or not raw.endswith(b"\0"):
                    raise ValueError("Malformed string argument")
                values.append(raw[:-1].decode("utf-8", errors="replace"))
                offset += length + padding_get(length)
            else:
                raise ValueError(f"Unsupported signature code '{code}'")
    except struct.error as e:
        raise ValueError(f"Truncated message body: {e}") from e
    return tuple(values)


class MessageReader:
    """Reassembles complete messages from a byte stream"""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def bytes_feed(self, data: bytes) -> None:
        self._buffer += data

    def messages_drain(self) -> list[WireMessage]:
        """
        Pop every complete message currently buffered

        Returns:
            Messages in arrival order; a trailing partial message stays buffered

        Raises:
            ValueError: If a header announces an impossible size
        """
        messages: list[WireMessage] = []
        while len(self._buffer) >= HEADER_SIZE:
            object_id, word = _HEADER.unpack_from(self._buffer, 0)
            size: int = word >> 16
            if size < HEADER_SIZE:
                raise ValueError(f"Invalid message size {size}")
            if len(self._buffer) < size:
                break
            body = bytes(self._buffer[HEADER_SIZE:size])
            del self._buffer[:size]
            messages.append(WireMessage(object_id=object_id, opcode=word & 0xFFFF, body=body))
        return messages
