"""Unit tests for the Wayland wire codec"""

import struct

import pytest

from xwayback.protocol.wire import MessageReader, args_decode, message_encode


class TestMessageEncode:
    def test_get_registry_layout(self):
        """wl_display.get_registry(new_id=2) is 12 bytes"""
        data = message_encode(1, 1, "n", 2)
        assert data == struct.pack("=III", 1, (12 << 16) | 1, 2)

    def test_string_padding(self):
        """'wl_output' + NUL is 10 bytes, padded to 12"""
        data = message_encode(2, 0, "usun", 5, "wl_output", 3, 7)
        assert len(data) == 8 + 4 + (4 + 12) + 4 + 4
        assert data[16:28] == b"wl_output\0\0\0"

    def test_null_string(self):
        assert message_encode(3, 0, "s", None)[8:] == struct.pack("=I", 0)

    def test_argument_count_mismatch(self):
        with pytest.raises(ValueError):
            message_encode(1, 0, "uu", 1)


class TestArgsDecode:
    def test_geometry_event(self):
        body = message_encode(4, 0, "iiiiissi", -10, 5, 600, 340, 2, "Acme", "X1", 0)[8:]
        assert args_decode(body, "iiiiissi") == (-10, 5, 600, 340, 2, "Acme", "X1", 0)

    def test_truncated_body(self):
        with pytest.raises(ValueError):
            args_decode(b"\x01\x00", "u")

    def test_missing_string_terminator(self):
        body = struct.pack("=I", 4) + b"abcd"
        with pytest.raises(ValueError):
            args_decode(body, "s")


class TestMessageReader:
    def test_split_delivery(self):
        data = message_encode(5, 0, "u", 42) + message_encode(1, 1, "u", 5)
        reader = MessageReader()
        reader.bytes_feed(data[:10])
        assert reader.messages_drain() == []
        reader.bytes_feed(data[10:])
        messages = reader.messages_drain()
        assert [(m.object_id, m.opcode) for m in messages] == [(5, 0), (1, 1)]
        assert args_decode(messages[0].body, "u") == (42,)

    def test_invalid_size(self):
        reader = MessageReader()
        reader.bytes_feed(struct.pack("=II", 1, (4 << 16)))
        with pytest.raises(ValueError):
            reader.messages_drain()
