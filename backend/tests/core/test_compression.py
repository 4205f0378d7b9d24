"""
Tests for the notification payload codec.

This test module verifies:
1. Round trip for text and bytes
2. Determinism
3. Typed compression faults (bad input, bad level, oversize input)
4. Typed decompression faults (corrupt, truncated, trailing bytes, bombs)
"""

import zlib

import pytest

from mediahub.core.compression import compress, decompress, decompress_text, encode_message
from mediahub.core.config import settings
from mediahub.core.exceptions import CodecError, CompressionError, DecompressionError


SAMPLE_MESSAGES = [
    "",
    "Hello Alice",
    "Ünïcödé ✓ 日本語 🎬",
    "line one\nline two\r\n\ttabbed",
    "x" * 10_000,
]


class TestRoundTrip:
    """decompress(compress(m)) == m."""

    @pytest.mark.parametrize("message", SAMPLE_MESSAGES)
    def test_text_round_trip(self, message):
        blob = compress(message)
        assert decompress(blob) == message.encode("utf-8")
        assert decompress_text(blob) == message

    def test_bytes_round_trip(self):
        raw = bytes(range(256)) * 16
        assert decompress(compress(raw)) == raw

    def test_bytearray_and_memoryview_accepted(self):
        raw = b"payload"
        assert decompress(compress(bytearray(raw))) == raw
        assert decompress(compress(memoryview(raw))) == raw

    def test_deterministic(self):
        assert compress("same input") == compress("same input")

    def test_output_is_zlib_stream(self):
        assert zlib.decompress(compress("hello")) == b"hello"

    def test_repetitive_text_shrinks(self):
        message = "notification " * 500
        assert len(compress(message)) < len(message)

    def test_level_zero_still_round_trips(self):
        assert decompress(compress("stored", level=0)) == b"stored"


class TestCompressionFaults:
    """compress never falls back to the raw input."""

    @pytest.mark.parametrize("value", [None, 42, 3.14, ["list"], {"a": 1}])
    def test_rejects_non_text_input(self, value):
        with pytest.raises(CompressionError):
            compress(value)

    def test_rejects_unencodable_text(self):
        # Lone surrogates cannot be encoded as UTF-8
        with pytest.raises(CompressionError):
            compress("\ud800")

    def test_rejects_invalid_level(self):
        with pytest.raises(CompressionError):
            compress("hello", level=42)

    def test_rejects_oversize_input(self, monkeypatch):
        monkeypatch.setattr(settings, "NOTIFICATION_MAX_MESSAGE_BYTES", 16)
        with pytest.raises(CompressionError) as exc_info:
            compress("x" * 17)
        assert exc_info.value.details["size"] == 17

    def test_oversize_error_names_the_setting(self, monkeypatch):
        monkeypatch.setattr(settings, "NOTIFICATION_MAX_MESSAGE_BYTES", 16)
        with pytest.raises(CompressionError) as exc_info:
            compress("x" * 17)
        assert "NOTIFICATION_MAX_MESSAGE_BYTES" in exc_info.value.message
        assert exc_info.value.details["setting"] == "NOTIFICATION_MAX_MESSAGE_BYTES"
        assert exc_info.value.details["max_size"] == 16

    def test_encode_message_passes_bytes_through(self):
        assert encode_message(b"\x00\x01") == b"\x00\x01"
        assert encode_message("é") == "é".encode("utf-8")

    def test_codec_errors_share_a_base(self):
        assert issubclass(CompressionError, CodecError)
        assert issubclass(DecompressionError, CodecError)


class TestDecompressionFaults:
    """decompress never returns a default for bad input."""

    def test_corrupt_stream(self):
        with pytest.raises(DecompressionError):
            decompress(b"definitely not zlib")

    def test_empty_buffer(self):
        with pytest.raises(DecompressionError):
            decompress(b"")

    def test_truncated_stream(self):
        blob = compress("hello world " * 100)
        with pytest.raises(DecompressionError):
            decompress(blob[:-6])

    def test_trailing_garbage(self):
        blob = compress("hello")
        with pytest.raises(DecompressionError):
            decompress(blob + b"junk")

    def test_non_binary_blob(self):
        with pytest.raises(DecompressionError):
            decompress("not bytes")

    def test_inflation_bomb_is_rejected(self):
        bomb = zlib.compress(b"\0" * (4 * 1024 * 1024), 9)
        with pytest.raises(DecompressionError) as exc_info:
            decompress(bomb, max_size=1024 * 1024)
        assert exc_info.value.details["max_size"] == 1024 * 1024

    def test_max_size_boundary_is_inclusive(self):
        raw = b"a" * 1000
        assert decompress(zlib.compress(raw), max_size=1000) == raw

    def test_invalid_utf8_body(self):
        with pytest.raises(DecompressionError):
            decompress_text(zlib.compress(b"\xff\xfe\xfd"))
