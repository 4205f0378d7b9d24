"""
Notification payload codec.

Message bodies are stored as zlib streams. ``compress`` and ``decompress``
are pure and deterministic: the same input and level always produce the same
bytes, and ``decompress(compress(m)) == m`` for every byte string ``m``.
Faults are raised as typed errors; neither function ever falls back to the
raw input or to an empty buffer.
"""

import zlib
from typing import Optional, Union

from mediahub.core.config import settings
from mediahub.core.exceptions import CompressionError, DecompressionError

MESSAGE_ENCODING = "utf-8"


def encode_message(data: Union[str, bytes]) -> bytes:
    """Turn a message body into the bytes that get compressed."""
    if isinstance(data, str):
        try:
            raw = data.encode(MESSAGE_ENCODING)
        except UnicodeEncodeError as e:
            raise CompressionError(
                "Message is not encodable as UTF-8",
                {"reason": str(e)},
            ) from e
    elif isinstance(data, (bytes, bytearray, memoryview)):
        raw = bytes(data)
    else:
        raise CompressionError(
            "Message must be str or bytes",
            {"type": type(data).__name__},
        )
    return raw


def compress(data: Union[str, bytes], level: Optional[int] = None) -> bytes:
    """
    Compress a message body.

    Args:
        data: Text (encoded as UTF-8) or raw bytes
        level: zlib level, defaults to NOTIFICATION_COMPRESSION_LEVEL

    Returns:
        The zlib stream

    Raises:
        CompressionError: input is not text/bytes, is larger than
            NOTIFICATION_MAX_MESSAGE_BYTES, or zlib rejected it
    """
    if level is None:
        level = settings.NOTIFICATION_COMPRESSION_LEVEL

    raw = encode_message(data)
    if len(raw) > settings.NOTIFICATION_MAX_MESSAGE_BYTES:
        # Would never inflate again under the decompress size guard
        raise CompressionError(
            f"Message is {len(raw)} bytes, above NOTIFICATION_MAX_MESSAGE_BYTES "
            f"({settings.NOTIFICATION_MAX_MESSAGE_BYTES})",
            {
                "size": len(raw),
                "max_size": settings.NOTIFICATION_MAX_MESSAGE_BYTES,
                "setting": "NOTIFICATION_MAX_MESSAGE_BYTES",
            },
        )
    try:
        return zlib.compress(raw, level)
    except (zlib.error, ValueError) as e:
        raise CompressionError("zlib compression failed", {"reason": str(e)}) from e


def decompress(blob: Union[bytes, bytearray, memoryview], max_size: Optional[int] = None) -> bytes:
    """
    Inflate a stored message body.

    Args:
        blob: A zlib stream produced by ``compress``
        max_size: Largest accepted inflated size, defaults to
            NOTIFICATION_MAX_MESSAGE_BYTES

    Raises:
        DecompressionError: the stream is corrupt, truncated, followed by
            garbage, or inflates beyond ``max_size``
    """
    if max_size is None:
        max_size = settings.NOTIFICATION_MAX_MESSAGE_BYTES

    if not isinstance(blob, (bytes, bytearray, memoryview)):
        raise DecompressionError(
            "Stored message is not binary",
            {"type": type(blob).__name__},
        )

    inflater = zlib.decompressobj()
    try:
        # One byte of headroom lets a body of exactly max_size reach eof
        raw = inflater.decompress(bytes(blob), max_size + 1)
    except zlib.error as e:
        raise DecompressionError("Stored message is corrupt", {"reason": str(e)}) from e

    if len(raw) > max_size:
        raise DecompressionError(
            "Stored message exceeds the maximum size",
            {"max_size": max_size},
        )
    if not inflater.eof:
        raise DecompressionError("Stored message is truncated")
    if inflater.unused_data:
        raise DecompressionError(
            "Stored message has trailing bytes",
            {"trailing": len(inflater.unused_data)},
        )
    return raw


def decompress_text(blob: Union[bytes, bytearray, memoryview]) -> str:
    """Inflate a stored message body and decode it as UTF-8."""
    raw = decompress(blob)
    try:
        return raw.decode(MESSAGE_ENCODING)
    except UnicodeDecodeError as e:
        raise DecompressionError(
            "Stored message is not valid UTF-8",
            {"reason": str(e)},
        ) from e
