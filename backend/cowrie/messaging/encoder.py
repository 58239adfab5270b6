"""
MessagePack encoding for websocket frames.

Every frame in either direction is a single MessagePack map.
"""

from typing import Any

import msgpack


class DecodeError(Exception):
    """Raised when an inbound frame cannot be turned into a dict."""


# Limits guard against oversized or deeply nested client payloads.
# Moves are opaque to the server, so they get generous room.
MAX_BUFFER_LEN = 64 * 1024
MAX_STR_LEN = 16 * 1024
MAX_BIN_LEN = 16 * 1024
MAX_ARRAY_LEN = 512
MAX_MAP_LEN = 128
MAX_EXT_LEN = 1024


def encode(data: dict[str, Any]) -> bytes:
    return msgpack.packb(data)


def decode(data: bytes, max_buffer_len: int = MAX_BUFFER_LEN) -> dict[str, Any]:
    """
    Decode one MessagePack frame into a dict.

    Raises DecodeError on malformed data, a non-map top level value, or
    a frame above the size limits.
    """
    if len(data) > max_buffer_len:
        raise DecodeError(f"payload too large: {len(data)} bytes (max {max_buffer_len})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            strict_map_key=True,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected map, got {type(result).__name__}")
    return result
