"""FrameCodec — ``Content-Length`` framing for JSON-RPC over a byte stream.

Wire format::

    Content-Length: <byte count>\\r\\n
    \\r\\n
    <UTF-8 JSON body>

Frames may arrive split across reads or concatenated in one read; the codec
buffers partial input across :meth:`FrameCodec.feed` calls and yields each
message only once its full body is present.

Recovery policy:

* header block without a valid ``Content-Length``: the whole buffer is
  discarded (no frame boundary can be trusted any more);
* valid header but a body that is not JSON: only that frame is dropped and
  scanning resumes after it.
"""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

HEADER_DELIMITER = b"\r\n\r\n"
_CONTENT_LENGTH = "content-length"


def parse_content_length(header: bytes) -> int | None:
    """Return the first valid ``Content-Length`` value in *header*, or ``None``."""
    text = header.decode("ascii", errors="replace")
    for line in text.split("\r\n"):
        name, sep, value = line.partition(":")
        if not sep or name.strip().lower() != _CONTENT_LENGTH:
            continue
        value = value.strip()
        if value.isascii() and value.isdigit():
            return int(value)
    return None


def encode_frame(message: dict[str, Any]) -> bytes:
    """Serialise *message* into a single framed ``bytes`` object."""
    body = json.dumps(message, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    header = f"Content-Length: {len(body)}\r\n\r\n".encode("ascii")
    return header + body


class FrameCodec:
    """Incremental decoder / encoder for ``Content-Length`` framed JSON.

    Usage::

        codec = FrameCodec()
        for message in codec.feed(chunk):
            ...
        writer.write(codec.encode(response))
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet decoded into a message."""
        return len(self._buffer)

    def reset(self) -> None:
        """Drop any buffered input."""
        self._buffer.clear()

    def encode(self, message: dict[str, Any]) -> bytes:
        return encode_frame(message)

    def feed(self, chunk: bytes) -> list[Any]:
        """Append *chunk* and return every message completed by it, in order."""
        if chunk:
            self._buffer.extend(chunk)

        messages: list[Any] = []
        while True:
            delimiter = self._buffer.find(HEADER_DELIMITER)
            if delimiter == -1:
                break

            length = parse_content_length(bytes(self._buffer[:delimiter]))
            if length is None:
                logger.error(
                    "Discarding %d buffered bytes: frame header has no valid Content-Length",
                    len(self._buffer),
                )
                self._buffer.clear()
                break

            body_start = delimiter + len(HEADER_DELIMITER)
            frame_end = body_start + length
            if len(self._buffer) < frame_end:
                break

            body = bytes(self._buffer[body_start:frame_end])
            del self._buffer[:frame_end]

            try:
                messages.append(json.loads(body.decode("utf-8")))
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                logger.error("Dropping frame of %d bytes with invalid JSON body: %s", length, exc)

        return messages
