"""
Request body variants understood by the fetcher.

The endpoint layer decides which variant a body is; the fetcher only
switches over this closed set.
"""
import inspect
from collections import namedtuple
from typing import Any, AsyncIterator, Optional

CHUNK_SIZE = 1024 * 8  # 8 KB
"""
Number of bytes read at most from a file-like stream source per chunk.
"""

Json = namedtuple("Json", "value")
"""A JSON-serializable value, sent as ``application/json``."""

Bytes = namedtuple("Bytes", "data")
"""A raw byte buffer, sent as-is."""

Text = namedtuple("Text", "text")
"""A string, sent UTF-8 encoded."""

Stream = namedtuple("Stream", "source")
"""
A byte stream sent with chunked transfer encoding. ``source`` is an async
iterable of ``bytes`` or a file-like object with a ``read(size)`` method
(plain or awaitable).
"""

PAYLOAD_TYPES = (Json, Bytes, Text, Stream)


class PayloadError(ValueError):
    """A request body that cannot be encoded."""


def as_payload(value: Any) -> Optional[tuple]:
    """
    Wrap a raw request body into its payload variant.

    ``None`` stays ``None``, existing variants pass through, and anything
    that is neither bytes, text nor a stream is treated as JSON.
    """
    if value is None or isinstance(value, PAYLOAD_TYPES):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Bytes(bytes(value))
    if isinstance(value, str):
        return Text(value)
    if hasattr(value, '__aiter__') or hasattr(value, 'read'):
        return Stream(value)
    return Json(value)


async def iter_stream(source) -> AsyncIterator[bytes]:
    """Yield the chunks of a stream source in the order they are produced."""
    if hasattr(source, '__aiter__'):
        async for chunk in source:
            if isinstance(chunk, str):
                chunk = chunk.encode('utf-8')
            if chunk:
                yield chunk
        return

    while True:
        chunk = source.read(CHUNK_SIZE)
        if inspect.isawaitable(chunk):
            chunk = await chunk
        if not chunk:
            break
        if isinstance(chunk, str):
            chunk = chunk.encode('utf-8')
        yield chunk
