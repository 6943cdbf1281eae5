"""Streaming module."""

from .decoder import DATA_PREFIX, DONE_SENTINEL, SSEDecoder, decode_stream
from .reconstructor import MessageReconstructor

__all__ = [
    "DATA_PREFIX",
    "DONE_SENTINEL",
    "MessageReconstructor",
    "SSEDecoder",
    "decode_stream",
]
