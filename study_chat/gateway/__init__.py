"""Gateway module."""

from .client import ChatGateway, IChatGateway, build_chat_request, error_for_status, to_wire_message
from .schemas import ChatCompletionChunk, ChatRequest, ErrorBody, ImagePart, TextPart, WireMessage

__all__ = [
    "ChatGateway",
    "IChatGateway",
    "build_chat_request",
    "error_for_status",
    "to_wire_message",
    "ChatCompletionChunk",
    "ChatRequest",
    "ErrorBody",
    "ImagePart",
    "TextPart",
    "WireMessage",
]
