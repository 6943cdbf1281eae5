"""Pure parsers over stored message text."""

from .citations import ParsedSources, extract_domain, parse_source_line, parse_sources
from .render import MessageView, render_content, render_message
from .thinking import (
    ANSWER_SEPARATOR,
    THINKING_CLOSE,
    THINKING_OPEN,
    ReasoningSplit,
    compose_content,
    split_reasoning,
)

__all__ = [
    "ANSWER_SEPARATOR",
    "THINKING_CLOSE",
    "THINKING_OPEN",
    "MessageView",
    "ParsedSources",
    "ReasoningSplit",
    "compose_content",
    "extract_domain",
    "parse_source_line",
    "parse_sources",
    "render_content",
    "render_message",
    "split_reasoning",
]
