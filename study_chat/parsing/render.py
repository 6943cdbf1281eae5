"""Display view of a stored message."""

from dataclasses import dataclass
from functools import lru_cache

from ..models import Citation, Message
from .citations import parse_sources
from .thinking import split_reasoning


@dataclass(frozen=True)
class MessageView:
    """What a UI renders for one message."""

    reasoning: str
    reasoning_complete: bool
    answer: str
    citations: tuple[Citation, ...]
    is_streaming: bool


@lru_cache(maxsize=512)
def render_content(content: str, is_streaming: bool = False) -> MessageView:
    split = split_reasoning(content)
    if is_streaming:
        # The sources block is only trusted once the answer is final.
        answer, citations = split.answer, ()
    else:
        parsed = parse_sources(split.answer)
        answer, citations = parsed.display_text, parsed.citations

    return MessageView(
        reasoning=split.reasoning,
        reasoning_complete=split.reasoning_complete,
        answer=answer,
        citations=citations,
        is_streaming=is_streaming,
    )


def render_message(message: Message) -> MessageView:
    return render_content(message.content, message.is_streaming)
