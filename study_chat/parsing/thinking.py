"""Reasoning/answer delimiter convention.

Reasoning travels inline with the answer so that a message survives storage
as one flat text field::

    <thinking>{reasoning}</thinking>\n\n{answer}

``compose_content`` and ``split_reasoning`` are exact inverses for any
reasoning that does not itself contain the closing delimiter.
"""

from dataclasses import dataclass
from functools import lru_cache

THINKING_OPEN = "<thinking>"
THINKING_CLOSE = "</thinking>"
ANSWER_SEPARATOR = "\n\n"


@dataclass(frozen=True)
class ReasoningSplit:
    """Result of splitting message content."""

    reasoning: str
    answer: str
    reasoning_complete: bool = True

    @property
    def has_reasoning(self) -> bool:
        return bool(self.reasoning) or not self.reasoning_complete


def compose_content(reasoning: str, answer: str, closed: bool = True) -> str:
    """Build flat message content from the two channels.

    ``closed=False`` leaves the reasoning block open; it is only honoured while
    no answer text exists yet.
    """
    if not reasoning:
        return answer
    if not closed and not answer:
        return f"{THINKING_OPEN}{reasoning}"
    return f"{THINKING_OPEN}{reasoning}{THINKING_CLOSE}{ANSWER_SEPARATOR}{answer}"


@lru_cache(maxsize=512)
def split_reasoning(text: str) -> ReasoningSplit:
    """Split flat content back into reasoning and answer.

    An opening delimiter without its closing partner means reasoning is still
    being generated: everything after it is reasoning and the answer is empty.
    """
    start = text.find(THINKING_OPEN)
    if start == -1:
        return ReasoningSplit(reasoning="", answer=text)

    before = text[:start]
    rest = text[start + len(THINKING_OPEN) :]

    end = rest.find(THINKING_CLOSE)
    if end == -1:
        return ReasoningSplit(reasoning=rest, answer=before, reasoning_complete=False)

    after = rest[end + len(THINKING_CLOSE) :]
    if after.startswith(ANSWER_SEPARATOR):
        after = after[len(ANSWER_SEPARATOR) :]
    else:
        # Tags written by the model itself, no canonical separator.
        after = after.lstrip()

    return ReasoningSplit(reasoning=rest[:end], answer=before + after)
