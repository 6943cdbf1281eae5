"""Folds DeltaEvents into the in-progress assistant message."""

from ..models import DeltaEvent, Message
from ..parsing.thinking import compose_content


class MessageReconstructor:
    """Owns the two text channels of one streaming message.

    The message is mutated in place on every delta and frozen by the terminal
    event (or an explicit ``finalize``); later events are ignored.
    """

    def __init__(self, message: Message):
        self._message = message
        self._reasoning = ""
        self._answer = ""

    @property
    def message(self) -> Message:
        return self._message

    @property
    def reasoning(self) -> str:
        return self._reasoning

    @property
    def answer(self) -> str:
        return self._answer

    @property
    def has_content(self) -> bool:
        return bool(self._reasoning or self._answer)

    @property
    def is_final(self) -> bool:
        return not self._message.is_streaming

    def apply(self, event: DeltaEvent) -> bool:
        """Apply one event. Returns True if the message changed."""
        if self.is_final:
            return False

        if event.is_terminal:
            self.finalize()
            return True

        changed = False
        if event.reasoning_delta:
            self._reasoning += event.reasoning_delta
            changed = True
        if event.answer_delta:
            self._answer += event.answer_delta
            changed = True

        if changed:
            self._message.content = compose_content(
                self._reasoning, self._answer, closed=False
            )
        return changed

    def finalize(self) -> Message:
        """Freeze the message with whatever content has accumulated."""
        if not self.is_final:
            self._message.content = compose_content(self._reasoning, self._answer)
            self._message.is_streaming = False
        return self._message
