"""Streaming data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DeltaEvent:
    """One incremental fragment decoded from the gateway stream."""

    answer_delta: str | None = None
    reasoning_delta: str | None = None
    is_terminal: bool = False
