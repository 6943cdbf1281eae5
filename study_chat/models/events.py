"""Event bus data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Topic(str, Enum):
    """EventBus topics."""

    CONVERSATIONS = "conversations"  # list membership or ordering changed
    CONVERSATION = "conversation"  # active conversation state changed
    ERROR = "error"


@dataclass
class StateEvent:
    """A notification published to observers of a ChatSession."""

    id: str
    topic: Topic
    payload: dict  # varies by topic
    conversation_id: str | None
    timestamp: datetime
