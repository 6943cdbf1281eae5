"""Conversation-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .messages import Message


class ChatState(str, Enum):
    """Lifecycle state of the active conversation."""

    NO_CONVERSATION = "no_conversation"
    CONVERSATION_SELECTED = "conversation_selected"
    SENDING = "sending"
    STREAMING = "streaming"
    FINALIZING = "finalizing"


@dataclass
class Conversation:
    """A conversation owned by one user."""

    id: str
    title: str
    model: str
    created_at: datetime
    updated_at: datetime
    messages: list[Message] = field(default_factory=list)

    def touch(self, timestamp: datetime) -> None:
        """Advance updated_at, never moving it backwards."""
        if timestamp > self.updated_at:
            self.updated_at = timestamp


@dataclass(frozen=True)
class AuthSession:
    """Identity issued by the identity provider."""

    user_id: str
    access_token: str


@dataclass
class UserSettings:
    """Per-user personalisation, forwarded to the gateway as-is."""

    user_id: str
    custom_instructions: str = ""
    memory_enabled: bool = False


@dataclass
class UsageEntry:
    """Request counter for one user."""

    user_id: str
    requests: int
    updated_at: datetime | None = None
