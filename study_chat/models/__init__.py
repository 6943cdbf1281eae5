"""Core data models for the study chat client."""

from .conversations import AuthSession, ChatState, Conversation, UsageEntry, UserSettings
from .events import StateEvent, Topic
from .messages import Attachment, Citation, Message, Role
from .streaming import DeltaEvent

__all__ = [
    # Messages
    "Role",
    "Message",
    "Attachment",
    "Citation",
    # Conversations
    "ChatState",
    "Conversation",
    "AuthSession",
    "UserSettings",
    "UsageEntry",
    # Streaming
    "DeltaEvent",
    # Events
    "StateEvent",
    "Topic",
]
