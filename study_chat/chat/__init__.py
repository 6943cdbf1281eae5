"""Chat module."""

from .session import ChatContext, ChatSession, IChatSession, derive_title

__all__ = ["ChatContext", "ChatSession", "IChatSession", "derive_title"]
