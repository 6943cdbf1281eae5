"""Study chat client core."""

from .app import Application, IApplication
from .attachments import AttachmentEncoder, EncodedBatch, IAttachmentEncoder, InMemoryFile, LocalFile
from .chat import ChatContext, ChatSession, IChatSession, derive_title
from .errors import (
    AuthRequired,
    ChatError,
    ConversationNotFound,
    EncodingFailure,
    ErrorKind,
    MalformedStreamChunk,
    PersistenceReadFailure,
    PersistenceWriteFailure,
    QuotaExceeded,
    RateLimited,
    TransportError,
)
from .event_bus import EventBus, IEventBus
from .gateway import ChatGateway, IChatGateway
from .models import (
    Attachment,
    AuthSession,
    ChatState,
    Citation,
    Conversation,
    DeltaEvent,
    Message,
    StateEvent,
    Topic,
    UsageEntry,
    UserSettings,
)
from .parsing import MessageView, parse_sources, render_message, split_reasoning
from .storage import IChatStore, Storage
from .streaming import MessageReconstructor, SSEDecoder, decode_stream

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Models
    "Attachment",
    "AuthSession",
    "ChatState",
    "Citation",
    "Conversation",
    "DeltaEvent",
    "Message",
    "StateEvent",
    "Topic",
    "UsageEntry",
    "UserSettings",
    # Errors
    "ErrorKind",
    "ChatError",
    "AuthRequired",
    "TransportError",
    "RateLimited",
    "QuotaExceeded",
    "MalformedStreamChunk",
    "PersistenceWriteFailure",
    "PersistenceReadFailure",
    "EncodingFailure",
    "ConversationNotFound",
    # Components
    "IAttachmentEncoder",
    "AttachmentEncoder",
    "EncodedBatch",
    "InMemoryFile",
    "LocalFile",
    "SSEDecoder",
    "decode_stream",
    "MessageReconstructor",
    "MessageView",
    "parse_sources",
    "render_message",
    "split_reasoning",
    "IChatGateway",
    "ChatGateway",
    "IChatStore",
    "Storage",
    "IEventBus",
    "EventBus",
    "IChatSession",
    "ChatSession",
    "ChatContext",
    "derive_title",
]
