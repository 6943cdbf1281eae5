"""Error taxonomy surfaced by the chat core.

Every error that crosses the core boundary is a ``ChatError``; callers switch
on ``error.kind`` rather than on the concrete class.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Discriminator for ChatError."""

    AUTH_REQUIRED = "auth_required"
    TRANSPORT = "transport"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    MALFORMED_STREAM_CHUNK = "malformed_stream_chunk"
    PERSISTENCE_WRITE = "persistence_write"
    PERSISTENCE_READ = "persistence_read"
    ENCODING = "encoding"
    NOT_FOUND = "not_found"


class ChatError(Exception):
    """Base class for all chat core errors."""

    kind: ErrorKind = ErrorKind.TRANSPORT
    default_message = "An error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class AuthRequired(ChatError):
    """No authenticated session for an operation that needs one."""

    kind = ErrorKind.AUTH_REQUIRED
    default_message = "Please sign in to continue."


class TransportError(ChatError):
    """Network failure or non-2xx gateway response."""

    kind = ErrorKind.TRANSPORT
    default_message = "Failed to get AI response"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["status_code"] = self.status_code
        return data


class RateLimited(TransportError):
    """Gateway answered 429. Not retried automatically."""

    kind = ErrorKind.RATE_LIMITED
    default_message = "Rate limit exceeded. Please try again in a moment."

    def __init__(self, message: str | None = None, status_code: int | None = 429):
        super().__init__(message, status_code)


class QuotaExceeded(TransportError):
    """Gateway answered 402."""

    kind = ErrorKind.QUOTA_EXCEEDED
    default_message = "Usage limit reached. Please add credits to continue."

    def __init__(self, message: str | None = None, status_code: int | None = 402):
        super().__init__(message, status_code)


class MalformedStreamChunk(ChatError):
    """A complete SSE payload that is not valid JSON. Skipped, never fatal."""

    kind = ErrorKind.MALFORMED_STREAM_CHUNK
    default_message = "Malformed stream chunk"

    def __init__(self, payload: str, message: str | None = None):
        super().__init__(message)
        self.payload = payload


class PersistenceWriteFailure(ChatError):
    """A best-effort write to the backend failed. Local state is kept."""

    kind = ErrorKind.PERSISTENCE_WRITE
    default_message = "Failed to save changes"

    def __init__(self, operation: str, message: str | None = None):
        super().__init__(message or f"Failed to save changes ({operation})")
        self.operation = operation


class PersistenceReadFailure(ChatError):
    """Loading from the backend failed. Nothing local is changed."""

    kind = ErrorKind.PERSISTENCE_READ
    default_message = "Failed to load data"

    def __init__(self, operation: str, message: str | None = None):
        super().__init__(message or f"Failed to load data ({operation})")
        self.operation = operation


class EncodingFailure(ChatError):
    """A single attachment could not be read."""

    kind = ErrorKind.ENCODING
    default_message = "Failed to read attachment"

    def __init__(self, file_name: str, message: str | None = None):
        super().__init__(message or f"Failed to read attachment: {file_name}")
        self.file_name = file_name


class ConversationNotFound(ChatError):
    """The conversation id is not known to this session."""

    kind = ErrorKind.NOT_FOUND
    default_message = "Conversation not found"

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation not found: {conversation_id}")
        self.conversation_id = conversation_id
