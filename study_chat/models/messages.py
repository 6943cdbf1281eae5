"""Message-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class Attachment:
    """A file attached to a user message.

    ``inline_data`` holds a base64 data URI and is only set for images.
    """

    id: str
    name: str
    mime_type: str
    size_bytes: int
    inline_data: str | None = None

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


@dataclass
class Message:
    """A single message in a conversation."""

    id: str
    role: Role
    content: str
    created_at: datetime
    attachments: list[Attachment] = field(default_factory=list)
    is_streaming: bool = False


@dataclass(frozen=True)
class Citation:
    """A reference link parsed from a trailing sources block."""

    title: str
    url: str
    domain: str
    description: str | None = None
