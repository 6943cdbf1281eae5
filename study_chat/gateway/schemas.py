"""Wire schemas for the chat gateway."""

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ImageUrl(BaseModel):
    """Inline image reference."""

    url: str


class TextPart(BaseModel):
    """Text content part."""

    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    """Image content part carrying a data URI."""

    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


ContentPart = Union[TextPart, ImagePart]


class WireMessage(BaseModel):
    """One conversation turn as sent to the gateway."""

    role: Literal["user", "assistant"]
    content: str | list[ContentPart]


class ChatRequest(BaseModel):
    """Request body for POST <gateway>."""

    model_config = ConfigDict(populate_by_name=True)

    messages: list[WireMessage]
    model: str
    thinking_mode: bool = Field(False, alias="thinkingMode")
    web_search: bool = Field(False, alias="webSearch")
    custom_instructions: str | None = Field(None, alias="customInstructions")
    memory_enabled: bool | None = Field(None, alias="memoryEnabled")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ErrorBody(BaseModel):
    """JSON error body returned with non-2xx responses."""

    error: str | None = None


class ChunkDelta(BaseModel):
    """Incremental fields of one streamed choice."""

    model_config = ConfigDict(extra="ignore")

    content: str | None = None
    reasoning: str | None = None


class ChunkChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    delta: ChunkDelta = Field(default_factory=ChunkDelta)
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    """Payload of one ``data:`` line."""

    model_config = ConfigDict(extra="ignore")

    choices: list[ChunkChoice] = Field(default_factory=list)
