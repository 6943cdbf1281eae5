"""HTTP client for the streaming chat gateway."""

from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Protocol, Sequence

import httpx
from pydantic import ValidationError

from ..config import resolve_gateway_timeout, resolve_gateway_url
from ..errors import QuotaExceeded, RateLimited, TransportError
from ..logging_config import get_logger
from ..models import Message, UserSettings
from .schemas import ChatRequest, ContentPart, ErrorBody, ImagePart, ImageUrl, TextPart, WireMessage

logger = get_logger(__name__)


class IChatGateway(Protocol):
    """Abstraction for the LLM gateway."""

    def open_stream(
        self, request: ChatRequest, access_token: str
    ) -> AsyncContextManager[AsyncIterator[bytes]]:
        """Issue the request; yields the raw SSE byte stream of a 2xx response."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...


def to_wire_message(message: Message) -> WireMessage:
    """Convert a stored message into the gateway's message shape."""
    if message.role != "user" or not message.attachments:
        return WireMessage(role=message.role, content=message.content)

    parts: list[ContentPart] = []
    if message.content:
        parts.append(TextPart(text=message.content))
    # Non-image attachments are metadata only and never sent.
    for attachment in message.attachments:
        if attachment.is_image and attachment.inline_data:
            parts.append(ImagePart(image_url=ImageUrl(url=attachment.inline_data)))

    if not parts:
        return WireMessage(role=message.role, content=message.content)
    return WireMessage(role=message.role, content=parts)


def build_chat_request(
    messages: Sequence[Message],
    model: str,
    thinking_mode: bool = False,
    web_search: bool = False,
    settings: UserSettings | None = None,
) -> ChatRequest:
    """Build the request body for a conversation history."""
    request = ChatRequest(
        messages=[to_wire_message(m) for m in messages],
        model=model,
        thinking_mode=thinking_mode,
        web_search=web_search,
    )
    if settings is not None:
        request.custom_instructions = settings.custom_instructions or None
        request.memory_enabled = settings.memory_enabled
    return request


def error_for_status(status_code: int, body: bytes) -> TransportError:
    """Map a non-2xx gateway response to a TransportError subtype."""
    message = None
    try:
        message = ErrorBody.model_validate_json(body).error
    except ValidationError:
        pass  # non-JSON error page; use the default message

    if status_code == 429:
        return RateLimited(message)
    if status_code == 402:
        return QuotaExceeded(message)
    return TransportError(message, status_code=status_code)


class ChatGateway:
    """Streams chat completions from the gateway over httpx."""

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._url = resolve_gateway_url(url)
        self._timeout = timeout if timeout is not None else resolve_gateway_timeout()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout, connect=10.0)
        )

    @property
    def url(self) -> str:
        return self._url

    @asynccontextmanager
    async def open_stream(
        self, request: ChatRequest, access_token: str
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "text/event-stream",
        }
        try:
            async with self._client.stream(
                "POST", self._url, json=request.to_wire(), headers=headers
            ) as response:
                if not response.is_success:
                    body = await response.aread()
                    logger.warning(
                        "Gateway returned %s",
                        response.status_code,
                        extra={"context": {"status_code": response.status_code, "model": request.model}},
                    )
                    raise error_for_status(response.status_code, body)

                logger.debug("Streaming response started")
                yield response.aiter_bytes()
        except httpx.HTTPError as e:
            raise TransportError(f"Network error: {e}") from e

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
