"""ChatSession: conversation lifecycle for one signed-in user.

Two tiers of state are kept apart. The backend is authoritative for reads:
selecting a conversation always reloads its messages. The local working copy
is authoritative for the active session: writes (messages, titles, models,
timestamps) are applied locally first and persisted in the background, and a
failed write is reported without reverting anything.
"""

import asyncio
import uuid
from contextlib import aclosing
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Protocol, Sequence

from ..config import DEFAULT_CONVERSATION_TITLE, DEFAULT_MODEL, TITLE_MAX_LENGTH
from ..errors import (
    AuthRequired,
    ChatError,
    ConversationNotFound,
    PersistenceReadFailure,
    PersistenceWriteFailure,
    TransportError,
)
from ..event_bus import EventBus, IEventBus
from ..gateway import IChatGateway, build_chat_request
from ..gateway.schemas import ChatRequest
from ..logging_config import get_logger
from ..models import (
    Attachment,
    AuthSession,
    ChatState,
    Conversation,
    Message,
    Topic,
    UserSettings,
)
from ..storage import IChatStore
from ..streaming import MessageReconstructor, decode_stream

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def derive_title(text: str, attachments: Sequence[Attachment] = ()) -> str:
    """Title for a conversation, taken from its first user message."""
    source = " ".join(text.split())
    if not source and attachments:
        source = attachments[0].name
    if not source:
        return DEFAULT_CONVERSATION_TITLE
    if len(source) <= TITLE_MAX_LENGTH:
        return source
    return source[:TITLE_MAX_LENGTH].rstrip() + "..."


@dataclass
class ChatContext:
    """Everything a session needs from the outside world."""

    store: IChatStore
    gateway: IChatGateway
    auth: AuthSession | None = None


@dataclass
class _InFlight:
    """The single outstanding gateway request of a conversation."""

    conversation_id: str
    assistant: Message
    phase: ChatState = ChatState.SENDING
    task: asyncio.Task | None = None
    stop_requested: bool = False


class IChatSession(Protocol):
    """Conversation state machine consumed by a UI layer."""

    async def create_conversation(self, model: str | None = None) -> Conversation:
        """Persist a new conversation and select it."""
        ...

    async def select_conversation(self, conversation_id: str) -> Conversation:
        """Select a conversation, reloading its messages from the backend."""
        ...

    async def delete_conversation(self, conversation_id: str) -> None:
        """Delete a conversation and its messages."""
        ...

    async def send_message(
        self,
        text: str,
        attachments: Sequence[Attachment] = (),
        thinking_mode: bool = False,
        web_search: bool = False,
    ) -> Message | None:
        """Send a user message and stream the assistant reply."""
        ...

    def stop_generation(self, conversation_id: str | None = None) -> bool:
        """Abort the in-flight reply, keeping what has arrived."""
        ...


class ChatSession:
    """Owns the conversations of one user and mediates UI and backend."""

    def __init__(self, context: ChatContext, event_bus: IEventBus | None = None):
        self._store = context.store
        self._gateway = context.gateway
        self._auth = context.auth
        self._event_bus = event_bus or EventBus()

        self._conversations: list[Conversation] = []
        self._current: Conversation | None = None
        self._settings: UserSettings | None = None

        self._in_flight: dict[str, _InFlight] = {}
        self._send_lock = asyncio.Lock()
        self._background: set[asyncio.Task] = set()
        self.write_failures: list[PersistenceWriteFailure] = []

    # Accessors
    @property
    def event_bus(self) -> IEventBus:
        return self._event_bus

    @property
    def conversations(self) -> list[Conversation]:
        return list(self._conversations)

    @property
    def current_conversation(self) -> Conversation | None:
        return self._current

    @property
    def settings(self) -> UserSettings | None:
        return self._settings

    @property
    def state(self) -> ChatState:
        if self._current is None:
            return ChatState.NO_CONVERSATION
        return self.state_of(self._current.id)

    @property
    def is_loading(self) -> bool:
        return self._current is not None and self._current.id in self._in_flight

    def state_of(self, conversation_id: str) -> ChatState:
        in_flight = self._in_flight.get(conversation_id)
        return in_flight.phase if in_flight else ChatState.CONVERSATION_SELECTED

    def _require_auth(self) -> AuthSession:
        if self._auth is None:
            raise AuthRequired()
        return self._auth

    def _find(self, conversation_id: str) -> Conversation:
        for conversation in self._conversations:
            if conversation.id == conversation_id:
                return conversation
        raise ConversationNotFound(conversation_id)

    # Conversations
    async def load_conversations(self) -> list[Conversation]:
        """Replace the local list with the backend's, newest first."""
        auth = self._require_auth()
        try:
            loaded = await self._store.list_conversations(auth.user_id)
        except Exception as e:
            logger.error("Failed to load conversations: %s", e, exc_info=True)
            raise PersistenceReadFailure("list_conversations") from e

        # The selected conversation keeps its hydrated working copy.
        current = self._current
        if current is not None:
            loaded = [current if c.id == current.id else c for c in loaded]
            if current not in loaded and current.id not in self._in_flight:
                self._current = None

        self._conversations = loaded
        await self._publish_list()
        return self.conversations

    async def create_conversation(self, model: str | None = None) -> Conversation:
        auth = self._require_auth()
        try:
            conversation = await self._store.create_conversation(
                auth.user_id, DEFAULT_CONVERSATION_TITLE, model or DEFAULT_MODEL
            )
        except Exception as e:
            logger.error("Failed to create conversation: %s", e, exc_info=True)
            raise PersistenceWriteFailure("create_conversation") from e

        self._conversations.insert(0, conversation)
        self._current = conversation
        logger.info("Conversation created", extra={"context": {"conversation_id": conversation.id}})

        await self._publish_list()
        await self._publish_conversation(conversation)
        return conversation

    async def select_conversation(self, conversation_id: str) -> Conversation:
        self._require_auth()
        conversation = self._find(conversation_id)
        try:
            messages = await self._store.list_messages(conversation_id)
        except Exception as e:
            logger.error("Failed to load messages: %s", e, exc_info=True)
            raise PersistenceReadFailure("list_messages") from e

        # An exchange still in flight has not reached the backend yet.
        if conversation_id in self._in_flight:
            stored = {m.id for m in messages}
            messages.extend(m for m in conversation.messages if m.id not in stored)

        conversation.messages = messages
        self._current = conversation
        await self._publish_conversation(conversation)
        return conversation

    async def delete_conversation(self, conversation_id: str) -> None:
        self._require_auth()
        conversation = self._find(conversation_id)

        in_flight = self._in_flight.get(conversation_id)
        if in_flight and in_flight.task:
            self.stop_generation(conversation_id)
            await asyncio.gather(in_flight.task, return_exceptions=True)
        # Pending inserts must not land after the rows are gone.
        await self.drain()

        try:
            # Messages first: they reference the conversation row.
            await self._store.delete_messages(conversation_id)
            await self._store.delete_conversation(conversation_id)
        except Exception as e:
            logger.error("Failed to delete conversation: %s", e, exc_info=True)
            raise PersistenceWriteFailure("delete_conversation") from e

        self._conversations.remove(conversation)
        if self._current is conversation:
            self._current = None
        logger.info("Conversation deleted", extra={"context": {"conversation_id": conversation_id}})
        await self._publish_list()

    async def update_model(self, model: str) -> None:
        """Switch the model of the selected conversation."""
        conversation = self._current
        if conversation is None or conversation.model == model:
            return
        conversation.model = model
        self._spawn_write(
            "update_conversation_model",
            self._store.update_conversation_model(conversation.id, model),
            conversation.id,
        )
        await self._publish_conversation(conversation)

    # Settings
    async def load_settings(self) -> UserSettings:
        auth = self._require_auth()
        try:
            settings = await self._store.get_user_settings(auth.user_id)
        except Exception as e:
            logger.error("Failed to load settings: %s", e, exc_info=True)
            raise PersistenceReadFailure("get_user_settings") from e

        if settings is None:
            settings = UserSettings(user_id=auth.user_id)
            # Inline so a later update cannot be overwritten by the defaults.
            await self._run_write("save_user_settings", self._store.save_user_settings(settings), None)

        self._settings = settings
        return settings

    async def update_settings(
        self,
        custom_instructions: str | None = None,
        memory_enabled: bool | None = None,
    ) -> UserSettings:
        current = self._settings or await self.load_settings()
        updated = UserSettings(
            user_id=current.user_id,
            custom_instructions=(
                custom_instructions if custom_instructions is not None else current.custom_instructions
            ),
            memory_enabled=memory_enabled if memory_enabled is not None else current.memory_enabled,
        )
        try:
            await self._store.save_user_settings(updated)
        except Exception as e:
            logger.error("Failed to save settings: %s", e, exc_info=True)
            raise PersistenceWriteFailure("save_user_settings") from e

        self._settings = updated
        return updated

    # Messaging
    async def send_message(
        self,
        text: str,
        attachments: Sequence[Attachment] = (),
        thinking_mode: bool = False,
        web_search: bool = False,
    ) -> Message | None:
        """Send a user message and stream the reply into a placeholder.

        Returns the finalized assistant message, or None when nothing was sent
        (blank input, a request already in flight) or nothing was received
        before a stop. Raises ChatError on failure.
        """
        if not text.strip() and not attachments:
            return None

        try:
            return await self._send(text, list(attachments), thinking_mode, web_search)
        except ChatError as e:
            await self._event_bus.emit(
                Topic.ERROR,
                {"error": e, **e.to_dict()},
                self._current.id if self._current else None,
            )
            raise

    async def _send(
        self,
        text: str,
        attachments: list[Attachment],
        thinking_mode: bool,
        web_search: bool,
    ) -> Message | None:
        auth = self._require_auth()

        async with self._send_lock:
            if self._current is None:
                await self.create_conversation()
            conversation = self._current

            if conversation.id in self._in_flight:
                logger.warning(
                    "Rejected send while a request is in flight",
                    extra={"context": {"conversation_id": conversation.id}},
                )
                return None

            user_message = Message(
                id=str(uuid.uuid4()),
                role="user",
                content=text,
                created_at=_now(),
                attachments=attachments,
            )
            assistant = Message(
                id=str(uuid.uuid4()),
                role="assistant",
                content="",
                created_at=_now(),
                is_streaming=True,
            )
            in_flight = _InFlight(conversation_id=conversation.id, assistant=assistant)
            self._in_flight[conversation.id] = in_flight

        try:
            is_first = not conversation.messages and conversation.title == DEFAULT_CONVERSATION_TITLE
            conversation.messages.append(user_message)
            conversation.touch(user_message.created_at)
            if is_first:
                conversation.title = derive_title(text, attachments)
                self._spawn_write(
                    "update_conversation_title",
                    self._store.update_conversation_title(conversation.id, conversation.title),
                    conversation.id,
                )
            self._spawn_write(
                "insert_message",
                self._store.insert_message(
                    conversation.id,
                    "user",
                    text,
                    attachments,
                    message_id=user_message.id,
                    created_at=user_message.created_at,
                ),
                conversation.id,
            )

            request = build_chat_request(
                conversation.messages,
                conversation.model,
                thinking_mode=thinking_mode,
                web_search=web_search,
                settings=self._settings,
            )
            conversation.messages.append(assistant)
            await self._publish_conversation(conversation)

            if in_flight.stop_requested:
                self._remove_placeholder(conversation, assistant)
                return None

            in_flight.task = asyncio.create_task(
                self._stream_reply(auth, conversation, in_flight, request)
            )
            return await in_flight.task
        finally:
            self._in_flight.pop(conversation.id, None)
            await self._publish_conversation(conversation)

    async def _stream_reply(
        self,
        auth: AuthSession,
        conversation: Conversation,
        in_flight: _InFlight,
        request: ChatRequest,
    ) -> Message | None:
        reconstructor = MessageReconstructor(in_flight.assistant)
        failure: ChatError | None = None
        cancelled: asyncio.CancelledError | None = None

        try:
            async with self._gateway.open_stream(request, auth.access_token) as chunks:
                self._spawn_write("increment_usage", self._store.increment_usage(auth.user_id), conversation.id)
                async with aclosing(decode_stream(chunks)) as events:
                    async for event in events:
                        if not reconstructor.apply(event):
                            continue
                        if reconstructor.answer and in_flight.phase is ChatState.SENDING:
                            in_flight.phase = ChatState.STREAMING
                        await self._publish_conversation(conversation)
        except asyncio.CancelledError as e:
            if not in_flight.stop_requested:
                cancelled = e
            else:
                logger.info(
                    "Generation stopped by user",
                    extra={"context": {"conversation_id": conversation.id}},
                )
        except ChatError as e:
            failure = e
        except Exception as e:
            logger.error("Unexpected error while streaming: %s", e, exc_info=True)
            failure = TransportError(str(e) or None)

        if failure is not None:
            logger.warning(
                "Reply failed: %s",
                failure.message,
                extra={"context": {"conversation_id": conversation.id, "kind": failure.kind.value}},
            )

        in_flight.phase = ChatState.FINALIZING
        message = reconstructor.finalize()

        if not message.content:
            # Nothing to keep: back to the state before the placeholder.
            self._remove_placeholder(conversation, message)
            message = None
        else:
            conversation.touch(_now())
            self._spawn_write(
                "insert_message",
                self._store.insert_message(
                    conversation.id,
                    "assistant",
                    message.content,
                    message_id=message.id,
                    created_at=message.created_at,
                ),
                conversation.id,
            )
            self._spawn_write(
                "touch_conversation",
                self._store.touch_conversation(conversation.id),
                conversation.id,
            )
            self._move_to_front(conversation)

        if cancelled is not None:
            raise cancelled
        if failure is not None:
            raise failure
        return message

    def stop_generation(self, conversation_id: str | None = None) -> bool:
        """Abort the in-flight request. Returns False if there is none."""
        if conversation_id is None:
            if self._current is None:
                return False
            conversation_id = self._current.id

        in_flight = self._in_flight.get(conversation_id)
        if in_flight is None or in_flight.stop_requested:
            return False

        in_flight.stop_requested = True
        if in_flight.task is not None and not in_flight.task.done():
            in_flight.task.cancel()
        return True

    def _remove_placeholder(self, conversation: Conversation, message: Message) -> None:
        conversation.messages = [m for m in conversation.messages if m.id != message.id]

    def _move_to_front(self, conversation: Conversation) -> None:
        if self._conversations and self._conversations[0] is not conversation:
            if conversation in self._conversations:
                self._conversations.remove(conversation)
                self._conversations.insert(0, conversation)

    # Background writes
    def _spawn_write(self, operation: str, write: Awaitable[None], conversation_id: str | None) -> None:
        task = asyncio.create_task(self._run_write(operation, write, conversation_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _run_write(self, operation: str, write: Awaitable[None], conversation_id: str | None) -> None:
        try:
            await write
        except Exception as e:
            logger.error(
                "Persistence write failed: %s",
                operation,
                exc_info=True,
                extra={"context": {"conversation_id": conversation_id, "operation": operation}},
            )
            failure = PersistenceWriteFailure(operation)
            failure.__cause__ = e
            self.write_failures.append(failure)
            await self._event_bus.emit(Topic.ERROR, {"error": failure, **failure.to_dict()}, conversation_id)

    async def drain(self) -> None:
        """Wait for all background writes to settle."""
        while self._background:
            await asyncio.gather(*list(self._background))

    async def close(self) -> None:
        """Stop in-flight replies and flush pending writes."""
        tasks = []
        for conversation_id, in_flight in list(self._in_flight.items()):
            self.stop_generation(conversation_id)
            if in_flight.task is not None:
                tasks.append(in_flight.task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self.drain()

    # Observers
    async def _publish_conversation(self, conversation: Conversation) -> None:
        await self._event_bus.emit(
            Topic.CONVERSATION,
            {"conversation": conversation, "state": self.state_of(conversation.id)},
            conversation.id,
        )

    async def _publish_list(self) -> None:
        await self._event_bus.emit(
            Topic.CONVERSATIONS,
            {
                "conversation_ids": [c.id for c in self._conversations],
                "current_id": self._current.id if self._current else None,
            },
        )
