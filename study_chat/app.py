"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

from dotenv import load_dotenv

from .chat import ChatContext, ChatSession
from .config import PROJECT_ROOT, resolve_db_path
from .event_bus import EventBus
from .gateway import ChatGateway, IChatGateway
from .logging_config import get_logger, setup_logging
from .models import AuthSession
from .storage import IChatStore, Storage

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    def session(self, auth: AuthSession | None) -> ChatSession:
        """Create a chat session for an identity."""
        ...


class Application:
    """Wires the store and the gateway client together."""

    def __init__(
        self,
        db_path: str | None = None,
        gateway_url: str | None = None,
        configure_logging: bool = False,
    ):
        self._db_path_arg = db_path
        self._gateway_url = gateway_url
        self._configure_logging = configure_logging

        # Components (will be initialized in start())
        self._storage: IChatStore | None = None
        self._gateway: IChatGateway | None = None
        self._sessions: list[ChatSession] = []

    async def start(self) -> None:
        """Initialize components in dependency order."""
        load_dotenv(PROJECT_ROOT / ".env")
        if self._configure_logging:
            setup_logging()

        logger.info("Starting application")

        # 1. Storage (no dependencies)
        env_db_path = os.getenv("DATABASE_URL") if self._db_path_arg is None else self._db_path_arg
        self._storage = Storage(resolve_db_path(env_db_path))
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Gateway client (configuration only)
        self._gateway = ChatGateway(self._gateway_url)
        logger.info("Gateway client initialized", extra={"context": {"url": self._gateway.url}})

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        for session in self._sessions:
            await session.close()
        self._sessions.clear()

        if self._gateway:
            await self._gateway.close()
            self._gateway = None
        if self._storage:
            await self._storage.close()
            self._storage = None
            logger.info("Storage closed")

    def session(self, auth: AuthSession | None) -> ChatSession:
        """Create a ChatSession with its own event bus."""
        context = ChatContext(store=self.storage, gateway=self.gateway, auth=auth)
        session = ChatSession(context, EventBus())
        self._sessions.append(session)
        return session

    @property
    def storage(self) -> IChatStore:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def gateway(self) -> IChatGateway:
        """Get gateway client instance."""
        if not self._gateway:
            raise RuntimeError("Application not started")
        return self._gateway
