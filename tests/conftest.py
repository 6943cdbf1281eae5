"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from study_chat.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def recording_store(storage):
    """Storage wrapper that records calls and can inject failures."""
    from chat_fakes import RecordingStore

    return RecordingStore(storage)


@pytest.fixture
def event_bus():
    """Create EventBus."""
    from study_chat.event_bus import EventBus

    return EventBus()


@pytest.fixture
def auth():
    """Authenticated identity."""
    from study_chat.models import AuthSession

    return AuthSession(user_id="user1", access_token="token-abc")


@pytest.fixture
def fake_gateway():
    """Scripted gateway that streams canned SSE chunks."""
    from chat_fakes import FakeGateway

    return FakeGateway()


@pytest_asyncio.fixture
async def session(recording_store, fake_gateway, event_bus, auth):
    """Create ChatSession for testing."""
    from study_chat.chat import ChatContext, ChatSession

    cs = ChatSession(
        ChatContext(store=recording_store, gateway=fake_gateway, auth=auth),
        event_bus,
    )
    yield cs
    await cs.close()
