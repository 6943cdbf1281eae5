"""Tests for data models, errors and configuration helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from study_chat.config import (
    DEFAULT_MODEL,
    is_known_model,
    resolve_db_path,
    resolve_gateway_timeout,
)
from study_chat.errors import (
    AuthRequired,
    ChatError,
    ConversationNotFound,
    ErrorKind,
    MalformedStreamChunk,
    PersistenceWriteFailure,
    RateLimited,
    TransportError,
)
from study_chat.models import Attachment, Conversation


class TestAttachment:
    """Tests for Attachment model."""

    def test_image_detection(self):
        assert Attachment("a1", "x.png", "image/png", 1).is_image
        assert not Attachment("a2", "x.pdf", "application/pdf", 1).is_image


class TestConversation:
    """Tests for Conversation model."""

    def test_touch_is_monotonic(self):
        """Test that touch never moves updated_at backwards."""
        now = datetime.now(timezone.utc)
        conv = Conversation(id="c1", title="New chat", model=DEFAULT_MODEL, created_at=now, updated_at=now)

        conv.touch(now - timedelta(minutes=5))
        assert conv.updated_at == now

        later = now + timedelta(seconds=1)
        conv.touch(later)
        assert conv.updated_at == later


class TestErrors:
    """Tests for the error taxonomy."""

    def test_all_errors_are_chat_errors(self):
        for error in (
            AuthRequired(),
            TransportError(),
            RateLimited(),
            MalformedStreamChunk("{bad"),
            PersistenceWriteFailure("insert_message"),
            ConversationNotFound("c1"),
        ):
            assert isinstance(error, ChatError)

    def test_rate_limited_is_transport_error(self):
        error = RateLimited()
        assert isinstance(error, TransportError)
        assert error.kind == ErrorKind.RATE_LIMITED
        assert error.status_code == 429

    def test_persistence_failure_names_operation(self):
        error = PersistenceWriteFailure("update_conversation_title")
        assert error.to_dict() == {
            "kind": "persistence_write",
            "message": "Failed to save changes (update_conversation_title)",
        }

    def test_auth_required_default_message(self):
        assert str(AuthRequired()) == AuthRequired.default_message


class TestConfig:
    """Tests for configuration helpers."""

    def test_memory_db_path(self):
        assert resolve_db_path(":memory:") == ":memory:"

    def test_relative_db_path_is_project_relative(self):
        from study_chat.config import PROJECT_ROOT

        assert resolve_db_path("03_data/test.db") == PROJECT_ROOT / "03_data" / "test.db"

    def test_gateway_timeout(self, monkeypatch):
        monkeypatch.delenv("CHAT_GATEWAY_TIMEOUT", raising=False)
        assert resolve_gateway_timeout() == 60.0
        assert resolve_gateway_timeout("12.5") == 12.5

    def test_known_models(self):
        assert is_known_model(DEFAULT_MODEL)
        assert not is_known_model("unknown/model")
