"""SQLite implementation of the chat persistence backend."""

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, Sequence

import aiosqlite

from ..config import resolve_db_path
from ..models import Attachment, Conversation, Message, Role, UsageEntry, UserSettings


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


class IChatStore(Protocol):
    """Persistent store for conversations, messages, settings and usage."""

    async def init(self) -> None:
        """Open the store and create tables."""
        ...

    async def close(self) -> None:
        """Close the store."""
        ...

    # Conversations
    async def create_conversation(self, user_id: str, title: str, model: str) -> Conversation:
        """Create a conversation record."""
        ...

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        """Conversations of a user, most recently updated first (messages not loaded)."""
        ...

    async def update_conversation_title(self, conversation_id: str, title: str) -> None:
        """Set the conversation title."""
        ...

    async def update_conversation_model(self, conversation_id: str, model: str) -> None:
        """Set the conversation model."""
        ...

    async def touch_conversation(self, conversation_id: str) -> None:
        """Bump updated_at to now."""
        ...

    async def delete_conversation(self, conversation_id: str) -> None:
        """Delete a conversation (cascades to its messages)."""
        ...

    # Messages
    async def list_messages(self, conversation_id: str) -> list[Message]:
        """Messages of a conversation, oldest first."""
        ...

    async def insert_message(
        self,
        conversation_id: str,
        role: Role,
        content: str,
        attachments: Sequence[Attachment] = (),
        message_id: str | None = None,
        created_at: datetime | None = None,
    ) -> str:
        """Insert a message and its attachments. Returns the message id."""
        ...

    async def delete_messages(self, conversation_id: str) -> None:
        """Delete all messages of a conversation."""
        ...

    # Settings
    async def get_user_settings(self, user_id: str) -> UserSettings | None:
        """Get settings for a user."""
        ...

    async def save_user_settings(self, settings: UserSettings) -> None:
        """Insert or update settings for a user."""
        ...

    # Usage
    async def increment_usage(self, user_id: str) -> None:
        """Count one gateway request for a user."""
        ...

    async def get_usage(self, user_id: str) -> UsageEntry | None:
        """Get the request counter of a user."""
        ...

    async def list_usage(self) -> list[UsageEntry]:
        """All request counters, highest first."""
        ...


class Storage:
    """SQLite store backed by aiosqlite."""

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    async def init(self) -> None:
        """Open the database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.execute("PRAGMA foreign_keys = ON")
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    # Conversations
    async def create_conversation(self, user_id: str, title: str, model: str) -> Conversation:
        now = _now()
        conversation = Conversation(
            id=str(uuid.uuid4()),
            title=title,
            model=model,
            created_at=now,
            updated_at=now,
        )
        await self.conn.execute(
            """
            INSERT INTO conversations (id, user_id, title, model, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                conversation.id,
                user_id,
                title,
                model,
                now.isoformat(),
                now.isoformat(),
            ),
        )
        await self.conn.commit()
        return conversation

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        cursor = await self.conn.execute(
            """
            SELECT id, title, model, created_at, updated_at
            FROM conversations
            WHERE user_id = ?
            ORDER BY updated_at DESC
            """,
            (user_id,),
        )
        rows = await cursor.fetchall()

        return [
            Conversation(
                id=row[0],
                title=row[1],
                model=row[2],
                created_at=_parse_ts(row[3]),
                updated_at=_parse_ts(row[4]),
            )
            for row in rows
        ]

    async def update_conversation_title(self, conversation_id: str, title: str) -> None:
        await self.conn.execute(
            "UPDATE conversations SET title = ? WHERE id = ?",
            (title, conversation_id),
        )
        await self.conn.commit()

    async def update_conversation_model(self, conversation_id: str, model: str) -> None:
        await self.conn.execute(
            "UPDATE conversations SET model = ? WHERE id = ?",
            (model, conversation_id),
        )
        await self.conn.commit()

    async def touch_conversation(self, conversation_id: str) -> None:
        # max() keeps updated_at from moving backwards on clock skew.
        await self.conn.execute(
            "UPDATE conversations SET updated_at = max(updated_at, ?) WHERE id = ?",
            (_now().isoformat(), conversation_id),
        )
        await self.conn.commit()

    async def delete_conversation(self, conversation_id: str) -> None:
        await self.conn.execute(
            "DELETE FROM conversations WHERE id = ?",
            (conversation_id,),
        )
        await self.conn.commit()

    # Messages
    async def list_messages(self, conversation_id: str) -> list[Message]:
        cursor = await self.conn.execute(
            """
            SELECT id, role, content, created_at
            FROM messages
            WHERE conversation_id = ?
            ORDER BY created_at ASC, rowid ASC
            """,
            (conversation_id,),
        )
        rows = await cursor.fetchall()

        messages = []
        for row in rows:
            att_cursor = await self.conn.execute(
                """
                SELECT id, name, mime_type, size_bytes, inline_data
                FROM attachments
                WHERE message_id = ?
                ORDER BY position ASC
                """,
                (row[0],),
            )
            att_rows = await att_cursor.fetchall()

            attachments = [
                Attachment(
                    id=att[0],
                    name=att[1],
                    mime_type=att[2],
                    size_bytes=att[3],
                    inline_data=att[4],
                )
                for att in att_rows
            ]

            messages.append(
                Message(
                    id=row[0],
                    role=row[1],
                    content=row[2],
                    created_at=_parse_ts(row[3]),
                    attachments=attachments,
                )
            )

        return messages

    async def insert_message(
        self,
        conversation_id: str,
        role: Role,
        content: str,
        attachments: Sequence[Attachment] = (),
        message_id: str | None = None,
        created_at: datetime | None = None,
    ) -> str:
        msg_id = message_id or str(uuid.uuid4())
        ts = created_at or _now()

        await self.conn.execute(
            """
            INSERT INTO messages (id, conversation_id, role, content, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (msg_id, conversation_id, role, content, ts.isoformat()),
        )

        for position, attachment in enumerate(attachments):
            await self.conn.execute(
                """
                INSERT INTO attachments
                (id, message_id, position, name, mime_type, size_bytes, inline_data)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    attachment.id or str(uuid.uuid4()),
                    msg_id,
                    position,
                    attachment.name,
                    attachment.mime_type,
                    attachment.size_bytes,
                    attachment.inline_data,
                ),
            )

        await self.conn.commit()
        return msg_id

    async def delete_messages(self, conversation_id: str) -> None:
        await self.conn.execute(
            "DELETE FROM messages WHERE conversation_id = ?",
            (conversation_id,),
        )
        await self.conn.commit()

    # Settings
    async def get_user_settings(self, user_id: str) -> UserSettings | None:
        cursor = await self.conn.execute(
            """
            SELECT user_id, custom_instructions, memory_enabled
            FROM user_settings
            WHERE user_id = ?
            """,
            (user_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return UserSettings(
            user_id=row[0],
            custom_instructions=row[1],
            memory_enabled=bool(row[2]),
        )

    async def save_user_settings(self, settings: UserSettings) -> None:
        now = _now().isoformat()
        await self.conn.execute(
            """
            INSERT INTO user_settings
            (user_id, custom_instructions, memory_enabled, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (user_id) DO UPDATE SET
                custom_instructions = excluded.custom_instructions,
                memory_enabled = excluded.memory_enabled,
                updated_at = excluded.updated_at
            """,
            (
                settings.user_id,
                settings.custom_instructions,
                int(settings.memory_enabled),
                now,
                now,
            ),
        )
        await self.conn.commit()

    # Usage
    async def increment_usage(self, user_id: str) -> None:
        await self.conn.execute(
            """
            INSERT INTO api_usage (user_id, requests, updated_at)
            VALUES (?, 1, ?)
            ON CONFLICT (user_id) DO UPDATE SET
                requests = requests + 1,
                updated_at = excluded.updated_at
            """,
            (user_id, _now().isoformat()),
        )
        await self.conn.commit()

    async def get_usage(self, user_id: str) -> UsageEntry | None:
        cursor = await self.conn.execute(
            "SELECT user_id, requests, updated_at FROM api_usage WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return UsageEntry(user_id=row[0], requests=row[1], updated_at=_parse_ts(row[2]))

    async def list_usage(self) -> list[UsageEntry]:
        cursor = await self.conn.execute(
            """
            SELECT user_id, requests, updated_at
            FROM api_usage
            ORDER BY requests DESC
            """
        )
        rows = await cursor.fetchall()

        return [
            UsageEntry(user_id=row[0], requests=row[1], updated_at=_parse_ts(row[2]))
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        tables = [
            "attachments",
            "messages",
            "conversations",
            "user_settings",
            "api_usage",
        ]

        for table in tables:
            await self.conn.execute(f"DELETE FROM {table}")

        await self.conn.commit()
