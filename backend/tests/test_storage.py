"""
Tests for the conversation store (SQLAlchemy over in-memory SQLite).
"""

import base64
import json
from datetime import timedelta

import pytest
from sqlalchemy import text

from chatbroker.core.errors import NotFoundError, PersistenceError
from chatbroker.models import ImageMetadata
from chatbroker.storage import Database, DEFAULT_SETTINGS, Stores
from chatbroker.storage.api_key_store import ApiKeyStore, mask_key
from chatbroker.storage.database import utcnow
from chatbroker.storage.orm import ApiKeyModel, SessionModel
from chatbroker.storage.session_store import touch_session


class TestSessionStore:
    """Tests for session persistence."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, stores):
        created = await stores.sessions.create("Explain recursion", "gpt-4")
        assert created.message_count == 0

        loaded = await stores.sessions.get(created.id)
        assert loaded.title == "Explain recursion"
        assert loaded.model_used == "gpt-4"
        assert loaded.message_count == 0
        assert loaded.last_message_at is None

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, stores):
        assert await stores.sessions.get("does-not-exist") is None

    @pytest.mark.asyncio
    async def test_list_with_stats(self, stores):
        first = await stores.sessions.create("first")
        second = await stores.sessions.create("second")
        await stores.messages.create(first.id, "hello", "user")
        await stores.messages.create(first.id, "hi", "assistant", "gpt-4", token_count=5)

        sessions = await stores.sessions.list_with_stats()
        # first was touched by its messages, so it is the most recently updated
        assert [s.id for s in sessions] == [first.id, second.id]
        assert sessions[0].message_count == 2
        assert sessions[0].last_message_at is not None
        assert sessions[1].message_count == 0

        assert len(await stores.sessions.list_with_stats(limit=1)) == 1
        assert await stores.sessions.count() == 2

    @pytest.mark.asyncio
    async def test_update_advances_updated_at(self, stores):
        session = await stores.sessions.create()
        updated = await stores.sessions.update(session.id, title="Renamed")
        assert updated.title == "Renamed"
        assert updated.updated_at >= session.updated_at

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, stores):
        session = await stores.sessions.create()
        with pytest.raises(ValueError):
            await stores.sessions.update(session.id, created_at=utcnow())

    @pytest.mark.asyncio
    async def test_update_missing_session(self, stores):
        assert await stores.sessions.update("nope", title="x") is None

    @pytest.mark.asyncio
    async def test_delete_cascades_to_messages(self, stores):
        session = await stores.sessions.create("to delete")
        message = await stores.messages.create(session.id, "hello", "user")

        assert await stores.sessions.delete(session.id) is True
        assert await stores.sessions.get(session.id) is None
        assert await stores.messages.get(message.id) is None
        assert await stores.messages.list_for_session(session.id) == []

    @pytest.mark.asyncio
    async def test_delete_missing_session(self, stores):
        assert await stores.sessions.delete("nope") is False


class TestTouchSession:
    """updated_at never moves backwards."""

    def test_future_timestamp_is_kept(self):
        future = utcnow() + timedelta(hours=1)
        row = SessionModel(id="s", created_at=future, updated_at=future, model_used="gpt-4")
        touch_session(row)
        assert row.updated_at == future
        assert row.model_used == "gpt-4"

    def test_model_only_set_when_given(self):
        past = utcnow() - timedelta(days=1)
        row = SessionModel(id="s", created_at=past, updated_at=past, model_used="gpt-4")
        touch_session(row, None)
        assert row.model_used == "gpt-4"
        assert row.updated_at > past
        touch_session(row, "claude-3-haiku")
        assert row.model_used == "claude-3-haiku"


class TestMessageStore:
    """Tests for message persistence."""

    @pytest.mark.asyncio
    async def test_append_touches_session(self, stores):
        session = await stores.sessions.create("t", "gpt-4")

        await stores.messages.create(session.id, "question", "user")
        after_user = await stores.sessions.get(session.id)
        assert after_user.model_used == "gpt-4"
        assert after_user.updated_at >= session.updated_at

        await stores.messages.create(session.id, "answer", "assistant", "claude-3-haiku", token_count=7)
        after_reply = await stores.sessions.get(session.id)
        assert after_reply.model_used == "claude-3-haiku"
        assert after_reply.updated_at >= after_user.updated_at
        assert after_reply.message_count == 2

    @pytest.mark.asyncio
    async def test_unknown_session(self, stores):
        with pytest.raises(NotFoundError):
            await stores.messages.create("missing", "hello", "user")

    @pytest.mark.asyncio
    async def test_invalid_role_is_rejected(self, stores):
        session = await stores.sessions.create()
        with pytest.raises(PersistenceError):
            await stores.messages.create(session.id, "hello", "system")
        assert await stores.messages.list_for_session(session.id) == []

    @pytest.mark.asyncio
    async def test_invalid_content_type_is_rejected(self, stores):
        session = await stores.sessions.create()
        with pytest.raises(PersistenceError):
            await stores.messages.create(session.id, "hello", "assistant", content_type="audio")

    @pytest.mark.asyncio
    async def test_negative_token_count_is_rejected(self, stores):
        session = await stores.sessions.create()
        with pytest.raises(PersistenceError):
            await stores.messages.create(session.id, "hello", "assistant", token_count=-1)

    @pytest.mark.asyncio
    async def test_image_metadata_round_trip(self, stores):
        session = await stores.sessions.create()
        metadata = ImageMetadata(
            prompt="a cat", revised_prompt="A fluffy cat",
            image_url="https://images.example.com/cat.png", size="512x512",
        )
        stored = await stores.messages.create(
            session.id, metadata.image_url, "assistant", "dall-e-2",
            content_type="image", image_metadata=metadata,
        )

        loaded = (await stores.messages.list_for_session(session.id))[0]
        assert loaded.id == stored.id
        assert loaded.content_type == "image"
        assert loaded.image_metadata == metadata
        assert "quality" not in loaded.to_dict()["image_metadata"]

    @pytest.mark.asyncio
    async def test_list_is_oldest_first_and_limited(self, stores):
        session = await stores.sessions.create()
        for i in range(5):
            await stores.messages.create(session.id, f"m{i}", "user")

        messages = await stores.messages.list_for_session(session.id)
        assert [m.content for m in messages] == ["m0", "m1", "m2", "m3", "m4"]
        limited = await stores.messages.list_for_session(session.id, limit=2)
        assert [m.content for m in limited] == ["m0", "m1"]

    @pytest.mark.asyncio
    async def test_recent_is_newest_window_oldest_first(self, stores):
        session = await stores.sessions.create()
        for i in range(5):
            await stores.messages.create(session.id, f"m{i}", "user")

        recent = await stores.messages.list_recent_for_session(session.id, limit=3)
        assert [m.content for m in recent] == ["m2", "m3", "m4"]
        everything = await stores.messages.list_recent_for_session(session.id)
        assert [m.content for m in everything] == ["m0", "m1", "m2", "m3", "m4"]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, stores):
        session = await stores.sessions.create()
        message = await stores.messages.create(session.id, "draft", "assistant", "gpt-4")

        updated = await stores.messages.update(message.id, content="final", token_count=3)
        assert updated.content == "final"
        assert updated.token_count == 3
        with pytest.raises(ValueError):
            await stores.messages.update(message.id, role="user")

        assert await stores.messages.delete(message.id) is True
        assert await stores.messages.delete(message.id) is False

    @pytest.mark.asyncio
    async def test_null_content_type_reads_as_text(self, stores, database):
        session = await stores.sessions.create()
        async with database.transaction() as db:
            await db.execute(
                text(
                    "INSERT INTO messages (id, session_id, content, role, timestamp, token_count, content_type) "
                    "VALUES ('legacy', :sid, 'old', 'user', :ts, 0, NULL)"
                ),
                {"sid": session.id, "ts": utcnow().strftime("%Y-%m-%d %H:%M:%S.%f")},
            )

        messages = await stores.messages.list_for_session(session.id)
        assert messages[0].content_type == "text"
        assert messages[0].image_metadata is None

    @pytest.mark.asyncio
    async def test_usage_stats(self, stores):
        session = await stores.sessions.create()
        await stores.messages.create(session.id, "q1", "user")
        await stores.messages.create(session.id, "a1", "assistant", "gpt-4", token_count=10)
        await stores.messages.create(session.id, "q2", "user")
        await stores.messages.create(session.id, "a2", "assistant", "gpt-4", token_count=20)
        await stores.messages.create(
            session.id, "https://img", "assistant", "dall-e-2", content_type="image",
            image_metadata={"prompt": "x", "image_url": "https://img", "size": "512x512"},
        )

        stats = {(s.model, s.content_type): s for s in await stores.messages.usage_stats()}
        today = utcnow().date().isoformat()

        assert set(stats) == {("gpt-4", "text"), ("dall-e-2", "image")}
        assert stats[("gpt-4", "text")].message_count == 2
        assert stats[("gpt-4", "text")].total_tokens == 30
        assert stats[("gpt-4", "text")].date == today
        assert stats[("dall-e-2", "image")].total_tokens == 0


class TestSettingsStore:
    """Tests for settings persistence."""

    @pytest.mark.asyncio
    async def test_defaults_are_seeded(self, stores):
        assert await stores.settings.get_all() == DEFAULT_SETTINGS

    @pytest.mark.asyncio
    async def test_seed_keeps_existing_values(self, stores):
        await stores.settings.set("max_tokens", 500)
        await stores.settings.seed_defaults()
        assert await stores.settings.get("max_tokens") == "500"

    @pytest.mark.asyncio
    async def test_set_is_upsert(self, stores):
        await stores.settings.set("image_size", "1024x1024")
        await stores.settings.set("image_size", "512x512")
        assert await stores.settings.get("image_size") == "512x512"

    @pytest.mark.asyncio
    async def test_values_are_stored_as_strings(self, stores):
        await stores.settings.set_multiple({"temperature": 0.2, "logging_enabled": False})
        assert await stores.settings.get("temperature") == "0.2"
        assert await stores.settings.get("logging_enabled") == "false"

    @pytest.mark.asyncio
    async def test_nested_values_are_stored_as_json(self, stores):
        await stores.settings.set_multiple({"stop": ["\n", "END"], "extra": {"a": 1}})
        assert json.loads(await stores.settings.get("stop")) == ["\n", "END"]
        assert await stores.settings.get("extra") == '{"a": 1}'

    @pytest.mark.asyncio
    async def test_set_multiple_is_all_or_nothing(self, stores):
        with pytest.raises(PersistenceError):
            await stores.settings.set_multiple({"max_tokens": "100", "temperature": None})
        assert await stores.settings.get("max_tokens") == "2000"
        assert await stores.settings.get("temperature") == "0.7"

    @pytest.mark.asyncio
    async def test_delete(self, stores):
        assert await stores.settings.delete("default_model") is True
        assert await stores.settings.get("default_model") is None
        assert await stores.settings.delete("default_model") is False


class TestApiKeyStore:
    """Tests for API key persistence."""

    @pytest.mark.asyncio
    async def test_key_is_obfuscated_at_rest(self, stores, database):
        await stores.api_keys.set("openai", "  sk-secret-value  ")

        async with database.transaction() as db:
            row = await db.get(ApiKeyModel, "openai")
            stored = row.key_hash
        assert stored != "sk-secret-value"
        assert base64.b64decode(stored).decode() == "sk-secret-value"
        assert await stores.api_keys.get_actual("openai") == "sk-secret-value"

    @pytest.mark.asyncio
    async def test_list_exposes_existence_only(self, stores):
        await stores.api_keys.set("anthropic", "sk-ant-secret")
        listed = await stores.api_keys.list()

        assert set(listed) == {"anthropic"}
        dumped = listed["anthropic"].model_dump(mode="json", by_alias=True)
        assert dumped["isSet"] is True
        assert set(dumped) == {"isSet", "created_at", "updated_at"}
        assert "sk-ant-secret" not in str(dumped)

    @pytest.mark.asyncio
    async def test_replace_keeps_created_at(self, stores):
        first = await stores.api_keys.set("openai", "sk-one")
        second = await stores.api_keys.set("openai", "sk-two")
        assert second.created_at == first.created_at
        assert second.updated_at >= first.updated_at
        assert await stores.api_keys.get_actual("openai") == "sk-two"

    @pytest.mark.asyncio
    async def test_env_fallback(self, database):
        api_keys = ApiKeyStore(database, {"openai": "sk-from-env", "anthropic": None})
        assert await api_keys.get_actual("openai") == "sk-from-env"
        assert await api_keys.get_actual("anthropic") is None

        await api_keys.set("openai", "sk-stored")
        assert await api_keys.get_actual("openai") == "sk-stored"
        assert await api_keys.get_credentials() == {"openai": "sk-stored", "anthropic": None}

    @pytest.mark.asyncio
    async def test_undecodable_key_falls_back_to_env(self, database):
        api_keys = ApiKeyStore(database, {"openai": "sk-from-env"})
        async with database.transaction() as db:
            db.add(ApiKeyModel(provider="openai", key_hash="!!not base64!!", created_at=utcnow(), updated_at=utcnow()))
        assert await api_keys.get_actual("openai") == "sk-from-env"

    @pytest.mark.asyncio
    async def test_delete_and_is_set(self, stores):
        await stores.api_keys.set("openai", "sk-x")
        assert await stores.api_keys.is_set("openai") is True
        assert await stores.api_keys.delete("openai") is True
        assert await stores.api_keys.is_set("openai") is False
        assert await stores.api_keys.delete("openai") is False

    def test_mask_key(self):
        assert mask_key("sk-1234567890") == "sk-12345..."
        assert mask_key(None) == "NOT SET"


class TestSchema:
    """Schema bootstrap and upgrade of older databases."""

    @pytest.mark.asyncio
    async def test_adds_missing_message_columns(self):
        db = Database("sqlite+aiosqlite:///:memory:")
        async with db.engine.begin() as conn:
            await conn.execute(text(
                "CREATE TABLE messages ("
                "id VARCHAR(36) PRIMARY KEY, session_id VARCHAR(36) NOT NULL, "
                "content TEXT NOT NULL, role VARCHAR(20) NOT NULL, model VARCHAR(100), "
                "timestamp DATETIME NOT NULL, token_count INTEGER NOT NULL DEFAULT 0)"
            ))

        await db.init_schema()
        registry = Stores.create(db)
        session = await registry.sessions.create("legacy")
        await registry.messages.create(
            session.id, "https://img", "assistant", "dall-e-3", content_type="image",
            image_metadata={"prompt": "p", "image_url": "https://img", "size": "1024x1024",
                            "quality": "standard", "style": "natural"},
        )
        messages = await registry.messages.list_for_session(session.id)
        assert messages[0].content_type == "image"
        assert messages[0].image_metadata.style == "natural"
        await db.close()

    @pytest.mark.asyncio
    async def test_init_schema_is_idempotent(self, database):
        await database.init_schema()
        await database.init_schema()
