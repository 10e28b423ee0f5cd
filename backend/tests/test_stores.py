"""
Pulseo - Store Tests

User and refresh-token persistence against a real SQLite file.
"""

from datetime import timedelta

import pytest

from pulseo.models.database import utcnow
from pulseo.services.refresh_token import RefreshTokenStore
from pulseo.services.tokens import hash_token
from pulseo.services.user import UniquenessViolation, UserStore


@pytest.fixture
async def alice(db_session):
    return await UserStore(db_session).create("Alice", "Alice@X.com", "hash")


class TestUserStore:
    """Tests for UserStore."""

    @pytest.mark.asyncio
    async def test_email_is_lowercased(self, alice):
        assert alice.email == "alice@x.com"
        assert alice.username == "Alice"
        assert alice.created_at is not None

    @pytest.mark.asyncio
    async def test_lookups_ignore_case(self, db_session, alice):
        users = UserStore(db_session)
        assert (await users.find_by_email("ALICE@x.com")).id == alice.id
        assert (await users.find_by_username("aLiCe")).id == alice.id
        assert (await users.find_by_id(alice.id)).id == alice.id
        assert await users.find_by_email("bob@x.com") is None

    @pytest.mark.asyncio
    async def test_duplicate_username_violates_constraint(self, db_session, alice):
        with pytest.raises(UniquenessViolation) as exc_info:
            await UserStore(db_session).create("ALICE", "other@x.com", "hash")
        assert exc_info.value.field == "username"

    @pytest.mark.asyncio
    async def test_duplicate_email_violates_constraint(self, db_session, alice):
        with pytest.raises(UniquenessViolation) as exc_info:
            await UserStore(db_session).create("alice2", "ALICE@x.com", "hash")
        assert exc_info.value.field == "email"


class TestRefreshTokenStore:
    """Tests for RefreshTokenStore."""

    @pytest.mark.asyncio
    async def test_store_and_find(self, db_session, alice):
        store = RefreshTokenStore(db_session)
        expires_at = utcnow() + timedelta(days=1)
        await store.store("t1", alice.id, hash_token("secret"), expires_at)

        row = await store.find_by_hash(hash_token("secret"))
        assert row.id == "t1"
        assert row.user_id == alice.id
        assert await store.find_by_hash(hash_token("other")) is None

    @pytest.mark.asyncio
    async def test_delete_by_id_reports_whether_row_existed(self, db_session, alice):
        store = RefreshTokenStore(db_session)
        await store.store("t1", alice.id, hash_token("secret"), utcnow() + timedelta(days=1))

        assert await store.delete_by_id("t1") is True
        assert await store.delete_by_id("t1") is False

    @pytest.mark.asyncio
    async def test_delete_all_for_user(self, db_session, alice):
        store = RefreshTokenStore(db_session)
        for i in range(3):
            await store.store(f"t{i}", alice.id, hash_token(f"s{i}"), utcnow() + timedelta(days=1))

        assert await store.delete_all_for_user(alice.id) == 3
        assert await store.find_by_hash(hash_token("s0")) is None

    @pytest.mark.asyncio
    async def test_purge_expired(self, db_session, alice):
        store = RefreshTokenStore(db_session)
        await store.store("old", alice.id, hash_token("old"), utcnow() - timedelta(seconds=1))
        await store.store("new", alice.id, hash_token("new"), utcnow() + timedelta(days=1))

        assert await store.purge_expired() == 1
        assert await store.find_by_hash(hash_token("new")) is not None

    def test_is_expired(self):
        assert RefreshTokenStore.is_expired(utcnow() - timedelta(seconds=1))
        assert not RefreshTokenStore.is_expired(utcnow() + timedelta(hours=1))

    @pytest.mark.asyncio
    async def test_tokens_removed_with_user(self, db_session, alice):
        store = RefreshTokenStore(db_session)
        await store.store("t1", alice.id, hash_token("secret"), utcnow() + timedelta(days=1))

        await db_session.delete(alice)
        await db_session.flush()

        assert await store.find_by_hash(hash_token("secret")) is None
