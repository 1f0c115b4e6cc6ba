"""
Unit tests for the in-memory record store.

Tests cover:
- Identifier allocation per entity kind
- Unique identifiers under concurrent creates
- Idempotent newsletter subscription
- User lookup and username uniqueness
- Timestamp format and wire serialization
"""

import asyncio
import re

import pytest

from site_api.src.models.records import InsertContact, InsertNewsletter, InsertUser
from site_api.src.repositories.memory_store import MemoryStorage


TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def contact_input(n: int = 0) -> InsertContact:
    return InsertContact(
        name=f"Visitor {n}",
        email=f"visitor{n}@mail.com",
        message="Please get in touch about a new site.",
    )


@pytest.fixture
def store():
    return MemoryStorage()


# ============================================================================
# CONTACT MESSAGES
# ============================================================================


class TestContacts:
    """Tests for contact message storage."""

    @pytest.mark.asyncio
    async def test_first_contact_gets_id_one(self, store):
        """Test identifiers start at 1."""
        contact = await store.create_contact(contact_input())

        assert contact.id == 1
        assert contact.name == "Visitor 0"
        assert TIMESTAMP_PATTERN.match(contact.created_at)

    @pytest.mark.asyncio
    async def test_ids_strictly_increase(self, store):
        """Test sequential creates get increasing identifiers."""
        ids = [(await store.create_contact(contact_input(n))).id for n in range(5)]

        assert ids == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_concurrent_creates_never_share_an_id(self, store):
        """Test concurrent creates issue unique identifiers."""
        contacts = await asyncio.gather(
            *(store.create_contact(contact_input(n)) for n in range(50))
        )

        ids = [c.id for c in contacts]
        assert sorted(ids) == list(range(1, 51))
        assert len(await store.get_contacts()) == 50

    @pytest.mark.asyncio
    async def test_get_contacts_in_creation_order(self, store):
        """Test listing returns every stored message in order."""
        await store.create_contact(contact_input(1))
        await store.create_contact(contact_input(2))

        contacts = await store.get_contacts()

        assert [c.name for c in contacts] == ["Visitor 1", "Visitor 2"]

    @pytest.mark.asyncio
    async def test_serializes_created_at_as_camel_case(self, store):
        """Test wire format uses the createdAt key."""
        contact = await store.create_contact(contact_input())

        data = contact.model_dump(by_alias=True)

        assert set(data) == {"id", "name", "email", "message", "createdAt"}


# ============================================================================
# NEWSLETTER SUBSCRIPTIONS
# ============================================================================


class TestNewsletters:
    """Tests for idempotent newsletter subscription."""

    @pytest.mark.asyncio
    async def test_duplicate_email_returns_existing_record(self, store):
        """Test subscribing twice returns the same record."""
        first = await store.create_newsletter(InsertNewsletter(email="a@b.com"))
        second = await store.create_newsletter(InsertNewsletter(email="a@b.com"))

        assert first.id == second.id == 1
        assert first.created_at == second.created_at
        assert len(await store.get_newsletters()) == 1

    @pytest.mark.asyncio
    async def test_duplicate_does_not_consume_an_id(self, store):
        """Test the counter only advances for new addresses."""
        await store.create_newsletter(InsertNewsletter(email="a@b.com"))
        await store.create_newsletter(InsertNewsletter(email="a@b.com"))
        other = await store.create_newsletter(InsertNewsletter(email="c@d.com"))

        assert other.id == 2

    @pytest.mark.asyncio
    async def test_concurrent_duplicates_create_one_record(self, store):
        """Test concurrent submissions of one email produce a single record."""
        results = await asyncio.gather(
            *(store.create_newsletter(InsertNewsletter(email="same@mail.com")) for _ in range(20))
        )

        assert {r.id for r in results} == {1}
        assert len(await store.get_newsletters()) == 1

    @pytest.mark.asyncio
    async def test_counters_are_independent_per_kind(self, store):
        """Test contacts and newsletters number separately."""
        await store.create_contact(contact_input())
        await store.create_contact(contact_input(1))
        newsletter = await store.create_newsletter(InsertNewsletter(email="a@b.com"))

        assert newsletter.id == 1


# ============================================================================
# USERS
# ============================================================================


class TestUsers:
    """Tests for user storage."""

    @pytest.mark.asyncio
    async def test_create_and_get_user(self, store):
        """Test a created user can be fetched by id and username."""
        user = await store.create_user(InsertUser(username="admin", password="secret"))

        assert user.id == 1
        assert await store.get_user(1) == user
        assert await store.get_user_by_username("admin") == user

    @pytest.mark.asyncio
    async def test_unknown_user_is_none(self, store):
        """Test lookups for missing users return None."""
        assert await store.get_user(42) is None
        assert await store.get_user_by_username("nobody") is None

    @pytest.mark.asyncio
    async def test_duplicate_username_rejected(self, store):
        """Test usernames are unique."""
        await store.create_user(InsertUser(username="admin", password="secret"))

        with pytest.raises(ValueError, match="already exists"):
            await store.create_user(InsertUser(username="admin", password="other"))

        second = await store.create_user(InsertUser(username="editor", password="secret"))
        assert second.id == 2
