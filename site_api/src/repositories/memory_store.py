"""
In-memory record store.

Keeps users, contact messages and newsletter subscriptions for the
lifetime of the process. Each entity kind has its own identifier counter
starting at 1. Creates run under a single asyncio lock so identifier
allocation and the newsletter duplicate check happen atomically.
"""

import asyncio
from typing import Dict, List, Optional

import structlog

from site_api.src.models.records import (
    ContactMessage,
    InsertContact,
    InsertNewsletter,
    InsertUser,
    NewsletterSubscription,
    User,
    utc_timestamp,
)

logger = structlog.get_logger(__name__)


class MemoryStorage:
    """Process-lifetime storage for site submissions."""

    def __init__(self):
        self._users: Dict[int, User] = {}
        self._contacts: Dict[int, ContactMessage] = {}
        self._newsletters: Dict[int, NewsletterSubscription] = {}

        self._user_current_id = 1
        self._contact_current_id = 1
        self._newsletter_current_id = 1

        self._lock = asyncio.Lock()

    # ========================================================================
    # Users
    # ========================================================================

    async def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        for user in self._users.values():
            if user.username == username:
                return user
        return None

    async def create_user(self, insert_user: InsertUser) -> User:
        """
        Create a new user.

        Args:
            insert_user: Username and password

        Returns:
            Created user

        Raises:
            ValueError: If the username is already taken
        """
        async with self._lock:
            if await self.get_user_by_username(insert_user.username) is not None:
                logger.warning("username_already_exists", username=insert_user.username)
                raise ValueError(f"Username '{insert_user.username}' already exists")

            user_id = self._user_current_id
            self._user_current_id += 1
            user = User(id=user_id, **insert_user.model_dump())
            self._users[user_id] = user

        logger.info("user_created", user_id=user_id, username=user.username)
        return user

    # ========================================================================
    # Contact messages
    # ========================================================================

    async def create_contact(self, insert_contact: InsertContact) -> ContactMessage:
        """
        Store a contact form message.

        Args:
            insert_contact: Validated name, email and message

        Returns:
            Stored message with its identifier and creation timestamp
        """
        async with self._lock:
            contact_id = self._contact_current_id
            self._contact_current_id += 1
            contact = ContactMessage(
                id=contact_id,
                created_at=utc_timestamp(),
                **insert_contact.model_dump(),
            )
            self._contacts[contact_id] = contact

        logger.info("contact_created", contact_id=contact_id)
        return contact

    async def get_contacts(self) -> List[ContactMessage]:
        return list(self._contacts.values())

    # ========================================================================
    # Newsletter subscriptions
    # ========================================================================

    async def create_newsletter(self, insert_newsletter: InsertNewsletter) -> NewsletterSubscription:
        """
        Subscribe an email address, returning the existing record for a
        duplicate address instead of creating a second one.

        Args:
            insert_newsletter: Validated email address

        Returns:
            New or pre-existing subscription
        """
        async with self._lock:
            for existing in self._newsletters.values():
                if existing.email == insert_newsletter.email:
                    logger.info("newsletter_already_subscribed", newsletter_id=existing.id)
                    return existing

            newsletter_id = self._newsletter_current_id
            self._newsletter_current_id += 1
            newsletter = NewsletterSubscription(
                id=newsletter_id,
                created_at=utc_timestamp(),
                **insert_newsletter.model_dump(),
            )
            self._newsletters[newsletter_id] = newsletter

        logger.info("newsletter_subscribed", newsletter_id=newsletter_id)
        return newsletter

    async def get_newsletters(self) -> List[NewsletterSubscription]:
        return list(self._newsletters.values())
