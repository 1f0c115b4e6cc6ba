"""
Stored record models.

Provides Pydantic models for the entities kept by the in-memory store:
- Users (kept for account bootstrap, no route exposes them)
- Contact form messages
- Newsletter subscriptions

Timestamps are ISO-8601 UTC strings rendered with millisecond precision
and a trailing "Z", and serialize under the ``createdAt`` key.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def utc_timestamp() -> str:
    """Return the current UTC time as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ============================================================================
# Insert Payloads
# ============================================================================


class InsertUser(BaseModel):
    """Fields supplied when creating a user."""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class InsertContact(BaseModel):
    """Fields supplied when storing a contact message."""
    name: str
    email: str
    message: str


class InsertNewsletter(BaseModel):
    """Fields supplied when subscribing to the newsletter."""
    email: str


# ============================================================================
# Stored Records
# ============================================================================


class User(BaseModel):
    """User account."""
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1)
    username: str
    password: str


class ContactMessage(BaseModel):
    """Contact form message."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(..., ge=1)
    name: str
    email: str
    message: str
    created_at: str = Field(..., alias="createdAt")


class NewsletterSubscription(BaseModel):
    """Newsletter subscription, unique per email address."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(..., ge=1)
    email: str
    created_at: str = Field(..., alias="createdAt")
