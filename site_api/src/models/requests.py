"""
Request body schemas.

Pydantic models for the payloads accepted by the public routes. Each
violated field yields its own error with a message suitable for
highlighting the matching form input.
"""

from typing import Any

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, field_validator
from pydantic_core import PydanticCustomError


INVALID_EMAIL_MESSAGE = "Please enter a valid email address"


def _check_email(value: Any) -> str:
    """Validate email syntax, raising a form-friendly error."""
    try:
        info = validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise PydanticCustomError("email", INVALID_EMAIL_MESSAGE) from None
    # Reject display-name forms ("Ada <ada@host>") and surrounding whitespace.
    # Punycode domains match the ASCII form rather than the Unicode one.
    accepted = {info.normalized.lower()}
    if info.ascii_email:
        accepted.add(info.ascii_email.lower())
    if value.lower() not in accepted:
        raise PydanticCustomError("email", INVALID_EMAIL_MESSAGE)
    return value


class ContactRequest(BaseModel):
    """Contact form submission."""
    name: str
    email: str
    message: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v:
            raise PydanticCustomError("required", "Name is required")
        return v

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        if len(v) < 10:
            raise PydanticCustomError(
                "too_short", "Message must be at least 10 characters long"
            )
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Ada Lovelace",
                "email": "ada@example.com",
                "message": "I would like a quote for a new landing page."
            }
        }
    }


class NewsletterRequest(BaseModel):
    """Newsletter signup."""
    email: str

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v: str) -> str:
        return _check_email(v)


class AIPromptRequest(BaseModel):
    """Prompt forwarded to an upstream AI provider."""
    prompt: str

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        if not v:
            raise PydanticCustomError("required", "Prompt is required")
        return v
