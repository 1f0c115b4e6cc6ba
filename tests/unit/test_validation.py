"""
Unit tests for request payload validation.

Tests cover:
- Contact, newsletter and AI prompt schemas
- Per-field error reporting with form-friendly messages
- Message length boundary
- Non-object bodies
"""

import pytest

from site_api.src.models.requests import AIPromptRequest, ContactRequest, NewsletterRequest
from site_api.src.validation import FieldError, validate_payload


VALID_CONTACT = {
    "name": "Ada Lovelace",
    "email": "ada@lovelace.dev",
    "message": "I would like a quote for a landing page.",
}


def error_fields(result):
    return {err.field for err in result.errors}


# ============================================================================
# CONTACT
# ============================================================================


class TestContactValidation:
    """Tests for the contact form schema."""

    def test_valid_contact(self):
        """Test a complete submission validates."""
        result = validate_payload(ContactRequest, VALID_CONTACT)

        assert result.ok
        assert result.value.name == "Ada Lovelace"
        assert result.errors == []

    def test_message_of_nine_characters_rejected(self):
        """Test messages shorter than 10 characters fail on the message field."""
        result = validate_payload(ContactRequest, {**VALID_CONTACT, "message": "x" * 9})

        assert not result.ok
        assert result.errors == [
            FieldError("message", "Message must be at least 10 characters long")
        ]

    def test_message_of_ten_characters_accepted(self):
        """Test the length boundary is inclusive."""
        result = validate_payload(ContactRequest, {**VALID_CONTACT, "message": "x" * 10})

        assert result.ok

    def test_every_violated_field_reported(self):
        """Test all errors are returned, not just the first."""
        result = validate_payload(
            ContactRequest, {"name": "", "email": "not-an-email", "message": "short"}
        )

        assert not result.ok
        assert error_fields(result) == {"name", "email", "message"}
        messages = {err.field: err.message for err in result.errors}
        assert messages["name"] == "Name is required"
        assert messages["email"] == "Please enter a valid email address"

    def test_missing_fields_reported(self):
        """Test absent fields are named individually."""
        result = validate_payload(ContactRequest, {"name": "Ada"})

        assert error_fields(result) == {"email", "message"}

    def test_wrong_type_reported(self):
        """Test non-string values are rejected."""
        result = validate_payload(ContactRequest, {**VALID_CONTACT, "name": 42})

        assert error_fields(result) == {"name"}

    def test_display_name_email_rejected(self):
        """Test only a bare address is accepted."""
        result = validate_payload(
            ContactRequest, {**VALID_CONTACT, "email": "Ada <ada@lovelace.dev>"}
        )

        assert error_fields(result) == {"email"}


# ============================================================================
# NEWSLETTER
# ============================================================================


class TestNewsletterValidation:
    """Tests for the newsletter schema."""

    def test_valid_email(self):
        """Test a plain address validates."""
        result = validate_payload(NewsletterRequest, {"email": "a@b.com"})

        assert result.ok
        assert result.value.email == "a@b.com"

    @pytest.mark.parametrize("email", ["a@xn--bcher-kva.de", "a@bücher.de", "First.Last@Mail.com"])
    def test_internationalized_and_mixed_case_accepted(self, email):
        """Test punycode, Unicode and mixed-case addresses validate unchanged."""
        result = validate_payload(NewsletterRequest, {"email": email})

        assert result.ok
        assert result.value.email == email

    @pytest.mark.parametrize("email", ["", "plainaddress", "a@", "@b.com", " a@b.com"])
    def test_invalid_email(self, email):
        """Test malformed addresses are rejected with the form message."""
        result = validate_payload(NewsletterRequest, {"email": email})

        assert result.errors == [FieldError("email", "Please enter a valid email address")]


# ============================================================================
# AI PROMPT
# ============================================================================


class TestPromptValidation:
    """Tests for the shared AI prompt schema."""

    def test_valid_prompt(self):
        """Test a non-empty prompt validates."""
        result = validate_payload(AIPromptRequest, {"prompt": "Suggest a color palette"})

        assert result.ok
        assert result.value.prompt == "Suggest a color palette"

    def test_empty_prompt_rejected(self):
        """Test empty prompts are rejected."""
        result = validate_payload(AIPromptRequest, {"prompt": ""})

        assert result.errors == [FieldError("prompt", "Prompt is required")]

    def test_missing_prompt_rejected(self):
        """Test the prompt field is required."""
        result = validate_payload(AIPromptRequest, {})

        assert error_fields(result) == {"prompt"}

    def test_non_string_prompt_rejected(self):
        """Test prompts must be strings."""
        result = validate_payload(AIPromptRequest, {"prompt": ["a", "b"]})

        assert error_fields(result) == {"prompt"}


# ============================================================================
# BODY SHAPE
# ============================================================================


class TestBodyShape:
    """Tests for bodies that are not JSON objects."""

    @pytest.mark.parametrize("body", [None, [], "text", 3])
    def test_non_object_body(self, body):
        """Test non-object bodies yield a single body error."""
        result = validate_payload(ContactRequest, body)

        assert not result.ok
        assert result.errors == [FieldError("body", "Request body must be a JSON object")]

    def test_field_error_serialization(self):
        """Test field errors render as field/message pairs."""
        assert FieldError("email", "bad").to_dict() == {"field": "email", "message": "bad"}
