"""
Payload validation.

Turns an untyped request body into a validated request model, or into a
list of per-field errors. Callers branch on ``ValidationResult.ok``;
nothing here raises for invalid input.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class FieldError:
    """A single violated field and a human-readable reason."""
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass
class ValidationResult(Generic[ModelT]):
    """Either a validated model or the list of field errors."""
    value: Optional[ModelT] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.value is not None and not self.errors


def _field_name(loc: tuple) -> str:
    """Render a pydantic error location as a dotted field path."""
    parts = [str(part) for part in loc]
    return ".".join(parts) if parts else "body"


def validate_payload(schema: Type[ModelT], data: Any) -> ValidationResult[ModelT]:
    """
    Validate an incoming payload against a request schema.

    Args:
        schema: Pydantic model describing the expected body
        data: Decoded JSON body (any type)

    Returns:
        ValidationResult with the model on success, or one FieldError per
        violated field
    """
    if not isinstance(data, dict):
        return ValidationResult(
            errors=[FieldError("body", "Request body must be a JSON object")]
        )

    try:
        return ValidationResult(value=schema.model_validate(data))
    except ValidationError as e:
        errors = [
            FieldError(_field_name(err["loc"]), err["msg"])
            for err in e.errors(include_url=False)
        ]
        logger.debug(
            "payload_validation_failed",
            schema=schema.__name__,
            fields=[err.field for err in errors],
        )
        return ValidationResult(errors=errors)
