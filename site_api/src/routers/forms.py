"""
Contact form and newsletter routes.

Both routes are rate limited per client before the body is validated;
validation failures are returned as per-field errors.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from shared.metrics import SiteMetrics
from site_api.src.dependencies import get_metrics, get_store, read_json_body
from site_api.src.errors import InternalError, PayloadValidationError, SiteAPIError
from site_api.src.middleware.rate_limit import CONTACT_LIMIT, NEWSLETTER_LIMIT, route_limit
from site_api.src.models.records import InsertContact, InsertNewsletter
from site_api.src.models.requests import ContactRequest, NewsletterRequest
from site_api.src.repositories.memory_store import MemoryStorage
from site_api.src.validation import validate_payload

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Forms"])


@router.post("/contact", status_code=status.HTTP_201_CREATED)
@route_limit(CONTACT_LIMIT)
async def submit_contact(
    request: Request,
    store: MemoryStorage = Depends(get_store),
    metrics: Optional[SiteMetrics] = Depends(get_metrics),
) -> JSONResponse:
    """Store a contact form message."""
    try:
        result = validate_payload(ContactRequest, await read_json_body(request))
        if not result.ok:
            raise PayloadValidationError(result.errors)

        contact = await store.create_contact(InsertContact(**result.value.model_dump()))
    except SiteAPIError:
        raise
    except Exception as e:
        logger.error("contact_submission_failed", error=str(e), exc_info=True)
        raise InternalError("An error occurred while processing your request") from e

    if metrics is not None:
        metrics.contact_submissions.inc()

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "success": True,
            "message": "Contact form submitted successfully",
            "data": contact.model_dump(by_alias=True),
        },
    )


@router.post("/newsletter", status_code=status.HTTP_201_CREATED)
@route_limit(NEWSLETTER_LIMIT)
async def subscribe_newsletter(
    request: Request,
    store: MemoryStorage = Depends(get_store),
    metrics: Optional[SiteMetrics] = Depends(get_metrics),
) -> JSONResponse:
    """Subscribe an email address; repeating an address returns the existing record."""
    try:
        result = validate_payload(NewsletterRequest, await read_json_body(request))
        if not result.ok:
            raise PayloadValidationError(result.errors)

        newsletter = await store.create_newsletter(InsertNewsletter(email=result.value.email))
    except SiteAPIError:
        raise
    except Exception as e:
        logger.error("newsletter_subscription_failed", error=str(e), exc_info=True)
        raise InternalError(
            "Invalid newsletter subscription data", status_code=status.HTTP_400_BAD_REQUEST
        ) from e

    if metrics is not None:
        metrics.newsletter_signups.inc()

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "success": True,
            "message": "Newsletter subscription successful",
            "data": newsletter.model_dump(by_alias=True),
        },
    )
