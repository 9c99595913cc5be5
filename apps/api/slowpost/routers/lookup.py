"""
Identifier lookup.

Always answers with the same generic message, found or not, well-formed or
not. Resolution happens server-side only; the outcome is never returned.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from slowpost.core.config import settings
from slowpost.core.deps import get_db
from slowpost.core.rate_limit import limiter
from slowpost.schemas.lookup import LookupRequest, LookupResponse
from slowpost.services import recipient_resolver
from slowpost.services.addressing import InvalidAddressingError, parse_addressing

logger = logging.getLogger(__name__)

router = APIRouter(tags=["lookup"])

# Accept the uppercase forms used by clients alongside the stored values
LOOKUP_TYPES = {
    "email": "email",
    "phone": "phone",
    "address": "postal_address",
    "postal_address": "postal_address",
}


@router.post("/lookup", response_model=LookupResponse)
@limiter.limit(settings.RATE_LIMIT_LOOKUP)
def lookup_identifier(
    request: Request,
    data: LookupRequest,
    db: Session = Depends(get_db),
):
    addressing_type = LOOKUP_TYPES.get(str(data.type or "").strip().lower())
    if addressing_type and isinstance(data.value, str):
        try:
            addressing = parse_addressing(addressing_type, data.value)
        except InvalidAddressingError:
            addressing = None
        if addressing is not None:
            resolution = recipient_resolver.resolve(db, addressing)
            logger.debug("Identifier lookup outcome: %s", resolution.outcome.value)
    return LookupResponse()
