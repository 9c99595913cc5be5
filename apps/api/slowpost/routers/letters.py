"""Letters router - drafts, the send transition, and recipient actions."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from slowpost.core.clock import Clock
from slowpost.core.deps import (
    get_clock,
    get_current_user,
    get_db,
    get_send_rate_limiter,
    require_csrf_header,
)
from slowpost.core.rate_limit import RateLimitCapability
from slowpost.core.structured_logging import build_log_context
from slowpost.db.enums import LetterStatus
from slowpost.db.models import Letter, User
from slowpost.schemas.letter import DraftRead, LetterActionResponse, LetterCreate, LetterRead
from slowpost.services import letter_service
from slowpost.services.addressing import InvalidAddressingError, parse_addressing
from slowpost.services.letter_service import (
    FolderNotFoundError,
    LetterNotFoundError,
    LetterStateError,
    NotLetterRecipientError,
    NotLetterSenderError,
    QuotaExceededError,
    RateLimitedError,
    SelfBlockError,
)
from slowpost.services.user_service import DeletionHoldError
from slowpost.utils.timezones import InvalidTimezoneError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/letters", tags=["letters"])

HOLD_DETAIL = "Your account is scheduled for deletion. Cancel the deletion to continue."


def to_letter_read(letter: Letter) -> LetterRead:
    return LetterRead(
        id=letter.id,
        status=letter.status,
        sender_username=letter.sender.username,
        sender_region_at_send=letter.sender_region_at_send,
        sender_timezone_at_send=letter.sender_timezone_at_send,
        content_type=letter.content_type,
        body=letter.body,
        in_reply_to_id=letter.in_reply_to_id,
        sent_at=letter.sent_at,
        delivered_at=letter.delivered_at,
        opened_at=letter.opened_at,
    )


@router.post(
    "",
    response_model=DraftRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_letter(
    data: LetterCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Start a draft."""
    value = data.addressing_value
    if value is None and data.recipient_user_id is not None:
        value = str(data.recipient_user_id)

    try:
        addressing = parse_addressing(data.addressing_type, value)
    except InvalidAddressingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        letter = letter_service.create_draft(
            db,
            user,
            addressing,
            content_type=data.content_type,
            body=data.body,
        )
    except DeletionHoldError:
        raise HTTPException(status_code=423, detail=HOLD_DETAIL)
    return letter


@router.get("", response_model=list[DraftRead | LetterRead])
def list_letters(
    folder: str = Query(..., description="DRAFTS, UNOPENED, OPENED, or a folder id"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the caller's drafts or delivered letters. In-transit letters never show."""
    try:
        letters = letter_service.list_letters(db, user.id, folder)
    except FolderNotFoundError:
        raise HTTPException(status_code=404, detail="Folder not found")
    return [
        DraftRead.model_validate(letter)
        if letter.status == LetterStatus.DRAFT.value
        else to_letter_read(letter)
        for letter in letters
    ]


@router.post(
    "/{letter_id}/send",
    response_model=LetterActionResponse,
    dependencies=[Depends(require_csrf_header)],
)
def send_letter(
    letter_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    rate_limiter: RateLimitCapability | None = Depends(get_send_rate_limiter),
):
    """
    Send a draft.

    The response never reveals whether or when the recipient will get it.
    """
    try:
        letter_service.send_letter(
            db, letter_id, user.id, clock=clock, rate_limiter=rate_limiter
        )
    except RateLimitedError:
        raise HTTPException(status_code=429, detail="Too many requests. Please try again later.")
    except LetterNotFoundError:
        raise HTTPException(status_code=404, detail="Letter not found")
    except NotLetterSenderError:
        raise HTTPException(status_code=403, detail="You can only send your own letters")
    except LetterStateError:
        raise HTTPException(status_code=409, detail="This letter has already been sent")
    except DeletionHoldError:
        raise HTTPException(status_code=423, detail=HOLD_DETAIL)
    except QuotaExceededError:
        raise HTTPException(
            status_code=422,
            detail="You've reached today's limit of letters. Try again tomorrow.",
        )
    except InvalidAddressingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidTimezoneError:
        logger.exception(
            "Recipient timezone invalid at send",
            extra=build_log_context(user_id=user.id, letter_id=letter_id),
        )
        raise HTTPException(status_code=500, detail="Something went wrong. Please try again.")
    return LetterActionResponse()


@router.post(
    "/{letter_id}/reply",
    response_model=DraftRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def reply_to_letter(
    letter_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Start a draft back to the sender of a letter you received."""
    try:
        return letter_service.create_reply(db, user, letter_id)
    except LetterNotFoundError:
        raise HTTPException(status_code=404, detail="Letter not found")
    except NotLetterRecipientError:
        raise HTTPException(status_code=403, detail="You can only reply to letters you received")
    except DeletionHoldError:
        raise HTTPException(status_code=423, detail=HOLD_DETAIL)


@router.post(
    "/{letter_id}/tear-open",
    response_model=LetterRead,
    dependencies=[Depends(require_csrf_header)],
)
def tear_open_letter(
    letter_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Open a delivered letter. Opening twice is a no-op."""
    try:
        letter = letter_service.tear_open(db, user, letter_id, clock())
    except LetterNotFoundError:
        raise HTTPException(status_code=404, detail="Letter not found")
    except NotLetterRecipientError:
        raise HTTPException(status_code=403, detail="You can only open letters you received")
    return to_letter_read(letter)


@router.post(
    "/{letter_id}/block-sender",
    response_model=LetterActionResponse,
    dependencies=[Depends(require_csrf_header)],
)
def block_letter_sender(
    letter_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Stop future letters from this letter's sender. The sender is never told."""
    try:
        letter_service.block_sender(db, user, letter_id)
    except LetterNotFoundError:
        raise HTTPException(status_code=404, detail="Letter not found")
    except NotLetterRecipientError:
        raise HTTPException(status_code=403, detail="You can only block senders of letters you received")
    except SelfBlockError:
        raise HTTPException(status_code=422, detail="You cannot block yourself")
    return LetterActionResponse()
