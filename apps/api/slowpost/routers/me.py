"""Account router - profile, contact identifiers, and the deletion hold."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from slowpost.core.clock import Clock
from slowpost.core.deps import get_clock, get_current_user, get_db, require_csrf_header
from slowpost.db.models import User
from slowpost.schemas.letter import LetterActionResponse
from slowpost.schemas.user import IdentifierCreate, IdentifierRead, MeRead, ProfileUpdate
from slowpost.services import user_service
from slowpost.services.user_service import (
    DeletionHoldError,
    IdentifierNotFoundError,
    IdentifierTakenError,
    InvalidIdentifierError,
    UserServiceError,
)
from slowpost.utils.timezones import InvalidTimezoneError

router = APIRouter(prefix="/me", tags=["me"])

HOLD_DETAIL = "Your account is scheduled for deletion. Cancel the deletion to continue."


@router.get("", response_model=MeRead)
def get_me(user: User = Depends(get_current_user)):
    return user


@router.put("", response_model=MeRead, dependencies=[Depends(require_csrf_header)])
def update_me(
    data: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update region, timezone, or discoverability.

    Letters already sent keep the region and timezone they were sent with.
    """
    try:
        return user_service.update_profile(db, user, **data.model_dump(exclude_unset=True))
    except DeletionHoldError:
        raise HTTPException(status_code=423, detail=HOLD_DETAIL)
    except InvalidTimezoneError:
        raise HTTPException(status_code=400, detail="Invalid timezone. Please select from the list.")
    except UserServiceError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/identifiers", response_model=list[IdentifierRead])
def list_identifiers(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return user_service.list_identifiers(db, user.id)


@router.post(
    "/identifiers",
    response_model=IdentifierRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_identifier(
    data: IdentifierCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Register an email, phone, or postal address (stored normalized)."""
    try:
        return user_service.add_identifier(db, user, data.identifier_type, data.value)
    except DeletionHoldError:
        raise HTTPException(status_code=423, detail=HOLD_DETAIL)
    except InvalidIdentifierError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except IdentifierTakenError:
        raise HTTPException(status_code=409, detail="This identifier is already registered")


@router.delete(
    "/identifiers/{identifier_id}",
    response_model=LetterActionResponse,
    dependencies=[Depends(require_csrf_header)],
)
def remove_identifier(
    identifier_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Stop routing by this identifier. Someone else's identifier is a 404."""
    try:
        user_service.remove_identifier(db, user, identifier_id)
    except DeletionHoldError:
        raise HTTPException(status_code=423, detail=HOLD_DETAIL)
    except IdentifierNotFoundError:
        raise HTTPException(status_code=404, detail="Identifier not found")
    return LetterActionResponse()


@router.post("/delete", response_model=MeRead, dependencies=[Depends(require_csrf_header)])
def request_deletion(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Start the deletion grace period. Sending is suspended until cancelled."""
    return user_service.mark_for_deletion(db, user, clock())


@router.post("/cancel-delete", response_model=MeRead, dependencies=[Depends(require_csrf_header)])
def cancel_deletion(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return user_service.cancel_deletion(db, user)
