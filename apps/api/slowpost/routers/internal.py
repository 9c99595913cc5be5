"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from external cron every few minutes.
"""

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from slowpost.core.clock import Clock
from slowpost.core.config import settings
from slowpost.core.deps import get_clock
from slowpost.db.session import SessionLocal
from slowpost.services import delivery_sweep


router = APIRouter(prefix="/internal/scheduled", tags=["internal"])


def verify_internal_secret(x_internal_secret: str = Header(...)):
    """Verify the internal secret header."""
    expected = settings.INTERNAL_SECRET
    if not expected:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if x_internal_secret != expected:
        raise HTTPException(status_code=403, detail="Invalid internal secret")


class DeliverySweepResponse(BaseModel):
    deleted: int
    undeliverable: int
    rerouted: int
    delivered: int
    blocked: int
    errors: int


@router.post("/deliver", response_model=DeliverySweepResponse)
def run_delivery_sweep(
    x_internal_secret: str = Header(...),
    clock: Clock = Depends(get_clock),
):
    """
    Run one delivery sweep.

    Purges expired accounts, expires unresolvable letters, re-routes the
    rest, and finalizes everything due. Safe to call on overlapping
    schedules.
    """
    verify_internal_secret(x_internal_secret)

    with SessionLocal() as db:
        summary = delivery_sweep.run_sweep(db, clock=clock)

    return DeliverySweepResponse(**summary.as_dict())
