"""Pydantic schemas for the identifier lookup."""

from typing import Any

from pydantic import BaseModel

from slowpost.core.constants import GENERIC_LOOKUP_MESSAGE


class LookupRequest(BaseModel):
    """Loosely typed: malformed input gets the same answer as everything else."""

    type: Any = None
    value: Any = None


class LookupResponse(BaseModel):
    message: str = GENERIC_LOOKUP_MESSAGE
