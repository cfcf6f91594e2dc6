from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Meta
# ---------------------------------------------------------------------------

class HealthStatus(BaseModel):
    status: str = "ok"
    message: str = "SEMA API is running"


# ---------------------------------------------------------------------------
# Ban management
# ---------------------------------------------------------------------------

class BanCreate(BaseModel):
    """Manual ban issued by an operator."""

    client_id: str = Field(..., min_length=1, max_length=256, description="Client identifier (usually an IP address).")
    duration_seconds: int = Field(3600, gt=0, le=30 * 24 * 3600, description="Ban length in seconds.")


class BanRead(BaseModel):
    client_id: str
    banned_until: datetime
    remaining_minutes: int


class BanList(BaseModel):
    total: int
    bans: List[BanRead]


class UnbanResult(BaseModel):
    client_id: str
    removed: bool = Field(..., description="False when the client was not banned.")


class ClearBansResult(BaseModel):
    cleared: int
