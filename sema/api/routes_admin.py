from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..guard.ban_store import BanRecord
from ..guard.core import RateGuard
from ..schemas import BanCreate, BanList, BanRead, ClearBansResult, UnbanResult
from .dependencies import get_guard, require_admin_key

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_key)])

logger = logging.getLogger("sema.admin")


def _to_read(record: BanRecord, now: float) -> BanRead:
    return BanRead(
        client_id=record.client_id,
        banned_until=record.banned_until_dt,
        remaining_minutes=record.remaining_minutes(now),
    )


@router.get("/bans", response_model=BanList)
def list_bans(guard: RateGuard = Depends(get_guard)) -> BanList:
    """Every active ban, soonest expiry first."""
    now = guard.bans.now()
    bans = [_to_read(r, now) for r in guard.list_active_bans()]
    return BanList(total=len(bans), bans=bans)


@router.post("/bans", response_model=BanRead, status_code=201)
def create_ban(body: BanCreate, guard: RateGuard = Depends(get_guard)) -> BanRead:
    """Ban a client manually. Replaces any ban it is already serving."""
    record = guard.ban_client(body.client_id, body.duration_seconds)
    logger.info("Manual ban: %s for %ss", body.client_id, body.duration_seconds)
    return _to_read(record, guard.bans.now())


@router.delete("/bans/{client_id}", response_model=UnbanResult)
def unban(client_id: str, guard: RateGuard = Depends(get_guard)) -> UnbanResult:
    return UnbanResult(client_id=client_id, removed=guard.unban_client(client_id))


@router.delete("/bans", response_model=ClearBansResult)
def clear_bans(guard: RateGuard = Depends(get_guard)) -> ClearBansResult:
    """Lift every ban at once."""
    return ClearBansResult(cleared=guard.clear_all_bans())
