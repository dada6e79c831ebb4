# backend/app/routers/matches.py
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .. import scoring
from ..config import EVENT_RATE_LIMIT
from ..db import get_session
from ..exceptions import MatchStoreUnavailable, ScoringRejected, http_problem
from ..rate_limit import limiter
from ..schemas import EventIn, MatchCreate, MatchOut, MatchSummaryOut, TransitionOut
from ..services import StoreError, fetch_match_state, match_lock, save_match_state

logger = logging.getLogger(__name__)

# Resource-only prefix; versioning is added in main.py
router = APIRouter(prefix="/matches", tags=["matches"])


async def _load(session: AsyncSession, mid: str) -> dict[str, Any]:
    try:
        match = await fetch_match_state(session, mid)
    except StoreError as exc:
        raise MatchStoreUnavailable(exc.detail)
    if match is None:
        raise http_problem(
            status_code=404,
            detail="match not found",
            code="match_not_found",
        )
    return match


async def _save(session: AsyncSession, match: dict[str, Any]) -> None:
    try:
        await save_match_state(session, match["id"], match)
    except StoreError as exc:
        raise MatchStoreUnavailable(exc.detail)


def _transition_out(match: dict[str, Any]) -> TransitionOut:
    return TransitionOut(
        match=MatchOut(**match),
        summary=scoring.summary(match),
    )


# POST /api/v0/matches
@router.post("", response_model=MatchOut, status_code=201)
async def create_match(
    body: MatchCreate,
    session: AsyncSession = Depends(get_session),
) -> MatchOut:
    outcome = scoring.create_match(body.sport, body.teams_payload(), body.config)
    if not outcome.ok:
        raise ScoringRejected(outcome.error)
    await _save(session, outcome.match)
    logger.info("Created %s match %s", body.sport, outcome.match["id"])
    return MatchOut(**outcome.match)


# GET /api/v0/matches/{mid}
@router.get("/{mid}", response_model=MatchOut)
async def get_match(mid: str, session: AsyncSession = Depends(get_session)) -> MatchOut:
    return MatchOut(**await _load(session, mid))


# GET /api/v0/matches/{mid}/summary
@router.get("/{mid}/summary", response_model=MatchSummaryOut)
async def get_match_summary(
    mid: str, session: AsyncSession = Depends(get_session)
) -> MatchSummaryOut:
    match = await _load(session, mid)
    return MatchSummaryOut(
        id=match["id"],
        sport=match["sport"],
        status=match["status"],
        winner=match["winner"],
        summary=scoring.summary(match),
    )


# POST /api/v0/matches/{mid}/events
async def append_event(
    mid: str,
    ev: EventIn,
    session: AsyncSession,
) -> TransitionOut:
    # Unknown ids get their 404 before a lock is taken for them.
    await _load(session, mid)
    async with match_lock(mid):
        match = await _load(session, mid)
        outcome = scoring.record(match, ev.payload())
        if not outcome.ok:
            raise ScoringRejected(outcome.error)
        await _save(session, outcome.match)
    return _transition_out(outcome.match)


@router.post("/{mid}/events", response_model=TransitionOut)
@limiter.limit(EVENT_RATE_LIMIT)
async def append_event_route(
    request: Request,
    mid: str,
    ev: EventIn,
    session: AsyncSession = Depends(get_session),
) -> TransitionOut:
    return await append_event(mid, ev, session)


# POST /api/v0/matches/{mid}/undo
async def undo_last_event(mid: str, session: AsyncSession) -> TransitionOut:
    # Unknown ids get their 404 before a lock is taken for them.
    await _load(session, mid)
    async with match_lock(mid):
        match = await _load(session, mid)
        outcome = scoring.undo(match)
        if not outcome.ok:
            raise ScoringRejected(outcome.error)
        await _save(session, outcome.match)
    return _transition_out(outcome.match)


@router.post("/{mid}/undo", response_model=TransitionOut)
@limiter.limit(EVENT_RATE_LIMIT)
async def undo_route(
    request: Request,
    mid: str,
    session: AsyncSession = Depends(get_session),
) -> TransitionOut:
    return await undo_last_event(mid, session)
