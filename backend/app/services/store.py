"""Persistence adapter for match state.

The scoring engines never call this module. The HTTP layer fetches a match,
runs one transition, and saves the resulting envelope here. The ``state``
column (holding the event log) is the system of record; ``score_event`` rows
mirror the log for auditing and are trimmed when an undo shortens it.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db_errors import is_missing_table_error
from ..models import Match, ScoreEvent
from ..time_utils import coerce_utc, parse_timestamp

logger = logging.getLogger(__name__)

# A lock lives only while a request holds or awaits it.
_match_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


class StoreError(Exception):
    """Raised when the match store cannot be read or written."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


def match_lock(match_id: str) -> asyncio.Lock:
    """Return the lock serialising mutations of one match."""

    lock = _match_locks.get(match_id)
    if lock is None:
        lock = _match_locks[match_id] = asyncio.Lock()
    return lock


def _to_envelope(row: Match) -> dict[str, Any]:
    return {
        "id": row.id,
        "sport": row.sport_id,
        "teams": row.teams,
        "config": row.config,
        "status": row.status,
        "winner": row.winner,
        "createdAt": coerce_utc(row.created_at).isoformat(),
        "updatedAt": coerce_utc(row.updated_at).isoformat(),
        "state": row.state,
    }


async def fetch_match_state(session: AsyncSession, match_id: str) -> dict[str, Any] | None:
    """Return the stored match envelope, or ``None`` if it does not exist."""

    try:
        row = await session.get(Match, match_id, populate_existing=True)
    except SQLAlchemyError as exc:
        if is_missing_table_error(exc, "match"):
            logger.error("match table is missing; run the migrations")
        raise StoreError("failed to load match") from exc
    if row is None:
        return None
    return _to_envelope(row)


async def _sync_events(session: AsyncSession, match_id: str, events: list[dict]) -> None:
    stored = (
        await session.execute(
            select(ScoreEvent.seq).where(ScoreEvent.match_id == match_id)
        )
    ).scalars().all()
    count = len(events)
    if any(seq > count for seq in stored):
        await session.execute(
            delete(ScoreEvent).where(
                ScoreEvent.match_id == match_id, ScoreEvent.seq > count
            )
        )
    known = {seq for seq in stored if seq <= count}
    for event in events:
        if event["seq"] in known:
            continue
        session.add(
            ScoreEvent(
                id=uuid.uuid4().hex,
                match_id=match_id,
                seq=event["seq"],
                type=event["type"],
                payload=event,
            )
        )


async def save_match_state(session: AsyncSession, match_id: str, state: dict[str, Any]) -> None:
    """Insert or update ``match_id`` with the envelope ``state``.

    Raises :class:`StoreError` on database failure; the session is rolled
    back and the caller's in-memory match is left as it was.
    """

    try:
        row = await session.get(Match, match_id)
        if row is None:
            row = Match(id=match_id, created_at=parse_timestamp(state["createdAt"]))
            session.add(row)
        row.sport_id = state["sport"]
        row.status = state["status"]
        row.winner = state["winner"]
        row.teams = state["teams"]
        row.config = state["config"]
        row.state = state["state"]
        row.updated_at = parse_timestamp(state["updatedAt"])
        await session.flush()
        await _sync_events(session, match_id, state["state"]["events"])
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Failed to save match %s", match_id, exc_info=True)
        raise StoreError("failed to save match") from exc
    logger.debug(
        "Saved match %s (%d events, status=%s)",
        match_id,
        len(state["state"]["events"]),
        state["status"],
    )
