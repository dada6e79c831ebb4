"""Match envelope shared by every sport and the transition entry points.

A match is a JSON-ready ``dict``::

    {
        "id": str,
        "sport": "badminton" | "cricket",
        "teams": {"A": {...}, "B": {...}},
        "config": {...},
        "status": "setup" | "ongoing" | "completed",
        "winner": "A" | "B" | None,
        "createdAt": iso8601,
        "updatedAt": iso8601,
        "state": {...},   # engine state, including the event log
    }

:func:`create_match`, :func:`record` and :func:`undo` never raise for a
rejected transition; they return :class:`Rejected` carrying the
:class:`~app.scoring.errors.ScoringError` so the caller decides how to
surface it. Neither ever mutates the match passed in.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from types import ModuleType
from typing import Any, Dict, Optional, Union

from ..time_utils import coerce_utc
from . import badminton, cricket
from .errors import MalformedFormat, ScoringError

logger = logging.getLogger(__name__)

ENGINES: Dict[str, ModuleType] = {
    "badminton": badminton,
    "cricket": cricket,
}


def get_engine(sport: Any) -> ModuleType:
    try:
        return ENGINES[sport]
    except (KeyError, TypeError):
        raise MalformedFormat(f"unsupported sport {sport!r}") from None


@dataclass(frozen=True)
class Accepted:
    """A transition that produced a new match."""

    match: Dict[str, Any]
    ok = True


@dataclass(frozen=True)
class Rejected:
    """A transition refused by the rules; the prior match still stands."""

    error: ScoringError
    ok = False


Transition = Union[Accepted, Rejected]


def _timestamp(now: Optional[datetime]) -> str:
    return coerce_utc(now or datetime.now(timezone.utc)).isoformat()


def _with_state(match: Dict[str, Any], state: Dict[str, Any], now: Optional[datetime]) -> Dict[str, Any]:
    updated = dict(match)
    updated["state"] = state
    updated["status"] = state["status"]
    updated["winner"] = state["winner"]
    updated["updatedAt"] = _timestamp(now)
    return updated


def create_match(
    sport: str,
    teams: Optional[Dict[str, Any]] = None,
    config: Optional[Dict[str, Any]] = None,
    *,
    match_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Transition:
    """Build a new match envelope with an empty event log."""

    try:
        engine = get_engine(sport)
        state = engine.init_state(config or {}, teams)
    except ScoringError as exc:
        logger.info("Rejected %s match setup: %s", sport, exc.detail)
        return Rejected(exc)

    created = _timestamp(now)
    match = {
        "id": match_id or uuid.uuid4().hex,
        "sport": sport,
        "teams": state["teams"],
        "config": state["config"],
        "status": state["status"],
        "winner": state["winner"],
        "createdAt": created,
        "updatedAt": created,
        "state": state,
    }
    logger.debug("Created %s match %s", sport, match["id"])
    return Accepted(match)


def record(match: Dict[str, Any], event: Dict[str, Any], *, now: Optional[datetime] = None) -> Transition:
    """Apply one scoring event to ``match``."""

    try:
        engine = get_engine(match.get("sport"))
        state = engine.apply(event, match["state"])
    except ScoringError as exc:
        logger.info(
            "Rejected %r for match %s: %s (%s)",
            event.get("type") if isinstance(event, dict) else event,
            match.get("id"),
            exc.detail,
            exc.code,
        )
        return Rejected(exc)

    logger.debug("Recorded %s for match %s", event.get("type"), match.get("id"))
    return Accepted(_with_state(match, state, now))


def undo(match: Dict[str, Any], *, now: Optional[datetime] = None) -> Transition:
    """Remove the most recent event by folding over the rest of the log."""

    try:
        engine = get_engine(match.get("sport"))
        state = engine.undo(match["state"])
    except ScoringError as exc:
        logger.info("Rejected undo for match %s: %s", match.get("id"), exc.detail)
        return Rejected(exc)

    logger.debug("Undid last event for match %s", match.get("id"))
    return Accepted(_with_state(match, state, now))


def replay(match: Dict[str, Any]) -> Dict[str, Any]:
    """Rebuild the engine state from the match's own event log.

    Raises :class:`ScoringError` if the stored log is not a valid history,
    which only happens for a corrupted or hand-edited match.
    """

    engine = get_engine(match.get("sport"))
    state = match["state"]
    return engine.replay(state["config"], state["teams"], state["events"])


def summary(match: Dict[str, Any]) -> Dict[str, Any]:
    engine = get_engine(match.get("sport"))
    return engine.summary(match["state"])
