"""Scoring engines for the various sports."""

from . import badminton, cricket
from .errors import (
    InvalidEvent,
    MalformedFormat,
    MissingParticipant,
    ScoringError,
    UndoUnavailable,
)
from .match import (
    ENGINES,
    Accepted,
    Rejected,
    Transition,
    create_match,
    get_engine,
    record,
    replay,
    summary,
    undo,
)

__all__ = [
    "badminton",
    "cricket",
    "ENGINES",
    "Accepted",
    "Rejected",
    "Transition",
    "create_match",
    "get_engine",
    "record",
    "replay",
    "summary",
    "undo",
    "ScoringError",
    "InvalidEvent",
    "MissingParticipant",
    "UndoUnavailable",
    "MalformedFormat",
]
