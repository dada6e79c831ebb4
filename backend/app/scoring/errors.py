"""Rejection kinds shared by the scoring engines."""


class ScoringError(Exception):
    """Base class for a rejected scoring transition.

    ``code`` is stable and safe to hand to API clients; ``detail`` is a human
    readable explanation.
    """

    code = "scoring_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"code": self.code, "detail": self.detail}


class InvalidEvent(ScoringError):
    """The event does not apply to the current state."""

    code = "invalid_event"


class MissingParticipant(ScoringError):
    """A required striker, batter or bowler selection has not been made."""

    code = "missing_participant"


class UndoUnavailable(ScoringError):
    """Nothing to undo, or the last event belongs to a closed game/innings."""

    code = "undo_unavailable"


class MalformedFormat(ScoringError):
    """The match format or team configuration is not supported."""

    code = "malformed_format"
