from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Side = Literal["A", "B"]
Sport = Literal["badminton", "cricket"]


class PlayerIn(BaseModel):
    id: str = Field(..., min_length=1, max_length=100)
    name: Optional[str] = Field(default=None, max_length=200)

    @field_validator("id", mode="before")
    @classmethod
    def _validate_id(cls, value: str) -> str:
        if not isinstance(value, str):
            raise TypeError("id must be a string")
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("id must not be empty")
        return trimmed


class TeamIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    players: List[PlayerIn] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not isinstance(value, str):
            raise TypeError("name must be a string")
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("name must not be empty")
        return trimmed


class MatchCreate(BaseModel):
    """Request body for creating a match.

    ``config`` is passed to the sport's engine unchanged; unsupported formats
    are rejected by the engine with ``malformed_format``.
    """

    sport: Sport
    teams: Dict[Side, TeamIn]
    config: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    @field_validator("sport", mode="before")
    @classmethod
    def _normalize_sport(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _require_both_sides(self) -> "MatchCreate":
        if set(self.teams) != {"A", "B"}:
            raise ValueError("teams must include both sides A and B")
        return self

    def teams_payload(self) -> Dict[str, Any]:
        return {
            side: team.model_dump(exclude_none=True)
            for side, team in self.teams.items()
        }


class EventIn(BaseModel):
    """One scoring event; which fields are required depends on ``type``."""

    type: Literal["START", "POINT", "OPENERS", "BOWLER", "BATTER", "BALL", "WICKET"]
    # badminton
    by: Optional[Side] = None
    server: Optional[Side] = None
    # cricket
    runs: Optional[int] = None
    extra: Optional[Literal["wide", "noball", "bye", "legbye"]] = None
    dismissal: Optional[
        Literal["bowled", "caught", "lbw", "runout", "stumped", "hitwicket"]
    ] = None
    fielder: Optional[str] = None
    striker: Optional[str] = None
    nonStriker: Optional[str] = None
    bowler: Optional[str] = None
    batter: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _validate_required(self) -> "EventIn":
        required = {
            "POINT": ("by",),
            "START": ("server",),
            "BALL": ("runs",),
            "WICKET": ("dismissal",),
        }.get(self.type, ())
        missing = [f for f in required if getattr(self, f) is None]
        if missing:
            raise ValueError(f"{', '.join(missing)} required for {self.type} events")
        return self

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class MatchOut(BaseModel):
    """Match envelope returned by the API."""

    id: str
    sport: Sport
    teams: Dict[str, Any]
    config: Dict[str, Any]
    status: Literal["setup", "ongoing", "completed"]
    winner: Optional[Side] = None
    createdAt: str
    updatedAt: str
    state: Dict[str, Any]


class TransitionOut(BaseModel):
    """Result of recording an event or undoing one."""

    ok: bool = True
    match: MatchOut
    summary: Dict[str, Any]


class MatchSummaryOut(BaseModel):
    id: str
    sport: Sport
    status: Literal["setup", "ongoing", "completed"]
    winner: Optional[Side] = None
    summary: Dict[str, Any]
