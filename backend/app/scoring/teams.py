"""Team roster helpers shared by the scoring engines."""

from typing import Any, Dict, List, Optional

from .errors import MalformedFormat

SIDES = ("A", "B")


def other_side(side: str) -> str:
    return "B" if side == "A" else "A"


def _normalise_player(raw: Any, side: str, index: int) -> Dict[str, str]:
    if isinstance(raw, str):
        raw = {"id": raw}
    if not isinstance(raw, dict):
        raise MalformedFormat(f"team {side} player #{index} must be an object")
    pid = raw.get("id")
    if not isinstance(pid, str) or not pid.strip():
        raise MalformedFormat(f"team {side} player #{index} needs a non-empty id")
    pid = pid.strip()
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        name = pid
    return {"id": pid, "name": name.strip()}


def normalise_teams(
    teams: Optional[Dict],
    *,
    min_players: int = 0,
    max_players: Optional[int] = None,
) -> Dict[str, Dict]:
    """Validate and normalise a ``{"A": ..., "B": ...}`` roster mapping.

    Each side is ``{"name": str, "players": [{"id", "name"}, ...]}``; players
    may also be given as bare id strings. Player ids must be unique across
    both sides. Violations raise :class:`MalformedFormat`.
    """

    teams = teams or {}
    if not isinstance(teams, dict) or set(teams) - set(SIDES):
        raise MalformedFormat("teams must be keyed by side A and B")

    normalised: Dict[str, Dict] = {}
    seen: set[str] = set()
    for side in SIDES:
        raw = teams.get(side) or {}
        if not isinstance(raw, dict):
            raise MalformedFormat(f"team {side} must be an object")
        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            name = f"Team {side}"
        players = [
            _normalise_player(p, side, i)
            for i, p in enumerate(raw.get("players") or [], start=1)
        ]
        if len(players) < min_players:
            raise MalformedFormat(
                f"team {side} needs at least {min_players} player(s)"
            )
        if max_players is not None and len(players) > max_players:
            raise MalformedFormat(
                f"team {side} allows at most {max_players} player(s)"
            )
        for p in players:
            if p["id"] in seen:
                raise MalformedFormat(f"player '{p['id']}' appears more than once")
            seen.add(p["id"])
        normalised[side] = {"name": name.strip(), "players": players}
    return normalised


def player_ids(teams: Dict, side: str) -> List[str]:
    return [p["id"] for p in teams[side]["players"]]
