"""Badminton scoring engine.

Rally scoring to 21 points with a win-by-2 requirement. At 29-29 the next
rally is a golden point, so no game goes past 30. Matches default to
best-of-3 games.

The state is a plain JSON-ready ``dict`` carrying its own event log; every
transition returns a new state and leaves the one passed in untouched.
"""

from copy import deepcopy
from typing import Dict, Iterable, Optional

from .errors import InvalidEvent, MalformedFormat, UndoUnavailable
from .teams import SIDES, normalise_teams, other_side

POINTS_TO = 21
WIN_BY = 2
DEUCE_AT = 20
GOLDEN_POINT_AT = 29
MAX_POINT = 30
SUPPORTED_BEST_OF = (1, 3, 5)
TEAM_SIZES = {"singles": 1, "doubles": 2}


def _normalise_config(config: Dict) -> Dict:
    best_of = config.get("bestOf", 3)
    if isinstance(best_of, bool) or best_of not in SUPPORTED_BEST_OF:
        raise MalformedFormat(
            f"bestOf must be one of {', '.join(map(str, SUPPORTED_BEST_OF))}"
        )
    match_type = config.get("matchType", "singles")
    if match_type not in TEAM_SIZES:
        raise MalformedFormat("matchType must be 'singles' or 'doubles'")
    first_server = config.get("firstServer")
    if first_server is not None and first_server not in SIDES:
        raise MalformedFormat("firstServer must be 'A' or 'B'")
    return {"bestOf": best_of, "matchType": match_type, "firstServer": first_server}


def _normalise_badminton_teams(teams: Optional[Dict], match_type: str) -> Dict:
    size = TEAM_SIZES[match_type]
    normalised = normalise_teams(teams, max_players=size)
    for side in SIDES:
        count = len(normalised[side]["players"])
        if count and count != size:
            raise MalformedFormat(
                f"{match_type} needs exactly {size} player(s) on team {side}"
            )
    return normalised


def _court_side(score: int) -> str:
    return "right" if score % 2 == 0 else "left"


def _new_game(number: int, server: str) -> Dict:
    return {
        "number": number,
        "score": {"A": 0, "B": 0},
        "server": server,
        "receiver": other_side(server),
        "serverCourtSide": "right",
        "isDeuce": False,
        "isGoldenPoint": False,
        "winner": None,
    }


def games_needed(best_of: int) -> int:
    return best_of // 2 + 1


def game_winner(a: int, b: int) -> Optional[str]:
    """Return the side that has won a game at ``a``-``b``, if any."""

    top = max(a, b)
    if top >= MAX_POINT or (top >= POINTS_TO and abs(a - b) >= WIN_BY):
        return "A" if a > b else "B"
    return None


def init_state(config: Dict, teams: Optional[Dict] = None) -> Dict:
    """Initialise scoreboard state for badminton.

    Without ``firstServer`` in ``config`` the match stays in ``setup`` until
    a ``START`` event picks the first server.
    """

    cfg = _normalise_config(config or {})
    state = {
        "config": cfg,
        "teams": _normalise_badminton_teams(teams, cfg["matchType"]),
        "events": [],
        "lockedEvents": 0,
        "status": "setup",
        "winner": None,
        "firstServer": None,
        "games": [],
        "currentGame": None,
        "gamesWon": {"A": 0, "B": 0},
    }
    if cfg["firstServer"]:
        _begin(state, cfg["firstServer"])
    return state


def _begin(state: Dict, server: str) -> None:
    state["firstServer"] = server
    state["games"] = [_new_game(1, server)]
    state["currentGame"] = 0
    state["status"] = "ongoing"


def _start(event: Dict, state: Dict) -> None:
    server = event.get("server")
    if server not in SIDES:
        raise InvalidEvent("START must name the first server, 'A' or 'B'")
    if state["status"] != "setup":
        raise InvalidEvent("match has already started")
    state["events"].append(
        {"type": "START", "server": server, "seq": len(state["events"]) + 1}
    )
    _begin(state, server)


def _point(event: Dict, state: Dict) -> None:
    side = event.get("by")
    if side not in SIDES:
        raise InvalidEvent("POINT must name the rally winner, 'A' or 'B'")
    if state["status"] == "completed":
        raise InvalidEvent("match is already completed")
    if state["status"] != "ongoing":
        raise InvalidEvent("no game in progress; choose the first server")

    game = state["games"][state["currentGame"]]
    game["score"][side] += 1
    a, b = game["score"]["A"], game["score"]["B"]
    winner = game_winner(a, b)

    # Rally winner serves next, from the court matching their score parity.
    game["server"] = side
    game["receiver"] = other_side(side)
    game["serverCourtSide"] = _court_side(game["score"][side])
    game["isDeuce"] = winner is None and a >= DEUCE_AT and b >= DEUCE_AT
    game["isGoldenPoint"] = a == b == GOLDEN_POINT_AT
    game["winner"] = winner

    state["events"].append(
        {
            "type": "POINT",
            "by": side,
            "seq": len(state["events"]) + 1,
            "game": game["number"],
        }
    )
    if winner:
        _close_game(state, game, winner)


def _close_game(state: Dict, game: Dict, winner: str) -> None:
    state["gamesWon"][winner] += 1
    state["lockedEvents"] = len(state["events"])
    if state["gamesWon"][winner] >= games_needed(state["config"]["bestOf"]):
        state["status"] = "completed"
        state["winner"] = winner
        return

    # Game 2 opens with the loser of game 1 serving; later games with the
    # winner of the game just played.
    next_server = other_side(winner) if game["number"] == 1 else winner
    state["games"].append(_new_game(game["number"] + 1, next_server))
    state["currentGame"] += 1


_HANDLERS = {"START": _start, "POINT": _point}


def _apply(event: Dict, state: Dict) -> Dict:
    kind = event.get("type") if isinstance(event, dict) else None
    handler = _HANDLERS.get(kind)
    if handler is None:
        raise InvalidEvent(f"invalid badminton event type {kind!r}")
    handler(event, state)
    return state


def apply(event: Dict, state: Dict) -> Dict:
    """Apply a ``START`` or ``POINT`` event and return the new state."""

    return _apply(event, deepcopy(state))


def replay(config: Dict, teams: Optional[Dict], events: Iterable[Dict]) -> Dict:
    """Fold ``events`` over a fresh state."""

    state = init_state(config, teams)
    for event in events:
        _apply(event, state)
    return state


def undo(state: Dict) -> Dict:
    """Drop the most recent event and return the state folded without it.

    Points that closed a game cannot be undone.
    """

    events = state["events"]
    if not events:
        raise UndoUnavailable("no points to undo")
    if len(events) <= state["lockedEvents"]:
        raise UndoUnavailable("cannot undo points from a completed game")
    return replay(state["config"], state["teams"], events[:-1])


def current_game(state: Dict) -> Optional[Dict]:
    if state["currentGame"] is None:
        return None
    return state["games"][state["currentGame"]]


def summary(state: Dict) -> Dict:
    game = current_game(state)
    return {
        "status": state["status"],
        "winner": state["winner"],
        "games": [
            {"A": g["score"]["A"], "B": g["score"]["B"], "winner": g["winner"]}
            for g in state["games"]
        ],
        "gamesWon": dict(state["gamesWon"]),
        "server": game["server"] if game else None,
        "serverCourtSide": game["serverCourtSide"] if game else None,
        "isDeuce": game["isDeuce"] if game else False,
        "isGoldenPoint": game["isGoldenPoint"] if game else False,
        "config": state["config"],
    }
