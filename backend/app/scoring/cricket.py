"""Cricket scoring engine.

Limited-overs, two innings. The event log holds both deliveries and the
participant selections (openers, bowler for each over, incoming batters), so
folding the log from an empty state reproduces the crease exactly.

Events::

    {"type": "OPENERS", "striker": id, "nonStriker": id}
    {"type": "BOWLER", "bowler": id}
    {"type": "BATTER", "batter": id}
    {"type": "BALL", "runs": n, "extra": None | "wide" | "noball" | "bye" | "legbye"}
    {"type": "WICKET", "dismissal": kind, "fielder": id | None}

Scoring an extra adds its runs to the total and to the matching extras
bucket, never to the striker. Wides and no-balls are not legal balls and do
not advance the over.
"""

from copy import deepcopy
from typing import Dict, Iterable, List, Optional

from .errors import InvalidEvent, MalformedFormat, MissingParticipant, UndoUnavailable
from .teams import SIDES, normalise_teams, other_side, player_ids

BALLS_PER_OVER = 6
MAX_WICKETS = 10
MAX_OVERS = 50
MAX_RUNS_PER_BALL = 7
MIN_PLAYERS = 2
MAX_PLAYERS = 11
MATCH_TYPE_OVERS = {"T10": 10, "T20": 20, "ODI": 50}

EXTRA_BUCKETS = {
    "wide": "wides",
    "noball": "noballs",
    "bye": "byes",
    "legbye": "legbyes",
}
ILLEGAL_EXTRAS = {"wide", "noball"}
# Byes and leg-byes go against the fielding side, not the bowler.
BOWLER_CHARGED_EXTRAS = {None, "wide", "noball"}
DISMISSALS = ("bowled", "caught", "lbw", "runout", "stumped", "hitwicket")
NOT_CREDITED_TO_BOWLER = {"runout"}


def _normalise_config(config: Dict) -> Dict:
    match_type = config.get("matchType")
    if match_type is not None and match_type not in MATCH_TYPE_OVERS:
        raise MalformedFormat(
            f"matchType must be one of {', '.join(MATCH_TYPE_OVERS)}"
        )
    overs = config.get("oversPerInnings")
    if overs is None:
        overs = MATCH_TYPE_OVERS.get(match_type, MATCH_TYPE_OVERS["T20"])
    if isinstance(overs, bool) or not isinstance(overs, int) or not 1 <= overs <= MAX_OVERS:
        raise MalformedFormat(f"oversPerInnings must be an integer from 1 to {MAX_OVERS}")

    toss_winner = config.get("tossWinner")
    toss_decision = config.get("tossDecision")
    batting_first = config.get("battingFirst")
    if toss_winner is not None or toss_decision is not None:
        if toss_winner not in SIDES or toss_decision not in ("bat", "bowl"):
            raise MalformedFormat(
                "tossWinner must be 'A' or 'B' and tossDecision 'bat' or 'bowl'"
            )
        decided = toss_winner if toss_decision == "bat" else other_side(toss_winner)
        if batting_first is not None and batting_first != decided:
            raise MalformedFormat("battingFirst contradicts the toss decision")
        batting_first = decided
    if batting_first is None:
        batting_first = "A"
    if batting_first not in SIDES:
        raise MalformedFormat("battingFirst must be 'A' or 'B'")

    return {
        "oversPerInnings": overs,
        "matchType": match_type,
        "battingFirst": batting_first,
        "tossWinner": toss_winner,
        "tossDecision": toss_decision,
    }


def _new_innings(number: int, batting: str, teams: Dict, target: Optional[int] = None) -> Dict:
    return {
        "number": number,
        "battingTeam": batting,
        "bowlingTeam": other_side(batting),
        "score": 0,
        "wickets": 0,
        "legalBalls": 0,
        "capacity": min(MAX_WICKETS, len(teams[batting]["players"]) - 1),
        "extras": {"wides": 0, "noballs": 0, "byes": 0, "legbyes": 0},
        "batters": [],
        "bowlers": [],
        "striker": None,
        "nonStriker": None,
        "bowler": None,
        "lastBowler": None,
        "overRuns": 0,
        "awaiting": ["openers", "bowler"],
        "target": target,
        "closed": False,
        "closedBy": None,
    }


def init_state(config: Dict, teams: Optional[Dict] = None) -> Dict:
    """Initialise the scoreboard state for a two-innings limited-overs match."""

    cfg = _normalise_config(config or {})
    rosters = normalise_teams(teams, min_players=MIN_PLAYERS, max_players=MAX_PLAYERS)
    return {
        "config": cfg,
        "teams": rosters,
        "events": [],
        "lockedEvents": 0,
        "status": "setup",
        "winner": None,
        "result": None,
        "innings": [_new_innings(1, cfg["battingFirst"], rosters)],
        "currentInnings": 0,
    }


# ---------------------------------------------------------------------------
# Derived figures
# ---------------------------------------------------------------------------


def overs_display(balls: int) -> str:
    return f"{balls // BALLS_PER_OVER}.{balls % BALLS_PER_OVER}"


def strike_rate(runs: int, balls: int) -> float:
    if balls == 0:
        return 0.0
    return round(runs / balls * 100, 2)


def economy(runs_conceded: int, balls: int) -> Optional[float]:
    """Runs conceded per over, or ``None`` before the first legal ball."""

    if balls == 0:
        return None
    return round(runs_conceded / balls * BALLS_PER_OVER, 2)


def run_rate(innings: Dict) -> float:
    if innings["legalBalls"] == 0:
        return 0.0
    return round(innings["score"] / innings["legalBalls"] * BALLS_PER_OVER, 2)


def required_rate(innings: Dict, overs_per_innings: int) -> Optional[float]:
    """Runs per over still needed, or ``None`` outside a chase."""

    if innings["target"] is None or innings["closed"]:
        return None
    balls_left = overs_per_innings * BALLS_PER_OVER - innings["legalBalls"]
    if balls_left <= 0:
        return None
    needed = max(innings["target"] - innings["score"], 0)
    return round(needed / balls_left * BALLS_PER_OVER, 2)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def _current(state: Dict) -> Dict:
    if state["status"] == "completed":
        raise InvalidEvent("match is already completed")
    return state["innings"][state["currentInnings"]]


def _batter_entry(innings: Dict, player_id: str) -> Dict:
    entry = {
        "playerId": player_id,
        "runs": 0,
        "balls": 0,
        "fours": 0,
        "sixes": 0,
        "strikeRate": 0.0,
        "isOut": False,
        "dismissal": None,
        "dismissedBy": None,
        "fielder": None,
    }
    innings["batters"].append(entry)
    return entry


def _find(entries: List[Dict], player_id: str) -> Optional[Dict]:
    return next((e for e in entries if e["playerId"] == player_id), None)


def _bowler_entry(innings: Dict, player_id: str) -> Dict:
    entry = _find(innings["bowlers"], player_id)
    if entry is None:
        entry = {
            "playerId": player_id,
            "balls": 0,
            "overs": "0.0",
            "runsConceded": 0,
            "wickets": 0,
            "dots": 0,
            "maidens": 0,
            "economy": None,
        }
        innings["bowlers"].append(entry)
    return entry


def _require_batter(state: Dict, innings: Dict, player_id) -> str:
    if not isinstance(player_id, str) or not player_id:
        raise MissingParticipant("a batter must be chosen")
    if player_id not in player_ids(state["teams"], innings["battingTeam"]):
        raise InvalidEvent(f"'{player_id}' is not in the batting side")
    if _find(innings["batters"], player_id) is not None:
        raise InvalidEvent(f"'{player_id}' has already batted this innings")
    return player_id


def _stamp(state: Dict, innings: Dict, event: Dict) -> Dict:
    stamped = dict(event)
    stamped["seq"] = len(state["events"]) + 1
    stamped["innings"] = innings["number"]
    state["events"].append(stamped)
    return stamped


def _openers(event: Dict, state: Dict) -> None:
    innings = _current(state)
    if "openers" not in innings["awaiting"]:
        raise InvalidEvent("openers have already been chosen for this innings")
    striker = _require_batter(state, innings, event.get("striker"))
    non_striker = _require_batter(state, innings, event.get("nonStriker"))
    if striker == non_striker:
        raise InvalidEvent("striker and non-striker must be different players")

    _stamp(state, innings, {"type": "OPENERS", "striker": striker, "nonStriker": non_striker})
    _batter_entry(innings, striker)
    _batter_entry(innings, non_striker)
    innings["striker"], innings["nonStriker"] = striker, non_striker
    innings["awaiting"].remove("openers")
    state["status"] = "ongoing"


def _bowler(event: Dict, state: Dict) -> None:
    innings = _current(state)
    bowler = event.get("bowler")
    if "bowler" not in innings["awaiting"]:
        raise InvalidEvent("a bowler is already bowling this over")
    if not isinstance(bowler, str) or not bowler:
        raise MissingParticipant("a bowler must be chosen")
    if bowler not in player_ids(state["teams"], innings["bowlingTeam"]):
        raise InvalidEvent(f"'{bowler}' is not in the fielding side")
    if bowler == innings["lastBowler"]:
        raise InvalidEvent(f"'{bowler}' bowled the previous over")

    _stamp(state, innings, {"type": "BOWLER", "bowler": bowler})
    _bowler_entry(innings, bowler)
    innings["bowler"] = bowler
    innings["awaiting"].remove("bowler")
    state["status"] = "ongoing"


def _batter(event: Dict, state: Dict) -> None:
    innings = _current(state)
    if "batter" not in innings["awaiting"]:
        raise InvalidEvent("no batter is needed at the crease")
    batter = _require_batter(state, innings, event.get("batter"))

    _stamp(state, innings, {"type": "BATTER", "batter": batter})
    _batter_entry(innings, batter)
    if innings["striker"] is None:
        innings["striker"] = batter
    else:
        innings["nonStriker"] = batter
    innings["awaiting"].remove("batter")


def _require_delivery(state: Dict) -> Dict:
    innings = _current(state)
    if "openers" in innings["awaiting"]:
        raise MissingParticipant("choose the opening batters first")
    if "batter" in innings["awaiting"]:
        raise MissingParticipant("choose the incoming batter first")
    if "bowler" in innings["awaiting"]:
        raise MissingParticipant("choose the bowler for this over first")
    return innings


def _delivery_stamp(state: Dict, innings: Dict, event: Dict) -> Dict:
    stamped = dict(event)
    stamped.update(
        {
            "over": innings["legalBalls"] // BALLS_PER_OVER,
            "ballInOver": innings["legalBalls"] % BALLS_PER_OVER,
            "striker": innings["striker"],
            "nonStriker": innings["nonStriker"],
            "bowler": innings["bowler"],
        }
    )
    return _stamp(state, innings, stamped)


def _swap_strike(innings: Dict) -> None:
    innings["striker"], innings["nonStriker"] = innings["nonStriker"], innings["striker"]


def _ball(event: Dict, state: Dict) -> None:
    runs = event.get("runs", 0)
    extra = event.get("extra")
    if isinstance(runs, bool) or not isinstance(runs, int) or not 0 <= runs <= MAX_RUNS_PER_BALL:
        raise InvalidEvent(f"runs must be an integer from 0 to {MAX_RUNS_PER_BALL}")
    if extra is not None and extra not in EXTRA_BUCKETS:
        raise InvalidEvent(f"unknown extra kind {extra!r}")
    innings = _require_delivery(state)

    _delivery_stamp(state, innings, {"type": "BALL", "runs": runs, "extra": extra})
    innings["score"] += runs
    if extra is not None:
        innings["extras"][EXTRA_BUCKETS[extra]] += runs
    else:
        batter = _find(innings["batters"], innings["striker"])
        batter["runs"] += runs
        batter["balls"] += 1
        if runs == 4:
            batter["fours"] += 1
        elif runs == 6:
            batter["sixes"] += 1
        batter["strikeRate"] = strike_rate(batter["runs"], batter["balls"])

    bowler = _find(innings["bowlers"], innings["bowler"])
    charged = runs if extra in BOWLER_CHARGED_EXTRAS else 0
    bowler["runsConceded"] += charged
    innings["overRuns"] += charged

    if extra in ILLEGAL_EXTRAS:
        bowler["economy"] = economy(bowler["runsConceded"], bowler["balls"])
        _check_innings_end(state, innings)
        return

    if charged == 0:
        bowler["dots"] += 1
    if runs % 2 == 1:
        _swap_strike(innings)
    _legal_ball_bowled(state, innings, bowler)


def _wicket(event: Dict, state: Dict) -> None:
    dismissal = event.get("dismissal")
    fielder = event.get("fielder")
    if dismissal not in DISMISSALS:
        raise InvalidEvent(f"dismissal must be one of {', '.join(DISMISSALS)}")
    innings = _require_delivery(state)
    if fielder is not None and fielder not in player_ids(state["teams"], innings["bowlingTeam"]):
        raise InvalidEvent(f"'{fielder}' is not in the fielding side")

    _delivery_stamp(
        state, innings, {"type": "WICKET", "dismissal": dismissal, "fielder": fielder}
    )
    innings["wickets"] += 1

    batter = _find(innings["batters"], innings["striker"])
    batter["balls"] += 1
    batter["strikeRate"] = strike_rate(batter["runs"], batter["balls"])
    batter.update(
        {
            "isOut": True,
            "dismissal": dismissal,
            "dismissedBy": innings["bowler"],
            "fielder": fielder,
        }
    )
    innings["striker"] = None
    innings["awaiting"].append("batter")

    bowler = _find(innings["bowlers"], innings["bowler"])
    bowler["dots"] += 1
    if dismissal not in NOT_CREDITED_TO_BOWLER:
        bowler["wickets"] += 1
    _legal_ball_bowled(state, innings, bowler)


def _legal_ball_bowled(state: Dict, innings: Dict, bowler: Dict) -> None:
    innings["legalBalls"] += 1
    bowler["balls"] += 1
    bowler["overs"] = overs_display(bowler["balls"])
    bowler["economy"] = economy(bowler["runsConceded"], bowler["balls"])

    if innings["legalBalls"] % BALLS_PER_OVER == 0:
        if innings["overRuns"] == 0:
            bowler["maidens"] += 1
        innings["overRuns"] = 0
        # Applied after any odd-run swap from the same delivery.
        _swap_strike(innings)
        innings["lastBowler"] = innings["bowler"]
        innings["bowler"] = None
        innings["awaiting"].append("bowler")

    _check_innings_end(state, innings)


def _closing_reason(state: Dict, innings: Dict) -> Optional[str]:
    if innings["wickets"] >= innings["capacity"]:
        return "allOut"
    if innings["legalBalls"] >= state["config"]["oversPerInnings"] * BALLS_PER_OVER:
        return "overs"
    if innings["target"] is not None and innings["score"] >= innings["target"]:
        return "target"
    return None


def _check_innings_end(state: Dict, innings: Dict) -> None:
    reason = _closing_reason(state, innings)
    if reason is None:
        return

    innings["closed"] = True
    innings["closedBy"] = reason
    innings["awaiting"] = []
    innings["bowler"] = None
    state["lockedEvents"] = len(state["events"])

    if innings["number"] == 1:
        state["innings"].append(
            _new_innings(2, innings["bowlingTeam"], state["teams"], target=innings["score"] + 1)
        )
        state["currentInnings"] = 1
        return

    state["result"] = match_result(state)
    state["winner"] = state["result"]["winner"]
    state["status"] = "completed"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def match_result(state: Dict) -> Dict:
    """Decide the result once both innings are closed."""

    first, second = state["innings"]
    teams = state["teams"]
    if second["score"] >= second["target"]:
        winner = second["battingTeam"]
        # A short roster can be all out early, but the margin counts from ten.
        margin = MAX_WICKETS - second["wickets"]
        margin_type = "wickets"
        text = f"{teams[winner]['name']} won by {_plural(margin, 'wicket')}"
    elif first["score"] > second["score"]:
        winner = first["battingTeam"]
        margin = first["score"] - second["score"]
        margin_type = "runs"
        text = f"{teams[winner]['name']} won by {_plural(margin, 'run')}"
    else:
        return {"winner": None, "margin": None, "marginType": None, "tie": True, "text": "Match tied"}
    return {
        "winner": winner,
        "margin": margin,
        "marginType": margin_type,
        "tie": False,
        "text": text,
    }


_HANDLERS = {
    "OPENERS": _openers,
    "BOWLER": _bowler,
    "BATTER": _batter,
    "BALL": _ball,
    "WICKET": _wicket,
}


def _apply(event: Dict, state: Dict) -> Dict:
    kind = event.get("type") if isinstance(event, dict) else None
    handler = _HANDLERS.get(kind)
    if handler is None:
        raise InvalidEvent(f"invalid cricket event type {kind!r}")
    handler(event, state)
    return state


def apply(event: Dict, state: Dict) -> Dict:
    """Apply one event and return the new state; ``state`` is not modified."""

    return _apply(event, deepcopy(state))


def replay(config: Dict, teams: Optional[Dict], events: Iterable[Dict]) -> Dict:
    state = init_state(config, teams)
    for event in events:
        _apply(event, state)
    return state


def undo(state: Dict) -> Dict:
    """Return the state folded from every event but the last.

    Events before the close of an innings, or of the match, are final.
    """

    events = state["events"]
    if not events:
        raise UndoUnavailable("no deliveries to undo")
    if len(events) <= state["lockedEvents"]:
        raise UndoUnavailable("cannot undo across an innings boundary")
    return replay(state["config"], state["teams"], events[:-1])


def current_innings(state: Dict) -> Dict:
    return state["innings"][state["currentInnings"]]


def _innings_summary(innings: Dict, overs_per_innings: int) -> Dict:
    overs = overs_display(innings["legalBalls"])
    return {
        "battingTeam": innings["battingTeam"],
        "scoreLine": f"{innings['score']}/{innings['wickets']} ({overs} ov)",
        "score": innings["score"],
        "wickets": innings["wickets"],
        "overs": overs,
        "runRate": run_rate(innings),
        "requiredRate": required_rate(innings, overs_per_innings),
        "target": innings["target"],
        "extras": dict(innings["extras"]),
        "batters": [dict(b) for b in innings["batters"]],
        "bowlers": [dict(b) for b in innings["bowlers"]],
        "closed": innings["closed"],
    }


def summary(state: Dict) -> Dict:
    overs = state["config"]["oversPerInnings"]
    innings = current_innings(state)
    return {
        "status": state["status"],
        "winner": state["winner"],
        "result": state["result"],
        "innings": [_innings_summary(i, overs) for i in state["innings"]],
        "striker": innings["striker"],
        "nonStriker": innings["nonStriker"],
        "bowler": innings["bowler"],
        "awaiting": list(innings["awaiting"]),
        "config": state["config"],
    }
