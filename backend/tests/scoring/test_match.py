from datetime import datetime, timedelta, timezone

import pytest

from app import scoring
from app.scoring import badminton, cricket


CREATED = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)

BADMINTON_TEAMS = {
    "A": {"name": "Smashers", "players": [{"id": "p1", "name": "Pat"}]},
    "B": {"name": "Drop Shots", "players": [{"id": "p2", "name": "Sam"}]},
}


def _badminton(**config):
    config.setdefault("firstServer", "A")
    outcome = scoring.create_match(
        "badminton", BADMINTON_TEAMS, config, match_id="m1", now=CREATED
    )
    assert outcome.ok
    return outcome.match


def test_create_match_builds_envelope():
    match = _badminton()

    assert match["id"] == "m1"
    assert match["sport"] == "badminton"
    assert match["status"] == "ongoing"
    assert match["winner"] is None
    assert match["createdAt"] == match["updatedAt"] == "2024-05-01T09:30:00+00:00"
    assert match["teams"]["A"] == {
        "name": "Smashers",
        "players": [{"id": "p1", "name": "Pat"}],
    }
    assert match["config"] == match["state"]["config"]
    assert match["state"]["events"] == []


def test_create_match_generates_id():
    first = scoring.create_match("badminton").match
    second = scoring.create_match("badminton").match
    assert first["id"] != second["id"]
    assert first["status"] == "setup"


@pytest.mark.parametrize(
    "sport, config",
    [
        ("squash", {}),
        (None, {}),
        ("badminton", {"bestOf": 4}),
        ("cricket", {"oversPerInnings": 0}),
    ],
)
def test_create_match_rejects_bad_formats(sport, config):
    outcome = scoring.create_match(sport, None, config)
    assert not outcome.ok
    assert isinstance(outcome.error, scoring.MalformedFormat)
    assert outcome.error.code == "malformed_format"


def test_record_returns_new_match_and_leaves_input_alone():
    match = _badminton()
    later = CREATED + timedelta(minutes=3)

    outcome = scoring.record(match, {"type": "POINT", "by": "B"}, now=later)

    assert outcome.ok
    assert outcome.match["state"]["games"][0]["score"] == {"A": 0, "B": 1}
    assert outcome.match["updatedAt"] == later.isoformat()
    assert outcome.match["createdAt"] == match["createdAt"]
    assert match["state"]["events"] == []
    assert match["updatedAt"] == "2024-05-01T09:30:00+00:00"


def test_record_rejection_carries_error():
    match = _badminton()

    outcome = scoring.record(match, {"type": "POINT", "by": "Z"})

    assert not outcome.ok
    assert isinstance(outcome.error, scoring.InvalidEvent)
    assert outcome.error.to_dict()["code"] == "invalid_event"


def test_record_tracks_status_and_winner():
    match = _badminton(bestOf=1)
    for _ in range(21):
        match = scoring.record(match, {"type": "POINT", "by": "A"}).match

    assert match["status"] == "completed"
    assert match["winner"] == "A"

    outcome = scoring.record(match, {"type": "POINT", "by": "A"})
    assert not outcome.ok
    assert isinstance(outcome.error, scoring.InvalidEvent)


def test_undo_reverts_last_event():
    match = _badminton()
    first = scoring.record(match, {"type": "POINT", "by": "A"}).match
    second = scoring.record(first, {"type": "POINT", "by": "B"}).match

    outcome = scoring.undo(second)

    assert outcome.ok
    assert outcome.match["state"] == first["state"]


def test_undo_unavailable_is_rejected():
    outcome = scoring.undo(_badminton())
    assert not outcome.ok
    assert isinstance(outcome.error, scoring.UndoUnavailable)


def test_cricket_missing_participant_is_rejected():
    teams = {
        "A": {"name": "Strikers", "players": ["a1", "a2", "a3"]},
        "B": {"name": "Chargers", "players": ["b1", "b2", "b3"]},
    }
    match = scoring.create_match("cricket", teams, {"oversPerInnings": 2}).match
    assert match["status"] == "setup"

    outcome = scoring.record(match, {"type": "BALL", "runs": 1})

    assert not outcome.ok
    assert isinstance(outcome.error, scoring.MissingParticipant)
    assert outcome.error.code == "missing_participant"


def test_replay_rebuilds_state_from_log():
    match = _badminton()
    for side in "ABBAAB":
        match = scoring.record(match, {"type": "POINT", "by": side}).match

    assert scoring.replay(match) == match["state"]


def test_summary_dispatches_to_engine():
    match = _badminton()
    match = scoring.record(match, {"type": "POINT", "by": "B"}).match

    assert scoring.summary(match) == badminton.summary(match["state"])
    assert scoring.summary(match)["server"] == "B"


def test_engines_registry():
    assert scoring.get_engine("cricket") is cricket
    with pytest.raises(scoring.MalformedFormat):
        scoring.get_engine("curling")
