import asyncio
from collections.abc import Iterable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import Base, get_session
from app.main import app
from app.models import Match, ScoreEvent
from app.services import store

BADMINTON = {
    "sport": "badminton",
    "teams": {
        "A": {"name": "Smashers", "players": [{"id": "p1", "name": "Pat"}]},
        "B": {"name": "Drop Shots", "players": [{"id": "p2", "name": "Sam"}]},
    },
    "config": {"bestOf": 3, "firstServer": "A"},
}

CRICKET = {
    "sport": "cricket",
    "teams": {
        "A": {"name": "Strikers", "players": [{"id": f"a{i}"} for i in range(1, 4)]},
        "B": {"name": "Chargers", "players": [{"id": f"b{i}"} for i in range(1, 4)]},
    },
    "config": {"oversPerInnings": 1},
}


@pytest.fixture()
def matches_client():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async_session_maker = sessionmaker(
        engine, expire_on_commit=False, class_=AsyncSession
    )

    async def init_schema() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(init_schema())

    async def override_get_session() -> Iterable[AsyncSession]:
        async with async_session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client, async_session_maker

    app.dependency_overrides.clear()
    asyncio.run(engine.dispose())


def _create(client, body=BADMINTON) -> dict:
    resp = client.post("/api/v0/matches", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _event(client, mid, **event):
    return client.post(f"/api/v0/matches/{mid}/events", json=event)


def test_create_and_fetch_match(matches_client):
    client, _ = matches_client

    created = _create(client)
    assert created["sport"] == "badminton"
    assert created["status"] == "ongoing"
    assert created["config"]["bestOf"] == 3
    assert created["state"]["events"] == []

    resp = client.get(f"/api/v0/matches/{created['id']}")
    assert resp.status_code == 200
    assert resp.json() == created


def test_record_point_and_summary(matches_client):
    client, _ = matches_client
    mid = _create(client)["id"]

    resp = _event(client, mid, type="POINT", by="B")
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["summary"]["games"] == [{"A": 0, "B": 1, "winner": None}]
    assert body["summary"]["server"] == "B"
    assert body["match"]["state"]["events"] == [
        {"type": "POINT", "by": "B", "seq": 1, "game": 1}
    ]

    resp = client.get(f"/api/v0/matches/{mid}/summary")
    assert resp.status_code == 200
    summary = resp.json()
    assert summary["id"] == mid
    assert summary["status"] == "ongoing"
    assert summary["summary"]["serverCourtSide"] == "left"


def test_rejected_event_leaves_match_unchanged(matches_client):
    client, _ = matches_client
    created = _create(client, {**BADMINTON, "config": {"bestOf": 1, "firstServer": "A"}})
    mid = created["id"]
    for _ in range(21):
        assert _event(client, mid, type="POINT", by="A").status_code == 200

    resp = _event(client, mid, type="POINT", by="B")
    assert resp.status_code == 422
    assert resp.headers["content-type"].startswith("application/problem+json")
    problem = resp.json()
    assert problem["code"] == "invalid_event"
    assert "already completed" in problem["detail"]

    match = client.get(f"/api/v0/matches/{mid}").json()
    assert match["status"] == "completed"
    assert match["winner"] == "A"
    assert len(match["state"]["events"]) == 21


def test_malformed_event_body_is_rejected(matches_client):
    client, _ = matches_client
    mid = _create(client)["id"]

    assert _event(client, mid, type="POINT").status_code == 422
    assert _event(client, mid, type="SERVE", by="A").status_code == 422
    assert _event(client, mid, type="POINT", by="A", colour="red").status_code == 422


def test_unsupported_format_is_rejected(matches_client):
    client, _ = matches_client

    resp = client.post("/api/v0/matches", json={**BADMINTON, "config": {"bestOf": 4}})
    assert resp.status_code == 422
    assert resp.json()["code"] == "malformed_format"

    resp = client.post("/api/v0/matches", json={**BADMINTON, "sport": "squash"})
    assert resp.status_code == 422


def test_cricket_missing_participant(matches_client):
    client, _ = matches_client
    mid = _create(client, CRICKET)["id"]

    resp = _event(client, mid, type="BALL", runs=1)
    assert resp.status_code == 422
    assert resp.json()["code"] == "missing_participant"

    assert _event(client, mid, type="OPENERS", striker="a1", nonStriker="a2").status_code == 200
    assert _event(client, mid, type="BOWLER", bowler="b3").status_code == 200
    resp = _event(client, mid, type="BALL", runs=4)
    assert resp.status_code == 200
    innings = resp.json()["summary"]["innings"][0]
    assert innings["score"] == 4
    assert innings["overs"] == "0.1"


def test_undo_and_undo_conflict(matches_client):
    client, session_maker = matches_client
    mid = _create(client)["id"]

    resp = client.post(f"/api/v0/matches/{mid}/undo")
    assert resp.status_code == 409
    assert resp.json()["code"] == "undo_unavailable"

    _event(client, mid, type="POINT", by="A")
    _event(client, mid, type="POINT", by="B")

    resp = client.post(f"/api/v0/matches/{mid}/undo")
    assert resp.status_code == 200
    body = resp.json()
    assert body["summary"]["games"][0] == {"A": 1, "B": 0, "winner": None}
    assert body["summary"]["server"] == "A"

    async def stored_seqs():
        async with session_maker() as session:
            rows = await session.execute(
                select(ScoreEvent.seq)
                .where(ScoreEvent.match_id == mid)
                .order_by(ScoreEvent.seq)
            )
            return rows.scalars().all()

    assert asyncio.run(stored_seqs()) == [1]


def test_match_row_mirrors_envelope(matches_client):
    client, session_maker = matches_client
    mid = _create(client)["id"]
    _event(client, mid, type="POINT", by="A")

    async def load():
        async with session_maker() as session:
            return await session.get(Match, mid)

    row = asyncio.run(load())
    assert row.sport_id == "badminton"
    assert row.status == "ongoing"
    assert len(row.state["events"]) == 1


def test_unknown_match_returns_404(matches_client):
    client, _ = matches_client

    resp = client.get("/api/v0/matches/nope")
    assert resp.status_code == 404
    assert resp.json()["code"] == "match_not_found"

    assert _event(client, "nope", type="POINT", by="A").status_code == 404
    assert client.post("/api/v0/matches/nope/undo").status_code == 404
    assert "nope" not in store._match_locks


def test_store_failure_returns_503(matches_client, monkeypatch):
    client, _ = matches_client
    mid = _create(client)["id"]

    async def broken_fetch(session, match_id):
        raise store.StoreError("failed to load match")

    monkeypatch.setattr("app.routers.matches.fetch_match_state", broken_fetch)

    resp = _event(client, mid, type="POINT", by="A")
    assert resp.status_code == 503
    assert resp.json()["code"] == "match_store_unavailable"


def test_api_root_lists_sports(matches_client):
    client, _ = matches_client

    resp = client.get("/api")
    assert resp.status_code == 200
    assert resp.json()["sports"] == ["badminton", "cricket"]
    assert client.get("/healthz").json() == {"status": "ok"}
    assert client.get("/api/healthz").json() == {"status": "ok"}
